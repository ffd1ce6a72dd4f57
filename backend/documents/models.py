import logging
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from .choices import DocumentStatus, FieldType, SignerStatus, WorkflowType
from .services.token_utils import generate_access_token

logger = logging.getLogger(__name__)


def default_reminder_settings():
    return {
        'enabled': True,
        'intervals': list(getattr(settings, 'SIGNFLOW_DEFAULT_REMINDER_INTERVALS', [1, 3, 7])),
    }


def document_upload_path(instance, filename):
    return f'documents/{instance.id}/{filename}'


class Document(models.Model):
    """
    Document represents one signing workflow instance.

    `version` is bumped on every save through the aggregate repository and
    used as a compare-and-swap guard against concurrent writers.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='signflow_documents'
    )
    title = models.CharField(max_length=255)
    file = models.FileField(upload_to=document_upload_path, null=True, blank=True)
    page_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    status = models.CharField(
        max_length=20,
        choices=DocumentStatus.choices,
        default=DocumentStatus.DRAFT,
        db_index=True
    )
    workflow_type = models.CharField(
        max_length=20,
        choices=WorkflowType.choices,
        default=WorkflowType.SINGLE
    )

    expires_at = models.DateTimeField(null=True, blank=True)
    scheduled_send_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    reminder_settings = models.JSONField(default=default_reminder_settings, blank=True)

    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        """Compute page count from the attached PDF when there is one."""
        if self.file and not kwargs.get('update_fields'):
            try:
                reader = PdfReader(self.file)
                self.page_count = len(reader.pages) or 1
            except (OSError, PdfReadError) as e:
                logger.warning(f"Error reading PDF for document {self.pk}: {e}")
        super().save(*args, **kwargs)

    def clean(self):
        if (self.status == DocumentStatus.COMPLETED) != (self.completed_at is not None):
            raise ValidationError(
                {'completed_at': 'completed_at is set exactly when the document is completed'}
            )


class Signer(models.Model):
    """
    A participant who must sign a document.

    Signing metadata (signed_at, ip_address, user_agent) is only populated
    once the signer has signed.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='signers'
    )
    email = models.EmailField()
    name = models.CharField(max_length=255)
    signing_order = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Position in a sequential workflow (null for single/parallel)"
    )
    status = models.CharField(
        max_length=20,
        choices=SignerStatus.choices,
        default=SignerStatus.PENDING
    )
    access_token = models.CharField(
        max_length=64,
        unique=True,
        db_index=True,
        default=generate_access_token,
        editable=False
    )

    signed_at = models.DateTimeField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)

    reminder_count = models.PositiveIntegerField(default=0)
    last_reminder_sent_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['signing_order', 'created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['document', 'email'],
                name='unique_signer_email_per_document'
            ),
            models.UniqueConstraint(
                fields=['document', 'signing_order'],
                condition=models.Q(signing_order__isnull=False),
                name='unique_signing_order_per_document'
            ),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}> ({self.status})"


class Field(models.Model):
    """
    A field placed on a document page and filled in by one signer.

    Geometry is in PDF points from the top-left corner of the page; pages
    are 0-indexed. `value` holds what the signer entered (or the computed
    result for calculated fields).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='fields'
    )
    field_type = models.CharField(max_length=20, choices=FieldType.choices)

    page = models.PositiveIntegerField(default=0)
    x = models.FloatField()
    y = models.FloatField()
    width = models.FloatField()
    height = models.FloatField()

    required = models.BooleanField(default=True)
    signer_email = models.EmailField(null=True, blank=True)

    properties = models.JSONField(default=dict, blank=True)
    visibility_rules = models.JSONField(null=True, blank=True)
    calculation = models.JSONField(null=True, blank=True)

    value = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['page', 'y', 'x']

    def __str__(self):
        return f"{self.field_type} on page {self.page} ({self.signer_email or 'unassigned'})"


class SentReminder(models.Model):
    """
    Record of an automatic reminder, one per signer and interval.

    Manual resends are tracked on the signer's reminder counter instead.
    """
    signer = models.ForeignKey(
        Signer,
        on_delete=models.CASCADE,
        related_name='sent_reminders'
    )
    reminder_type = models.CharField(max_length=20, help_text="'<days>_day' before expiry")
    sent_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-sent_at']
        constraints = [
            models.UniqueConstraint(
                fields=['signer', 'reminder_type'],
                name='unique_reminder_per_signer_and_type'
            )
        ]

    def __str__(self):
        return f"{self.reminder_type} reminder to {self.signer.email}"
