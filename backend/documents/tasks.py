"""
Periodic workflow jobs run by Celery beat (see CELERY_BEAT_SCHEDULE).
"""

import logging

from celery import shared_task
from django.db import transaction
from django.utils import timezone

from .choices import DocumentStatus
from .exceptions import RateLimited, SigningWorkflowError, ValidationFailed
from .models import Document, SentReminder
from .services.reminder_policy import ReminderPolicy
from .services.repository import AggregateRepository
from .services.signing_process import EVENT_EXPIRED, SigningProcessService

logger = logging.getLogger(__name__)


@shared_task
def dispatch_due_reminders():
    """
    Send the automatic expiry reminders that have come due.

    Each reminder counts against the signer's resend limit; blocked ones are
    left unrecorded and retried on a later run.

    Returns:
        int: number of reminders sent
    """
    now = timezone.now()
    sent = 0
    documents = Document.objects.filter(
        status=DocumentStatus.PENDING,
        expires_at__gt=now,
    ).values_list('id', flat=True)

    for document_id in documents:
        aggregate = AggregateRepository.load(document_id)
        sent_keys = set(
            (str(signer_id), reminder_type)
            for signer_id, reminder_type in SentReminder.objects.filter(
                signer__document_id=document_id
            ).values_list('signer_id', 'reminder_type')
        )
        due = ReminderPolicy.due_reminders(aggregate.document, aggregate.signers, now, sent_keys)

        for reminder in due:
            try:
                with transaction.atomic():
                    SigningProcessService.remind(
                        document_id, reminder.signer_id, reminder.reminder_type, now
                    )
                    SentReminder.objects.create(
                        signer_id=reminder.signer_id,
                        reminder_type=reminder.reminder_type,
                    )
                sent += 1
            except RateLimited as e:
                logger.info(f"Skipping {reminder.reminder_type} reminder to signer {reminder.signer_id}: {e.reason}")
            except SigningWorkflowError as e:
                logger.error(f"Reminder to signer {reminder.signer_id} on document {document_id} failed: {e}")

    logger.info(f"Dispatched {sent} automatic reminder(s)")
    return sent


@shared_task
def send_scheduled_documents():
    """
    Send every scheduled document whose send time has passed.

    A document that no longer passes send validation goes back to draft so
    its owner can fix it.

    Returns:
        int: number of documents sent
    """
    now = timezone.now()
    sent = 0
    documents = Document.objects.filter(
        status=DocumentStatus.SCHEDULED,
        scheduled_send_at__lte=now,
    ).values_list('id', flat=True)

    for document_id in documents:
        try:
            SigningProcessService.send(document_id)
            sent += 1
        except ValidationFailed as e:
            logger.error(f"Scheduled send of document {document_id} failed validation: {e}")
            SigningProcessService.cancel_schedule(document_id)
        except SigningWorkflowError as e:
            logger.error(f"Scheduled send of document {document_id} failed: {e}")

    logger.info(f"Sent {sent} scheduled document(s)")
    return sent


@shared_task
def expire_documents():
    """
    Cancel pending documents whose expiry has passed.

    Returns:
        int: number of documents cancelled
    """
    now = timezone.now()
    expired = 0
    documents = Document.objects.filter(
        status=DocumentStatus.PENDING,
        expires_at__lte=now,
    ).values_list('id', flat=True)

    for document_id in documents:
        try:
            SigningProcessService.cancel(document_id, event=EVENT_EXPIRED)
            expired += 1
        except SigningWorkflowError as e:
            logger.error(f"Expiring document {document_id} failed: {e}")

    logger.info(f"Expired {expired} document(s)")
    return expired
