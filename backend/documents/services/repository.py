"""
Aggregate storage.

Loads a Document with its signers, fields and field values as one frozen
Aggregate, and writes workflow results back with a compare-and-swap on the
document's `version` column.
"""

import logging
from dataclasses import replace
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..domain import (
    Aggregate,
    Calculation,
    Document,
    Field,
    ReminderSettings,
    Signer,
    VisibilityRules,
)
from ..exceptions import AggregateNotFound, ConcurrentModification
from .. import models

logger = logging.getLogger(__name__)

SIGNER_STATE_FIELDS = [
    'status',
    'signed_at',
    'ip_address',
    'user_agent',
    'reminder_count',
    'last_reminder_sent_at',
]


def document_to_domain(document: models.Document) -> Document:
    return Document(
        id=str(document.id),
        owner_id=str(document.owner_id) if document.owner_id is not None else None,
        title=document.title,
        status=document.status,
        workflow_type=document.workflow_type,
        page_count=document.page_count,
        expires_at=document.expires_at,
        scheduled_send_at=document.scheduled_send_at,
        reminder_settings=ReminderSettings.from_dict(document.reminder_settings),
        completed_at=document.completed_at,
        sent_at=document.sent_at,
    )


def signer_to_domain(signer: models.Signer) -> Signer:
    return Signer(
        id=str(signer.id),
        document_id=str(signer.document_id),
        email=signer.email,
        name=signer.name,
        access_token=signer.access_token,
        signing_order=signer.signing_order,
        status=signer.status,
        signed_at=signer.signed_at,
        ip_address=signer.ip_address,
        user_agent=signer.user_agent,
        reminder_count=signer.reminder_count,
        last_reminder_sent_at=signer.last_reminder_sent_at,
    )


def field_to_domain(field: models.Field) -> Field:
    return Field(
        id=str(field.id),
        document_id=str(field.document_id),
        type=field.field_type,
        page=field.page,
        x=field.x,
        y=field.y,
        width=field.width,
        height=field.height,
        required=field.required,
        signer_email=field.signer_email,
        properties=field.properties or {},
        visibility_rules=VisibilityRules.from_dict(field.visibility_rules),
        calculation=Calculation.from_dict(field.calculation),
    )


class AggregateRepository:
    """Service for loading and saving document aggregates."""

    @staticmethod
    def get_document_model(document_id, for_update: bool = False) -> models.Document:
        queryset = models.Document.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=document_id)
        except (models.Document.DoesNotExist, ValueError, ValidationError):
            raise AggregateNotFound(document_id)

    @staticmethod
    def load(document_id, for_update: bool = False) -> Aggregate:
        """
        Load one document aggregate.

        Args:
            document_id: document primary key
            for_update: lock the document row until the surrounding
                transaction ends (must be called inside `transaction.atomic()`)

        Raises:
            AggregateNotFound
        """
        document = AggregateRepository.get_document_model(document_id, for_update)
        signers = list(document.signers.all())
        fields = list(document.fields.all())

        return Aggregate(
            document=document_to_domain(document),
            signers=tuple(signer_to_domain(s) for s in signers),
            fields=tuple(field_to_domain(f) for f in fields),
            values={str(f.id): f.value for f in fields if f.value is not None},
            version=document.version,
        )

    @staticmethod
    def save(aggregate: Aggregate, expected_version: Optional[int] = None) -> Aggregate:
        """
        Write document status, signer state and field values.

        Structural data (field geometry, properties, signer identity) is not
        written here; it only changes while the document is a draft.

        Returns:
            the aggregate with its new version

        Raises:
            ConcurrentModification: the stored version is not `expected_version`
            AggregateNotFound: the document no longer exists
        """
        if expected_version is None:
            expected_version = aggregate.version
        document = aggregate.document
        new_version = expected_version + 1

        with transaction.atomic():
            updated = models.Document.objects.filter(
                pk=document.id,
                version=expected_version,
            ).update(
                status=document.status,
                scheduled_send_at=document.scheduled_send_at,
                completed_at=document.completed_at,
                sent_at=document.sent_at,
                expires_at=document.expires_at,
                version=new_version,
                updated_at=timezone.now(),
            )

            if not updated:
                actual = models.Document.objects.filter(
                    pk=document.id
                ).values_list('version', flat=True).first()
                if actual is None:
                    raise AggregateNotFound(document.id)
                logger.warning(
                    f"Concurrent modification of document {document.id} "
                    f"(expected version {expected_version}, found {actual})"
                )
                raise ConcurrentModification(document.id, expected_version, actual)

            signer_rows = {
                str(s.id): s for s in models.Signer.objects.filter(document_id=document.id)
            }
            signers_to_update = []
            for signer in aggregate.signers:
                row = signer_rows.get(signer.id)
                if row is None:
                    continue
                for name in SIGNER_STATE_FIELDS:
                    setattr(row, name, getattr(signer, name))
                signers_to_update.append(row)
            if signers_to_update:
                models.Signer.objects.bulk_update(signers_to_update, SIGNER_STATE_FIELDS)

            field_rows = list(models.Field.objects.filter(document_id=document.id))
            for row in field_rows:
                row.value = aggregate.values.get(str(row.id))
            if field_rows:
                models.Field.objects.bulk_update(field_rows, ['value'])

        return replace(aggregate, version=new_version)
