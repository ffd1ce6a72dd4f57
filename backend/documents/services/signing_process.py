"""
Signing process service layer.

Responsibilities:
- Run every workflow operation (send, schedule, sign, decline, cancel,
  reminders) as one read-validate-write against a locked document aggregate
- Turn the pure engine results into persisted state
- Announce each committed change through Django signals

Every operation:
    1. loads the aggregate with its document row locked
    2. validates everything before any state changes
    3. saves with a version check, all inside one transaction.atomic() block
    4. sends `document_transitioned` once the transaction commits
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Mapping, Optional

from django.db import transaction
from django.utils import timezone

from ..choices import DocumentStatus
from ..domain import Aggregate, SigningOrigin, Transition
from ..exceptions import IllegalTransition, InvalidSignerState, RateLimited, ValidationFailed
from ..signals import document_transitioned, reminder_requested
from .document_state import DocumentStateMachine
from .field_dependency import FieldDependencyService, VisibilityEngine
from .field_validator import FieldValidator
from .geometry import PdfGeometry
from .reminder_policy import ReminderPolicy
from .repository import AggregateRepository
from .signer_sequencer import SignerSequencer

logger = logging.getLogger(__name__)

EVENT_SENT = 'document.sent'
EVENT_SCHEDULED = 'document.scheduled'
EVENT_SCHEDULE_CANCELLED = 'document.schedule_cancelled'
EVENT_COMPLETED = 'document.completed'
EVENT_CANCELLED = 'document.cancelled'
EVENT_EXPIRED = 'document.expired'
EVENT_SIGNED = 'signer.signed'
EVENT_DECLINED = 'signer.declined'
EVENT_REMINDED = 'signer.reminded'
EVENT_RESET = 'signer.reset'

MANUAL_REMINDER = 'manual'


class SigningProcessService:
    """Service for running workflow operations on stored documents."""

    @staticmethod
    def _get_signer(aggregate: Aggregate, signer_id):
        signer = aggregate.get_signer(str(signer_id))
        if signer is None:
            raise InvalidSignerState(
                signer_id,
                None,
                f'Signer {signer_id} is not part of document {aggregate.document.id}',
            )
        return signer

    @staticmethod
    def _ensure_pending(aggregate: Aggregate, action: str, now=None):
        document = aggregate.document
        if document.status != DocumentStatus.PENDING:
            raise IllegalTransition(
                document.status,
                DocumentStatus.PENDING,
                f"Cannot {action} while the document is '{document.status}'",
            )
        if DocumentStateMachine.is_expired(document, now):
            raise IllegalTransition(
                document.status,
                DocumentStatus.PENDING,
                f'Cannot {action}: the document expired at {document.expires_at.isoformat()}',
            )

    @staticmethod
    def _commit(aggregate: Aggregate, updated: Aggregate, event: str, signer=None) -> Transition:
        """Save `updated` against the version `aggregate` was loaded at."""
        saved = AggregateRepository.save(updated, expected_version=aggregate.version)
        transition = Transition(
            aggregate=saved,
            event=event,
            previous_status=aggregate.document.status,
            status=saved.document.status,
            signer=signer,
        )
        suffix = f" (signer {signer.id})" if signer is not None else ""
        logger.info(
            f"{event}: document {saved.document.id} "
            f"{transition.previous_status} -> {transition.status}{suffix}"
        )
        transaction.on_commit(
            lambda: document_transitioned.send(
                sender=SigningProcessService, transition=transition
            )
        )
        return transition

    @staticmethod
    def send(document_id, geometry=None) -> Transition:
        """
        Send a draft or scheduled document out for signature.

        Args:
            document_id: document primary key
            geometry: page size source for field bounds; defaults to the
                document's PDF (see PdfGeometry.for_document)

        Raises:
            IllegalTransition: document is not draft or scheduled
            ValidationFailed: every unmet send precondition and field error
        """
        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            document = aggregate.document

            if not DocumentStateMachine.is_valid_transition(document.status, DocumentStatus.PENDING):
                logger.warning(f"Rejected send of document {document.id} in status {document.status}")
                raise IllegalTransition(document.status, DocumentStatus.PENDING)

            if geometry is None:
                geometry = PdfGeometry.for_document(
                    AggregateRepository.get_document_model(document_id)
                )

            result = DocumentStateMachine.can_send(
                document, aggregate.signers, aggregate.fields
            ).merge(FieldValidator.validate_document(aggregate, geometry))
            if not result.valid:
                logger.warning(
                    f"Document {document.id} failed send validation with {len(result.errors)} error(s)"
                )
                raise ValidationFailed(result.errors)

            updated = replace(aggregate, document=DocumentStateMachine.mark_as_pending(document))
            return SigningProcessService._commit(aggregate, updated, EVENT_SENT)

    @staticmethod
    def schedule(document_id, send_at: datetime, now: Optional[datetime] = None) -> Transition:
        """
        Schedule a draft to be sent at `send_at`.

        The signer/field structure is checked now; field bounds are checked
        again when the scheduled send runs.
        """
        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            document = aggregate.document

            if document.status != DocumentStatus.DRAFT:
                raise IllegalTransition(document.status, DocumentStatus.SCHEDULED)

            result = DocumentStateMachine.can_send(document, aggregate.signers, aggregate.fields)
            if not result.valid:
                raise ValidationFailed(result.errors)

            updated = replace(
                aggregate,
                document=DocumentStateMachine.mark_as_scheduled(document, send_at, now),
            )
            return SigningProcessService._commit(aggregate, updated, EVENT_SCHEDULED)

    @staticmethod
    def cancel_schedule(document_id) -> Transition:
        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            updated = replace(
                aggregate,
                document=DocumentStateMachine.cancel_schedule(aggregate.document),
            )
            return SigningProcessService._commit(aggregate, updated, EVENT_SCHEDULE_CANCELLED)

    @staticmethod
    def validate_submission(aggregate: Aggregate, signer, values: Mapping) -> list:
        """
        Check the values a signer submits.

        - only the signer's own fields may be filled
        - calculated fields are never filled directly
        - each value must fit its field's configuration
        """
        own_fields = {f.id: f for f in aggregate.fields_for_signer(signer.email)}
        errors = []
        for field_id, value in values.items():
            field = own_fields.get(str(field_id))
            if field is None:
                errors.append(f'Field {field_id} is not assigned to this signer')
                continue
            if field.is_calculated:
                errors.append(f'Field {field_id} is calculated and cannot be filled in')
                continue
            result = FieldValidator.validate_value(field, value)
            errors.extend(f'Field {field_id}: {error}' for error in result.errors)
        return errors

    @staticmethod
    def sign(
        document_id,
        signer_id,
        values: Optional[Mapping] = None,
        origin: Optional[SigningOrigin] = None,
        now: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> Transition:
        """
        Record a signer's field values and signature.

        Completes the document when this was the last signature.

        Args:
            document_id: document primary key
            signer_id: signer primary key
            values: mapping of field id -> value for the signer's fields
            origin: SigningOrigin with ip address and user agent
            now: signing time, defaults to timezone.now()
            today: date used by `today` calculations

        Raises:
            IllegalTransition: document is not pending, or has expired
            InvalidSignerState: signer is not pending
            NotYourTurn: sequential workflow, earlier signers have not signed
            ValidationFailed: value errors and missing required fields
        """
        values = {str(k): v for k, v in (values or {}).items()}
        now = now or timezone.now()

        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            SigningProcessService._ensure_pending(aggregate, 'sign', now)
            signer = SigningProcessService._get_signer(aggregate, signer_id)
            SignerSequencer.ensure_can_sign(signer, aggregate.signers)

            errors = SigningProcessService.validate_submission(aggregate, signer, values)

            snapshot = FieldDependencyService.resolve_snapshot(
                aggregate.fields, {**aggregate.values, **values}, today
            )
            for field in VisibilityEngine.unfilled_required_fields(
                aggregate.fields, snapshot, signer.email
            ):
                if not field.is_calculated:
                    errors.append(f'Field {field.id} is required')

            if errors:
                logger.warning(
                    f"Rejected signature from signer {signer.id} on document "
                    f"{aggregate.document.id}: {'; '.join(errors)}"
                )
                raise ValidationFailed(errors)

            signed = SignerSequencer.mark_as_signed(signer, aggregate.signers, origin, now)
            updated = replace(
                aggregate.with_signer(signed),
                values={k: v for k, v in snapshot.items() if v is not None},
            )

            event = EVENT_SIGNED
            if DocumentStateMachine.all_signers_resolved(updated.signers):
                updated = replace(
                    updated,
                    document=DocumentStateMachine.mark_as_completed(updated.document, now),
                )
                event = EVENT_COMPLETED

            return SigningProcessService._commit(aggregate, updated, event, signer=signed)

    @staticmethod
    def decline(document_id, signer_id, cancel_document: bool = False) -> Transition:
        """
        Record that a signer declined.

        Later signers in a sequential workflow stay blocked. Whether the
        document is cancelled as well is up to the caller.
        """
        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            SigningProcessService._ensure_pending(aggregate, 'decline')
            signer = SigningProcessService._get_signer(aggregate, signer_id)

            declined = SignerSequencer.mark_as_declined(signer)
            updated = aggregate.with_signer(declined)
            if cancel_document:
                updated = replace(
                    updated,
                    document=DocumentStateMachine.mark_as_cancelled(updated.document),
                )

            return SigningProcessService._commit(aggregate, updated, EVENT_DECLINED, signer=declined)

    @staticmethod
    def cancel(document_id, event: str = EVENT_CANCELLED) -> Transition:
        """
        Cancel a pending or scheduled document.

        Raises:
            IllegalTransition: document is draft or already terminal
        """
        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            document = aggregate.document
            if not DocumentStateMachine.can_cancel(document):
                logger.warning(f"Rejected cancel of document {document.id} in status {document.status}")
                raise IllegalTransition(document.status, DocumentStatus.CANCELLED)
            updated = replace(aggregate, document=DocumentStateMachine.mark_as_cancelled(document))
            return SigningProcessService._commit(aggregate, updated, event)

    @staticmethod
    def remind(
        document_id,
        signer_id,
        reminder_type: str = MANUAL_REMINDER,
        now: Optional[datetime] = None,
    ) -> Transition:
        """
        Count one reminder against the signer's limit and request its delivery.

        Raises:
            IllegalTransition: document is not pending
            RateLimited: 5 reminders already sent in the last 24 hours
        """
        now = now or timezone.now()
        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            SigningProcessService._ensure_pending(aggregate, 'send reminders', now)
            signer = SigningProcessService._get_signer(aggregate, signer_id)

            try:
                reminded = ReminderPolicy.record_reminder_sent(signer, now)
            except RateLimited as e:
                logger.warning(
                    f"Reminder to signer {signer.id} on document {aggregate.document.id} blocked: {e.reason}"
                )
                raise

            transition = SigningProcessService._commit(
                aggregate, aggregate.with_signer(reminded), EVENT_REMINDED, signer=reminded
            )
            document = transition.aggregate.document
            transaction.on_commit(
                lambda: reminder_requested.send(
                    sender=SigningProcessService,
                    document=document,
                    signer=reminded,
                    reminder_type=reminder_type,
                )
            )
            return transition

    @staticmethod
    def resend_reminder(document_id, signer_id, now: Optional[datetime] = None) -> Transition:
        """Manual reminder requested by the document owner."""
        return SigningProcessService.remind(document_id, signer_id, MANUAL_REMINDER, now)

    @staticmethod
    def reset_signer(document_id, signer_id) -> Transition:
        """
        Administrative reset of a signer back to pending.

        Not part of normal flow; only allowed while the document is not terminal.
        """
        with transaction.atomic():
            aggregate = AggregateRepository.load(document_id, for_update=True)
            document = aggregate.document
            if document.is_terminal:
                raise IllegalTransition(
                    document.status,
                    document.status,
                    f"Cannot reset signers of a '{document.status}' document",
                )
            signer = SigningProcessService._get_signer(aggregate, signer_id)
            reset = SignerSequencer.reset_to_pending(signer)
            return SigningProcessService._commit(
                aggregate, aggregate.with_signer(reset), EVENT_RESET, signer=reset
            )
