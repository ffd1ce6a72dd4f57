"""
Document lifecycle.

    draft     -> scheduled, pending
    scheduled -> pending, draft, cancelled
    pending   -> completed, cancelled

completed and cancelled are terminal. Every mark_as_* function returns a new
Document and raises IllegalTransition, leaving its input untouched, when the
table forbids the move.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Sequence

from django.utils import timezone

from ..choices import DocumentStatus, WorkflowType
from ..domain import Document, Field, Signer, ValidationResult
from ..exceptions import IllegalTransition
from .signer_sequencer import SignerSequencer
from .token_utils import is_expired


class DocumentStateMachine:
    """Service for document status transitions and their preconditions."""

    TRANSITIONS: Dict[str, FrozenSet[str]] = {
        DocumentStatus.DRAFT: frozenset({DocumentStatus.SCHEDULED, DocumentStatus.PENDING}),
        DocumentStatus.SCHEDULED: frozenset({
            DocumentStatus.PENDING,
            DocumentStatus.DRAFT,
            DocumentStatus.CANCELLED,
        }),
        DocumentStatus.PENDING: frozenset({DocumentStatus.COMPLETED, DocumentStatus.CANCELLED}),
        DocumentStatus.COMPLETED: frozenset(),
        DocumentStatus.CANCELLED: frozenset(),
    }

    @staticmethod
    def is_valid_transition(current: str, target: str) -> bool:
        return target in DocumentStateMachine.TRANSITIONS.get(current, frozenset())

    @staticmethod
    def _transition(document: Document, target: str, **changes) -> Document:
        if not DocumentStateMachine.is_valid_transition(document.status, target):
            raise IllegalTransition(document.status, target)
        return replace(document, status=target, **changes)

    @staticmethod
    def can_edit(document: Document) -> bool:
        """Signers and fields can only be added or edited on a draft."""
        return document.status == DocumentStatus.DRAFT

    @staticmethod
    def can_send(
        document: Document,
        signers: Sequence[Signer],
        fields: Sequence[Field],
    ) -> ValidationResult:
        """
        Check every precondition for sending a document out for signature.

        Returns:
            ValidationResult listing all unmet preconditions
        """
        errors = []

        if document.status not in (DocumentStatus.DRAFT, DocumentStatus.SCHEDULED):
            errors.append(f"Document cannot be sent while '{document.status}'")

        if not signers:
            errors.append('Document must have at least one signer')
        if not fields:
            errors.append('Document must have at least one field')

        signer_emails = {s.email.strip().lower() for s in signers if s.email}
        for field in fields:
            if not field.has_assigned_signer:
                errors.append(f'Field {field.id} is not assigned to a signer')
            elif field.signer_email.strip().lower() not in signer_emails:
                errors.append(
                    f'Field {field.id} is assigned to {field.signer_email}, who is not a signer'
                )

        assigned = {
            f.signer_email.strip().lower() for f in fields if f.has_assigned_signer
        }
        for signer in signers:
            if signer.email and signer.email.strip().lower() not in assigned:
                errors.append(f'Signer {signer.email} has no assigned fields')

        errors.extend(
            SignerSequencer.validate_signing_orders(document.workflow_type, signers).errors
        )
        return ValidationResult.from_errors(errors)

    @staticmethod
    def can_cancel(document: Document) -> bool:
        return document.status in (DocumentStatus.PENDING, DocumentStatus.SCHEDULED)

    @staticmethod
    def mark_as_scheduled(
        document: Document,
        send_at: datetime,
        now: Optional[datetime] = None,
    ) -> Document:
        """
        Raises:
            IllegalTransition: not a draft, or `send_at` is not in the future
        """
        now = now or timezone.now()
        if send_at <= now:
            raise IllegalTransition(
                document.status,
                DocumentStatus.SCHEDULED,
                'Scheduled send time must be in the future',
            )
        return DocumentStateMachine._transition(
            document, DocumentStatus.SCHEDULED, scheduled_send_at=send_at,
        )

    @staticmethod
    def cancel_schedule(document: Document) -> Document:
        if document.status != DocumentStatus.SCHEDULED:
            raise IllegalTransition(
                document.status,
                DocumentStatus.DRAFT,
                'Only scheduled documents can have their schedule cancelled',
            )
        return DocumentStateMachine._transition(
            document, DocumentStatus.DRAFT, scheduled_send_at=None,
        )

    @staticmethod
    def mark_as_pending(document: Document, now: Optional[datetime] = None) -> Document:
        return DocumentStateMachine._transition(
            document,
            DocumentStatus.PENDING,
            scheduled_send_at=None,
            sent_at=now or timezone.now(),
        )

    @staticmethod
    def mark_as_completed(document: Document, now: Optional[datetime] = None) -> Document:
        return DocumentStateMachine._transition(
            document, DocumentStatus.COMPLETED, completed_at=now or timezone.now(),
        )

    @staticmethod
    def mark_as_cancelled(document: Document) -> Document:
        return DocumentStateMachine._transition(document, DocumentStatus.CANCELLED)

    @staticmethod
    def all_signers_resolved(signers: Sequence[Signer]) -> bool:
        """True when there is at least one signer and every signer has signed."""
        return bool(signers) and all(s.has_signed for s in signers)

    @staticmethod
    def any_signer_declined(signers: Sequence[Signer]) -> bool:
        return SignerSequencer.has_declined(signers)

    @staticmethod
    def is_expired(document: Document, now: Optional[datetime] = None) -> bool:
        """A pending document whose `expires_at` has passed."""
        return document.status == DocumentStatus.PENDING and is_expired(document.expires_at, now)

    @staticmethod
    def describe_workflow(workflow_type: str) -> str:
        try:
            return WorkflowType(workflow_type).label
        except ValueError:
            return 'Unknown workflow'
