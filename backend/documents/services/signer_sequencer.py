"""
Signer sequencing.

Decides which signers may act right now given the workflow mode and each
signer's recorded status, and produces the new Signer values for signing,
declining and the administrative reset.

Signer status is monotonic in normal flow: pending -> signed | declined.
"""

from dataclasses import replace
from typing import List, Optional, Sequence

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.utils import timezone

from ..choices import SignerStatus, WorkflowType
from ..domain import Signer, SigningOrigin, ValidationResult
from ..exceptions import InvalidSignerState, NotYourTurn


class SignerSequencer:
    """Service for signer turn-taking and signer status transitions."""

    @staticmethod
    def blocking_signers(target: Signer, signers: Sequence[Signer]) -> List[Signer]:
        """
        Signers with a lower signing order who have not signed yet.

        Declined signers stay blocking: a decline never unblocks later signers.
        """
        if target.signing_order is None:
            return []
        return [
            s for s in signers
            if s.id != target.id
            and s.signing_order is not None
            and s.signing_order < target.signing_order
            and not s.has_signed
        ]

    @staticmethod
    def can_sign(target: Signer, signers: Sequence[Signer]) -> bool:
        """
        Check whether `target` may sign now.

        Parallel and single workflows (no signing order): any pending signer.
        Sequential: pending, and every signer ordered before has signed.
        """
        if not target.is_pending:
            return False
        return not SignerSequencer.blocking_signers(target, signers)

    @staticmethod
    def ensure_can_sign(target: Signer, signers: Sequence[Signer]) -> None:
        """
        Raises:
            InvalidSignerState: target is not pending
            NotYourTurn: earlier signers have not all signed
        """
        if not target.is_pending:
            raise InvalidSignerState(target.id, target.status)
        blocking = SignerSequencer.blocking_signers(target, signers)
        if blocking:
            raise NotYourTurn(target.id, [s.id for s in blocking])

    @staticmethod
    def mark_as_signed(
        signer: Signer,
        signers: Sequence[Signer],
        origin: Optional[SigningOrigin] = None,
        now=None,
    ) -> Signer:
        """Return the signed copy of `signer` with its signing metadata."""
        SignerSequencer.ensure_can_sign(signer, signers)
        origin = origin or SigningOrigin()
        return replace(
            signer,
            status=SignerStatus.SIGNED,
            signed_at=now or timezone.now(),
            ip_address=origin.ip_address,
            user_agent=origin.user_agent,
        )

    @staticmethod
    def mark_as_declined(signer: Signer) -> Signer:
        if not signer.is_pending:
            raise InvalidSignerState(signer.id, signer.status)
        return replace(signer, status=SignerStatus.DECLINED)

    @staticmethod
    def reset_to_pending(signer: Signer) -> Signer:
        """Administrative escape hatch; clears signing metadata."""
        return replace(
            signer,
            status=SignerStatus.PENDING,
            signed_at=None,
            ip_address=None,
            user_agent=None,
        )

    @staticmethod
    def current_signers(signers: Sequence[Signer]) -> List[Signer]:
        """Everyone who may act right now."""
        return [s for s in signers if SignerSequencer.can_sign(s, signers)]

    @staticmethod
    def next_signers_after(signer: Signer, signers: Sequence[Signer]) -> List[Signer]:
        """
        Signers who become eligible once `signer` has signed.

        Used to notify the next person in a sequential workflow.
        """
        signed = replace(signer, status=SignerStatus.SIGNED)
        after = [signed if s.id == signer.id else s for s in signers]
        before_ids = {s.id for s in SignerSequencer.current_signers(signers)}
        return [
            s for s in SignerSequencer.current_signers(after)
            if s.id not in before_ids
        ]

    @staticmethod
    def has_declined(signers: Sequence[Signer]) -> bool:
        return any(s.has_declined for s in signers)

    @staticmethod
    def validate_signing_orders(workflow_type: str, signers: Sequence[Signer]) -> ValidationResult:
        """
        Construction-time checks on a document's signer list.

        - sequential: every signer has a unique, non-negative signing order
        - single/parallel: no signer has a signing order
        - single: exactly one signer
        - emails are valid and unique within the document
        """
        errors = []

        if workflow_type == WorkflowType.SEQUENTIAL:
            orders = []
            for signer in signers:
                order = signer.signing_order
                if order is None:
                    errors.append(f'Signer {signer.email} needs a signing order in a sequential workflow')
                elif isinstance(order, bool) or not isinstance(order, int) or order < 0:
                    errors.append(f'Signer {signer.email} has an invalid signing order: {order}')
                else:
                    orders.append(order)
            duplicates = sorted({o for o in orders if orders.count(o) > 1})
            for order in duplicates:
                errors.append(f'Signing order {order} is used by more than one signer')
        else:
            for signer in signers:
                if signer.signing_order is not None:
                    errors.append(
                        f'Signer {signer.email} cannot have a signing order in a {workflow_type} workflow'
                    )
            if workflow_type == WorkflowType.SINGLE and len(signers) > 1:
                errors.append('A single-signer document must have exactly one signer')

        seen = set()
        for signer in signers:
            email = (signer.email or '').strip().lower()
            try:
                validate_email(email)
            except ValidationError:
                errors.append(f'Invalid signer email format: {signer.email}')
                continue
            if email in seen:
                errors.append(f'Signer {signer.email} is listed more than once')
            seen.add(email)

        return ValidationResult.from_errors(errors)
