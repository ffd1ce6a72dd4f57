from datetime import timedelta

import pytest

from documents.choices import DocumentStatus, FieldType, SignerStatus, WorkflowType
from documents.exceptions import IllegalTransition
from documents.services.document_state import DocumentStateMachine

from .factories import NOW, make_document, make_field, make_signer


class TestTransitions:

    def test_draft_to_pending_to_completed(self):
        document = make_document()

        pending = DocumentStateMachine.mark_as_pending(document, NOW)
        completed = DocumentStateMachine.mark_as_completed(pending, NOW)

        assert completed.status == DocumentStatus.COMPLETED
        assert completed.completed_at == NOW
        assert pending.completed_at is None
        assert pending.sent_at == NOW
        assert document.sent_at is None
        assert document.status == DocumentStatus.DRAFT

    def test_completed_to_pending_is_illegal(self):
        completed = make_document(status=DocumentStatus.COMPLETED, completed_at=NOW)

        with pytest.raises(IllegalTransition) as exc:
            DocumentStateMachine.mark_as_pending(completed)

        assert exc.value.current == DocumentStatus.COMPLETED
        assert exc.value.target == DocumentStatus.PENDING

    @pytest.mark.parametrize('status', [DocumentStatus.DRAFT, DocumentStatus.COMPLETED, DocumentStatus.CANCELLED])
    def test_cancel_only_pending_or_scheduled(self, status):
        document = make_document(status=status)
        assert not DocumentStateMachine.can_cancel(document)
        with pytest.raises(IllegalTransition):
            DocumentStateMachine.mark_as_cancelled(document)

    def test_draft_cannot_complete(self):
        with pytest.raises(IllegalTransition):
            DocumentStateMachine.mark_as_completed(make_document(), NOW)

    def test_schedule_and_cancel_schedule(self):
        send_at = NOW + timedelta(days=1)

        scheduled = DocumentStateMachine.mark_as_scheduled(make_document(), send_at, NOW)
        assert scheduled.status == DocumentStatus.SCHEDULED
        assert scheduled.scheduled_send_at == send_at
        assert DocumentStateMachine.can_cancel(scheduled)

        draft = DocumentStateMachine.cancel_schedule(scheduled)
        assert draft.status == DocumentStatus.DRAFT
        assert draft.scheduled_send_at is None

    def test_schedule_in_past_rejected(self):
        with pytest.raises(IllegalTransition):
            DocumentStateMachine.mark_as_scheduled(make_document(), NOW - timedelta(minutes=1), NOW)

    def test_cancel_schedule_requires_scheduled(self):
        with pytest.raises(IllegalTransition):
            DocumentStateMachine.cancel_schedule(make_document(status=DocumentStatus.PENDING))

    def test_transition_table(self):
        assert DocumentStateMachine.is_valid_transition(DocumentStatus.SCHEDULED, DocumentStatus.PENDING)
        assert not DocumentStateMachine.is_valid_transition(DocumentStatus.DRAFT, DocumentStatus.COMPLETED)
        assert not DocumentStateMachine.is_valid_transition(DocumentStatus.CANCELLED, DocumentStatus.DRAFT)


class TestCanSend:

    def test_ready_document(self):
        signer = make_signer()
        field = make_field(FieldType.SIGNATURE)
        assert DocumentStateMachine.can_send(make_document(), [signer], [field]).valid

    def test_collects_every_problem(self):
        field = make_field(signer_email=None)

        result = DocumentStateMachine.can_send(
            make_document(status=DocumentStatus.PENDING), [], [field]
        )

        assert result.errors == (
            "Document cannot be sent while 'pending'",
            'Document must have at least one signer',
            f'Field {field.id} is not assigned to a signer',
        )

    def test_field_assigned_to_unknown_signer(self):
        signer = make_signer('alice@example.com')
        field = make_field(signer_email='bob@example.com')

        result = DocumentStateMachine.can_send(make_document(), [signer], [field])

        assert f'Field {field.id} is assigned to bob@example.com, who is not a signer' in result.errors
        assert 'Signer alice@example.com has no assigned fields' in result.errors

    def test_signing_orders_checked(self):
        document = make_document(workflow_type=WorkflowType.SEQUENTIAL)
        signer = make_signer()
        result = DocumentStateMachine.can_send(document, [signer], [make_field()])
        assert not result.valid


class TestPredicates:

    def test_all_signers_resolved(self):
        signed = make_signer(status=SignerStatus.SIGNED)
        pending = make_signer(status=SignerStatus.PENDING)
        assert DocumentStateMachine.all_signers_resolved([signed])
        assert not DocumentStateMachine.all_signers_resolved([signed, pending])
        assert not DocumentStateMachine.all_signers_resolved([])

    def test_any_signer_declined(self):
        assert DocumentStateMachine.any_signer_declined([make_signer(status=SignerStatus.DECLINED)])

    def test_can_edit_only_draft(self):
        assert DocumentStateMachine.can_edit(make_document())
        assert not DocumentStateMachine.can_edit(make_document(status=DocumentStatus.PENDING))

    def test_is_expired(self):
        document = make_document(status=DocumentStatus.PENDING, expires_at=NOW - timedelta(seconds=1))
        assert DocumentStateMachine.is_expired(document, NOW)
        assert not DocumentStateMachine.is_expired(make_document(expires_at=NOW - timedelta(days=1)), NOW)

    def test_describe_workflow(self):
        assert DocumentStateMachine.describe_workflow('sequential') == 'Sequential signing (signers in order)'
        assert DocumentStateMachine.describe_workflow('bogus') == 'Unknown workflow'
