from datetime import timedelta

import pytest

from documents.choices import DocumentStatus, SignerStatus
from documents.domain import ReminderSettings
from documents.exceptions import RateLimited
from documents.services.reminder_policy import ReminderPolicy

from .factories import NOW, make_document, make_signer


class TestCanResendReminder:

    def test_allowed_under_limit(self):
        signer = make_signer(reminder_count=4, last_reminder_sent_at=NOW)
        assert ReminderPolicy.can_resend_reminder(signer, NOW).allowed

    def test_blocked_at_limit_within_window(self):
        signer = make_signer(reminder_count=5, last_reminder_sent_at=NOW - timedelta(hours=3))

        decision = ReminderPolicy.can_resend_reminder(signer, NOW)

        assert not decision.allowed
        assert 'Maximum 5 reminders' in decision.reason
        assert decision.retry_after == timedelta(hours=21)

    def test_allowed_once_window_elapsed(self):
        signer = make_signer(reminder_count=5, last_reminder_sent_at=NOW - timedelta(hours=24))
        assert ReminderPolicy.can_resend_reminder(signer, NOW).allowed

    def test_count_without_timestamp_is_allowed(self):
        signer = make_signer(reminder_count=5)
        assert ReminderPolicy.can_resend_reminder(signer, NOW).allowed

    def test_signed_signer_is_not_reminded(self):
        signer = make_signer(status=SignerStatus.SIGNED)
        assert not ReminderPolicy.can_resend_reminder(signer, NOW).allowed


class TestRecordReminderSent:

    def test_increments_and_stamps(self):
        signer = make_signer(reminder_count=2, last_reminder_sent_at=NOW - timedelta(hours=1))

        reminded = ReminderPolicy.record_reminder_sent(signer, NOW)

        assert reminded.reminder_count == 3
        assert reminded.last_reminder_sent_at == NOW

    def test_counter_resets_after_window(self):
        signer = make_signer(reminder_count=5, last_reminder_sent_at=NOW - timedelta(days=2))

        reminded = ReminderPolicy.record_reminder_sent(signer, NOW)

        assert reminded.reminder_count == 1

    def test_raises_when_blocked(self):
        signer = make_signer(reminder_count=5, last_reminder_sent_at=NOW - timedelta(hours=1))

        with pytest.raises(RateLimited) as exc:
            ReminderPolicy.record_reminder_sent(signer, NOW)

        assert exc.value.retry_after == timedelta(hours=23)

    def test_sixth_send_in_a_row_is_blocked(self):
        signer = make_signer()
        for minute in range(5):
            signer = ReminderPolicy.record_reminder_sent(signer, NOW + timedelta(minutes=minute))

        with pytest.raises(RateLimited):
            ReminderPolicy.record_reminder_sent(signer, NOW + timedelta(minutes=10))


class TestSchedule:

    def pending_document(self, **overrides):
        data = {
            'status': DocumentStatus.PENDING,
            'expires_at': NOW + timedelta(days=5),
            'reminder_settings': ReminderSettings(enabled=True, intervals=(1, 3, 7)),
        }
        data.update(overrides)
        return make_document(**data)

    def test_schedule_skips_past_intervals(self):
        signer = make_signer()

        reminders = ReminderPolicy.schedule_reminders(self.pending_document(), [signer], NOW)

        assert [r.reminder_type for r in reminders] == ['3_day', '1_day']
        assert reminders[0].scheduled_for == NOW + timedelta(days=2)

    def test_schedule_only_pending_signers(self):
        signers = [make_signer('a@example.com'), make_signer('b@example.com', status=SignerStatus.SIGNED)]

        reminders = ReminderPolicy.schedule_reminders(self.pending_document(), signers, NOW)

        assert {r.signer_id for r in reminders} == {signers[0].id}

    def test_no_schedule_when_disabled_or_no_expiry(self):
        signer = make_signer()
        disabled = self.pending_document(reminder_settings=ReminderSettings(enabled=False))
        no_expiry = self.pending_document(expires_at=None)

        assert ReminderPolicy.schedule_reminders(disabled, [signer], NOW) == []
        assert ReminderPolicy.schedule_reminders(no_expiry, [signer], NOW) == []

    def test_due_reminders_excludes_sent(self):
        signer = make_signer()
        document = self.pending_document(
            expires_at=NOW + timedelta(hours=12),
            sent_at=NOW - timedelta(days=8),
        )

        due = ReminderPolicy.due_reminders(document, [signer], NOW)
        assert [r.reminder_type for r in due] == ['7_day', '3_day', '1_day']

        sent = {(signer.id, '7_day'), (signer.id, '3_day')}
        due = ReminderPolicy.due_reminders(document, [signer], NOW, sent)
        assert [r.reminder_type for r in due] == ['1_day']

    def test_due_reminders_skip_intervals_passed_before_sending(self):
        signer = make_signer()
        document = self.pending_document(
            expires_at=NOW + timedelta(hours=36),
            sent_at=NOW - timedelta(minutes=5),
        )

        scheduled = ReminderPolicy.schedule_reminders(document, [signer], document.sent_at)
        assert [r.reminder_type for r in scheduled] == ['1_day']

        assert ReminderPolicy.due_reminders(document, [signer], NOW) == []

        later = NOW + timedelta(hours=13)
        assert [r.reminder_type for r in ReminderPolicy.due_reminders(document, [signer], later)] == ['1_day']
