"""
Reminder rate limiting and scheduling.

Responsibilities:
- Decide whether a signer may be sent another reminder right now
  (at most 5 per rolling 24-hour window from the last send)
- Produce the updated Signer after a reminder goes out
- Compute the automatic reminder schedule from a document's expiry
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Collection, List, Optional, Sequence, Tuple

from django.utils import timezone

from ..choices import DocumentStatus
from ..domain import Document, Signer
from ..exceptions import RateLimited


@dataclass(frozen=True)
class ReminderDecision:
    allowed: bool
    reason: Optional[str] = None
    retry_after: Optional[timedelta] = None


@dataclass(frozen=True)
class ScheduledReminder:
    """One automatic reminder: `reminder_type` is '<days>_day' before expiry."""
    signer_id: str
    reminder_type: str
    scheduled_for: datetime

    @property
    def key(self) -> Tuple[str, str]:
        return self.signer_id, self.reminder_type


class ReminderPolicy:
    """Service for reminder resend limits and automatic reminder scheduling."""

    RESEND_LIMIT = 5
    RESEND_WINDOW = timedelta(hours=24)

    @staticmethod
    def window_elapsed(signer: Signer, now: datetime) -> bool:
        if signer.last_reminder_sent_at is None:
            return True
        return now - signer.last_reminder_sent_at >= ReminderPolicy.RESEND_WINDOW

    @staticmethod
    def can_resend_reminder(signer: Signer, now: Optional[datetime] = None) -> ReminderDecision:
        """
        Check the rolling window limit for `signer`.

        Returns:
            ReminderDecision; when blocked by the limit, `retry_after` is the
            time left until 24h have passed since the last send
        """
        now = now or timezone.now()

        if not signer.is_pending:
            return ReminderDecision(
                allowed=False,
                reason=f'Signer has already {signer.status}; no reminder needed',
            )

        if signer.reminder_count < ReminderPolicy.RESEND_LIMIT:
            return ReminderDecision(allowed=True)

        if ReminderPolicy.window_elapsed(signer, now):
            return ReminderDecision(allowed=True)

        elapsed = now - signer.last_reminder_sent_at
        return ReminderDecision(
            allowed=False,
            reason=(
                f'Maximum {ReminderPolicy.RESEND_LIMIT} reminders per 24 hours reached. '
                f'Please try again later.'
            ),
            retry_after=ReminderPolicy.RESEND_WINDOW - elapsed,
        )

    @staticmethod
    def record_reminder_sent(signer: Signer, now: Optional[datetime] = None) -> Signer:
        """
        Return the signer after one more reminder.

        The counter restarts from 0 when the window has elapsed since the
        previous send.

        Raises:
            RateLimited: when `can_resend_reminder` refuses
        """
        now = now or timezone.now()
        decision = ReminderPolicy.can_resend_reminder(signer, now)
        if not decision.allowed:
            raise RateLimited(decision.reason, retry_after=decision.retry_after)

        count = signer.reminder_count
        if signer.last_reminder_sent_at is not None and ReminderPolicy.window_elapsed(signer, now):
            count = 0

        return replace(signer, reminder_count=count + 1, last_reminder_sent_at=now)

    @staticmethod
    def schedule_reminders(
        document: Document,
        signers: Sequence[Signer],
        now: Optional[datetime] = None,
    ) -> List[ScheduledReminder]:
        """
        Build the automatic reminder schedule for a pending document.

        One reminder per configured interval (days before `expires_at`) and
        pending signer, skipping reminder times already in the past.
        """
        now = now or timezone.now()
        settings = document.reminder_settings

        if document.status != DocumentStatus.PENDING:
            return []
        if document.expires_at is None or not settings.enabled:
            return []

        reminders = []
        for days in sorted(set(settings.intervals), reverse=True):
            scheduled_for = document.expires_at - timedelta(days=days)
            if scheduled_for <= now:
                continue
            for signer in signers:
                if not signer.is_pending:
                    continue
                reminders.append(ScheduledReminder(
                    signer_id=signer.id,
                    reminder_type=f'{days}_day',
                    scheduled_for=scheduled_for,
                ))
        return reminders

    @staticmethod
    def due_reminders(
        document: Document,
        signers: Sequence[Signer],
        now: Optional[datetime] = None,
        sent_keys: Collection[Tuple[str, str]] = (),
    ) -> List[ScheduledReminder]:
        """
        Reminders whose time has come and that were not sent yet.

        Intervals that had already passed when the document was sent are
        never due; this matches what `schedule_reminders` produced at send time.

        Args:
            sent_keys: (signer_id, reminder_type) pairs already sent
        """
        now = now or timezone.now()
        settings = document.reminder_settings

        if document.status != DocumentStatus.PENDING:
            return []
        if document.expires_at is None or not settings.enabled:
            return []
        if document.expires_at <= now:
            return []

        due = []
        for days in sorted(set(settings.intervals), reverse=True):
            scheduled_for = document.expires_at - timedelta(days=days)
            if scheduled_for > now:
                continue
            if document.sent_at is not None and scheduled_for <= document.sent_at:
                continue
            for signer in signers:
                reminder = ScheduledReminder(
                    signer_id=signer.id,
                    reminder_type=f'{days}_day',
                    scheduled_for=scheduled_for,
                )
                if signer.is_pending and reminder.key not in sent_keys:
                    due.append(reminder)
        return due
