"""
Workflow notifications.

Sent after the transaction that produced them commits. Email and webhook
delivery are connected as receivers by the host project.

    document_transitioned: sender=SigningProcessService, transition=Transition
    reminder_requested:    sender=..., document=Document, signer=Signer,
                           reminder_type='manual' or '<days>_day'
"""

from django.dispatch import Signal

document_transitioned = Signal()

reminder_requested = Signal()
