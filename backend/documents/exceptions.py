"""
Signing workflow exceptions.

Every error here is an expected, user-facing branch of normal use.
Callers map them to HTTP responses or messages; nothing is retried.
"""

from django.core.exceptions import ValidationError


class SigningWorkflowError(Exception):
    """Base exception for all signing workflow errors."""
    pass


class IllegalTransition(SigningWorkflowError):
    """Raised when a document status change is not permitted from its current status."""

    def __init__(self, current, target, message=None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move document from '{current}' to '{target}'"
        )


class InvalidSignerState(SigningWorkflowError):
    """Raised when signing or declining a signer who is not pending."""

    def __init__(self, signer_id, status, message=None):
        self.signer_id = signer_id
        self.status = status
        super().__init__(
            message or f"Signer {signer_id} is '{status}', expected 'pending'"
        )


class NotYourTurn(SigningWorkflowError):
    """
    Raised in sequential workflows when earlier signers have not all signed.

    `waiting_on` holds the ids of the signers blocking this one.
    """

    def __init__(self, signer_id, waiting_on):
        self.signer_id = signer_id
        self.waiting_on = tuple(waiting_on)
        super().__init__(
            f"Signer {signer_id} must wait for {len(self.waiting_on)} earlier signer(s)"
        )


class ValidationFailed(SigningWorkflowError, ValidationError):
    """
    Raised with the complete list of field, signer or reference errors.

    Also a Django ValidationError so `.messages` works with existing
    form/serializer error handling.
    """

    def __init__(self, errors):
        self.errors = list(errors)
        ValidationError.__init__(self, self.errors)

    def __str__(self):
        return '; '.join(self.errors)


class RateLimited(SigningWorkflowError):
    """Raised when a reminder resend is blocked by the rolling window limit."""

    def __init__(self, reason, retry_after=None):
        self.reason = reason
        self.retry_after = retry_after
        super().__init__(reason)


class AggregateNotFound(SigningWorkflowError):
    """Raised by storage when no document exists for the requested id."""

    def __init__(self, document_id):
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found")


class ConcurrentModification(SigningWorkflowError):
    """Raised when the stored document version moved between load and save."""

    def __init__(self, document_id, expected_version, actual_version):
        self.document_id = document_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Document {document_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
