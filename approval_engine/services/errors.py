"""
Error taxonomy for the verification engine.

Every failure a caller can observe is one of these classes.
Each carries the HTTP status the API layer answers with and
whether the caller may retry after re-reading the record.
"""


class VerificationError(Exception):
    """Base class for all verification engine failures."""

    status_code: int = 500
    retryable: bool = False


class NotFoundError(VerificationError):
    """No principal or verification record matches the request."""

    status_code = 404


class InvalidTransitionError(VerificationError):
    """The record is not in a state that allows the requested change."""

    status_code = 409


class EmptyEvidenceError(VerificationError):
    """A KYB submission was attempted with no documents attached."""

    status_code = 400


class StaleStateError(VerificationError):
    """
    Another writer committed to the record first.

    Nothing was written. The caller should re-fetch the current
    status and re-issue the request only if it still makes sense.
    """

    status_code = 409
    retryable = True


class StoreTimeoutError(VerificationError):
    """The store did not answer in time. Nothing was written."""

    status_code = 504
    retryable = True


class StoreUnavailableError(VerificationError):
    """The store failed. Nothing was written."""

    status_code = 503


class AuditEmissionError(VerificationError):
    """
    The transition committed but its audit entry could not be made durable.

    The committed record is attached so callers can report what
    actually happened.
    """

    status_code = 500

    def __init__(self, message: str, record=None):
        super().__init__(message)
        self.record = record
