"""Error taxonomy shared by the engines and the HTTP layer.

Every exception carries a ``public_message`` that is safe to return to a
client.  The constructor message is for logs only and never leaves the
process.
"""

from __future__ import annotations


class FarmLedgerError(Exception):
    """Base class for all domain errors raised by the service."""

    status_code: int = 500
    public_message: str = "Request failed"

    def __init__(self, message: str = "", *, public_message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class ValidationError(FarmLedgerError):
    """Malformed or missing input, rejected before any computation."""

    status_code = 422
    public_message = "Invalid request"


class NotFoundError(FarmLedgerError):
    """A referenced farmer or record does not exist."""

    status_code = 404
    public_message = "Resource not found"


class PersistenceError(FarmLedgerError):
    """The database was unreachable or a write failed and was rolled back."""

    status_code = 503
    public_message = "Storage temporarily unavailable"


class ConflictError(FarmLedgerError):
    """The write collides with existing state (e.g. a repeated application)."""

    status_code = 409
    public_message = "Request conflicts with existing data"


class ConsentRequiredError(FarmLedgerError):
    """The farmer has not granted data-sharing consent."""

    status_code = 403
    public_message = "Data sharing consent required"
