"""Engine error taxonomy and API error response helpers."""

from typing import Any, Dict

from fastapi import status


class TreasuryError(Exception):
    """Base treasury engine error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class InvalidStateError(TreasuryError):
    """Record is not in the status the operation requires."""

    def __init__(self, message: str = "Record is not in the expected state"):
        super().__init__(message, "invalid_state", status.HTTP_400_BAD_REQUEST)


class InvalidArgumentError(TreasuryError):
    """Request arguments are inconsistent or reference unknown records."""

    def __init__(self, message: str = "Invalid argument"):
        super().__init__(message, "invalid_argument", status.HTTP_400_BAD_REQUEST)


class ConflictError(TreasuryError):
    """Records changed between read and commit; nothing was written."""

    def __init__(self, message: str = "Records were modified concurrently"):
        super().__init__(message, "conflict", status.HTTP_409_CONFLICT)


class NotFoundError(TreasuryError):
    """Requested record does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, "not_found", status.HTTP_404_NOT_FOUND)


class AccessDeniedError(TreasuryError):
    """Actor has no access to the record's budget scope."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "access_denied", status.HTTP_403_FORBIDDEN)


def error_response(error: TreasuryError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }
