from fastapi import HTTPException, status
from typing import Any

INVALID_CREDENTIAL_MESSAGE = (
    "Invalid BugHerd API key. Please check your configuration and ensure "
    "BUGHERD_API_KEY is set correctly."
)


class ApiError(HTTPException):
    """HTTP error rendered as ``{"success": false, "error": detail, **extra}``."""

    def __init__(self, status_code: int, detail: str, **extra: Any):
        super().__init__(status_code=status_code, detail=detail)
        self.extra = extra


class BadRequestError(ApiError):
    def __init__(self, detail: str = "Bad Request", **extra: Any):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, **extra)


class NotFoundError(ApiError):
    def __init__(self, detail: str = "Not Found", **extra: Any):
        super().__init__(status.HTTP_404_NOT_FOUND, detail, **extra)


class UpstreamError(ApiError):
    """The tracker API failed; status is mirrored from upstream when known."""

    def __init__(self, detail: str, status_code: int | None = None, **extra: Any):
        code = status_code if status_code and 400 <= status_code < 600 else 500
        super().__init__(code, detail, **extra)


class TrackerError(Exception):
    """Raised by tracker clients for transport failures and non-2xx responses."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def is_auth_error(self) -> bool:
        return self.status_code == status.HTTP_401_UNAUTHORIZED


class UnsupportedFormatError(ValueError):
    """Raised when an uploaded file has an extension the importer cannot read."""


def upstream_error_from(exc: TrackerError, detail: str) -> UpstreamError:
    """Map a tracker failure to the HTTP error returned to callers."""
    if exc.is_auth_error:
        return UpstreamError(INVALID_CREDENTIAL_MESSAGE, status_code=exc.status_code)
    details: dict[str, Any] = {"message": str(exc), "status": exc.status_code}
    if exc.payload is not None:
        details["data"] = exc.payload
    return UpstreamError(detail, status_code=exc.status_code, details=details)
