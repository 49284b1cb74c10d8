"""Error kinds raised by the registry and mapped to HTTP status codes by the API."""

from typing import Optional


class AppError(Exception):
    """Operational error with a user-facing message."""

    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.field = field

    def to_dict(self) -> dict:
        """Convert to the error envelope used by API responses."""
        body = {"success": False, "message": self.message}
        if self.code:
            body["code"] = self.code
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(AppError):
    """Missing or malformed input, or a business rule rejected the change."""

    status_code = 400


class NotFoundError(AppError):
    """Record absent or not in the expected lifecycle state."""

    status_code = 404


class ConflictError(AppError):
    """Change conflicts with existing relationships or lifecycle state."""

    status_code = 409
