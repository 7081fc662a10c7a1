"""
Error taxonomy for the catalog service.

Every error carries the HTTP status it maps to and a stable, client-facing
message. The API layer translates them into ``{"statusCode", "error",
"message"}`` bodies; anything outside this hierarchy is treated as an
unexpected 500.
"""

from typing import Dict, Iterable, List, Optional


class CatalogError(Exception):
    """Base class for all expected domain failures."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def error_name(self) -> str:
        return type(self).__name__

    def to_response(self) -> Dict:
        return {
            "statusCode": self.status_code,
            "error": self.error_name,
            "message": self.message,
        }


class ValidationError(CatalogError):
    """Missing or malformed input fields."""

    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, missing: Optional[Iterable[str]] = None):
        self.missing: List[str] = list(missing or [])
        if message is None and self.missing:
            message = f"Missing required field(s): {', '.join(self.missing)}"
        super().__init__(message)

    def to_response(self) -> Dict:
        body = super().to_response()
        if self.missing:
            body["missing"] = self.missing
        return body


class InvalidFileError(ValidationError):
    """A part declared as a file carried no readable stream."""

    default_message = "Uploaded file is invalid or missing"


class UploadTooLargeError(ValidationError):
    """The multipart body exceeded the configured size cap."""

    status_code = 413
    default_message = "Upload exceeds the maximum allowed size"


class AuthenticationError(CatalogError):
    """Missing, invalid or expired bearer token, or bad credentials."""

    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(CatalogError):
    """Valid token without the required role."""

    status_code = 403
    default_message = "You are not authorized to access this endpoint"


class NotFoundError(CatalogError):
    """Lookup by id found nothing."""

    status_code = 404
    default_message = "Resource not found"


class ConflictError(CatalogError):
    """Duplicate unique key."""

    status_code = 409
    default_message = "Resource already exists"


class InternalError(CatalogError):
    """Unexpected database or storage fault."""

    status_code = 500


class StorageError(InternalError):
    """Writing an uploaded file to disk failed."""

    default_message = "Error saving file"
