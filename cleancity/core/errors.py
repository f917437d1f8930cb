"""
Error taxonomy shared by the stores and the HTTP layer.

Every error carries the HTTP status it maps to; the handlers registered in
``app.py`` turn them into ``{"message": ..., "errors": [...]}`` bodies.
"""
from typing import Any, Dict, List, Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class InvalidCredentials(Unauthorized):
    default_message = "Invalid email or password"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class UploadTimeout(AppError):
    status_code = status.HTTP_408_REQUEST_TIMEOUT
    default_message = "Upload timed out"


class PayloadTooLarge(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "File too large"


class UnsupportedMediaType(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Unsupported file type"


class InternalError(AppError):
    pass
