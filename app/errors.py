# app/errors.py
from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base error carrying the HTTP status it should be reported with"""

    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class InvalidStateError(AppError):
    status_code = 400
    default_message = "Invalid state transition"


class AuthError(AppError):
    status_code = 401
    default_message = "Not authenticated"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Admin access required"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many requests from this IP, please try again later."


class InternalError(AppError):
    status_code = 500
