"""
Domain error taxonomy.

Services raise these; only the HTTP boundary turns them into responses
(see ``responses.api_exception_handler``).
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for errors raised by the domain services."""

    status_code = 400
    error_code = "DOMAIN_ERROR"
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(DomainError):
    status_code = 422
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None, **details: Any):
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, details or None)


class DuplicateEmail(DomainError):
    status_code = 409
    error_code = "DUPLICATE_EMAIL"
    default_message = "Email already registered"

    def __init__(self, email: Optional[str] = None, message: Optional[str] = None):
        self.email = email
        super().__init__(message, {"email": email} if email else None)


class NotFound(DomainError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"

    def __init__(self, resource: str = "Resource", id: Optional[str] = None):
        self.resource = resource
        self.id = id
        super().__init__(f"{resource} not found", {"id": id} if id else None)


class AccessDenied(DomainError):
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Access denied"


class InvalidCredentials(DomainError):
    status_code = 401
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class InvalidToken(DomainError):
    status_code = 401
    error_code = "INVALID_TOKEN"
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    error_code = "TOKEN_EXPIRED"
    default_message = "Token expired"


class InvalidState(DomainError):
    status_code = 409
    error_code = "INVALID_STATE"
    default_message = "Operation not allowed in the current state"

    def __init__(self, message: Optional[str] = None, status: Optional[str] = None):
        self.status = status
        super().__init__(message, {"status": status} if status else None)


class CannotModifySent(InvalidState):
    error_code = "CANNOT_MODIFY_SENT"
    default_message = "Cannot modify a sent message"


class CannotDeleteSending(InvalidState):
    error_code = "CANNOT_DELETE_SENDING"
    default_message = "Cannot delete a message that is being sent"


class AlreadySent(InvalidState):
    error_code = "ALREADY_SENT"
    default_message = "Message already sent"


class StorageError(DomainError):
    status_code = 500
    error_code = "STORAGE_ERROR"
    default_message = "Database error"
