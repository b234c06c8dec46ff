class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a record, request, student or course does not exist."""


class ConflictError(DomainError):
    """Raised when a state transition or concurrent write cannot be applied."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""
