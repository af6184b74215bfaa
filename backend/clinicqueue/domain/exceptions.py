class DomainError(Exception):
    """Generic error of the domain layer."""


class ValidationError(DomainError):
    """Invalid data for the requested operation."""


class NotFoundError(DomainError):
    """Unknown patient id."""


class InvalidTransitionError(DomainError):
    """Status change not allowed by the patient lifecycle."""


class PersistenceError(DomainError):
    """Durable write failed after the in-memory decision was made."""
