"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the API layer and converted to appropriate HTTP responses.
"""


class ServiceError(Exception):
    """Base service exception."""

    pass


class NotFoundError(ServiceError):
    """Resource not found."""

    pass


class ValidationError(ServiceError):
    """Validation error."""

    pass


class ConflictError(ServiceError):
    """Concurrent modification detected - the whole operation is safe to retry."""

    pass


class PersistenceError(ServiceError):
    """Transient database failure - nothing was committed, safe to retry."""

    pass
