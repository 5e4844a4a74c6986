class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced user or record does not exist."""


class SyncError(DomainError):
    """Raised when a remote store operation fails."""


class RemoteTimeoutError(SyncError):
    """Raised when a remote store operation exceeds its time budget."""


class FetchError(DomainError):
    """Raised when an external HTTP collaborator (holidays, geocoder) fails."""


class LocationError(DomainError):
    """Raised when the current position cannot be determined."""


class NotificationError(DomainError):
    """Raised when a notification cannot be scheduled or dispatched."""
