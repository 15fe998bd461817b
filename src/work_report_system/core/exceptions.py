class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class StorageError(DomainError):
    """Raised when the data store rejects an operation; retrying will not help."""


class TransientStorageError(StorageError):
    """Raised for storage failures expected to succeed on retry (timeouts, dropped connections)."""


class DuplicateReportError(StorageError):
    """Raised when a work report already exists for the employee on that date."""
