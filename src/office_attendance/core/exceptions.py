class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when an API key is missing or not recognized."""


class UnknownIdentity(DomainError):
    """Raised when a tag, external id or member id does not resolve to a member."""


class AlreadyPresent(DomainError):
    """Raised when signing in a member who already has an open visit."""


class NotPresent(DomainError):
    """Raised when signing out a member who is not in the room."""


class CurrentlyPresent(DomainError):
    """Raised when a member cannot be deleted or re-tagged while signed in."""


class DuplicateTag(DomainError):
    """Raised when a tag id is already registered to another member."""


class NoFilterSpecified(DomainError):
    """Raised when a bulk session delete has no bound at all."""


class StorageError(Exception):
    """Raised when a durable read or write fails."""


class IntegrityViolation(StorageError):
    """Raised when the database rejects a write because of a constraint."""


class SnapshotCorrupt(StorageError):
    """Raised when the live-state snapshot file cannot be parsed."""
