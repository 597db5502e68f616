class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class DatastoreError(DomainError):
    """Raised when a read or write against the datastore fails."""


class CalendarLookupError(DatastoreError):
    """Raised when the cancelled-days set cannot be fetched."""


class MalformedSignatureError(ValidationError):
    """Raised when a face signature vector is empty or not finite."""
