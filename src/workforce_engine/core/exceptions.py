class DomainError(Exception):
    """Base exception for business rule violations.

    Every error carries a machine-readable ``kind`` so callers (and the HTTP
    layer) can react without parsing messages.
    """

    kind = "DOMAIN_ERROR"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "VALIDATION_ERROR"


class InvalidRangeError(ValidationError):
    """Raised when a date range ends before it starts."""

    kind = "INVALID_RANGE"


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""

    kind = "NOT_FOUND"


class InvalidStateError(DomainError):
    """Raised when an operation is not legal in the record's current state."""

    kind = "INVALID_STATE"


class InsufficientBalanceError(DomainError):
    """Raised when a leave debit would exceed the employee's entitlement."""

    kind = "INSUFFICIENT_BALANCE"


class DuplicateCheckInError(DomainError):
    kind = "DUPLICATE_CHECK_IN"


class NoOpenCheckInError(DomainError):
    kind = "NO_OPEN_CHECK_IN"


class ImmutableRecordError(DomainError):
    """Raised when recomputing a payroll record that is approved or paid."""

    kind = "IMMUTABLE_RECORD"


class AuthorizationError(DomainError):
    """Raised when an actor lacks the capability for an action."""

    kind = "FORBIDDEN"


class CollaboratorError(DomainError):
    """Persistence or event-sink failure. Safe to retry."""

    kind = "SERVER_ERROR"
    retryable = True


class CorruptRecordError(DomainError):
    """Raised when a stored row cannot be decoded into a record."""

    kind = "CORRUPT_RECORD"
