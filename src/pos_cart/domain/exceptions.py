"""Domain-level exceptions.

All cart and order errors are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class InvalidQuantityError(ValidationError):
    """A line item quantity was zero, negative or not an integer."""


class InvalidDiscountValueError(ValidationError):
    """A discount value fell outside the range allowed for its kind."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InvalidStateError(DomainException):
    """The cart is not in a state that allows the requested operation."""


class MalformedRecordError(DomainException):
    """A persisted item row could not be turned into a line item."""

    def __init__(self, message: str, row_id: object = None) -> None:
        super().__init__(message)
        self.row_id = row_id


class FetchFailureError(DomainException):
    """Reading persisted orders failed. The caller may retry."""


class MultipleOpenOrdersError(DomainException):
    """An operator has more than one open, non-held order."""


class RestoreCancelledError(DomainException):
    """A restore was cancelled before its result was applied."""


class PersistenceWriteError(DomainException):
    """A durable write did not confirm."""


class FinalizeConflictError(DomainException):
    """The persisted order no longer matches the cart being finalized."""
