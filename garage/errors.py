"""Error types raised by the shop services."""

from enum import Enum
from typing import Iterable, Optional


class Reason(Enum):
    """Why an operation was rejected."""

    MISSING_FIELD = "missing_field"
    INVALID_NUMBER = "invalid_number"
    DUPLICATE_PART_NUMBER = "duplicate_part_number"
    OUT_OF_STOCK = "out_of_stock"
    STOCK_LIMIT = "stock_limit"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INCOMPLETE_SELECTION = "incomplete_selection"
    VISIT_COMPLETED = "visit_completed"
    PART_NOT_FOUND = "part_not_found"
    VENDOR_NOT_FOUND = "vendor_not_found"
    VISIT_NOT_FOUND = "visit_not_found"


class ShopError(Exception):
    """Base class for all shop errors."""


class RejectedError(ShopError):
    """An operation was refused and nothing was changed."""

    def __init__(self, reason: Reason, message: str, subject: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.subject = subject


class ValidationError(RejectedError):
    """User input failed a check (missing field, bad number, stock)."""


class NotFoundError(RejectedError):
    """A referenced part, vendor or visit no longer exists."""


class PersistenceError(ShopError):
    """The record store refused a write."""

    def __init__(self, collection: str):
        super().__init__(f"Could not write collection '{collection}'")
        self.collection = collection


class ConsistencyError(ShopError):
    """
    A failed commit could not be rolled back.

    The listed collections hold the new records while the rest of the
    transaction does not.
    """

    def __init__(self, collections: Iterable[str]):
        self.collections = list(collections)
        super().__init__(
            "Store left inconsistent, rollback failed for: "
            + ", ".join(self.collections)
        )
