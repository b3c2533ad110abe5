# returns/services/exceptions.py

"""
RETURN LEDGER ERRORS
"""

from core.exceptions import (
    InvalidState,
    InvariantViolation,
    NotFound,
    PreconditionFailed,
)


class ReturnNotFound(NotFound):
    """Return not found."""

    code = "RETURN_NOT_FOUND"


class SaleItemNotFound(NotFound):
    """Sale item not found on this sale."""

    code = "SALE_ITEM_NOT_FOUND"


class SaleCancelled(PreconditionFailed):
    """Cannot create return for cancelled sale."""

    code = "SALE_CANCELLED"


class ReturnDateInFuture(PreconditionFailed):
    """Return date cannot be in the future."""

    code = "RETURN_DATE_IN_FUTURE"


class EmptyReturn(PreconditionFailed):
    """A return needs at least one item."""

    code = "EMPTY_RETURN"


class InvalidReturnQuantity(InvariantViolation):
    """Returned quantity must be at least 1."""

    code = "INVALID_RETURN_QUANTITY"


class QuantityExceedsAvailable(InvariantViolation):
    """Return quantity exceeds available quantity."""

    code = "QUANTITY_EXCEEDS_AVAILABLE"


class RefundExceedsReturnTotal(InvariantViolation):
    """Refund amount must be between zero and the return total."""

    code = "REFUND_EXCEEDS_RETURN_TOTAL"


class ReturnNotPending(InvalidState):
    """Return has already been processed."""

    code = "RETURN_NOT_PENDING"


class InvalidReturnTransition(InvalidState):
    """Return can only be approved or rejected."""

    code = "INVALID_RETURN_TRANSITION"


class ReturnLocked(InvalidState):
    """Completed or refunded returns cannot be changed."""

    code = "RETURN_LOCKED"
