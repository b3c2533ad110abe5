# payments/services/exceptions.py

"""
PAYMENT LEDGER ERRORS

Each error belongs to one family from core.exceptions, which fixes its
HTTP mapping. The code attribute is what API clients see.
"""

from core.exceptions import (
    InvalidState,
    InvariantViolation,
    NotFound,
    PreconditionFailed,
)


class PaymentNotFound(NotFound):
    """Payment not found."""

    code = "PAYMENT_NOT_FOUND"


class InvalidPaymentMethod(PreconditionFailed):
    """Invalid or inactive payment method."""

    code = "INVALID_PAYMENT_METHOD"


class PaymentReferenceRequired(PreconditionFailed):
    """This payment method requires a reference."""

    code = "PAYMENT_REFERENCE_REQUIRED"


class AllocationExceedsAmount(InvariantViolation):
    """Total allocation amount cannot exceed payment amount."""

    code = "ALLOCATION_EXCEEDS_AMOUNT"


class AllocationExceedsOrderBalance(InvariantViolation):
    """Allocation exceeds the outstanding balance of the order."""

    code = "ALLOCATION_EXCEEDS_ORDER_BALANCE"


class InvalidAllocation(InvariantViolation):
    """Allocation amount must be greater than zero."""

    code = "INVALID_ALLOCATION"


class CannotDeleteCompletedPayment(InvalidState):
    """Cannot delete completed payment with allocations."""

    code = "CANNOT_DELETE_COMPLETED_PAYMENT"


class PaymentNotCompleted(InvalidState):
    """Can only refund completed payments."""

    code = "PAYMENT_NOT_COMPLETED"


class PaymentNotPending(InvalidState):
    """Only pending payments can change status."""

    code = "PAYMENT_NOT_PENDING"


class ApprovalNotRequired(PreconditionFailed):
    """Payment method does not require approval."""

    code = "APPROVAL_NOT_REQUIRED"


class RefundNotAllowed(InvalidState):
    """Refund payments cannot be refunded."""

    code = "REFUND_NOT_ALLOWED"


class RefundExceedsPayment(InvariantViolation):
    """Refund amount exceeds the refundable balance of the payment."""

    code = "REFUND_EXCEEDS_PAYMENT"


class InvalidRefundAmount(InvariantViolation):
    """Refund amount must be greater than zero."""

    code = "INVALID_REFUND_AMOUNT"


class InvalidPaymentAmount(InvariantViolation):
    """Payment amount must be greater than zero."""

    code = "INVALID_PAYMENT_AMOUNT"


class InvalidPaymentStatus(PreconditionFailed):
    """Requested payment status is not allowed here."""

    code = "INVALID_PAYMENT_STATUS"


class PaymentClosed(InvalidState):
    """Failed or cancelled payments cannot be changed."""

    code = "PAYMENT_CLOSED"


class CannotDeleteRefund(InvalidState):
    """Refund payments are part of the refund trail and cannot be deleted."""

    code = "CANNOT_DELETE_REFUND"
