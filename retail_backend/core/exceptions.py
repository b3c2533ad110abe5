# core/exceptions.py

"""
LEDGER ERROR TAXONOMY

Centralized domain error families shared by the payment and return ledgers.

Families:
- NotFound            -> a referenced record does not exist
- InvalidState        -> the record exists but is in the wrong lifecycle state
- InvariantViolation  -> the write would break a money / quantity invariant
- PreconditionFailed  -> a business precondition on the input does not hold

Every concrete error carries a stable `code` (API contract) and the HTTP status
the API layer answers with. Services raise; the orchestrator propagates; views
translate (see core/api.py).
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    code = "LEDGER_ERROR"
    http_status = 400

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.__class__.__doc__ or self.code
        self.context = context
        super().__init__(self.message)


class NotFound(LedgerError):
    """Referenced record was not found."""

    code = "NOT_FOUND"
    http_status = 404


class InvalidState(LedgerError):
    """Record is not in a state that allows this operation."""

    code = "INVALID_STATE"
    http_status = 409


class InvariantViolation(LedgerError):
    """Operation would violate a ledger invariant."""

    code = "INVARIANT_VIOLATION"
    http_status = 400


class PreconditionFailed(LedgerError):
    """Business precondition failed."""

    code = "PRECONDITION_FAILED"
    http_status = 400
