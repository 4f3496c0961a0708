"""Custom exception classes for the ledger.

Provides domain-specific exceptions for clear error handling and reporting.
Tolerance drift is never raised: it is reported through warnings lists.
"""


class LedgerError(Exception):
    """Base exception for ledger errors."""

    pass


class ValidationError(LedgerError):
    """Input rejected (malformed CSV, empty category, non-positive payment, etc.)."""

    pass


class NotFoundError(LedgerError):
    """Referenced invoice, budget or budget line does not exist."""

    pass


class InvoiceStateError(LedgerError):
    """Invoice is in a state that does not allow the operation (deleted, cancelled)."""

    pass


__all__ = ["LedgerError", "ValidationError", "NotFoundError", "InvoiceStateError"]
