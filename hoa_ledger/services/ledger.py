"""Invoice ledger reconciliation.

An invoice's financial state is always recomputed from its complete payment
history:

    total_due  = round_cents(amount - discount + late_fee)
    total_paid = round_cents(sum(payment amounts))
    remaining  = total_due - total_paid   (negative means a credit; never clamped)

Status derived from the ledger alone:
- soft-deleted      -> deleted (regardless of balance)
- paid >= due       -> paid
- paid > 0          -> partial
- otherwise         -> None; pending/overdue depends on "today" and is decided
                       by the caller (see classify_unpaid_status)
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional

from hoa_ledger.models.invoice import InvoiceStatus
from hoa_ledger.services.arithmetic import ZERO, round_cents, to_decimal


class LedgerResult(NamedTuple):
    """Financial state of one invoice."""

    total_due: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    status: Optional[InvoiceStatus]


def is_deleted(invoice) -> bool:
    """True when the invoice has been soft-deleted."""
    return getattr(invoice, "deleted_at", None) is not None


def active_invoices(invoices: Iterable) -> list:
    """Drop soft-deleted invoices; every aggregate starts from this."""
    return [invoice for invoice in invoices if not is_deleted(invoice)]


def invoice_total_due(invoice) -> Decimal:
    """Amount owed before payments: amount - discount + late fee."""
    return round_cents(
        to_decimal(invoice.amount)
        - to_decimal(getattr(invoice, "discount", None))
        + to_decimal(getattr(invoice, "late_fee", None))
    )


def derive_status(total_due: Decimal, total_paid: Decimal) -> Optional[InvoiceStatus]:
    """Status implied by the payment totals, or None when nothing has been paid."""
    if total_paid >= total_due:
        return InvoiceStatus.PAID
    if total_paid > 0:
        return InvoiceStatus.PARTIAL
    return None


def reconcile_invoice(invoice, payments: Iterable) -> LedgerResult:
    """Compute due/paid/remaining amounts and the ledger-derived status.

    Args:
        invoice: Object exposing amount, discount, late_fee and deleted_at
        payments: The invoice's complete payment history (objects with amount)

    Returns:
        LedgerResult; status is None when the caller must apply the
        due-date rule
    """
    total_due = invoice_total_due(invoice)
    total_paid = round_cents(sum((to_decimal(p.amount) for p in payments), ZERO))
    remaining = total_due - total_paid

    if is_deleted(invoice):
        status = InvoiceStatus.DELETED
    else:
        status = derive_status(total_due, total_paid)

    return LedgerResult(
        total_due=total_due,
        total_paid=total_paid,
        remaining_balance=remaining,
        status=status,
    )


def classify_unpaid_status(due_date: date, today: date) -> InvoiceStatus:
    """Caller-side rule for invoices with no payments: overdue once past due."""
    if due_date < today:
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.PENDING


def group_payments_by_invoice(payments: Iterable) -> dict:
    """Map invoice_id to the list of its payments, preserving input order."""
    grouped = defaultdict(list)
    for payment in payments:
        grouped[payment.invoice_id].append(payment)
    return dict(grouped)


__all__ = [
    "LedgerResult",
    "is_deleted",
    "active_invoices",
    "invoice_total_due",
    "derive_status",
    "reconcile_invoice",
    "classify_unpaid_status",
    "group_payments_by_invoice",
]
