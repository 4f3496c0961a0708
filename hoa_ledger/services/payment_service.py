"""Payment service for recording payments and keeping invoice status current.

Provides methods for:
- Recording payments (status re-derived from the full payment history)
- Soft-deleting invoices
- Moving unpaid invoices between pending and overdue
- Reading an invoice's ledger

Recording a payment is a read-compute-write sequence. It runs inside a
critical section keyed by invoice id: a per-invoice lock within this process
plus SELECT ... FOR UPDATE on the invoice row where the database supports it.
Inside it the payment is inserted, the complete history is re-read and the
status is derived from scratch, so concurrent payments never overwrite each
other's totals.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hoa_ledger.models import Invoice, InvoiceStatus, Payment, PaymentMethod
from hoa_ledger.services.arithmetic import Number, to_decimal
from hoa_ledger.services.errors import InvoiceStateError, NotFoundError, ValidationError
from hoa_ledger.services.ledger import (
    LedgerResult,
    classify_unpaid_status,
    is_deleted,
    reconcile_invoice,
)

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
# invoice_id -> [lock, number of callers holding or waiting on it]
_invoice_locks: dict[int, list] = {}


@contextmanager
def invoice_lock(invoice_id: int) -> Iterator[None]:
    """Serialize read-compute-write sequences on one invoice within this process.

    The entry for an invoice is dropped once no caller holds or waits on it.
    """
    with _locks_guard:
        entry = _invoice_locks.setdefault(invoice_id, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _invoice_locks[invoice_id]


class PaymentService:
    """Invoice payment workflow on top of the pure ledger."""

    def __init__(self, db: Session):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _load_invoice(self, invoice_id: int, for_update: bool = False) -> Invoice:
        stmt = select(Invoice).where(Invoice.id == invoice_id)
        if for_update:
            stmt = stmt.with_for_update()
        invoice = self.db.execute(stmt).scalar_one_or_none()
        if invoice is None:
            logger.error(f"Invoice {invoice_id} not found")
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def _payment_history(self, invoice_id: int) -> list[Payment]:
        stmt = select(Payment).where(Payment.invoice_id == invoice_id).order_by(Payment.id)
        return list(self.db.execute(stmt).scalars().all())

    def record_payment(
        self,
        invoice_id: int,
        amount: Number,
        payment_date: date,
        method: PaymentMethod = PaymentMethod.OTHER,
        unit_id: Optional[int] = None,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """Record a payment and re-derive the invoice status.

        Args:
            invoice_id: Invoice being paid
            amount: Payment amount (must be positive)
            payment_date: Date the payment was received
            method: How it was paid
            unit_id: Paying unit (default: the invoice's unit)
            reference_number: Check number, transaction id, etc.
            notes: Optional notes

        Returns:
            The stored Payment

        Raises:
            ValidationError: If amount <= 0 or unit_id does not match the invoice
            NotFoundError: If the invoice does not exist
            InvoiceStateError: If the invoice is deleted or cancelled
        """
        amount = to_decimal(amount)
        if amount <= 0:
            logger.error(f"Invalid payment amount: {amount}")
            raise ValidationError("Payment amount must be positive")

        with invoice_lock(invoice_id):
            try:
                invoice = self._load_invoice(invoice_id, for_update=True)

                if is_deleted(invoice) or invoice.status == InvoiceStatus.CANCELLED:
                    logger.error(f"Cannot pay invoice {invoice_id} in status {invoice.status}")
                    raise InvoiceStateError(
                        f"Invoice {invoice.invoice_number} is {invoice.status.value} "
                        f"and cannot accept payments"
                    )

                if unit_id is not None and unit_id != invoice.unit_id:
                    raise ValidationError(
                        f"Unit {unit_id} does not match invoice {invoice.invoice_number}"
                    )

                payment = Payment(
                    invoice_id=invoice.id,
                    unit_id=invoice.unit_id,
                    amount=amount,
                    payment_date=payment_date,
                    method=method,
                    reference_number=reference_number,
                    notes=notes,
                )
                self.db.add(payment)
                self.db.flush()

                # Fresh read of the complete history, never an incremented total
                ledger = reconcile_invoice(invoice, self._payment_history(invoice.id))
                previous = invoice.status
                if ledger.status is not None:
                    invoice.status = ledger.status

                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(
            f"Recorded payment: invoice_id={invoice_id}, amount={amount}, "
            f"paid={ledger.total_paid}/{ledger.total_due}, status {previous.value} -> "
            f"{invoice.status.value}, payment_id={payment.id}"
        )
        self.db.refresh(payment)
        return payment

    def invoice_ledger(self, invoice_id: int) -> LedgerResult:
        """Recompute an invoice's ledger from its stored payment history."""
        invoice = self._load_invoice(invoice_id)
        return reconcile_invoice(invoice, self._payment_history(invoice_id))

    def soft_delete_invoice(self, invoice_id: int, now: Optional[datetime] = None) -> Invoice:
        """Mark an invoice deleted; it drops out of every aggregate.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        with invoice_lock(invoice_id):
            try:
                invoice = self._load_invoice(invoice_id, for_update=True)
                invoice.deleted_at = now or datetime.now(timezone.utc)
                invoice.status = InvoiceStatus.DELETED
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(f"Soft-deleted invoice {invoice_id}")
        self.db.refresh(invoice)
        return invoice

    def refresh_unpaid_statuses(self, today: date) -> int:
        """Re-derive status of open invoices, applying the due-date rule when unpaid.

        Only non-deleted invoices in pending, partial or overdue status are
        considered.

        Returns:
            Number of invoices whose status changed
        """
        stmt = select(Invoice).where(
            Invoice.deleted_at.is_(None),
            Invoice.status.in_(
                [InvoiceStatus.PENDING, InvoiceStatus.PARTIAL, InvoiceStatus.OVERDUE]
            ),
        )
        changed = 0
        try:
            for invoice in self.db.execute(stmt).scalars().all():
                ledger = reconcile_invoice(invoice, self._payment_history(invoice.id))
                status = ledger.status or classify_unpaid_status(invoice.due_date, today)
                if status != invoice.status:
                    logger.info(
                        f"Invoice {invoice.id} status {invoice.status.value} -> {status.value}"
                    )
                    invoice.status = status
                    changed += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return changed

    def payments_for_invoice(self, invoice_id: int) -> list[Payment]:
        """Payment history of an invoice, oldest first."""
        return self._payment_history(invoice_id)


__all__ = ["PaymentService", "invoice_lock"]
