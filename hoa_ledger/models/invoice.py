"""Invoice ORM model for unit assessments billed to owners."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hoa_ledger.models import Base, BaseModel


class InvoiceStatus(str, Enum):
    """Lifecycle status of an invoice."""

    DRAFT = "draft"
    PENDING = "pending"  # Unpaid, not yet due
    PAID = "paid"
    PARTIAL = "partial"  # Some payments recorded, balance remains
    OVERDUE = "overdue"  # Unpaid and past due date
    CANCELLED = "cancelled"
    DELETED = "deleted"  # Soft-deleted; excluded from all aggregates


OUTSTANDING_STATUSES = frozenset(
    {InvoiceStatus.PENDING, InvoiceStatus.PARTIAL, InvoiceStatus.OVERDUE}
)


class Invoice(Base, BaseModel):
    """Model representing an invoice issued to a unit.

    Financial state (paid/remaining) is never stored: it is recomputed from the
    complete payment history by hoa_ledger.services.ledger.reconcile_invoice.
    Only the derived status is persisted.
    """

    __tablename__ = "invoices"

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )

    budget_id: Mapped[int | None] = mapped_column(
        ForeignKey("budgets.id"),
        nullable=True,
        index=True,
        comment="Budget the assessment was generated from, if any",
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    title: Mapped[str | None] = mapped_column(String(200), nullable=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    discount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )

    late_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)

    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus),
        nullable=False,
        default=InvoiceStatus.PENDING,
        index=True,
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Soft-delete timestamp",
    )

    unit: Mapped["Unit"] = relationship(  # noqa: F821
        "Unit",
        foreign_keys=[unit_id],
    )

    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="invoice",
        order_by="Payment.id",
    )

    __table_args__ = (Index("idx_invoice_unit_status", "unit_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<Invoice(id={self.id}, invoice_number={self.invoice_number!r}, "
            f"unit_id={self.unit_id}, amount={self.amount}, status={self.status}, "
            f"due_date={self.due_date}, deleted_at={self.deleted_at})>"
        )


__all__ = ["Invoice", "InvoiceStatus", "OUTSTANDING_STATUSES"]
