"""Payment ORM model. Payments are append-only."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hoa_ledger.models import Base, BaseModel


class PaymentMethod(str, Enum):
    """How a payment was received."""

    CHECK = "check"
    ACH = "ach"
    CREDIT_CARD = "credit_card"
    CASH = "cash"
    OTHER = "other"


class Payment(Base, BaseModel):
    """Model representing a payment applied to an invoice."""

    __tablename__ = "payments"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id"),
        nullable=False,
        index=True,
    )
    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Payment amount, always positive",
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod),
        nullable=False,
        default=PaymentMethod.OTHER,
    )
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    invoice: Mapped["Invoice"] = relationship(  # noqa: F821
        "Invoice",
        back_populates="payments",
        foreign_keys=[invoice_id],
    )

    __table_args__ = (Index("idx_payment_unit_date", "unit_id", "payment_date"),)

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, invoice_id={self.invoice_id}, unit_id={self.unit_id}, "
            f"amount={self.amount}, payment_date={self.payment_date}, method={self.method})>"
        )


__all__ = ["Payment", "PaymentMethod"]
