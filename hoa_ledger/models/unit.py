"""Unit ORM model for billable properties and their square footage."""

from decimal import Decimal

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from hoa_ledger.models import Base, BaseModel


class Unit(Base, BaseModel):
    """Model representing a billable unit (apartment, townhouse, lot).

    Square footage is the only basis for apportioning the private-space share
    of a budget. Inactive units are left out of assessment previews.
    """

    __tablename__ = "units"

    unit_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Human-facing unit identifier (e.g., 4B)",
    )

    square_feet: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Private floor area used for proportional allocation",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Unit(id={self.id}, unit_number={self.unit_number!r}, "
            f"square_feet={self.square_feet}, is_active={self.is_active})>"
        )


__all__ = ["Unit"]
