"""Budget and budget line ORM models."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hoa_ledger.models import Base, BaseModel

MONTH_FIELDS = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)


class Budget(Base, BaseModel):
    """Model representing an annual operating budget.

    total_amount is a cached copy of the sum of line annual totals. It is
    rewritten by BudgetService.recompute_budget_total in the same transaction
    as every line mutation and is never edited on its own.
    """

    __tablename__ = "budgets"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    fiscal_year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Sum of line annual totals",
    )

    common_area_percentage: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        comment="Share split equally across units (0-100); NULL uses the configured default",
    )

    lines: Mapped[list["BudgetLine"]] = relationship(
        "BudgetLine",
        back_populates="budget",
        cascade="all, delete-orphan",
        order_by="BudgetLine.id",
    )

    def __repr__(self) -> str:
        return (
            f"<Budget(id={self.id}, name={self.name!r}, fiscal_year={self.fiscal_year}, "
            f"total_amount={self.total_amount}, "
            f"common_area_percentage={self.common_area_percentage})>"
        )


class BudgetLine(Base, BaseModel):
    """Model representing one budget category with twelve monthly amounts."""

    __tablename__ = "budget_lines"

    budget_id: Mapped[int] = mapped_column(
        ForeignKey("budgets.id"),
        nullable=False,
        index=True,
    )

    category_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Expense category (e.g., Landscaping, Insurance)",
    )

    january: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    february: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    march: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    april: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    may: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    june: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    july: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    august: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    september: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    october: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    november: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    december: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    budget: Mapped["Budget"] = relationship("Budget", back_populates="lines")

    __table_args__ = (Index("idx_budget_line_category", "budget_id", "category_name"),)

    @property
    def monthly_amounts(self) -> tuple[Decimal, ...]:
        """Twelve monthly amounts, January first (unset months read as zero)."""
        return tuple(Decimal(str(getattr(self, month) or 0)) for month in MONTH_FIELDS)

    @property
    def annual_total(self) -> Decimal:
        """Sum of the twelve months; never stored separately."""
        return sum(self.monthly_amounts, Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"<BudgetLine(id={self.id}, budget_id={self.budget_id}, "
            f"category_name={self.category_name!r}, annual_total={self.annual_total})>"
        )


__all__ = ["Budget", "BudgetLine", "MONTH_FIELDS"]
