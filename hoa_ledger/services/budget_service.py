"""Budget service: line items, CSV import/export and assessment previews.

Budget.total_amount is derived data. Every line mutation calls
recompute_budget_total before committing, so the stored total is rewritten
in the same transaction as the change that affects it.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from hoa_ledger.models import MONTH_FIELDS, Budget, BudgetLine, Unit
from hoa_ledger.services.arithmetic import ZERO, Number, round_cents, to_decimal
from hoa_ledger.services.assessment_service import (
    AssessmentCheck,
    AssessmentService,
    UnitAssessment,
)
from hoa_ledger.services.budget_csv import (
    export_budget_csv,
    parse_budget_csv,
    validate_budget_import,
)
from hoa_ledger.services.config import LedgerConfig
from hoa_ledger.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class AssessmentPreview(NamedTuple):
    budget_total: Decimal
    allocation_basis: Decimal
    common_area_percentage: Decimal
    assessments: list[UnitAssessment]
    check: AssessmentCheck
    warnings: list[str]


class BudgetService:
    """Budget line maintenance and budget-driven calculations."""

    def __init__(self, db: Session, config: Optional[LedgerConfig] = None):
        """Initialize budget service.

        Args:
            db: SQLAlchemy database session
            config: Ledger configuration (default: built-in defaults)
        """
        self.db = db
        self.config = config or LedgerConfig()
        self.assessments = AssessmentService()

    def get_budget(self, budget_id: int) -> Budget:
        budget = self.db.get(Budget, budget_id)
        if budget is None:
            logger.error(f"Budget {budget_id} not found")
            raise NotFoundError(f"Budget {budget_id} not found")
        return budget

    def _get_line(self, line_id: int) -> BudgetLine:
        line = self.db.get(BudgetLine, line_id)
        if line is None:
            logger.error(f"Budget line {line_id} not found")
            raise NotFoundError(f"Budget line {line_id} not found")
        return line

    def recompute_budget_total(self, budget: Budget) -> Decimal:
        """Set budget.total_amount to the sum of its line annual totals."""
        self.db.flush()
        lines = self.db.execute(
            select(BudgetLine).where(BudgetLine.budget_id == budget.id)
        ).scalars()
        total = round_cents(sum((line.annual_total for line in lines), ZERO))
        budget.total_amount = total
        self.db.expire(budget, ["lines"])
        return total

    def _month_values(self, monthly_amounts: Sequence[Number]) -> dict:
        if len(monthly_amounts) != len(MONTH_FIELDS):
            raise ValidationError(
                f"Expected 12 monthly amounts, got {len(monthly_amounts)}"
            )
        values = {}
        for month, amount in zip(MONTH_FIELDS, monthly_amounts):
            value = round_cents(amount)
            if value < 0:
                raise ValidationError(f"{month.capitalize()} amount must not be negative")
            values[month] = value
        return values

    def _check_category(self, category_name: str) -> str:
        category_name = (category_name or "").strip()
        if not category_name:
            raise ValidationError("Category name is required")
        return category_name

    def add_line(
        self,
        budget_id: int,
        category_name: str,
        monthly_amounts: Sequence[Number],
    ) -> BudgetLine:
        """Add a line item and refresh the budget total.

        Raises:
            NotFoundError: If the budget does not exist
            ValidationError: If the category is empty or amounts are invalid
        """
        try:
            budget = self.get_budget(budget_id)
            line = BudgetLine(
                budget_id=budget.id,
                category_name=self._check_category(category_name),
                **self._month_values(monthly_amounts),
            )
            self.db.add(line)
            total = self.recompute_budget_total(budget)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Added budget line {line.category_name!r} to budget {budget_id} (total now {total})"
        )
        return line

    def update_line(
        self,
        line_id: int,
        category_name: Optional[str] = None,
        monthly_amounts: Optional[Sequence[Number]] = None,
    ) -> BudgetLine:
        """Change a line's category and/or monthly amounts; refresh the budget total."""
        try:
            line = self._get_line(line_id)
            if category_name is not None:
                line.category_name = self._check_category(category_name)
            if monthly_amounts is not None:
                for month, value in self._month_values(monthly_amounts).items():
                    setattr(line, month, value)
            total = self.recompute_budget_total(line.budget)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Updated budget line {line_id} (budget total now {total})")
        return line

    def delete_line(self, line_id: int) -> Decimal:
        """Remove a line item. Returns the recomputed budget total."""
        try:
            line = self._get_line(line_id)
            budget = line.budget
            self.db.delete(line)
            total = self.recompute_budget_total(budget)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Deleted budget line {line_id} (budget total now {total})")
        return total

    def import_csv(self, budget_id: int, text: str, replace: bool = False) -> list[str]:
        """Import budget lines from CSV text.

        Args:
            budget_id: Budget receiving the lines
            text: CSV content (see hoa_ledger.services.budget_csv)
            replace: Delete existing lines first

        Returns:
            Import warnings (empty when the file was clean)

        Raises:
            ValidationError: If the CSV cannot be parsed or fails validation
        """
        rows = parse_budget_csv(text)
        result = validate_budget_import(rows)
        if not result.is_valid:
            logger.error(f"Budget import rejected: {'; '.join(result.errors)}")
            raise ValidationError("; ".join(result.errors))

        for warning in result.warnings:
            logger.warning(f"Budget import: {warning}")

        try:
            budget = self.get_budget(budget_id)
            if replace:
                for line in list(budget.lines):
                    self.db.delete(line)
            for row in rows:
                fields = row.as_line_fields()
                for month in MONTH_FIELDS:
                    fields[month] = round_cents(fields[month])
                self.db.add(BudgetLine(budget_id=budget.id, **fields))
            total = self.recompute_budget_total(budget)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Imported {len(rows)} line(s) into budget {budget_id} (total now {total})")
        return result.warnings

    def export_csv(self, budget_id: int, generated: Optional[date] = None) -> str:
        budget = self.get_budget(budget_id)
        return export_budget_csv(budget.lines, budget.name, generated=generated)

    def preview_assessments(self, budget_id: int) -> AssessmentPreview:
        """Allocate a budget across active units and check the rounding drift.

        Drift beyond the configured tolerance is logged and reported as a
        warning; it never blocks the preview.
        """
        budget = self.get_budget(budget_id)
        units = list(
            self.db.execute(
                select(Unit).where(Unit.is_active.is_(True)).order_by(Unit.unit_number)
            ).scalars()
        )

        common_pct = budget.common_area_percentage
        if common_pct is None:
            common_pct = self.config.default_common_area_percentage
        common_pct = to_decimal(common_pct)

        basis = self.assessments.allocation_basis(units)
        assessments = self.assessments.calculate_unit_assessments(
            budget.total_amount, units, basis, common_pct
        )
        check = self.assessments.validate_assessment_calculation(
            budget.total_amount, assessments, self.config.assessment_tolerance
        )

        warnings = []
        if units and not check.is_valid:
            message = (
                f"Assessments for budget {budget.name!r} differ from the budget total "
                f"by {check.difference}"
            )
            logger.warning(message)
            warnings.append(message)

        return AssessmentPreview(
            budget_total=to_decimal(budget.total_amount),
            allocation_basis=basis,
            common_area_percentage=common_pct,
            assessments=assessments,
            check=check,
            warnings=warnings,
        )


__all__ = ["BudgetService", "AssessmentPreview"]
