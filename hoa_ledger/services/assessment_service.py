"""Assessment service for apportioning a budget across units.

Two-factor allocation:
- COMMON AREA: commonAreaPercentage of the budget, split equally per unit
- PRIVATE SPACE: the remainder, split proportionally to unit square footage

Each unit is rounded to the cent on its own: annual and monthly figures are
rounded independently, and the annual figures may drift from the budget by a
cent or more across many units. validate_assessment_calculation reports that
drift; callers warn on it rather than fail.
"""

import logging
from decimal import Decimal
from typing import Iterable, NamedTuple, Sequence

from hoa_ledger.models.budget import MONTH_FIELDS
from hoa_ledger.services.arithmetic import (
    HUNDRED,
    ZERO,
    Number,
    round_cents,
    safe_divide,
    to_decimal,
)
from hoa_ledger.services.errors import ValidationError

logger = logging.getLogger(__name__)

MONTH_NAMES = tuple(month.capitalize() for month in MONTH_FIELDS)


class UnitAssessment(NamedTuple):
    """One unit's share of a budget."""

    unit_id: int | str | None
    unit_number: str
    raw_square_feet: Decimal
    percentage_share: Decimal  # Unrounded share of total square footage, 0-100
    monthly_assessment: Decimal
    annual_assessment: Decimal


class AssessmentCheck(NamedTuple):
    """Outcome of comparing assessments against the budget they came from."""

    is_valid: bool
    difference: Decimal


class UnitShare(NamedTuple):
    unit_number: str
    share: Decimal


class CategoryAssessment(NamedTuple):
    """Per-unit breakdown of a single budget category."""

    category: str
    amount: Decimal
    unit_breakdown: list[UnitShare]


class MonthlyAssessment(NamedTuple):
    month: str
    assessments: list[UnitAssessment]


class AssessmentService:
    """Budget apportionment engine (square footage + common area)."""

    def __init__(self):
        """Initialize assessment service."""
        pass

    def allocation_basis(self, units: Iterable) -> Decimal:
        """Total square footage to allocate against.

        Returns the true sum of unit square footage, or 1 when that sum is 0
        so that an all-zero directory still yields the equal common-area split
        instead of a zero allocation.
        """
        total = sum((to_decimal(getattr(u, "square_feet", None)) for u in units), ZERO)
        if total == 0:
            logger.debug("Units have no square footage; using allocation basis of 1")
            return Decimal("1")
        return total

    def calculate_unit_assessments(
        self,
        budget_total: Number,
        units: Sequence,
        total_square_feet: Number,
        common_area_percentage: Number,
    ) -> list[UnitAssessment]:
        """Distribute a budget total across units.

        Algorithm:
        1. common budget = total * common% / 100, private budget = total * (100 - common%) / 100
        2. unit share = private budget * (unit sq ft / total sq ft) + common budget / unit count
        3. annual = round_cents(share), monthly = round_cents(share / 12)

        Args:
            budget_total: Annual amount to allocate (>= 0)
            units: Objects exposing id, unit_number and square_feet
            total_square_feet: Allocation basis supplied by the caller; see
                allocation_basis for the zero-footage policy
            common_area_percentage: Share of the budget split equally (0-100)

        Returns:
            One UnitAssessment per unit, in input order

        Raises:
            ValidationError: If common_area_percentage is outside [0, 100]
        """
        if not units:
            return []

        total = to_decimal(budget_total)
        common_pct = to_decimal(common_area_percentage)
        if not ZERO <= common_pct <= HUNDRED:
            raise ValidationError(
                f"Common area percentage must be between 0 and 100, got {common_pct}"
            )

        basis = to_decimal(total_square_feet)
        private_pct = HUNDRED - common_pct
        common_budget = total * common_pct / HUNDRED
        private_budget = total * private_pct / HUNDRED
        common_per_unit = safe_divide(common_budget, len(units))

        logger.debug(
            f"Allocating {total} across {len(units)} units "
            f"(basis={basis} sq ft, common={common_pct}%)"
        )

        square_feet = [to_decimal(getattr(unit, "square_feet", None)) for unit in units]
        fractions = [safe_divide(sq_ft, basis) for sq_ft in square_feet]
        shares = [private_budget * fraction + common_per_unit for fraction in fractions]

        return [
            UnitAssessment(
                unit_id=getattr(unit, "id", None),
                unit_number=unit.unit_number,
                raw_square_feet=sq_ft,
                percentage_share=fraction * HUNDRED,
                monthly_assessment=round_cents(safe_divide(share, 12)),
                annual_assessment=round_cents(share),
            )
            for unit, sq_ft, fraction, share in zip(units, square_feet, fractions, shares)
        ]

    def validate_assessment_calculation(
        self,
        budget: Number,
        assessments: Iterable[UnitAssessment],
        tolerance: Number = Decimal("0.01"),
    ) -> AssessmentCheck:
        """Check that annual assessments add back up to the budget.

        Returns is_valid=False when |budget - sum(annual)| exceeds the
        tolerance. Callers should warn, not fail, on an invalid result.
        """
        total = sum((a.annual_assessment for a in assessments), ZERO)
        difference = abs(to_decimal(budget) - total)
        return AssessmentCheck(
            is_valid=difference <= to_decimal(tolerance),
            difference=difference,
        )

    def calculate_assessment_by_category(
        self,
        budget_lines: Iterable,
        units: Sequence,
        total_square_feet: Number,
        common_area_percentage: Number,
    ) -> list[CategoryAssessment]:
        """Apply the allocator once per budget line, using its annual total.

        Args:
            budget_lines: Objects exposing category_name and annual_total
        """
        results = []
        for line in budget_lines:
            amount = to_decimal(line.annual_total)
            assessments = self.calculate_unit_assessments(
                amount, units, total_square_feet, common_area_percentage
            )
            results.append(
                CategoryAssessment(
                    category=line.category_name,
                    amount=amount,
                    unit_breakdown=[
                        UnitShare(a.unit_number, a.annual_assessment) for a in assessments
                    ],
                )
            )
        return results

    def calculate_monthly_assessments(
        self,
        monthly_amounts: Sequence[Number],
        units: Sequence,
        total_square_feet: Number,
        common_area_percentage: Number,
    ) -> list[MonthlyAssessment]:
        """Allocate a variable monthly budget, one allocator run per month.

        Args:
            monthly_amounts: Up to twelve amounts, January first
        """
        if len(monthly_amounts) > len(MONTH_NAMES):
            raise ValidationError(
                f"Expected at most 12 monthly amounts, got {len(monthly_amounts)}"
            )

        return [
            MonthlyAssessment(
                month=MONTH_NAMES[index],
                assessments=self.calculate_unit_assessments(
                    amount, units, total_square_feet, common_area_percentage
                ),
            )
            for index, amount in enumerate(monthly_amounts)
        ]


__all__ = [
    "AssessmentService",
    "UnitAssessment",
    "AssessmentCheck",
    "CategoryAssessment",
    "UnitShare",
    "MonthlyAssessment",
    "MONTH_NAMES",
]
