"""Budget variance, pacing and collection metrics.

Status band: a variance within 5% of the budgeted amount (inclusive) is
on-track; outside the band a positive variance is under budget and a negative
one over budget. All ratios go through safe_divide, so a zero denominator
yields 0 rather than an error.
"""

from collections import defaultdict
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Iterable, NamedTuple, Sequence, Union

from hoa_ledger.services.arithmetic import (
    HUNDRED,
    ZERO,
    Number,
    percent_of,
    safe_divide,
    to_decimal,
)
from hoa_ledger.services.errors import ValidationError

ON_TRACK_BAND = Decimal("5")


class VarianceStatus(str, Enum):
    UNDER = "under"
    OVER = "over"
    ON_TRACK = "on-track"


VARIANCE_LABELS = {
    VarianceStatus.ON_TRACK: "On Track",
    VarianceStatus.UNDER: "Under Budget",
    VarianceStatus.OVER: "Over Budget",
}


class BudgetVariance(NamedTuple):
    category: str
    budgeted: Decimal
    actual: Decimal
    variance: Decimal  # budgeted - actual
    variance_percent: Decimal
    status: VarianceStatus


class BudgetSummary(NamedTuple):
    total_budgeted: Decimal
    total_actual: Decimal
    total_variance: Decimal
    variance_percent: Decimal
    status: VarianceStatus
    categories: list[BudgetVariance]


class BudgetProgress(NamedTuple):
    elapsed_months: int
    expected_spend: Decimal
    actual_spend: Decimal
    spending_rate: Decimal  # Percent of expected spend
    on_pace_amount: Decimal  # Expected minus actual; negative when ahead of pace
    projected_year_end: Decimal


class UnitCollection(NamedTuple):
    unit_number: str
    assessed: Decimal
    collected: Decimal
    balance: Decimal
    days_delinquent: Decimal  # Mean days-to-collect of the unit's payments


class CollectionReport(NamedTuple):
    total_assessed: Decimal
    total_collected: Decimal
    total_delinquent: Decimal
    collection_rate: Decimal
    average_collection_days: Decimal
    unit_metrics: list[UnitCollection]


class CollectionMetrics(NamedTuple):
    total_assessed: Decimal
    total_collected: Decimal
    total_overdue: Decimal
    collection_rate: Decimal
    average_days_overdue: Decimal


class BudgetTrend(NamedTuple):
    year: int
    budget_amount: Decimal
    spent_amount: Decimal
    percent_change: Decimal


def classify_variance(variance: Decimal, variance_percent: Decimal) -> VarianceStatus:
    """Apply the inclusive 5% on-track band, then the sign of the variance."""
    if abs(variance_percent) <= ON_TRACK_BAND:
        return VarianceStatus.ON_TRACK
    if variance > 0:
        return VarianceStatus.UNDER
    return VarianceStatus.OVER


def get_variance_status(variance_percent: Number) -> str:
    """Display label for a variance percentage."""
    percent = to_decimal(variance_percent)
    return VARIANCE_LABELS[classify_variance(percent, percent)]


def _actuals_by_category(actual_expenses) -> dict:
    if isinstance(actual_expenses, Mapping):
        return {name: to_decimal(amount) for name, amount in actual_expenses.items()}

    totals = defaultdict(lambda: ZERO)
    for expense in actual_expenses:
        totals[expense.category_name] += to_decimal(expense.amount)
    return dict(totals)


def calculate_budget_variance(
    budget_lines: Iterable,
    actual_expenses: Union[Mapping, Iterable],
) -> BudgetSummary:
    """Compare budgeted amounts with actual spending, per category and overall.

    Args:
        budget_lines: Objects exposing category_name and annual_total
        actual_expenses: Mapping of category name to amount, or expense
            records (category_name, amount) that are summed per category

    Returns:
        BudgetSummary whose categories follow the order of budget_lines
    """
    actuals = _actuals_by_category(actual_expenses)

    categories = []
    for line in budget_lines:
        budgeted = to_decimal(line.annual_total)
        actual = actuals.get(line.category_name, ZERO)
        variance = budgeted - actual
        variance_percent = percent_of(variance, budgeted)
        categories.append(
            BudgetVariance(
                category=line.category_name,
                budgeted=budgeted,
                actual=actual,
                variance=variance,
                variance_percent=variance_percent,
                status=classify_variance(variance, variance_percent),
            )
        )

    total_budgeted = sum((v.budgeted for v in categories), ZERO)
    total_actual = sum((v.actual for v in categories), ZERO)
    total_variance = total_budgeted - total_actual
    total_percent = percent_of(total_variance, total_budgeted)

    return BudgetSummary(
        total_budgeted=total_budgeted,
        total_actual=total_actual,
        total_variance=total_variance,
        variance_percent=total_percent,
        status=classify_variance(total_variance, total_percent),
        categories=categories,
    )


def calculate_budget_progress(
    budget_total: Number,
    actual_spend: Number,
    elapsed_months: int,
) -> BudgetProgress:
    """Year-to-date spend against a straight-line share of the annual budget.

    Raises:
        ValidationError: If elapsed_months is outside 0-12
    """
    if not 0 <= elapsed_months <= 12:
        raise ValidationError(f"Elapsed months must be between 0 and 12, got {elapsed_months}")

    actual = to_decimal(actual_spend)
    expected = safe_divide(budget_total, 12) * elapsed_months

    return BudgetProgress(
        elapsed_months=elapsed_months,
        expected_spend=expected,
        actual_spend=actual,
        spending_rate=percent_of(actual, expected),
        on_pace_amount=expected - actual,
        projected_year_end=safe_divide(actual, elapsed_months) * 12,
    )


def calculate_collection_report(units: Sequence, payments: Iterable) -> CollectionReport:
    """Assessed versus collected amounts per unit.

    Args:
        units: Objects exposing unit_number and assessed
        payments: Objects exposing unit_number, amount and days_to_collect;
            payments for units not in the report are ignored

    Returns:
        CollectionReport; average_collection_days is the mean days_to_collect
        over every payment matched to a unit
    """
    payments_by_unit = defaultdict(list)
    for payment in payments:
        payments_by_unit[payment.unit_number].append(payment)

    unit_metrics = []
    matched_days = []
    for unit in units:
        unit_payments = payments_by_unit.get(unit.unit_number, [])
        assessed = to_decimal(unit.assessed)
        collected = sum((to_decimal(p.amount) for p in unit_payments), ZERO)
        days = [to_decimal(p.days_to_collect) for p in unit_payments]
        matched_days.extend(days)

        unit_metrics.append(
            UnitCollection(
                unit_number=unit.unit_number,
                assessed=assessed,
                collected=collected,
                balance=assessed - collected,
                days_delinquent=max(ZERO, safe_divide(sum(days, ZERO), len(days))),
            )
        )

    total_assessed = sum((m.assessed for m in unit_metrics), ZERO)
    total_collected = sum((m.collected for m in unit_metrics), ZERO)

    return CollectionReport(
        total_assessed=total_assessed,
        total_collected=total_collected,
        total_delinquent=sum((max(ZERO, m.balance) for m in unit_metrics), ZERO),
        collection_rate=percent_of(total_collected, total_assessed),
        average_collection_days=safe_divide(sum(matched_days, ZERO), len(matched_days)),
        unit_metrics=unit_metrics,
    )


def calculate_collection_metrics(
    assessments: Iterable[Number],
    payments: Iterable,
) -> CollectionMetrics:
    """Portfolio-level collection totals.

    Args:
        assessments: Assessed amounts
        payments: Objects exposing amount and days_overdue
    """
    payments = list(payments)
    total_assessed = sum((to_decimal(a) for a in assessments), ZERO)
    total_collected = sum((to_decimal(p.amount) for p in payments), ZERO)
    total_days = sum((to_decimal(p.days_overdue) for p in payments), ZERO)

    return CollectionMetrics(
        total_assessed=total_assessed,
        total_collected=total_collected,
        total_overdue=total_assessed - total_collected,
        collection_rate=percent_of(total_collected, total_assessed),
        average_days_overdue=safe_divide(total_days, len(payments)),
    )


def calculate_budget_trends(budgets: Sequence, spending: Iterable) -> list[BudgetTrend]:
    """Year-over-year budget change and spend.

    Args:
        budgets: Objects exposing fiscal_year and total_amount, in the order
            to compare (each entry against the one before it)
        spending: Objects exposing fiscal_year and amount
    """
    spent_by_year = defaultdict(lambda: ZERO)
    for entry in spending:
        spent_by_year[entry.fiscal_year] += to_decimal(entry.amount)

    trends = []
    previous = None
    for budget in budgets:
        amount = to_decimal(budget.total_amount)
        baseline = amount if previous is None else previous
        trends.append(
            BudgetTrend(
                year=budget.fiscal_year,
                budget_amount=amount,
                spent_amount=spent_by_year.get(budget.fiscal_year, ZERO),
                percent_change=safe_divide(amount - baseline, baseline) * HUNDRED,
            )
        )
        previous = amount

    return trends


__all__ = [
    "ON_TRACK_BAND",
    "VarianceStatus",
    "BudgetVariance",
    "BudgetSummary",
    "BudgetProgress",
    "UnitCollection",
    "CollectionReport",
    "CollectionMetrics",
    "BudgetTrend",
    "classify_variance",
    "get_variance_status",
    "calculate_budget_variance",
    "calculate_budget_progress",
    "calculate_collection_report",
    "calculate_collection_metrics",
    "calculate_budget_trends",
]
