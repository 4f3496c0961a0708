"""Unit tests for budget variance, pacing and collection metrics."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from hoa_ledger.services.arithmetic import round_cents
from hoa_ledger.services.errors import ValidationError
from hoa_ledger.services.reporting import (
    VarianceStatus,
    calculate_budget_progress,
    calculate_budget_trends,
    calculate_budget_variance,
    calculate_collection_metrics,
    calculate_collection_report,
    get_variance_status,
)


def line(category, annual_total):
    return SimpleNamespace(category_name=category, annual_total=Decimal(str(annual_total)))


class TestCalculateBudgetVariance:
    """Tests for calculate_budget_variance."""

    def test_five_percent_boundary_is_on_track(self):
        summary = calculate_budget_variance([line("Insurance", 1000)], {"Insurance": 950})

        category = summary.categories[0]
        assert category.variance == Decimal("50")
        assert category.variance_percent == Decimal("5")
        assert category.status == VarianceStatus.ON_TRACK

    def test_overspend_at_boundary_is_on_track(self):
        summary = calculate_budget_variance([line("Insurance", 1000)], {"Insurance": 1050})

        assert summary.categories[0].variance_percent == Decimal("-5")
        assert summary.categories[0].status == VarianceStatus.ON_TRACK

    def test_under_budget(self):
        summary = calculate_budget_variance([line("Pool", 1000)], {"Pool": 940})

        assert summary.categories[0].status == VarianceStatus.UNDER

    def test_over_budget(self):
        summary = calculate_budget_variance([line("Pool", 1000)], {"Pool": 1100})

        assert summary.categories[0].variance_percent == Decimal("-10")
        assert summary.categories[0].status == VarianceStatus.OVER

    def test_zero_budget_uses_zero_percent(self):
        summary = calculate_budget_variance([line("Misc", 0)], {"Misc": 100})

        assert summary.categories[0].variance == Decimal("-100")
        assert summary.categories[0].variance_percent == Decimal("0")
        assert summary.categories[0].status == VarianceStatus.ON_TRACK

    def test_missing_actuals_count_as_zero(self):
        summary = calculate_budget_variance([line("Snow Removal", 2000)], {})

        assert summary.categories[0].actual == Decimal("0")
        assert summary.categories[0].status == VarianceStatus.UNDER

    def test_expense_records_aggregated_by_category(self):
        expenses = [
            SimpleNamespace(category_name="Utilities", amount=Decimal("300")),
            SimpleNamespace(category_name="Utilities", amount=Decimal("200")),
            SimpleNamespace(category_name="Unbudgeted", amount=Decimal("999")),
        ]

        summary = calculate_budget_variance([line("Utilities", 1000)], expenses)

        assert summary.categories[0].actual == Decimal("500")
        assert summary.total_actual == Decimal("500")

    def test_overall_summary_uses_totals(self):
        lines = [line("A", 1000), line("B", 3000)]

        summary = calculate_budget_variance(lines, {"A": 1500, "B": 2500})

        assert summary.total_budgeted == Decimal("4000")
        assert summary.total_actual == Decimal("4000")
        assert summary.total_variance == Decimal("0")
        assert summary.status == VarianceStatus.ON_TRACK
        assert [c.status for c in summary.categories] == [VarianceStatus.OVER, VarianceStatus.UNDER]


class TestGetVarianceStatus:
    @pytest.mark.parametrize(
        "percent, label",
        [(5, "On Track"), (-5, "On Track"), (10, "Under Budget"), (-10, "Over Budget")],
    )
    def test_labels(self, percent, label):
        assert get_variance_status(percent) == label


class TestCalculateBudgetProgress:
    def test_mid_year_pacing(self):
        progress = calculate_budget_progress(Decimal("12000"), Decimal("5000"), 6)

        assert progress.expected_spend == Decimal("6000")
        assert round_cents(progress.spending_rate) == Decimal("83.33")
        assert round_cents(progress.projected_year_end) == Decimal("10000")
        assert progress.on_pace_amount == Decimal("1000")

    def test_zero_elapsed_months_guarded(self):
        progress = calculate_budget_progress(Decimal("12000"), Decimal("500"), 0)

        assert progress.expected_spend == Decimal("0")
        assert progress.spending_rate == Decimal("0")
        assert progress.projected_year_end == Decimal("0")

    @pytest.mark.parametrize("months", [-1, 13])
    def test_elapsed_months_out_of_range(self, months):
        with pytest.raises(ValidationError, match="between 0 and 12"):
            calculate_budget_progress(12000, 0, months)


class TestCalculateCollectionReport:
    @pytest.fixture
    def report(self):
        units = [
            SimpleNamespace(unit_number="101", assessed=Decimal("1200")),
            SimpleNamespace(unit_number="102", assessed=Decimal("1200")),
            SimpleNamespace(unit_number="103", assessed=Decimal("0")),
        ]
        payments = [
            SimpleNamespace(unit_number="101", amount=Decimal("1200"), days_to_collect=10),
            SimpleNamespace(unit_number="102", amount=Decimal("600"), days_to_collect=20),
            SimpleNamespace(unit_number="102", amount=Decimal("300"), days_to_collect=40),
            SimpleNamespace(unit_number="999", amount=Decimal("50"), days_to_collect=5),
        ]
        return calculate_collection_report(units, payments)

    def test_per_unit_metrics(self, report):
        metrics = {m.unit_number: m for m in report.unit_metrics}

        assert metrics["101"].balance == Decimal("0")
        assert metrics["102"].collected == Decimal("900")
        assert metrics["102"].balance == Decimal("300")
        assert metrics["102"].days_delinquent == Decimal("30")
        assert metrics["103"].days_delinquent == Decimal("0")

    def test_totals(self, report):
        assert report.total_assessed == Decimal("2400")
        assert report.total_collected == Decimal("2100")
        assert report.total_delinquent == Decimal("300")
        assert report.collection_rate == Decimal("87.5")

    def test_average_collection_days_over_payments(self, report):
        assert round_cents(report.average_collection_days) == Decimal("23.33")

    def test_empty_inputs(self):
        report = calculate_collection_report([], [])

        assert report.collection_rate == Decimal("0")
        assert report.average_collection_days == Decimal("0")
        assert report.unit_metrics == []


class TestCalculateCollectionMetrics:
    def test_metrics(self):
        payments = [
            SimpleNamespace(amount=Decimal("1000"), days_overdue=10),
            SimpleNamespace(amount=Decimal("500"), days_overdue=20),
        ]

        metrics = calculate_collection_metrics([Decimal("1000"), Decimal("1000")], payments)

        assert metrics.total_collected == Decimal("1500")
        assert metrics.total_overdue == Decimal("500")
        assert metrics.collection_rate == Decimal("75")
        assert metrics.average_days_overdue == Decimal("15")

    def test_no_assessments(self):
        metrics = calculate_collection_metrics([], [])

        assert metrics.collection_rate == Decimal("0")
        assert metrics.average_days_overdue == Decimal("0")


class TestCalculateBudgetTrends:
    def test_year_over_year(self):
        budgets = [
            SimpleNamespace(fiscal_year=2023, total_amount=Decimal("100000")),
            SimpleNamespace(fiscal_year=2024, total_amount=Decimal("110000")),
        ]
        spending = [
            SimpleNamespace(fiscal_year=2023, amount=Decimal("95000")),
            SimpleNamespace(fiscal_year=2024, amount=Decimal("50000")),
            SimpleNamespace(fiscal_year=2024, amount=Decimal("10000")),
        ]

        trends = calculate_budget_trends(budgets, spending)

        assert [t.year for t in trends] == [2023, 2024]
        assert trends[0].percent_change == Decimal("0")
        assert trends[1].percent_change == Decimal("10")
        assert trends[1].spent_amount == Decimal("60000")

    def test_previous_zero_budget(self):
        budgets = [
            SimpleNamespace(fiscal_year=2023, total_amount=Decimal("0")),
            SimpleNamespace(fiscal_year=2024, total_amount=Decimal("5000")),
        ]

        trends = calculate_budget_trends(budgets, [])

        assert trends[1].percent_change == Decimal("0")
