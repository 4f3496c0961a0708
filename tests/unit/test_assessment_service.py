"""Unit tests for assessment allocation."""

import random
from decimal import Decimal
from types import SimpleNamespace

import pytest

from hoa_ledger.services.assessment_service import AssessmentService, UnitAssessment
from hoa_ledger.services.errors import ValidationError


def unit(unit_id, number, square_feet):
    return SimpleNamespace(id=unit_id, unit_number=number, square_feet=Decimal(str(square_feet)))


@pytest.fixture
def service():
    """Create assessment service instance."""
    return AssessmentService()


@pytest.fixture
def units():
    """Three units: 20% / 30% / 50% of 5000 sq ft."""
    return [unit(1, "101", 1000), unit(2, "102", 1500), unit(3, "103", 2500)]


class TestCalculateUnitAssessments:
    """Test the two-factor allocation."""

    def test_splits_common_equally_and_private_by_square_feet(self, service, units):
        """120000 at 45% common: 18000 each plus 66000 split 20/30/50."""
        result = service.calculate_unit_assessments(Decimal("120000"), units, 5000, 45)

        assert [a.annual_assessment for a in result] == [
            Decimal("31200.00"),
            Decimal("37800.00"),
            Decimal("51000.00"),
        ]
        assert [a.monthly_assessment for a in result] == [
            Decimal("2600.00"),
            Decimal("3150.00"),
            Decimal("4250.00"),
        ]

    def test_output_fields_and_order(self, service, units):
        result = service.calculate_unit_assessments(Decimal("120000"), units, 5000, 45)

        assert all(isinstance(a, UnitAssessment) for a in result)
        assert [a.unit_number for a in result] == ["101", "102", "103"]
        assert [a.unit_id for a in result] == [1, 2, 3]
        assert [a.raw_square_feet for a in result] == [Decimal("1000"), Decimal("1500"), Decimal("2500")]
        assert [a.percentage_share for a in result] == [Decimal("20"), Decimal("30"), Decimal("50")]

    def test_percentage_share_is_not_rounded(self, service):
        units = [unit(1, "A", 1), unit(2, "B", 1), unit(3, "C", 1)]

        result = service.calculate_unit_assessments(Decimal("300"), units, 3, 45)

        assert result[0].percentage_share != Decimal("33.33")
        assert abs(sum(a.percentage_share for a in result) - 100) <= Decimal("1e-6")

    def test_full_common_area_gives_equal_assessments(self, service, units):
        """At 100% common area square footage does not matter."""
        result = service.calculate_unit_assessments(Decimal("90000"), units, 5000, 100)

        assert {a.annual_assessment for a in result} == {Decimal("30000.00")}

    def test_full_common_area_equal_even_with_rounding(self, service, units):
        result = service.calculate_unit_assessments(Decimal("100"), units, 5000, 100)

        assert {a.annual_assessment for a in result} == {Decimal("33.33")}

    def test_zero_common_area_is_purely_proportional(self, service, units):
        result = service.calculate_unit_assessments(Decimal("10000"), units, 5000, 0)

        assert [a.annual_assessment for a in result] == [
            Decimal("2000.00"),
            Decimal("3000.00"),
            Decimal("5000.00"),
        ]

    def test_monthly_rounded_independently(self, service):
        """Twelve monthly amounts may drift from the annual amount."""
        units = [unit(1, "A", 100), unit(2, "B", 100), unit(3, "C", 100)]

        result = service.calculate_unit_assessments(Decimal("1000"), units, 300, 0)

        assert result[0].annual_assessment == Decimal("333.33")
        assert result[0].monthly_assessment == Decimal("27.78")
        assert result[0].monthly_assessment * 12 != result[0].annual_assessment

    def test_full_common_area_equal_regardless_of_square_feet(self, service):
        units = [unit(i, str(i), 100 * (i + 1)) for i in range(7)]

        result = service.calculate_unit_assessments(Decimal("100"), units, 2800, 100)

        assert {a.annual_assessment for a in result} == {Decimal("14.29")}

    def test_each_unit_rounded_independently(self, service):
        """Seven equal shares of 100 round to 14.29 each and sum to 100.03."""
        units = [unit(i, str(i), 100) for i in range(7)]

        result = service.calculate_unit_assessments(Decimal("100"), units, 700, 100)
        check = service.validate_assessment_calculation(Decimal("100"), result)

        assert sum(a.annual_assessment for a in result) == Decimal("100.03")
        assert check.is_valid is False
        assert check.difference == Decimal("0.03")

    def test_no_units_returns_empty_list(self, service):
        assert service.calculate_unit_assessments(Decimal("1000"), [], 0, 45) == []

    def test_missing_square_feet_reads_as_zero(self, service):
        units = [SimpleNamespace(id=1, unit_number="A", square_feet=None), unit(2, "B", 1000)]

        result = service.calculate_unit_assessments(Decimal("1000"), units, 1000, 50)

        assert result[0].raw_square_feet == Decimal("0")
        assert result[0].annual_assessment == Decimal("250.00")
        assert result[1].annual_assessment == Decimal("750.00")

    @pytest.mark.parametrize("percentage", [-1, Decimal("100.01"), 150])
    def test_common_area_out_of_range_rejected(self, service, units, percentage):
        with pytest.raises(ValidationError, match="between 0 and 100"):
            service.calculate_unit_assessments(Decimal("1000"), units, 5000, percentage)

    def test_sum_drift_bounded_by_half_cent_per_unit(self, service):
        """Rounding moves each unit by at most half a cent."""
        rng = random.Random(20250630)
        for _ in range(200):
            units = [
                unit(i, f"U{i}", rng.randint(0, 4000)) for i in range(rng.randint(1, 40))
            ]
            basis = service.allocation_basis(units)
            if basis == 1 and all(u.square_feet == 0 for u in units):
                continue
            budget = Decimal(rng.randint(0, 50_000_000)) / 100
            common_pct = Decimal(rng.randint(0, 10000)) / 100

            result = service.calculate_unit_assessments(budget, units, basis, common_pct)

            difference = abs(budget - sum(a.annual_assessment for a in result))
            assert difference <= Decimal("0.005") * len(units) + Decimal("1e-20")
            if len(units) == 1:
                assert difference == 0
            check = service.validate_assessment_calculation(budget, result)
            assert check.is_valid == (difference <= Decimal("0.01"))
            assert abs(sum(a.percentage_share for a in result) - 100) <= Decimal("1e-6")


class TestAllocationBasis:
    def test_sums_square_feet(self, service, units):
        assert service.allocation_basis(units) == Decimal("5000")

    def test_zero_footage_uses_one(self, service):
        units = [unit(1, "A", 0), unit(2, "B", 0)]

        basis = service.allocation_basis(units)
        result = service.calculate_unit_assessments(Decimal("1000"), units, basis, 45)

        assert basis == Decimal("1")
        assert [a.annual_assessment for a in result] == [Decimal("225.00"), Decimal("225.00")]


class TestValidateAssessmentCalculation:
    def test_exact_sum_is_valid(self, service, units):
        assessments = service.calculate_unit_assessments(Decimal("120000"), units, 5000, 45)

        check = service.validate_assessment_calculation(Decimal("120000"), assessments)

        assert check.is_valid is True
        assert check.difference == Decimal("0")

    def test_one_cent_drift_is_within_tolerance(self, service, units):
        assessments = service.calculate_unit_assessments(Decimal("100"), units, 5000, 100)

        check = service.validate_assessment_calculation(Decimal("100"), assessments)

        assert check.is_valid is True
        assert check.difference == Decimal("0.01")

    def test_drift_beyond_tolerance_is_invalid(self, service):
        assessments = [
            UnitAssessment(1, "A", Decimal("0"), Decimal("50"), Decimal("4.17"), Decimal("50.00")),
            UnitAssessment(2, "B", Decimal("0"), Decimal("50"), Decimal("4.17"), Decimal("49.98")),
        ]

        check = service.validate_assessment_calculation(Decimal("100"), assessments)

        assert check.is_valid is False
        assert check.difference == Decimal("0.02")

    def test_custom_tolerance(self, service):
        assessments = [UnitAssessment(1, "A", Decimal("0"), Decimal("100"), Decimal("8"), Decimal("99.95"))]

        check = service.validate_assessment_calculation(100, assessments, tolerance=Decimal("0.10"))

        assert check.is_valid is True


class TestCalculateAssessmentByCategory:
    def test_breakdown_per_line(self, service, units):
        lines = [
            SimpleNamespace(category_name="Insurance", annual_total=Decimal("12000")),
            SimpleNamespace(category_name="Landscaping", annual_total=Decimal("0")),
        ]

        result = service.calculate_assessment_by_category(lines, units, 5000, 45)

        assert [c.category for c in result] == ["Insurance", "Landscaping"]
        assert result[0].amount == Decimal("12000")
        assert [(s.unit_number, s.share) for s in result[0].unit_breakdown] == [
            ("101", Decimal("3120.00")),
            ("102", Decimal("3780.00")),
            ("103", Decimal("5100.00")),
        ]
        assert all(s.share == Decimal("0.00") for s in result[1].unit_breakdown)


class TestCalculateMonthlyAssessments:
    def test_one_allocation_per_month(self, service, units):
        amounts = [Decimal("1000")] * 11 + [Decimal("2000")]

        result = service.calculate_monthly_assessments(amounts, units, 5000, 100)

        assert [m.month for m in result][:2] == ["January", "February"]
        assert result[-1].month == "December"
        assert len(result) == 12
        assert sum(a.annual_assessment for a in result[-1].assessments) == Decimal("2000.01")

    def test_more_than_twelve_months_rejected(self, service, units):
        with pytest.raises(ValidationError, match="at most 12"):
            service.calculate_monthly_assessments([1] * 13, units, 5000, 45)
