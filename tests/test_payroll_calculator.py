"""Tests for the payroll calculator."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from factories import MONDAY, PERIOD_END, PERIOD_START, approved_entry
from workforce_payroll.calculators.payroll_calculator import (
    PayrollCalculator,
    calculate_payroll,
    round_to_cents,
)
from workforce_payroll.calculators.types import (
    ApprovalStatus,
    DeductionLine,
    DeductionRule,
    DeductionType,
    PayPeriod,
    PayrollSettings,
)

PERIOD = PayPeriod(PERIOD_START, PERIOD_END)
NO_NIB = PayrollSettings(nib_enabled=False)


@pytest.fixture
def project_id():
    return uuid4()


@pytest.fixture
def crew_worker(worker):
    """Worker at 20.00/hour."""
    return replace(worker, hourly_rate=Decimal("20.00"))


@pytest.fixture
def full_week(worker, project_id):
    """Five approved 8-hour days at 25.00: gross 1000.00."""
    return [
        approved_entry(worker, project_id, date(2024, 3, day), "8")
        for day in range(4, 9)
    ]


class TestGrossPay:
    """Hours and gross pay."""

    def test_regular_and_overtime(self, crew_worker, project_id):
        """20 * (8 + 6) + 20 * 1.5 * 2 = 340."""
        entries = [
            approved_entry(crew_worker, project_id, MONDAY, "8"),
            approved_entry(crew_worker, project_id, date(2024, 3, 5), "6", "2"),
        ]
        record = calculate_payroll(crew_worker, entries, NO_NIB, PERIOD).record

        assert record.gross_pay == Decimal("340.00")
        assert record.total_hours == Decimal("14.00")
        assert record.overtime_hours == Decimal("2.00")
        assert record.net_pay == Decimal("340.00")
        assert record.timesheet_count == 2
        assert record.status.value == "draft"

    def test_only_approved_entries(self, crew_worker, project_id):
        """Pending and rejected entries never reach payroll."""
        entries = [
            approved_entry(crew_worker, project_id, MONDAY, "8"),
            replace(
                approved_entry(crew_worker, project_id, date(2024, 3, 5), "8"),
                supervisor_approval=ApprovalStatus.PENDING,
            ),
            replace(
                approved_entry(crew_worker, project_id, date(2024, 3, 6), "8"),
                supervisor_approval=ApprovalStatus.REJECTED,
            ),
        ]
        record = calculate_payroll(crew_worker, entries, NO_NIB, PERIOD).record

        assert record.gross_pay == Decimal("160.00")
        assert record.timesheet_count == 1

    def test_ignores_other_workers_and_periods(self, crew_worker, worker, project_id):
        entries = [
            approved_entry(crew_worker, project_id, MONDAY, "8"),
            approved_entry(replace(worker, id=uuid4()), project_id, MONDAY, "8"),
            approved_entry(crew_worker, project_id, date(2024, 3, 9), "8"),
        ]
        record = calculate_payroll(crew_worker, entries, NO_NIB, PERIOD).record

        assert record.timesheet_count == 1
        assert record.gross_pay == Decimal("160.00")

    def test_worker_overtime_rate(self, crew_worker, project_id):
        """The worker's own multiplier replaces the company one."""
        special = replace(crew_worker, overtime_rate=Decimal("2"))
        entries = [approved_entry(special, project_id, MONDAY, "8", "2")]
        record = calculate_payroll(special, entries, NO_NIB, PERIOD).record

        assert record.gross_pay == Decimal("240.00")

    def test_no_hours(self, worker):
        """No approved entries give a zero record."""
        calculation = calculate_payroll(worker, [], PayrollSettings(), PERIOD)

        assert not calculation.has_hours
        assert calculation.record.gross_pay == Decimal("0.00")
        assert calculation.record.net_pay == Decimal("0.00")


class TestNib:
    """National Insurance deduction."""

    def test_nib_rate(self, worker, full_week):
        """4.65% of 1000.00 is 46.50."""
        record = calculate_payroll(worker, full_week, PayrollSettings(), PERIOD).record

        assert record.gross_pay == Decimal("1000.00")
        assert record.nib_deduction == Decimal("46.50")
        assert record.total_deductions == Decimal("46.50")
        assert record.net_pay == Decimal("953.50")

    def test_exempt_worker(self, worker, full_week):
        exempt = replace(worker, nib_exempt=True)
        record = calculate_payroll(exempt, full_week, PayrollSettings(), PERIOD).record

        assert record.nib_deduction == Decimal("0")
        assert record.net_pay == Decimal("1000.00")

    def test_disabled(self, worker, full_week):
        record = calculate_payroll(worker, full_week, NO_NIB, PERIOD).record

        assert record.nib_deduction == Decimal("0")


class TestOtherDeductions:
    """Manual deductions and deduction rules."""

    def test_manual_and_rules(self, worker, full_week):
        """Manual lines and active rules all count; inactive rules do not."""
        deductions = [DeductionLine(amount=Decimal("50"), description="Tool loan")]
        rules = [
            DeductionRule(name="Union dues", type=DeductionType.PERCENTAGE, value=Decimal("2")),
            DeductionRule(name="Uniform", type=DeductionType.FIXED, value=Decimal("5")),
            DeductionRule(
                name="Old plan",
                type=DeductionType.FIXED,
                value=Decimal("99"),
                is_active=False,
            ),
        ]
        calculation = calculate_payroll(
            worker, full_week, PayrollSettings(), PERIOD, deductions, rules
        )
        record = calculation.record

        assert record.other_deductions == Decimal("75.00")
        assert record.total_deductions == Decimal("121.50")
        assert record.net_pay == Decimal("878.50")
        assert [line.description for line in calculation.deduction_lines] == [
            "Tool loan",
            "Uniform",
            "Union dues",
        ]

    def test_percentage_rule_excluding_overtime(self, worker, project_id):
        """A rule that skips overtime is taken from regular pay only."""
        entries = [approved_entry(worker, project_id, MONDAY, "8", "4")]
        rules = [
            DeductionRule(
                name="Pension",
                type=DeductionType.PERCENTAGE,
                value=Decimal("10"),
                applies_to_overtime=False,
            )
        ]
        record = calculate_payroll(worker, entries, NO_NIB, PERIOD, rules=rules).record

        # gross = 200 + 150; pension = 10% of 200
        assert record.gross_pay == Decimal("350.00")
        assert record.other_deductions == Decimal("20.00")

    def test_lines_for_other_workers_ignored(self, worker, full_week):
        deductions = [DeductionLine(amount=Decimal("50"), worker_id=uuid4())]
        record = calculate_payroll(worker, full_week, NO_NIB, PERIOD, deductions).record

        assert record.other_deductions == Decimal("0")

    def test_capped_at_available_pay(self, worker, full_week):
        """Net pay never goes negative."""
        deductions = [DeductionLine(amount=Decimal("2000"), description="Advance")]
        calculation = calculate_payroll(
            worker, full_week, PayrollSettings(), PERIOD, deductions
        )
        record = calculation.record

        assert calculation.deductions_capped
        assert record.other_deductions == Decimal("953.50")
        assert record.net_pay == Decimal("0.00")


class TestDeterminism:
    """Calculation ids."""

    def test_same_inputs_same_id(self, worker, full_week):
        calculator = PayrollCalculator()
        first = calculator.calculate(worker, full_week, PayrollSettings(), PERIOD)
        second = calculator.calculate(
            worker, list(reversed(full_week)), PayrollSettings(), PERIOD
        )

        assert first.record.calculation_id == second.record.calculation_id
        assert first.inputs_fingerprint == second.inputs_fingerprint
        assert first.record.to_canonical_dict() == second.record.to_canonical_dict()

    def test_changed_hours_change_id(self, worker, full_week):
        calculator = PayrollCalculator()
        first = calculator.calculate(worker, full_week, PayrollSettings(), PERIOD)
        second = calculator.calculate(worker, full_week[:-1], PayrollSettings(), PERIOD)

        assert first.record.calculation_id != second.record.calculation_id

    def test_engine_version_in_id(self, worker, full_week):
        first = PayrollCalculator("1.0.0").calculate(
            worker, full_week, PayrollSettings(), PERIOD
        )
        second = PayrollCalculator("2.0.0").calculate(
            worker, full_week, PayrollSettings(), PERIOD
        )

        assert first.record.gross_pay == second.record.gross_pay
        assert first.record.calculation_id != second.record.calculation_id


class TestRoundToCents:
    """Money rounding."""

    def test_half_up(self):
        assert round_to_cents(Decimal("10.125")) == Decimal("10.13")
        assert round_to_cents(Decimal("10.124")) == Decimal("10.12")
