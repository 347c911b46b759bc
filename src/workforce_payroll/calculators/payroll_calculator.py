"""Payroll calculator - turns approved timesheets into a payroll record."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from workforce_payroll.calculators.aggregator import overtime_multiplier_for
from workforce_payroll.calculators.rounding import HOURS_PRECISION
from workforce_payroll.calculators.types import (
    ApprovalStatus,
    DeductionLine,
    DeductionRule,
    DeductionType,
    PayPeriod,
    PayrollRecord,
    PayrollSettings,
    TimesheetEntry,
    Worker,
)

ZERO = Decimal("0")
CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round to cents using ROUND_HALF_UP."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class PayrollCalculation:
    """Result of calculating one worker's pay for one period."""

    record: PayrollRecord
    deduction_lines: list[DeductionLine] = field(default_factory=list)
    inputs_fingerprint: str = ""
    # True when other deductions had to be reduced to keep net pay >= 0
    deductions_capped: bool = False

    @property
    def has_hours(self) -> bool:
        return self.record.timesheet_count > 0


class PayrollCalculator:
    """Deterministic payroll calculation.

    Pipeline (stable order):
    1) Sum regular and overtime hours of approved entries in the period
    2) Gross pay at the hourly rate, overtime at the multiplier
    3) NIB deduction unless disabled or the worker is exempt
    4) Other deductions: manual lines plus active deduction rules
    5) Net pay = gross - NIB - other deductions

    The same inputs always produce the same record, calculation_id included.
    """

    def __init__(self, engine_version: str = "1.0.0"):
        self.engine_version = engine_version

    def calculate(
        self,
        worker: Worker,
        entries: Iterable[TimesheetEntry],
        settings: PayrollSettings,
        period: PayPeriod,
        deductions: Iterable[DeductionLine] = (),
        rules: Iterable[DeductionRule] = (),
    ) -> PayrollCalculation:
        approved = sorted(
            (
                e
                for e in entries
                if e.supervisor_approval == ApprovalStatus.APPROVED
                and e.worker_id == worker.id
                and period.contains(e.date)
            ),
            key=lambda e: (e.date, str(e.project_id)),
        )

        regular_hours = sum((e.regular_hours for e in approved), ZERO)
        overtime_hours = sum((e.overtime_hours for e in approved), ZERO)
        multiplier = overtime_multiplier_for(worker, settings)

        regular_pay = regular_hours * worker.hourly_rate
        overtime_pay = overtime_hours * worker.hourly_rate * multiplier
        gross_pay = round_to_cents(regular_pay + overtime_pay)

        nib_deduction = ZERO
        if settings.nib_enabled and not worker.nib_exempt:
            nib_deduction = round_to_cents(gross_pay * settings.nib_rate / HUNDRED)

        lines = [
            DeductionLine(
                amount=round_to_cents(d.amount),
                description=d.description,
                worker_id=worker.id,
            )
            for d in deductions
            if d.worker_id in (None, worker.id)
        ]
        lines.extend(self._evaluate_rules(rules, gross_pay, round_to_cents(regular_pay)))

        other_deductions = sum((line.amount for line in lines), ZERO)
        available = max(gross_pay - nib_deduction, ZERO)
        capped = other_deductions > available
        if capped:
            other_deductions = available

        total_deductions = nib_deduction + other_deductions
        net_pay = gross_pay - total_deductions

        inputs_data = self._inputs_data(worker, approved, settings, multiplier, lines)
        inputs_fingerprint = self._compute_inputs_fingerprint(inputs_data)

        record = PayrollRecord(
            worker_id=worker.id,
            company_id=worker.company_id,
            period_start=period.start_date,
            period_end=period.end_date,
            total_hours=regular_hours.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP),
            overtime_hours=overtime_hours.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP),
            gross_pay=gross_pay,
            nib_deduction=nib_deduction,
            other_deductions=other_deductions,
            total_deductions=total_deductions,
            net_pay=net_pay,
            timesheet_count=len(approved),
        )
        record.calculation_id = self._generate_calculation_id(
            worker.id, period, inputs_fingerprint
        )

        return PayrollCalculation(
            record=record,
            deduction_lines=lines,
            inputs_fingerprint=inputs_fingerprint,
            deductions_capped=capped,
        )

    def _evaluate_rules(
        self,
        rules: Iterable[DeductionRule],
        gross_pay: Decimal,
        regular_pay: Decimal,
    ) -> list[DeductionLine]:
        """Turn active deduction rules into deduction lines."""
        lines: list[DeductionLine] = []
        for rule in sorted(rules, key=lambda r: r.name):
            if not rule.is_active:
                continue
            if rule.type == DeductionType.PERCENTAGE:
                base = gross_pay if rule.applies_to_overtime else regular_pay
                amount = round_to_cents(base * rule.value / HUNDRED)
            else:
                amount = round_to_cents(rule.value)
            if amount > ZERO:
                lines.append(DeductionLine(amount=amount, description=rule.name))
        return lines

    def _inputs_data(
        self,
        worker: Worker,
        entries: list[TimesheetEntry],
        settings: PayrollSettings,
        multiplier: Decimal,
        lines: list[DeductionLine],
    ) -> dict[str, Any]:
        return {
            "hourly_rate": str(worker.hourly_rate),
            "overtime_multiplier": str(multiplier),
            "nib_enabled": settings.nib_enabled and not worker.nib_exempt,
            "nib_rate": str(settings.nib_rate),
            "entries": [
                {
                    "project_id": str(e.project_id),
                    "date": e.date.isoformat(),
                    "regular_hours": str(e.regular_hours),
                    "overtime_hours": str(e.overtime_hours),
                }
                for e in entries
            ],
            "deductions": sorted(
                ([line.description, str(line.amount)] for line in lines),
            ),
        }

    def _generate_calculation_id(
        self,
        worker_id: UUID,
        period: PayPeriod,
        inputs_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "worker_id": str(worker_id),
            "period_start": period.start_date.isoformat(),
            "period_end": period.end_date.isoformat(),
            "engine_version": self.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _compute_inputs_fingerprint(self, inputs_data: dict[str, Any]) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        json_str = json.dumps(inputs_data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]


def calculate_payroll(
    worker: Worker,
    entries: Iterable[TimesheetEntry],
    settings: PayrollSettings,
    period: PayPeriod,
    deductions: Iterable[DeductionLine] = (),
    rules: Iterable[DeductionRule] = (),
    engine_version: str = "1.0.0",
) -> PayrollCalculation:
    """Calculate one worker's payroll for one period."""
    return PayrollCalculator(engine_version).calculate(
        worker, entries, settings, period, deductions, rules
    )
