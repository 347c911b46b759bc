"""Payroll service - generation and lifecycle of payroll records."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from workforce_payroll.calculators.pay_period import (
    InvalidScheduleConfigurationError,
    period_containing,
)
from workforce_payroll.calculators.payroll_calculator import PayrollCalculator
from workforce_payroll.calculators.types import (
    ApprovalStatus,
    PayPeriod,
    PayrollRecord,
    PayrollStatus,
)
from workforce_payroll.config import Settings, get_settings
from workforce_payroll.repository.base import NotFoundError, RecordStore
from workforce_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRecordStateMachine,
)

logger = logging.getLogger(__name__)


class PayrollRegenerationFailure(Exception):
    """Raised when a payroll record was calculated but could not be written."""

    def __init__(self, worker_id: UUID, period: PayPeriod, cause: Exception):
        self.worker_id = worker_id
        self.period = period
        self.cause = cause
        super().__init__(
            f"Payroll for worker {worker_id} in period {period.start_date} to "
            f"{period.end_date} could not be saved: {cause}"
        )


class PayrollService:
    """Service for payroll records.

    Operations:
    - generate_payroll_for_worker_and_period: recalculate and upsert one record
    - period_for: resolve the pay period containing a date
    - confirm_payroll / mark_payroll_paid: record lifecycle
    """

    def __init__(self, store: RecordStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()
        self.calculator = PayrollCalculator(self.settings.engine_version)

    async def period_for(self, day: date) -> PayPeriod:
        """Resolve the pay period containing a date from the company schedule.

        Raises:
            InvalidScheduleConfigurationError: no schedule, or it fails validation
        """
        schedule = await self.store.get_payment_schedule()
        if schedule is None:
            raise InvalidScheduleConfigurationError(["No payment schedule configured"])
        return period_containing(day, schedule)

    async def generate_payroll_for_worker_and_period(
        self,
        worker_id: UUID,
        period_start: date,
        period_end: date,
        user_id: UUID | None = None,
    ) -> PayrollRecord | None:
        """Recalculate one worker's payroll for a period from current approvals.

        Reads approved timesheets at call time, so repeated calls after any
        approval change converge on the same record. With no approved hours
        the configured zero-hours policy applies: "zero" upserts a zero-value
        record, "skip" writes nothing and returns the existing record (or None).

        Regenerating a confirmed record with different results drops it back
        to draft. Paid records are never recalculated.

        Raises:
            ValueError: period_start is after period_end
            NotFoundError: worker does not exist in this company
            InvalidTransitionError: the record is already paid
            PayrollRegenerationFailure: the record could not be written
        """
        period = PayPeriod(start_date=period_start, end_date=period_end)

        worker = await self.store.get_worker(worker_id)
        if worker is None:
            raise NotFoundError("Worker", worker_id)

        existing = await self.store.get_payroll_record(worker_id, period_start, period_end)
        if existing is not None and not PayrollRecordStateMachine.can_calculate(existing.status):
            raise InvalidTransitionError(
                existing.status.value,
                PayrollStatus.DRAFT.value,
                "payroll record is already paid",
            )

        entries = await self.store.list_timesheets(
            worker_id, period_start, period_end, statuses=(ApprovalStatus.APPROVED,)
        )
        if not entries and self.settings.zero_hours_policy == "skip":
            logger.info(
                "No approved hours for worker %s in %s..%s; skipping payroll record",
                worker_id,
                period_start,
                period_end,
            )
            return existing

        calculation = self.calculator.calculate(
            worker,
            entries,
            await self.store.get_payroll_settings(),
            period,
            deductions=await self.store.list_deductions(worker_id, period_start, period_end),
            rules=await self.store.list_deduction_rules(),
        )
        record = calculation.record
        if calculation.deductions_capped:
            logger.warning(
                "Deductions for worker %s in %s..%s exceed pay; capped at %s",
                worker_id,
                period_start,
                period_end,
                record.other_deductions,
            )

        if existing is not None:
            record.id = existing.id
            if existing.calculation_id == record.calculation_id:
                record.status = existing.status
            elif existing.status == PayrollStatus.CONFIRMED:
                logger.info(
                    "Payroll %s changed after confirmation; returning to draft", existing.id
                )

        try:
            return await self.store.upsert_payroll_record(record, created_by=user_id)
        except Exception as e:
            logger.exception(
                "Failed to save payroll for worker %s in %s..%s",
                worker_id,
                period_start,
                period_end,
            )
            raise PayrollRegenerationFailure(worker_id, period, e) from e

    async def confirm_payroll(self, payroll_id: UUID) -> PayrollRecord:
        """Move a draft record to confirmed."""
        return await self._transition(payroll_id, PayrollStatus.CONFIRMED)

    async def mark_payroll_paid(self, payroll_id: UUID) -> PayrollRecord:
        """Move a confirmed record to paid. Paid records are final."""
        return await self._transition(payroll_id, PayrollStatus.PAID)

    async def _transition(self, payroll_id: UUID, to_status: PayrollStatus) -> PayrollRecord:
        record = await self.store.get_payroll_record_by_id(payroll_id)
        if record is None:
            raise NotFoundError("Payroll record", payroll_id)

        PayrollRecordStateMachine.validate_transition(record.status, to_status)
        record.status = to_status
        return await self.store.upsert_payroll_record(record)
