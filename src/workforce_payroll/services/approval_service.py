"""Approval service - supervisor approval with payroll regeneration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from workforce_payroll.calculators.types import (
    ApprovalStatus,
    PayrollRecord,
    PayrollStatus,
    TimesheetEntry,
)
from workforce_payroll.config import Settings
from workforce_payroll.repository.base import NotFoundError, RecordStore
from workforce_payroll.services.payroll_service import (
    PayrollRegenerationFailure,
    PayrollService,
)
from workforce_payroll.services.state_machine import (
    TimesheetLockedError,
    TimesheetStateMachine,
)

logger = logging.getLogger(__name__)


@dataclass
class ApprovalResult:
    """Outcome of a status change.

    The status change is always kept once written. When payroll could not be
    regenerated afterwards, payroll_error is set and the period's payroll
    record is stale until regeneration is retried.
    """

    timesheet: TimesheetEntry
    payroll_record: PayrollRecord | None = None
    payroll_error: PayrollRegenerationFailure | None = None
    payroll_regenerated: bool = False

    @property
    def partial_success(self) -> bool:
        return self.payroll_error is not None

    @property
    def warning(self) -> str | None:
        if self.payroll_error is None:
            return None
        return f"Timesheet status updated but payroll is stale: {self.payroll_error}"


class ApprovalService:
    """Timesheet approval transitions.

    Every transition that adds or removes approved hours regenerates the
    payroll record of the pay period containing the entry's date.
    """

    def __init__(self, store: RecordStore, settings: Settings | None = None):
        self.store = store
        self.payroll_service = PayrollService(store, settings)

    async def approve_timesheet(
        self,
        timesheet_id: UUID,
        user_id: UUID | None = None,
        now: datetime | None = None,
    ) -> ApprovalResult:
        """pending → approved, then regenerate payroll."""
        return await self._transition(timesheet_id, ApprovalStatus.APPROVED, user_id, now)

    async def unapprove_timesheet(
        self, timesheet_id: UUID, user_id: UUID | None = None
    ) -> ApprovalResult:
        """approved → pending, then regenerate payroll without the entry's hours."""
        return await self._transition(timesheet_id, ApprovalStatus.PENDING, user_id)

    async def reject_timesheet(
        self, timesheet_id: UUID, user_id: UUID | None = None
    ) -> ApprovalResult:
        """pending → rejected. Rejected entries never reach payroll."""
        return await self._transition(timesheet_id, ApprovalStatus.REJECTED, user_id)

    async def _transition(
        self,
        timesheet_id: UUID,
        to_status: ApprovalStatus,
        user_id: UUID | None,
        now: datetime | None = None,
    ) -> ApprovalResult:
        entry = await self.store.get_timesheet(timesheet_id)
        if entry is None:
            raise NotFoundError("Timesheet", timesheet_id)

        from_status = entry.supervisor_approval
        TimesheetStateMachine.validate_transition(from_status, to_status)
        regenerate = TimesheetStateMachine.changes_payable_hours(from_status, to_status)

        # All validation happens before the status write.
        period = None
        if regenerate:
            period = await self.payroll_service.period_for(entry.date)
            record = await self.store.get_payroll_record(
                entry.worker_id, period.start_date, period.end_date
            )
            if record is not None and record.status == PayrollStatus.PAID:
                raise TimesheetLockedError(entry.worker_id, period.start_date, period.end_date)

        entry.supervisor_approval = to_status
        if to_status == ApprovalStatus.APPROVED:
            entry.approved_at = now or datetime.now(timezone.utc)
            entry.approved_by = user_id
        elif TimesheetStateMachine.is_unapprove(from_status, to_status):
            entry.approved_at = None
            entry.approved_by = None
        entry = await self.store.upsert_timesheet(entry)
        logger.info(
            "Timesheet %s: %s -> %s", timesheet_id, from_status.value, to_status.value
        )

        result = ApprovalResult(timesheet=entry)
        if period is None:
            return result

        try:
            async with self.store.isolated():
                result.payroll_record = (
                    await self.payroll_service.generate_payroll_for_worker_and_period(
                        entry.worker_id, period.start_date, period.end_date, user_id
                    )
                )
            result.payroll_regenerated = True
        except PayrollRegenerationFailure as e:
            result.payroll_error = e
        except Exception as e:
            logger.exception("Payroll regeneration failed after timesheet %s", timesheet_id)
            result.payroll_error = PayrollRegenerationFailure(entry.worker_id, period, e)

        if result.partial_success:
            logger.warning(result.warning)
        return result
