"""Timesheet approval and payroll record state machines."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from workforce_payroll.calculators.types import ApprovalStatus, PayrollStatus


def _value(status: str) -> str:
    return status.value if isinstance(status, (ApprovalStatus, PayrollStatus)) else str(status)


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class TimesheetLockedError(Exception):
    """Raised when a change would alter a pay period that is already paid."""

    def __init__(self, worker_id: UUID, period_start: date, period_end: date):
        self.worker_id = worker_id
        self.period_start = period_start
        self.period_end = period_end
        super().__init__(
            f"Payroll for worker {worker_id} in period {period_start} to "
            f"{period_end} is already paid"
        )


class TimesheetStateMachine:
    """State machine for timesheet supervisor approval.

    Allowed transitions:
    - pending → approved
    - approved → pending (unapprove)
    - pending → rejected
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ApprovalStatus.PENDING: [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED],
        ApprovalStatus.APPROVED: [ApprovalStatus.PENDING],
        ApprovalStatus.REJECTED: [],  # Terminal state
    }

    # Statuses whose hours count towards payroll
    PAYABLE = {ApprovalStatus.APPROVED}

    # Statuses that may still be edited or regenerated from clock events
    EDITABLE = {ApprovalStatus.PENDING}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            reason = None
            if from_status == ApprovalStatus.REJECTED:
                reason = "rejected timesheets are final"
            raise InvalidTransitionError(_value(from_status), _value(to_status), reason)

    @classmethod
    def is_unapprove(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition re-opens an approved timesheet."""
        return from_status == ApprovalStatus.APPROVED and to_status == ApprovalStatus.PENDING

    @classmethod
    def changes_payable_hours(cls, from_status: str, to_status: str) -> bool:
        """Check if the transition adds or removes hours from payroll."""
        return (from_status in cls.PAYABLE) != (to_status in cls.PAYABLE)

    @classmethod
    def can_edit(cls, status: str) -> bool:
        """Check if the entry's hours may still be rewritten."""
        return status in cls.EDITABLE


class PayrollRecordStateMachine:
    """State machine for payroll record status.

    Allowed transitions:
    - draft → confirmed
    - confirmed → draft (regeneration or reopen)
    - confirmed → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollStatus.DRAFT: [PayrollStatus.CONFIRMED],
        PayrollStatus.CONFIRMED: [PayrollStatus.DRAFT, PayrollStatus.PAID],
        PayrollStatus.PAID: [],  # Terminal state
    }

    # Statuses where the record may be recalculated
    CALCULATION_ALLOWED = {PayrollStatus.DRAFT, PayrollStatus.CONFIRMED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(_value(from_status), _value(to_status))

    @classmethod
    def can_calculate(cls, status: str) -> bool:
        """Check if recalculation is allowed in this status."""
        return status in cls.CALCULATION_ALLOWED
