"""Workforce payroll services."""

from workforce_payroll.services.approval_service import ApprovalResult, ApprovalService
from workforce_payroll.services.payroll_service import PayrollRegenerationFailure, PayrollService
from workforce_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRecordStateMachine,
    TimesheetLockedError,
    TimesheetStateMachine,
)
from workforce_payroll.services.timesheet_service import BatchResult, TimesheetService

__all__ = [
    "ApprovalResult",
    "ApprovalService",
    "BatchResult",
    "InvalidTransitionError",
    "PayrollRecordStateMachine",
    "PayrollRegenerationFailure",
    "PayrollService",
    "TimesheetLockedError",
    "TimesheetStateMachine",
    "TimesheetService",
]
