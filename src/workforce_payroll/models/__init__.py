"""SQLAlchemy ORM models."""

from workforce_payroll.models.base import Base, TimestampMixin
from workforce_payroll.models.company import Company, Project, ProjectAssignment, Worker
from workforce_payroll.models.payroll import (
    DeductionRule,
    PaymentSchedule,
    PayrollDeduction,
    PayrollRecord,
    PayrollSettings,
)
from workforce_payroll.models.timesheet import ClockEvent, Timesheet, TimesheetSettings

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "Worker",
    "Project",
    "ProjectAssignment",
    "ClockEvent",
    "Timesheet",
    "TimesheetSettings",
    "PaymentSchedule",
    "PayrollSettings",
    "DeductionRule",
    "PayrollDeduction",
    "PayrollRecord",
]
