"""Timesheet approval and payroll generation core for construction workforces."""

__version__ = "0.1.0"
