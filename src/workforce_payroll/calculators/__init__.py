"""Pure timesheet and payroll calculations."""

from workforce_payroll.calculators.aggregator import (
    NoActiveProjectAssignmentError,
    UnattributedClockEventsError,
    split_hours,
)
from workforce_payroll.calculators.clock_normalizer import (
    MalformedEventSequenceError,
    normalize_clock_events,
)
from workforce_payroll.calculators.pay_period import (
    InvalidScheduleConfigurationError,
    get_next_pay_dates,
    next_pay_date,
    period_containing,
)
from workforce_payroll.calculators.payroll_calculator import (
    PayrollCalculation,
    PayrollCalculator,
    calculate_payroll,
)
from workforce_payroll.calculators.rounding import round_hours

__all__ = [
    "MalformedEventSequenceError",
    "NoActiveProjectAssignmentError",
    "UnattributedClockEventsError",
    "InvalidScheduleConfigurationError",
    "PayrollCalculation",
    "PayrollCalculator",
    "calculate_payroll",
    "get_next_pay_dates",
    "next_pay_date",
    "normalize_clock_events",
    "period_containing",
    "round_hours",
    "split_hours",
]
