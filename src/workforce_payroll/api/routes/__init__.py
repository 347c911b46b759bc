"""API routes."""

from workforce_payroll.api.routes.health import router as health_router
from workforce_payroll.api.routes.payroll import router as payroll_router
from workforce_payroll.api.routes.schedules import router as schedules_router
from workforce_payroll.api.routes.timesheets import router as timesheets_router

__all__ = ["health_router", "payroll_router", "schedules_router", "timesheets_router"]
