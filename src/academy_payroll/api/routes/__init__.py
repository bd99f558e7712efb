"""API routes."""

from academy_payroll.api.routes.health import router as health_router
from academy_payroll.api.routes.salaries import router as salaries_router
from academy_payroll.api.routes.teachers import router as teachers_router

__all__ = ["health_router", "salaries_router", "teachers_router"]
