"""API route modules."""

from .counts import router as counts_router
from .health import router as health_router
from .rollover import router as rollover_router
from .schedule import router as schedule_router
from .stats import router as stats_router

__all__ = ["health_router", "schedule_router", "counts_router", "stats_router", "rollover_router"]
