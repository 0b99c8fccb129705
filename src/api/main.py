"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import counts_router, health_router, rollover_router, schedule_router, stats_router
from core.config import API_DEBUG, API_VERSION, LOG_LEVEL
from core.errors import install_recent_errors, remove_recent_errors
from services.schedule_service import ScheduleService

logger = logging.getLogger(__name__)


def create_app(service_factory: Callable[[], ScheduleService] = ScheduleService) -> FastAPI:
    """Build the app; the lifespan owns one ScheduleService."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        app.state.recent_errors = install_recent_errors()
        service = service_factory()
        app.state.service = service
        await service.start()

        yield

        await service.close()
        remove_recent_errors(app.state.recent_errors)

    app = FastAPI(
        title="Shift Toolbar Schedule API",
        description="Shift countdown, daily counters, rollover and goal streaks for support agents",
        version=API_VERSION,
        debug=API_DEBUG,
        lifespan=lifespan,
    )

    # CORS middleware (for development)
    if API_DEBUG:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Global exception handler for unexpected errors
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with standard error format."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error",
                code=ErrorCodes.INTERNAL_ERROR,
                details=[],
            ).model_dump(),
        )

    app.include_router(health_router)
    app.include_router(schedule_router)
    app.include_router(counts_router)
    app.include_router(stats_router)
    app.include_router(rollover_router)
    return app


app = create_app()


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )
