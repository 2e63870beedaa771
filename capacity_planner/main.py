"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from capacity_planner.api.router import api_router
from capacity_planner.core.config import get_settings
from capacity_planner.core.logging import configure_logging
from capacity_planner.domain.errors import ForbiddenError, NotFoundError, PlannerError, ValidationError

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
}


async def _planner_error_handler(request: Request, exc: PlannerError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.detail)
    return JSONResponse(status_code=status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PlannerError, _planner_error_handler)
    app.include_router(api_router, prefix=settings.api_prefix)

    if settings.auto_create_schema:
        from capacity_planner.db.session import init_db

        init_db()

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {"service": settings.app_name, "status": "running"}

    return app


app = create_app()
