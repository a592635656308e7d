"""
PyForecast FastAPI application.

Serves formula calculation and the per-workspace formula registries.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pyforecast.api.v1 import router as v1_router
from pyforecast.core.config import settings
from pyforecast.core.exceptions import PyForecastException
from pyforecast.core.logging import get_logger, setup_logging
from pyforecast.formula.engine import FormulaEngine
from pyforecast.formula.parser import FormulaParser
from pyforecast.services.workspace import WorkspaceFormulaStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the formula engine configuration on startup."""
    logger.info(
        f"Starting {settings.app_name} v{settings.app_version}",
        extra={
            "environment": settings.environment,
            "formula_max_depth": settings.formula_max_depth,
            "formula_legacy_id_keys": settings.formula_legacy_id_keys,
        },
    )
    if settings.formula_legacy_id_keys:
        logger.warning("Dependency graph keyed by bare entity id; types sharing an id collide")

    yield

    logger.info("Shutting down", extra={"workspaces": len(app.state.formula_store)})


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Each application owns its own workspace store, so tests and multiple
    app instances never share registries.
    """
    setup_logging(
        log_level=settings.log_level,
        json_logs=settings.environment == "production",
    )

    app = FastAPI(
        title=settings.app_name,
        description="Formula engine for financial forecasting",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    # One registry per workspace, all sharing the parser cache
    engine = FormulaEngine(FormulaParser(cache_size=settings.formula_ast_cache_size))
    app.state.formula_store = WorkspaceFormulaStore(engine=engine)

    register_exception_handlers(app)
    app.include_router(v1_router, prefix=settings.api_v1_prefix)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Map exceptions to ``{"error": {code, message, details}}`` responses."""

    @app.exception_handler(PyForecastException)
    async def pyforecast_exception_handler(
        request: Request,
        exc: PyForecastException,
    ) -> JSONResponse:
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "code": exc.code, "status_code": exc.status_code},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": {"errors": errors},
                }
            },
        )

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        message = "An unexpected error occurred"
        if settings.environment != "production":
            message = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"code": "INTERNAL_ERROR", "message": message}},
        )


app = create_app()
