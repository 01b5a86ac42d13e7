"""Gradebook API application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gradebook.api.v1.router import api_router
from gradebook.core.config import settings
from gradebook.core.database import engine
from gradebook.core.exceptions import AppException
from gradebook.core.scheduler import start_scheduler, stop_scheduler
from gradebook.middleware.logging import RequestLoggingMiddleware

logger = logging.getLogger(__name__)

# Libraries that log every statement, multipart chunk or job run at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "python_multipart", "apscheduler")


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _error_response(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message, "details": details or {}},
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the exam status job with the app; release DB connections on exit."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    if settings.SCHEDULER_ENABLED:
        stop_scheduler()
    engine.dispose()
    logger.info(f"{settings.APP_NAME} stopped")


def create_application() -> FastAPI:
    """Build the gradebook app: middleware, error envelope, health and v1 routes."""
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "Grade entry, bulk grade reconciliation and result reports. "
            "Every request carries `Authorization: Bearer <token>`; the token's "
            "`school_id` claim selects the school. Errors use the envelope "
            '`{"success": false, "error": {"code", "message", "details"}}`.'
        ),
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(
            422,
            "VALIDATION_ERROR",
            "Request validation failed",
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(500, "INTERNAL_ERROR", "An internal server error occurred")

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("gradebook.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
