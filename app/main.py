"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1.router import router as api_router
from app.core.config import get_settings
from app.core.dependencies import build_services
from app.core.errors import AppError, ConfigurationError
from app.core.logging_config import init_logging
from app.core.middleware import FixedWindowRateLimiter, RateLimitMiddleware, TraceIdMiddleware
from app.schemas.base_schemas import ErrorResponse, HealthResponse

init_logging()
logger = logging.getLogger(__name__)

settings = get_settings()

rate_limiter = FixedWindowRateLimiter(
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = settings.missing_required()
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
    app.state.services = build_services(settings)
    logger.info(
        f"[STARTUP] {settings.app_name} v{settings.app_version} ready: "
        f"env={settings.app_env}, storage={settings.storage_backend}"
    )
    try:
        yield
    finally:
        await app.state.services.aclose()
        logger.info("[SHUTDOWN] Clients closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Product Marketing Analyzer

    Submit a product description and receive an AI-generated marketing
    analysis, save it as a report, and chat over saved reports.

    ## Main APIs

    - `POST /api/analyze` - Generate an analysis without saving
    - `POST /api/reports` - Save a product with its analysis
    - `GET /api/reports` - List saved reports, newest first
    - `POST /api/chat` - Ask questions about saved reports
    - `POST /api/generate-content` - Content ideas for a report
    """,
    lifespan=lifespan,
    tags_metadata=[
        {"name": "reports", "description": "Saved product analysis reports"},
        {"name": "analysis", "description": "Analysis without persistence and image critique"},
        {"name": "chat", "description": "Questions over the saved reports"},
        {"name": "content", "description": "Social content ideation"},
    ],
)

app.add_middleware(RateLimitMiddleware, limiter=rate_limiter, path_prefix=settings.api_prefix)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-Id", "X-Analysis-Warning", "Retry-After", "RateLimit-Remaining"],
)
app.add_middleware(TraceIdMiddleware)


def _error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.warning(f"[API] {request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    return _error_response(
        exc.status_code,
        ErrorResponse(message=exc.message, error_code=exc.code, details=exc.details),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or "body",
            "reason": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    logger.warning(f"[API] {request.method} {request.url.path} invalid request: {details}")
    return _error_response(
        400,
        ErrorResponse(message="Invalid request", error_code="VALIDATION_ERROR", details=details),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"[API] ✗ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(
        500,
        ErrorResponse(message="Internal server error", error_code="INTERNAL_ERROR"),
    )


app.include_router(api_router, prefix=settings.api_prefix)

if settings.storage_backend == "sql":
    Path(settings.media_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/media", StaticFiles(directory=settings.media_dir), name="media")


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(version=settings.app_version)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
