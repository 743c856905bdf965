"""
SharpStack Training Core

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sharpstack.ai import build_card_oracle, build_scoring_oracle
from sharpstack.ai.scoring_oracle import openai_configured
from sharpstack.api.middleware.request_id import RequestIdMiddleware
from sharpstack.api.v1 import router as api_v1_router
from sharpstack.config import get_settings
from sharpstack.database import async_session_maker, close_db, init_db
from sharpstack.engines.criteria import get_registry, sync_skill_dimensions
from sharpstack.engines.notifications import (
    BackgroundRunner,
    NotificationTrigger,
    build_email_sender,
    build_scheduler,
)
from sharpstack.engines.scoring import DrillScoringPipeline, ScoringWorkerPool
from sharpstack.logging_config import configure_logging, get_logger
from sharpstack.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Startup: logging, tables, skill dimension sync, scoring workers,
    background runner and the weekly report scheduler. Shutdown in reverse.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    registry = get_registry()
    async with async_session_maker() as session:
        await sync_skill_dimensions(session, registry)
        await session.commit()

    pipeline = DrillScoringPipeline(registry, build_scoring_oracle(settings), settings)
    scoring_pool = ScoringWorkerPool(pipeline, async_session_maker, settings)
    await scoring_pool.start()

    runner = BackgroundRunner()
    trigger = NotificationTrigger(async_session_maker, registry, settings, build_email_sender(settings))
    scheduler = build_scheduler(trigger, settings)
    if scheduler:
        scheduler.start()

    app.state.registry = registry
    app.state.card_oracle = build_card_oracle(settings)
    app.state.scoring_pool = scoring_pool
    app.state.runner = runner
    app.state.notification_trigger = trigger

    yield

    logger.info("Shutting down...")
    if scheduler:
        scheduler.shutdown(wait=False)
    await runner.shutdown()
    await scoring_pool.stop(drain=True)
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    SharpStack Training Core

    Drill sessions, asynchronous rubric scoring and blind spot analysis.

    ## Features

    - **Training**: Start, answer and continue drill sessions with level progression
    - **Scoring**: Criteria-based scoring of every answer, off the request path
    - **Blind Spots**: Recurring weaknesses, gated by plan tier and data sufficiency
    - **Emails**: One-time teaser and weekly report, idempotent per week
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first, so CORS (added last) wraps everything
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
]
if not (settings.debug or settings.environment == "development"):
    _cors_origins = [settings.app_url] + _cors_origins

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_headers(request: Request) -> dict:
    req_id = getattr(request.state, "request_id", None)
    return {"X-Request-ID": req_id} if req_id else {}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = {**(exc.headers or {}), **_error_headers(request)}
    content = {"detail": exc.detail}
    req_id = getattr(request.state, "request_id", None)
    if req_id and exc.status_code >= 500:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    content = {"detail": "Validation error", "errors": errors}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
        headers=_error_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = getattr(request.state, "request_id", None)
    if settings.debug:
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_error_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Check application health."""
    pool = getattr(request.app.state, "scoring_pool", None)
    return HealthResponse(
        status="ok",
        version=settings.version,
        database="connected",
        ai_configured=openai_configured(settings.openai_api_key),
        scoring_workers=pool.workers if pool and pool.running else 0,
    )


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sharpstack.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
