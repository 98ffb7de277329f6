import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from auth.errors import CollaboratorFailure, ConfigurationError
from auth.jwt_service import AuthenticatedIdentity, authenticate
from auth.secrets import AuthSecrets
from config import settings
from database import init_db, close_db
from routers import auth_router, jobseekers_router
from services.health import run_health_checks
from services.object_store import build_object_store
from utils.logging_utils import setup_logging, get_logger
from utils.audit import audit

setup_logging(level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("=" * 60)
    logger.info("RENDOJOBS BACKEND STARTING UP")
    logger.info(f"App: {settings.APP_NAME} v{settings.APP_VERSION}")

    start = time.perf_counter()
    await init_db()
    logger.info(
        f"Database initialized in {(time.perf_counter() - start) * 1000:.1f}ms"
    )

    app.state.auth_secrets = AuthSecrets.from_settings(settings)

    if settings.STORAGE_BACKEND.lower() == "local":
        upload_dir = Path(settings.UPLOAD_DIR)
        upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Upload directory: {upload_dir.resolve()}")
    try:
        app.state.object_store = build_object_store(settings)
        logger.info(f"CV storage backend: {app.state.object_store.name}")
    except ConfigurationError as exc:
        # Registration requests will fail with 500 until this is fixed
        logger.error(f"CV storage misconfigured: {exc}")

    health = await run_health_checks()
    for check in health.checks:
        status_icon = "+" if check.status == "ok" else "!"
        detail = ""
        if check.message:
            detail += f" ({check.message})"
        if check.response_time_ms is not None:
            detail += f" [{check.response_time_ms:.1f}ms]"
        logger.info(f"  {status_icon} {check.name}: {check.status}{detail}")
    if health.status != "healthy":
        logger.warning(f"STARTUP HEALTH: {health.status.upper()} - some checks failed")

    logger.info("STARTUP COMPLETE - Ready to accept requests")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("RENDOJOBS BACKEND SHUTTING DOWN")
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


# ── Error handlers ────────────────────────────────────────────────────

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Return per-field validation messages instead of Pydantic's raw output."""
    errors = []
    for error in exc.errors():
        # Build a dotted field path (skip the top-level "body"/"query" prefix)
        loc_parts = [str(x) for x in error.get("loc", [])]
        if loc_parts and loc_parts[0] in ("body", "query", "path", "header"):
            loc_parts = loc_parts[1:]
        field = ".".join(loc_parts) if loc_parts else "unknown"

        msg = error.get("msg", "Validation error")
        # Pydantic wraps custom ValueError messages in "Value error, ..."
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]

        errors.append({
            "field": field,
            "message": msg,
            "type": error.get("type", "unknown"),
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation failed",
            "errors": errors,
        },
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Missing secrets or settings: server fault, never shown to the client."""
    logger.error(f"Configuration error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server is not configured", "code": "configuration_error"},
    )


@app.exception_handler(CollaboratorFailure)
async def collaborator_failure_handler(request: Request, exc: CollaboratorFailure):
    """External store failed; passed through as an opaque 502."""
    logger.error(
        f"Collaborator failure on {request.method} {request.url.path}: {exc}",
        exc_info=exc.__cause__ is not None,
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": exc.message, "code": "collaborator_failure"},
    )


# ── Request ID + request logging middleware ───────────────────────────

@app.middleware("http")
async def request_lifecycle(request: Request, call_next):
    """Assign a request ID, log timing, and add the ID to response headers."""
    request_id = str(uuid.uuid4())
    audit.set_request_id(request_id)

    # Actor for audit context; the endpoint dependency does the real check
    secrets = getattr(request.app.state, "auth_secrets", None)
    auth_header = request.headers.get("authorization")
    if secrets is not None and secrets.signing_secret and auth_header:
        identity = authenticate(auth_header, secrets)
        if isinstance(identity, AuthenticatedIdentity):
            audit.set_actor(f"user:{identity.user_id}")

    start_time = time.perf_counter()
    logger.debug(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    status_indicator = "+" if response.status_code < 400 else "!"
    logger.info(
        f"{status_indicator} {request.method} {request.url.path}",
        extra={
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "request_id": request_id,
        },
    )

    response.headers["X-Request-ID"] = request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.include_router(auth_router)
app.include_router(jobseekers_router)

if settings.STORAGE_BACKEND.lower() == "local":
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
        name="uploads",
    )


@app.get("/", response_class=PlainTextResponse, tags=["root"])
async def root():
    return "Hello from the backend!"


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint with component status breakdown."""
    health = await run_health_checks()
    status_code = 200 if health.status in ("healthy", "degraded") else 503
    return JSONResponse(content=health.model_dump(), status_code=status_code)


@app.get("/api", tags=["root"])
async def api_root():
    """API root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
        "endpoints": {
            "auth": "/api/auth",
            "jobseekers": "/api/jobseekers",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
    )
