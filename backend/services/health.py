"""
Health check service for RendoJobs.

Checks database connectivity, CV storage, auth secret configuration, and
tracks uptime.  Returns structured health responses with per-component status.
"""

import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import text

from config import settings
from database import AsyncSessionLocal

logger = logging.getLogger(__name__)

# Captured at module load, used to compute uptime
_start_time = time.monotonic()


class ComponentHealth(BaseModel):
    name: str
    status: str  # "ok" | "degraded" | "error"
    message: Optional[str] = None
    response_time_ms: Optional[float] = None


class HealthResponse(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    app: str
    version: str
    uptime_seconds: float
    checks: list[ComponentHealth]
    timestamp: str


async def check_database() -> ComponentHealth:
    """Check database connectivity by running SELECT 1."""
    start = time.perf_counter()
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        elapsed = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            name="database",
            status="ok",
            response_time_ms=round(elapsed, 1),
        )
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            name="database",
            status="error",
            message=str(e),
            response_time_ms=round(elapsed, 1),
        )


def check_storage() -> ComponentHealth:
    """Check the CV storage backend configuration."""
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "supabase":
        if settings.SUPABASE_URL and settings.SUPABASE_KEY:
            return ComponentHealth(name="storage", status="ok", message="supabase")
        return ComponentHealth(
            name="storage",
            status="error",
            message="SUPABASE_URL or SUPABASE_KEY not set",
        )
    if backend != "local":
        return ComponentHealth(
            name="storage",
            status="error",
            message=f"Unknown storage backend: {settings.STORAGE_BACKEND}",
        )

    upload_path = Path(settings.UPLOAD_DIR)
    if not upload_path.is_dir():
        return ComponentHealth(
            name="storage",
            status="error",
            message=f"Upload directory does not exist: {upload_path}",
        )
    if not os.access(upload_path, os.W_OK):
        return ComponentHealth(
            name="storage",
            status="error",
            message=f"Upload directory is not writable: {upload_path}",
        )
    return ComponentHealth(name="storage", status="ok", message="local")


def check_auth_secrets() -> ComponentHealth:
    """Report which auth secrets are missing, never their values."""
    missing = [
        name
        for name, value in (
            ("TELEGRAM_BOT_TOKEN", settings.TELEGRAM_BOT_TOKEN),
            ("JWT_SECRET", settings.JWT_SECRET),
        )
        if not value
    ]
    if missing:
        return ComponentHealth(
            name="auth_secrets",
            status="error",
            message=f"Not configured: {', '.join(missing)}",
        )
    return ComponentHealth(name="auth_secrets", status="ok")


async def run_health_checks() -> HealthResponse:
    """Run all health checks and return aggregated status."""
    checks = [
        await check_database(),
        check_storage(),
        check_auth_secrets(),
    ]

    # Database is critical: if it's down, the service is unhealthy.
    # Other checks are non-critical; failures result in "degraded".
    critical_names = {"database"}
    has_critical_error = any(
        c.status == "error" and c.name in critical_names for c in checks
    )
    has_any_error = any(c.status == "error" for c in checks)

    if has_critical_error:
        overall = "unhealthy"
    elif has_any_error:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        uptime_seconds=round(time.monotonic() - _start_time, 1),
        checks=checks,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
