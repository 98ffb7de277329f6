from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


def _load_version() -> str:
    version_path = Path(__file__).resolve().parent / "VERSION"
    try:
        return version_path.read_text().strip()
    except FileNotFoundError:
        return "0.1.0"


class Settings(BaseSettings):
    """Application configuration using Pydantic settings."""

    # Database
    DATABASE_URL: str = "sqlite:///./data/rendojobs.db"

    # CORS
    CORS_ORIGINS: list[str] = ["https://rendojobs-frontend.vercel.app"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Application
    APP_NAME: str = "RendoJobs"
    APP_VERSION: str = _load_version()
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 5000

    # ── Authentication ─────────────────────────────────────────────────
    # Telegram bot token; signs Mini App initData
    TELEGRAM_BOT_TOKEN: Optional[str] = None
    # Signs session tokens
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_DAYS: int = 7
    # 0 disables the auth_date freshness check
    INIT_DATA_MAX_AGE_SECONDS: int = 0

    # ── CV storage ─────────────────────────────────────────────────────
    STORAGE_BACKEND: str = "local"  # "local" | "supabase"
    UPLOAD_DIR: str = "./data/uploads"
    PUBLIC_BASE_URL: str = "http://localhost:5000"
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    SUPABASE_BUCKET: str = "cvs"
    MAX_CV_SIZE_MB: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
