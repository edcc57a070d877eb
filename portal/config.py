import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL") or os.getenv("DATABASE_SERVER_FULL")
    if database_url:
        return database_url

    host = os.getenv("DATABASE_SERVER_HOST")
    if host:
        port = os.getenv("DATABASE_SERVER_PORT", "5432")
        user = os.getenv("DATABASE_SERVER_USER", "postgres")
        password = os.getenv("DATABASE_PASSWORD", "")
        name = os.getenv("DATABASE_DB", "submission_portal")
        credentials = f"{user}:{password}" if password else user
        return f"postgresql+psycopg://{credentials}@{host}:{port}/{name}"

    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5432/submission_portal"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL or the DATABASE_SERVER_* "
        "variables for non-development environments."
    )


def _resolve_upload_dir() -> str:
    upload_dir = os.getenv("UPLOAD_DIR")
    if upload_dir:
        return upload_dir
    data_path = os.getenv("DATA_PATH")
    if data_path:
        return os.path.join(data_path, "uploads")
    return "/app/uploads"


@dataclass(frozen=True)
class Settings:
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8080"))
    environment: str = os.getenv("ENVIRONMENT", "development").strip().lower()

    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "2"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "8"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "5"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "600"))
    db_connect_attempts: int = int(os.getenv("DB_CONNECT_ATTEMPTS", "5"))
    db_connect_backoff_seconds: float = float(
        os.getenv("DB_CONNECT_BACKOFF_SECONDS", "2")
    )
    run_migrations: bool = _env_bool("RUN_MIGRATIONS", "true")

    # Uploads
    upload_dir: str = _resolve_upload_dir()
    max_upload_size: int = int(
        os.getenv("MAX_UPLOAD_SIZE", str(50 * 1024 * 1024))
    )  # 50MB
    frontend_dir: str = os.getenv("FRONTEND_DIR", "")

    # Sessions
    admin_session_hours: int = int(os.getenv("SESSION_EXPIRY_HOURS", "8"))
    uploader_session_hours: int = int(os.getenv("UPLOADER_SESSION_HOURS", "4"))
    auth_provider: str = os.getenv("AUTH_PROVIDER", "local").strip().lower()

    # Lifecycle
    retention_months: int = int(os.getenv("RETENTION_MONTHS", "12"))
    draft_max_age_minutes: int = int(os.getenv("DRAFT_MAX_AGE_MINUTES", "60"))
    slug_prefix: str = os.getenv("SLUG_PREFIX", "rr")

    # Rate limiting
    login_rate_limit: int = int(os.getenv("LOGIN_RATE_LIMIT", "10"))
    submission_rate_limit: int = int(os.getenv("SUBMISSION_RATE_LIMIT", "20"))
    trusted_proxies: tuple[str, ...] = field(
        default_factory=lambda: _env_list("TRUSTED_PROXIES")
    )

    # HTTP
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "http://localhost:8080")
    )

    # Bootstrap admin
    admin_username: str = os.getenv("ADMIN_USERNAME", "")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "")
    admin_email: str = os.getenv("ADMIN_EMAIL", "")
    admin_display_name: str | None = os.getenv("ADMIN_DISPLAY_NAME") or None

    # Background cleanup
    cleanup_scheduler: str = os.getenv("CLEANUP_SCHEDULER", "inprocess").strip().lower()
    cleanup_interval_seconds: int = int(os.getenv("CLEANUP_INTERVAL_SECONDS", "3600"))
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "memory://")
    celery_result_backend: str = os.getenv(
        "CELERY_RESULT_BACKEND", "cache+memory://"
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format: str = os.getenv("LOG_FORMAT", "text").strip().lower()

    @property
    def is_production(self) -> bool:
        return self.environment in {"production", "prod"}


settings = Settings()
