import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/doc_registry"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage providers
    confluence_base_url: str = os.getenv("CONFLUENCE_BASE_URL", "").rstrip("/")
    graph_api_base_url: str = os.getenv(
        "GRAPH_API_BASE_URL", "https://graph.microsoft.com/v1.0"
    ).rstrip("/")
    sharepoint_default_site_id: str = os.getenv("SHAREPOINT_DEFAULT_SITE_ID", "")
    sharepoint_default_drive_id: str = os.getenv("SHAREPOINT_DEFAULT_DRIVE_ID", "")
    upstream_timeout_seconds: float = float(
        os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10")
    )

    # Rendering cache (document conversion service)
    document_service_url: str = os.getenv("DOCUMENT_SERVICE_URL", "").rstrip("/")

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://localhost:6379/1"
    )

    # Lifecycle
    hard_delete_timeout_seconds: float = float(
        os.getenv("HARD_DELETE_TIMEOUT_SECONDS", "30")
    )
    review_upcoming_window_days: int = int(
        os.getenv("REVIEW_UPCOMING_WINDOW_DAYS", "30")
    )


settings = Settings()
