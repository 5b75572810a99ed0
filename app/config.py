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
        return "postgresql+psycopg://localhost:5434/oficri"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str | None = os.getenv("CELERY_RESULT_BACKEND") or None
    celery_task_always_eager: bool = _env_bool("CELERY_TASK_ALWAYS_EAGER", "false")

    # Derivation engine
    derivation_conflict_retries: int = int(
        os.getenv("DERIVATION_CONFLICT_RETRIES", "2")
    )
    derivation_timeout_seconds: float = float(
        os.getenv("DERIVATION_TIMEOUT_SECONDS", "10")
    )
    document_lock_timeout_seconds: float = float(
        os.getenv("DOCUMENT_LOCK_TIMEOUT_SECONDS", "5")
    )
    # ADMINISTER bit grants every capability when enabled
    administer_override: bool = _env_bool("ADMINISTER_OVERRIDE", "true")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format: str = os.getenv(
        "LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    # Branding
    brand_name: str = os.getenv("BRAND_NAME", "OFICRI")
    brand_tagline: str = os.getenv("BRAND_TAGLINE", "Mesa de Partes y Derivaciones")


settings = Settings()
