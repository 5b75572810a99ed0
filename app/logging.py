import logging.config

from app.config import settings


def configure_logging() -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": settings.log_format},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "app": {"level": settings.log_level},
                "uvicorn.access": {"level": "WARNING"},
            },
            "root": {"level": settings.log_level, "handlers": ["console"]},
        }
    )
