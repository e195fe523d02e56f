"""
Settings for the life calendar app, read from environment variables (and an
optional .env file).

There is no fatal error path: an unrecognized value falls back to its default
instead of failing start-up.
"""

import logging
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

ENV_PREFIX = "LIFECAL_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="console", description="Logging format")


class AppSettings(BaseModel):
    """Main application settings."""

    environment: Literal["development", "production"] = Field(default="development")
    storage_path: Path = Field(
        default_factory=lambda: Path.home() / ".life_calendar" / "storage.json",
        description="JSON file standing in for browser local storage",
    )
    default_language: Literal["th", "en"] = Field(default="th")
    default_theme: Literal["light", "dark"] = Field(
        default="light", description="Used when no theme has been stored"
    )
    max_recommendations: int = Field(default=3, ge=1, le=5)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _getenv(name: str) -> str | None:
    val = os.getenv(ENV_PREFIX + name)
    if val is None or not val.strip():
        return None
    return val.strip()


def load_settings_from_env() -> AppSettings:
    """Build settings from LIFECAL_* variables; bad values take defaults."""

    def _env_to_literal(val: str | None) -> Literal["development", "production"]:
        v = (val or "development").lower()
        if v in {"prod", "production"}:
            return "production"
        return "development"

    def _choice(val: str | None, allowed: tuple, default: str) -> str:
        if val is None:
            return default
        v = val.lower()
        return v if v in allowed else default

    def _level_to_literal(val: str | None) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = (val or "INFO").upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in LOG_LEVELS else "INFO",
        )

    def _parse_int(val: str | None, default: int, lo: int, hi: int) -> int:
        try:
            n = int(val) if val is not None else default
        except ValueError:
            return default
        return n if lo <= n <= hi else default

    environment = _env_to_literal(_getenv("ENVIRONMENT"))
    debug = environment == "development"

    logging_config = LoggingConfig(
        level=_level_to_literal(_getenv("LOG_LEVEL")),
        format=cast(
            Literal["json", "console"],
            _choice(_getenv("LOG_FORMAT"), ("json", "console"), "console" if debug else "json"),
        ),
    )

    settings = AppSettings(
        environment=environment,
        default_language=cast(Literal["th", "en"], _choice(_getenv("DEFAULT_LANGUAGE"), ("th", "en"), "th")),
        default_theme=cast(
            Literal["light", "dark"], _choice(_getenv("DEFAULT_THEME"), ("light", "dark"), "light")
        ),
        max_recommendations=_parse_int(_getenv("MAX_RECOMMENDATIONS"), 3, 1, 5),
        logging=logging_config,
    )
    storage = _getenv("STORAGE_PATH")
    if storage:
        settings.storage_path = Path(storage).expanduser()
    return settings


@lru_cache
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return load_settings_from_env()


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog for the process. Safe to call on every Streamlit rerun."""
    config = config or get_settings().logging
    level = getattr(logging, config.level)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
