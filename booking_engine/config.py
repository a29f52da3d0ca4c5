"""
Centralized configuration with environment variable overrides.

Engine budgets and search parameters are configurable here. Per-tenant
scheduling rules (lead time, advance window, auto-approval) live on the
tenant policy, not in this module.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_engine.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class EngineConfig:
    """Budgets and search parameters for the booking engine."""

    validation_timeout_sec: float = _safe_float("VALIDATION_TIMEOUT_SEC", "2.0")
    max_alternatives: int = _safe_int("MAX_ALTERNATIVES", "3")
    suggestion_step_min: int = _safe_int("SUGGESTION_STEP_MIN", "15")
    suggestion_horizon_hours: int = _safe_int("SUGGESTION_HORIZON_HOURS", "12")
    next_available_search_days: int = _safe_int("NEXT_AVAILABLE_SEARCH_DAYS", "7")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.engine.validation_timeout_sec <= 0:
        raise ValueError(
            "VALIDATION_TIMEOUT_SEC must be > 0, "
            f"got {config.engine.validation_timeout_sec}"
        )
    if config.engine.max_alternatives < 0:
        raise ValueError(
            f"MAX_ALTERNATIVES must be >= 0, got {config.engine.max_alternatives}"
        )
    if config.engine.suggestion_step_min < 1:
        raise ValueError(
            f"SUGGESTION_STEP_MIN must be >= 1, got {config.engine.suggestion_step_min}"
        )
    if config.engine.suggestion_horizon_hours < 1:
        raise ValueError(
            "SUGGESTION_HORIZON_HOURS must be >= 1, "
            f"got {config.engine.suggestion_horizon_hours}"
        )
    if config.engine.next_available_search_days < 1:
        raise ValueError(
            "NEXT_AVAILABLE_SEARCH_DAYS must be >= 1, "
            f"got {config.engine.next_available_search_days}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Handler-level so records from any logger carry request_id.
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
