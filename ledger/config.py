"""Environment-backed settings for the wallet ledger service."""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, got {value}, using {default}")
        return default
    return value


@dataclass(frozen=True)
class Settings:
    """Settings for the wallet ledger service.

    Attributes:
        currency: Currency code reported with balances.
        log_level: Logging level name.
        history_limit: Default page size for transaction history.
        max_history_limit: Largest page size a caller may request.
        cors_origins: Origins allowed by the CORS middleware.
    """

    currency: str = "USD"
    log_level: str = "INFO"
    history_limit: int = 50
    max_history_limit: int = 200
    cors_origins: tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Returns:
            Settings: Settings sourced from ``LEDGER_*`` environment variables.
        """
        currency = os.getenv("LEDGER_CURRENCY", "USD").strip().upper() or "USD"
        log_level = os.getenv("LEDGER_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        max_limit = _int_from_env("LEDGER_MAX_HISTORY_LIMIT", 200)
        limit = min(_int_from_env("LEDGER_HISTORY_LIMIT", 50), max_limit)
        raw_origins = os.getenv("LEDGER_CORS_ORIGINS", "*")
        origins = tuple(o.strip() for o in raw_origins.split(",") if o.strip()) or ("*",)
        return cls(
            currency=currency,
            log_level=log_level,
            history_limit=limit,
            max_history_limit=max_limit,
            cors_origins=origins,
        )
