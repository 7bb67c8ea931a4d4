"""
Configuration for the Crypto Info Bot.

All settings come from environment variables; ``main.py`` loads a ``.env``
file first with python-dotenv.
"""

import os
from dataclasses import dataclass
from typing import Mapping

from connectors.price_fetcher import DEFAULT_API_URL, DEFAULT_CONVERT, DEFAULT_TIMEOUT
from transforms.render import DEFAULT_PRECISION

DEFAULT_PAGE_SIZE = 30
DEFAULT_REFRESH_INTERVAL_MS = 5000


@dataclass(frozen=True)
class BotConfig:
    """Runtime settings of the bot."""

    token: str
    username: str | None = None
    api_url: str = DEFAULT_API_URL
    page_size: int = DEFAULT_PAGE_SIZE
    precision: int = DEFAULT_PRECISION
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    convert: str = DEFAULT_CONVERT
    request_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    log_file: str | None = None

    @property
    def refresh_interval(self) -> float:
        """Ticker refresh interval in seconds."""
        return self.refresh_interval_ms / 1000


def load_config(environ: Mapping[str, str] | None = None) -> BotConfig:
    """
    Build the bot configuration from environment variables.

    Args:
        environ: Mapping to read from (default: ``os.environ``)

    Returns:
        BotConfig instance

    Raises:
        ValueError: If BOT_TOKEN is missing or a numeric setting is invalid
    """
    env = os.environ if environ is None else environ

    token = env.get("BOT_TOKEN")
    if not token:
        raise ValueError("BOT_TOKEN is required")

    return BotConfig(
        token=token,
        username=env.get("BOT_USERNAME") or None,
        api_url=env.get("API_URL") or DEFAULT_API_URL,
        page_size=_positive_int(env, "PAGE_SIZE", DEFAULT_PAGE_SIZE),
        precision=_positive_int(env, "FIXED_LENGTH", DEFAULT_PRECISION, allow_zero=True),
        refresh_interval_ms=_positive_int(
            env, "REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL_MS
        ),
        convert=(env.get("CONVERT_CURRENCY") or DEFAULT_CONVERT).upper(),
        request_timeout=_positive_float(env, "REQUEST_TIMEOUT", DEFAULT_TIMEOUT),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        log_file=env.get("LOG_FILE") or None,
    )


def _positive_int(
    env: Mapping[str, str], name: str, default: int, allow_zero: bool = False
) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value
