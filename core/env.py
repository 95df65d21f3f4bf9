"""Environment variable helpers."""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from core.logging import get_logger

logger = get_logger(__name__)


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None or not value.strip():
        if default is None:
            logger.debug("Environment variable %s not set.", key)
        return default
    return value.strip()


def env_int(key: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        value = int(raw)
        if minimum is not None and value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %d.", key, raw, default)
        return default


def env_float(key: str, default: float, *, minimum: Optional[float] = None) -> float:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        value = float(raw)
        if minimum is not None and value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %.2f.", key, raw, default)
        return default


def env_url(key: str, default: str) -> str:
    """Return an absolute http(s) URL from ``key`` without a trailing slash."""
    raw = env_str(key, default) or default
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        logger.warning("Invalid URL in %s='%s'. Using default=%s.", key, raw, default)
        raw = default
    return raw.rstrip("/")
