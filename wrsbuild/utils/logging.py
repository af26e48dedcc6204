from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"
_LEVEL_ENV_VARS = ("WRS_LOG_LEVEL",)
_DEBUG_FLAGS = ("WRS_DEBUG",)


def _coerce_level(value: Optional[str], fallback: int) -> int:
    if not value:
        return fallback
    text = value.strip()
    if not text:
        return fallback
    if text.isdigit():
        try:
            return int(text)
        except ValueError:
            return fallback
    upper = text.upper()
    if hasattr(logging, upper):
        candidate = getattr(logging, upper)
        if isinstance(candidate, int):
            return candidate
    return fallback


def _env_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_env_level() -> Optional[int]:
    for var in _LEVEL_ENV_VARS:
        value = os.getenv(var)
        if value:
            return _coerce_level(value, logging.INFO)
    if any(_env_truthy(os.getenv(flag)) for flag in _DEBUG_FLAGS):
        return logging.DEBUG
    return None


def configure_root(
    default_level: int | str = logging.INFO,
    log_file: Optional[Path] = None,
) -> int:
    """
    Configure the root logger with a compact console format.

    Environment overrides:
      - WRS_LOG_LEVEL: explicit log level
      - WRS_DEBUG: truthy -> DEBUG

    When ``log_file`` is given, a file handler with full timestamps is added
    (once per path) so a run leaves a persistent servicing log.
    """
    fallback = (
        _coerce_level(default_level, logging.INFO)
        if isinstance(default_level, str)
        else int(default_level)
    )
    effective = _resolve_env_level() or fallback

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=effective, format=_DEFAULT_FORMAT, datefmt=_DEFAULT_DATEFMT)
    root.setLevel(effective)

    if log_file is not None:
        target = Path(log_file).expanduser().resolve()
        already = any(
            isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == target
            for handler in root.handlers
        )
        if not already:
            target.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(target, encoding="utf-8")
            handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT, datefmt=_FILE_DATEFMT))
            root.addHandler(handler)
    return effective


def level_name(level: int) -> str:
    """Return logging level name for diagnostics."""
    return logging.getLevelName(level)
