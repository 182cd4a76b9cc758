"""Shared utility functions for the caseflow package."""
from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Any

from caseflow.core.errors import LocalValidationError

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = Path("secrets/caseflow.env")
_ENV_LOADED = False


def load_env_file(path: Path) -> None:
    """Load environment variables from a file if it exists."""
    if not path.exists():
        return

    try:
        with path.open(encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if not key or key in os.environ:
                    continue
                os.environ[key] = value.strip().strip('"').strip("'")
    except OSError as exc:
        logger.debug("Could not load env file %s: %s", path, exc)


def _ensure_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True
    load_env_file(Path(os.getenv("CASEFLOW_ENV_FILE", DEFAULT_ENV_FILE)))


def get_config_value(key: str, default: str = "") -> str:
    """Get configuration value from Streamlit secrets or environment variables.

    Checks Streamlit secrets first (for deployed dashboards), then falls back
    to environment variables, which may be seeded from ``CASEFLOW_ENV_FILE``.
    """
    try:
        import streamlit as st
        if hasattr(st, "secrets") and key in st.secrets:
            return str(st.secrets[key])
    except (ImportError, FileNotFoundError, KeyError):
        pass

    _ensure_env()
    return os.getenv(key, default)


def get_config_number(key: str, default: float | None = None) -> float | None:
    """Numeric variant of :func:`get_config_value`; a malformed value is a local error."""
    raw = get_config_value(key).strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise LocalValidationError(f"{key} must be a number, got {raw!r}") from None


def to_number(value: Any) -> float:
    """Coerce a loosely-typed wire value into a float, never failing.

    ``None``, empty strings and anything that does not parse as a finite
    number become ``0.0``.
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip() or 0)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_number(value: Any) -> float | None:
    """Strict variant of :func:`to_number`: return ``None`` when unparseable."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number):
        return None
    return number


def clean_text(value: Any) -> str | None:
    """Collapse whitespace and turn blank values into ``None``."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None
