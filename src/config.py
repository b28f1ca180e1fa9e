"""Configuration loaded from .env"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Invalid %s=%r, using default %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Invalid %s=%r, using default %s", name, raw, default)
        return default


# Analysis windows (days ending at the request's reference time)
CORRELATION_WINDOW_DAYS = _env_int("CORRELATION_WINDOW_DAYS", 90)
INSIGHTS_WINDOW_DAYS = _env_int("INSIGHTS_WINDOW_DAYS", 30)

SIGNIFICANCE_LEVEL = _env_float("SIGNIFICANCE_LEVEL", 0.05)

# Demo mode
SAMPLE_DATA_DAYS = _env_int("SAMPLE_DATA_DAYS", 30)

# API
FRONTEND_ORIGINS = [
    o.strip() for o in os.getenv("FRONTEND_ORIGINS", "").split(",") if o.strip()
] or ["http://localhost:3000", "http://127.0.0.1:3000"]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
