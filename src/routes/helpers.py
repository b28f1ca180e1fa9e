"""
Shared helpers for API routes.
Contains: type coercion, row → model mapping, analysis-window filtering.

Rows arrive as they come out of the persistence layer: biomarker values may
be decimal strings, timestamps may be ISO strings, key names follow the
storage schema (``measuredAt``, ``assessmentDate``...).  Rows that cannot be
parsed are dropped and logged; they never fail the request.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from analytics.series import as_utc
from schemas import BiomarkerReading, DateRange, MoodAssessment

log = logging.getLogger("api")

_T = TypeVar("_T", BiomarkerReading, MoodAssessment)

_BIOMARKER_TYPE_KEYS = ("biomarkerType", "biomarker_type", "type")
_READING_TS_KEYS = ("timestamp", "measuredAt", "readingDate", "date", "measured_at")
_MOOD_TS_KEYS = ("timestamp", "assessmentDate", "date", "assessment_date")
_MOOD_FIELDS = {
    "mood_score": ("moodScore", "mood_score"),
    "anxiety_score": ("anxietyScore", "anxiety_score"),
    "stress_score": ("stressScore", "stress_score"),
}


# ─── Type coercion ──────────────────────────────────────────

def _num(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def _text(value: Any) -> str:
    return str(value) if value is not None else ""


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    s = _text(value).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def _pick_row_value(row: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key and row.get(key) is not None:
            return row.get(key)
    return None


# ─── Row mapping ────────────────────────────────────────────

def parse_biomarker_rows(rows: Iterable[Dict[str, Any]]) -> List[BiomarkerReading]:
    readings: List[BiomarkerReading] = []
    dropped = 0
    for row in rows:
        kind = _text(_pick_row_value(row, *_BIOMARKER_TYPE_KEYS)).strip()
        value = _num(row.get("value"))
        ts = _parse_timestamp(_pick_row_value(row, *_READING_TS_KEYS))
        if not kind or value is None or ts is None:
            dropped += 1
            continue
        readings.append(BiomarkerReading(biomarker_type=kind, value=value, timestamp=ts))
    if dropped:
        log.warning("Dropped %d unparseable biomarker rows", dropped)
    return readings


def parse_mood_rows(rows: Iterable[Dict[str, Any]]) -> List[MoodAssessment]:
    assessments: List[MoodAssessment] = []
    dropped = 0
    for row in rows:
        ts = _parse_timestamp(_pick_row_value(row, *_MOOD_TS_KEYS))
        if ts is None:
            dropped += 1
            continue
        scores = {
            field: _num(_pick_row_value(row, *keys))
            for field, keys in _MOOD_FIELDS.items()
        }
        assessments.append(MoodAssessment(timestamp=ts, **scores))
    if dropped:
        log.warning("Dropped %d mood rows without a timestamp", dropped)
    return assessments


# ─── Analysis window ────────────────────────────────────────

def analysis_window(days: int, end: Optional[datetime] = None) -> DateRange:
    """The *days*-long window ending at *end* (default: now, UTC)."""
    end_utc = as_utc(end) if end is not None else datetime.now(timezone.utc)
    return DateRange(start=end_utc - timedelta(days=days), end=end_utc)


def filter_window(items: Sequence[_T], window: DateRange) -> List[_T]:
    start, end = as_utc(window.start), as_utc(window.end)
    return [item for item in items if start <= as_utc(item.timestamp) <= end]


def window_for_request(
    biomarker_rows: Iterable[Dict[str, Any]],
    mood_rows: Iterable[Dict[str, Any]],
    days: int,
    end: Optional[datetime] = None,
) -> Tuple[List[BiomarkerReading], List[MoodAssessment], DateRange]:
    """Parse raw rows and keep those inside the analysis window."""
    window = analysis_window(days, end)
    readings = filter_window(parse_biomarker_rows(biomarker_rows), window)
    moods = filter_window(parse_mood_rows(mood_rows), window)
    log.info(
        "Window %s -> %s: %d readings, %d assessments",
        window.start.date(), window.end.date(), len(readings), len(moods),
    )
    return readings, moods, window
