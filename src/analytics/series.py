"""Series helpers shared by the pattern detector and the risk aggregator."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from schemas import BiomarkerReading, MoodAssessment


def as_utc(ts: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def day_key(ts: datetime) -> date:
    """Calendar day (UTC) used to align readings recorded on the same day."""
    return as_utc(ts).date()


def readings_by_kind(readings: Iterable[BiomarkerReading]) -> Dict[str, List[BiomarkerReading]]:
    """Group readings per biomarker kind, newest first.

    Kinds keep the order in which they first appear; readings sharing a
    timestamp keep their input order.
    """
    grouped: Dict[str, List[BiomarkerReading]] = {}
    for reading in readings:
        grouped.setdefault(reading.biomarker_type, []).append(reading)
    return {
        kind: sorted(rows, key=lambda r: as_utc(r.timestamp), reverse=True)
        for kind, rows in grouped.items()
    }


def recent_mood_scores(moods: Iterable[MoodAssessment], limit: int) -> List[float]:
    """Mood scores of the *limit* most recent assessments that have one, newest first."""
    scored = [m for m in moods if m.mood_score is not None]
    scored.sort(key=lambda m: as_utc(m.timestamp), reverse=True)
    return [float(m.mood_score) for m in scored[:limit]]


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def relative_change(new: float, base: float) -> Optional[float]:
    """(new - base) / base, or ``None`` when there is no base to compare against."""
    if base == 0 or not math.isfinite(base) or not math.isfinite(new):
        return None
    return (new - base) / base


def relative_deviation(value: float, bound: float) -> float:
    """Distance of *value* from *bound* as a fraction of the bound.

    A zero bound has no scale, so any distance from it is infinite; callers
    cap the result.
    """
    distance = abs(value - bound)
    if bound == 0:
        return math.inf if distance > 0 else 0.0
    return distance / abs(bound)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))
