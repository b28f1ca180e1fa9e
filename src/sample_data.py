"""
Sample data generator for demo mode and tests.

Produces one reading per biomarker kind per day and one or two mood
assessments per day (morning and evening).  With ``include_patterns`` the
series worsen toward the most recent day: inflammatory and metabolic
markers drift up, BDNF drifts down, mood drifts down while anxiety and
stress drift up.  Pass ``seed`` for reproducible output.

Not part of the analytics engine: nothing here is called by it.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

import numpy as np

from analytics.series import round_half_up
from schemas import BiomarkerReading, MoodAssessment, SampleDataset

# Demo value bounds per kind (narrower than the clinical normal ranges)
DEMO_RANGES: Mapping[str, Tuple[float, float]] = MappingProxyType({
    "CRP": (0.5, 3.0),
    "IL6": (1.0, 5.0),
    "LEPTIN": (2.0, 10.0),
    "PROINSULIN": (2.0, 8.0),
    "BDNF": (15.0, 30.0),
})

# Kinds where a falling value is the worsening direction
INVERTED_KINDS = frozenset({"BDNF"})

MOOD_RANGE = (3.0, 9.0)
ANXIETY_RANGE = (2.0, 8.0)
STRESS_RANGE = (2.0, 8.0)

MOOD_TREND = -0.3


def generate_value(
    rng: np.random.Generator,
    low: float,
    high: float,
    trend: float = 0.0,
    noise: float = 0.2,
) -> float:
    """Random value in [low, high] centred at mid-range shifted by *trend*."""
    span = high - low
    base = low + span * (0.5 + trend * 0.3)
    variation = span * noise * (rng.random() - 0.5)
    return float(min(high, max(low, base + variation)))


def _trend_at(day: int, days_of_history: int, strength: float) -> float:
    # day 0 is the most recent day and carries the full trend
    if days_of_history <= 0:
        return 0.0
    return strength * (days_of_history - day) / days_of_history


def generate_biomarker_readings(
    days_of_history: int = 30,
    include_patterns: bool = True,
    rng: Optional[np.random.Generator] = None,
    now: Optional[datetime] = None,
) -> List[BiomarkerReading]:
    rng = rng if rng is not None else np.random.default_rng()
    now = now or datetime.now(timezone.utc)
    overall_trend = float(rng.random()) * 0.5 if include_patterns else 0.0

    readings: List[BiomarkerReading] = []
    for day in range(max(days_of_history, 0)):
        ts = now - timedelta(days=day)
        current = _trend_at(day, days_of_history, overall_trend)
        for kind, (low, high) in DEMO_RANGES.items():
            trend = -current if kind in INVERTED_KINDS else current
            value = generate_value(rng, low, high, trend)
            readings.append(BiomarkerReading(biomarker_type=kind, value=round(value, 2), timestamp=ts))
    return readings


def generate_mood_assessments(
    days_of_history: int = 30,
    include_patterns: bool = True,
    rng: Optional[np.random.Generator] = None,
    now: Optional[datetime] = None,
) -> List[MoodAssessment]:
    rng = rng if rng is not None else np.random.default_rng()
    now = now or datetime.now(timezone.utc)
    mood_trend = MOOD_TREND if include_patterns else 0.0

    assessments: List[MoodAssessment] = []
    for day in range(max(days_of_history, 0)):
        day_start = (now - timedelta(days=day)).replace(hour=0, minute=0, second=0, microsecond=0)
        current = _trend_at(day, days_of_history, mood_trend)
        per_day = 2 if rng.random() > 0.5 else 1
        for i in range(per_day):
            ts = day_start + timedelta(hours=8 + i * 12, minutes=int(rng.integers(0, 60)))
            assessments.append(MoodAssessment(
                mood_score=round_half_up(generate_value(rng, *MOOD_RANGE, current, 0.3)),
                anxiety_score=round_half_up(generate_value(rng, *ANXIETY_RANGE, -current, 0.3)),
                stress_score=round_half_up(generate_value(rng, *STRESS_RANGE, -current, 0.3)),
                timestamp=ts,
            ))
    return assessments


def generate_sample_data(
    days_of_history: int = 30,
    include_patterns: bool = True,
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SampleDataset:
    """Biomarker readings and mood assessments for a demo account."""
    rng = np.random.default_rng(seed)
    now = now or datetime.now(timezone.utc)
    return SampleDataset(
        biomarker_readings=generate_biomarker_readings(days_of_history, include_patterns, rng, now),
        mood_assessments=generate_mood_assessments(days_of_history, include_patterns, rng, now),
    )
