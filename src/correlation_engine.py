"""
Correlation Engine
==================
Pairwise Pearson correlations between biomarker series and mood metrics,
with significance testing, for the correlation heat-map and the
significant-pairs list.

Layers:
  Primitive:  Pearson r over two sequences (truncated to common length),
              two-tailed p-value from the t statistic, strength/direction
              classification.
  Alignment:  readings and assessments are collapsed to one value per
              calendar day per series (last value wins); every pair of
              series is intersected on the days both were recorded.
  Matrix:     labels = biomarker kinds (order of first appearance) then
              moodScore, anxietyScore, stressScore.  Each unordered pair is
              computed once and mirrored, so the matrix is symmetric with
              an exact 1 diagonal.

Every function is total: empty series, zero variance, mismatched lengths and
too-small samples give coefficient 0 / p-value 1 instead of raising, so a
sparse account never breaks the dashboard.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from analytics.series import as_utc, day_key
from schemas import (
    MOOD_METRICS,
    BiomarkerReading,
    CorrelationMatrix,
    CorrelationResult,
    DateRange,
    MatrixMetadata,
    MoodAssessment,
    mood_metric_value,
)

log = logging.getLogger("correlation_engine")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

# |r| thresholds for the strength label
STRONG_THRESHOLD = 0.7
MODERATE_THRESHOLD = 0.4
WEAK_THRESHOLD = 0.2

# r must clear ±0.1 to count as a direction
DIRECTION_THRESHOLD = 0.1

# Co-dated points needed before a matrix cell is computed
MIN_PAIRED_POINTS = 3

# p-value needs n - 2 degrees of freedom
MIN_P_VALUE_SAMPLE = 3

DEFAULT_SIGNIFICANCE_LEVEL = 0.05

# |r| a significant pair must exceed to be reported
MIN_SIGNIFICANT_COEFFICIENT = 0.2


# ═══════════════════════════════════════════════════════════════
#  PRIMITIVES
# ═══════════════════════════════════════════════════════════════

def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r of the first ``min(len(x), len(y))`` elements.

    r = (nΣxy − ΣxΣy) / sqrt((nΣx² − (Σx)²)(nΣy² − (Σy)²))

    Returns 0.0 for empty input, a constant series, or any non-finite
    intermediate; otherwise the result is clamped to [-1, 1].
    """
    n = min(len(x), len(y))
    if n == 0:
        return 0.0
    try:
        xa = np.asarray(list(x)[:n], dtype=np.float64)
        ya = np.asarray(list(y)[:n], dtype=np.float64)
    except (TypeError, ValueError):
        log.debug("Non-numeric input to pearson_correlation; returning 0")
        return 0.0

    if not (np.all(np.isfinite(xa)) and np.all(np.isfinite(ya))):
        return 0.0
    if np.ptp(xa) == 0 or np.ptp(ya) == 0:
        return 0.0

    with np.errstate(over="ignore", invalid="ignore"):
        sum_x = xa.sum()
        sum_y = ya.sum()
        numerator = n * np.dot(xa, ya) - sum_x * sum_y
        den_sq = (n * np.dot(xa, xa) - sum_x * sum_x) * (n * np.dot(ya, ya) - sum_y * sum_y)

    if not math.isfinite(den_sq) or den_sq <= 0:
        return 0.0
    r = float(numerator / math.sqrt(den_sq))
    if not math.isfinite(r):
        return 0.0
    return max(-1.0, min(1.0, r))


def calculate_p_value(r: float, n: int) -> float:
    """Two-tailed p-value for r over n samples.

    t = r·sqrt((n−2)/(1−r²)) is referred to the standard normal
    distribution, an approximation of Student's t that is close enough
    for ranking pairs on a dashboard.
    """
    if n < MIN_P_VALUE_SAMPLE or not math.isfinite(r):
        return 1.0
    r2 = r * r
    if r2 >= 1.0:
        return 0.0
    t_stat = r * math.sqrt((n - 2) / (1.0 - r2))
    p = 2.0 * float(sp_stats.norm.sf(abs(t_stat)))
    if not math.isfinite(p):
        return 1.0
    return min(max(p, 0.0), 1.0)


def correlation_strength(r: float) -> str:
    abs_r = abs(r)
    if abs_r >= STRONG_THRESHOLD:
        return "strong"
    if abs_r >= MODERATE_THRESHOLD:
        return "moderate"
    if abs_r >= WEAK_THRESHOLD:
        return "weak"
    return "none"


def correlation_direction(r: float) -> str:
    if r > DIRECTION_THRESHOLD:
        return "positive"
    if r < -DIRECTION_THRESHOLD:
        return "negative"
    return "none"


def calculate_biomarker_mood_correlation(
    series_a: Sequence[float],
    series_b: Sequence[float],
    label_a: str,
    label_b: str,
) -> CorrelationResult:
    """Correlate two series position by position (no date alignment)."""
    n = min(len(series_a), len(series_b))
    coefficient = pearson_correlation(series_a, series_b)
    return CorrelationResult(
        series_a=label_a,
        series_b=label_b,
        coefficient=coefficient,
        p_value=calculate_p_value(coefficient, n),
        sample_size=n,
        strength=correlation_strength(coefficient),
        direction=correlation_direction(coefficient),
    )


# ═══════════════════════════════════════════════════════════════
#  DAILY ALIGNMENT
# ═══════════════════════════════════════════════════════════════

def _biomarker_kinds(readings: Sequence[BiomarkerReading]) -> List[str]:
    return list(dict.fromkeys(r.biomarker_type for r in readings))


def _daily_frame(
    readings: Sequence[BiomarkerReading],
    moods: Sequence[MoodAssessment],
    labels: Sequence[str],
) -> pd.DataFrame:
    """One row per calendar day, one column per series label.

    Several values for the same series on the same day collapse to the
    last one in input order.  Unrecorded mood metrics stay NaN.
    """
    records: List[Tuple[object, str, float]] = [
        (day_key(r.timestamp), r.biomarker_type, r.value) for r in readings
    ]
    for metric in MOOD_METRICS:
        for m in moods:
            value = mood_metric_value(m, metric)
            if value is not None:
                records.append((day_key(m.timestamp), metric.value, value))

    if not records:
        return pd.DataFrame(columns=list(labels), dtype=np.float64)

    long = pd.DataFrame.from_records(records, columns=["day", "label", "value"])
    long["value"] = pd.to_numeric(long["value"], errors="coerce")
    daily = long.groupby(["day", "label"], sort=False)["value"].last().unstack("label")
    return daily.reindex(columns=list(labels))


def _aligned_pairs(
    daily: pd.DataFrame, labels: Sequence[str]
) -> Iterator[Tuple[int, int, np.ndarray, np.ndarray]]:
    """Yield (i, j, x, y) for each unordered label pair with enough co-dated points."""
    for i, ci in enumerate(labels):
        for j in range(i + 1, len(labels)):
            cj = labels[j]
            paired = daily[[ci, cj]].dropna()
            if len(paired) < MIN_PAIRED_POINTS:
                continue
            yield i, j, paired[ci].to_numpy(), paired[cj].to_numpy()


# ═══════════════════════════════════════════════════════════════
#  MATRIX
# ═══════════════════════════════════════════════════════════════

def _observed_range(
    readings: Sequence[BiomarkerReading], moods: Sequence[MoodAssessment]
) -> Optional[DateRange]:
    stamps: List[datetime] = [as_utc(r.timestamp) for r in readings]
    stamps.extend(as_utc(m.timestamp) for m in moods)
    if not stamps:
        return None
    return DateRange(start=min(stamps), end=max(stamps))


def generate_correlation_matrix(
    biomarker_readings: Iterable[BiomarkerReading],
    mood_assessments: Iterable[MoodAssessment],
    date_range: Optional[DateRange] = None,
) -> CorrelationMatrix:
    """Build the N+3 square correlation matrix for the heat-map.

    ``date_range`` is echoed in the metadata; when omitted, the span of the
    supplied timestamps is reported instead.
    """
    readings = list(biomarker_readings)
    moods = list(mood_assessments)

    kinds = _biomarker_kinds(readings)
    mood_labels = [m.value for m in MOOD_METRICS]
    labels = kinds + mood_labels
    size = len(labels)

    data = [[1.0 if i == j else 0.0 for j in range(size)] for i in range(size)]

    daily = _daily_frame(readings, moods, labels)
    n_computed = 0
    for i, j, x, y in _aligned_pairs(daily, labels):
        r = pearson_correlation(x, y)
        data[i][j] = r
        data[j][i] = r
        n_computed += 1

    log.debug(
        "Correlation matrix: %d labels, %d days, %d/%d pairs computed",
        size, len(daily), n_computed, size * (size - 1) // 2,
    )

    return CorrelationMatrix(
        labels=labels,
        data=data,
        metadata=MatrixMetadata(
            biomarkers=kinds,
            mood_metrics=mood_labels,
            sample_size=len(moods),
            date_range=date_range if date_range is not None else _observed_range(readings, moods),
        ),
    )


def correlate_all_pairs(
    biomarker_readings: Iterable[BiomarkerReading],
    mood_assessments: Iterable[MoodAssessment],
) -> List[CorrelationResult]:
    """CorrelationResult for every matrix pair with enough co-dated points.

    Uses the same calendar-day alignment as the matrix, so each result's
    coefficient equals the corresponding matrix cell.
    """
    readings = list(biomarker_readings)
    moods = list(mood_assessments)
    labels = _biomarker_kinds(readings) + [m.value for m in MOOD_METRICS]

    daily = _daily_frame(readings, moods, labels)
    return [
        calculate_biomarker_mood_correlation(x, y, labels[i], labels[j])
        for i, j, x, y in _aligned_pairs(daily, labels)
    ]


def find_significant_correlations(
    results: Iterable[CorrelationResult],
    significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL,
) -> List[CorrelationResult]:
    """Keep pairs with p < significance_level and |r| > 0.2, strongest first."""
    significant = [
        c for c in results
        if c.p_value < significance_level and abs(c.coefficient) > MIN_SIGNIFICANT_COEFFICIENT
    ]
    significant.sort(key=lambda c: abs(c.coefficient), reverse=True)
    return significant
