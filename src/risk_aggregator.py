"""
Risk Aggregator
===============
Combines biomarker deviations and mood trends into a single 0-100 relapse
risk score, and assembles the final insight list:

  1. relapse risk score (this module)
  2. per-kind, cross-biomarker and mood-trend insights (pattern_detector)
  3. one overview insight chosen by risk bucket, when applicable
  4. stable sort by severity: critical, warning, neutral, positive

Scoring, per biomarker kind with ≥3 of its 7 most recent readings:
  • latest value outside the normal range → + min(deviation × 30, 30)
    where deviation is the distance from the nearer bound relative to it
  • newest vs third-newest up by more than 15% → + 15
Mood, over the 7 most recent scored assessments (≥3 needed):
  • average below 4 → + (4 − average) × 10
  • newest-2 average more than 1 below oldest-2 average → + 15
The total is capped at 100 and rounded; no factors means 0.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional

from analytics.series import (
    mean,
    readings_by_kind,
    recent_mood_scores,
    relative_change,
    relative_deviation,
    round_half_up,
)
from biomarkers import BIOMARKERS, BiomarkerDefinition
from pattern_detector import detect_patterns
from schemas import (
    INSIGHT_PRIORITY,
    BiomarkerReading,
    Insight,
    InsightReport,
    InsightType,
    MoodAssessment,
)

log = logging.getLogger("risk_aggregator")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

RISK_BIOMARKER_WINDOW = 7
RISK_MIN_READINGS = 3
RISK_MAX_DEVIATION_POINTS = 30.0
RISK_DEVIATION_WEIGHT = 30.0
RISK_TREND_FRACTION = 0.15
RISK_TREND_POINTS = 15.0

RISK_MOOD_WINDOW = 7
RISK_MIN_MOOD_POINTS = 3
RISK_LOW_MOOD_AVERAGE = 4.0
RISK_LOW_MOOD_WEIGHT = 10.0
RISK_MOOD_DROP = 1.0
RISK_MOOD_DROP_POINTS = 15.0

MAX_RISK = 100

# Buckets: low < 40 ≤ medium < 70 ≤ high
RISK_MEDIUM = 40
RISK_HIGH = 70

# Overview insight triggers
OVERVIEW_HIGH_ABOVE = 70
OVERVIEW_MODERATE_ABOVE = 40
OVERVIEW_STABLE_BELOW = 20
OVERVIEW_STABLE_MIN_POSITIVE = 2


# ═══════════════════════════════════════════════════════════════
#  SCORE
# ═══════════════════════════════════════════════════════════════

def _outside_range_deviation(biomarker: BiomarkerDefinition, value: float) -> Optional[float]:
    if value > biomarker.normal_max:
        return relative_deviation(value, biomarker.normal_max)
    if value < biomarker.normal_min:
        return relative_deviation(value, biomarker.normal_min)
    return None


def calculate_relapse_risk(
    biomarker_readings: Iterable[BiomarkerReading],
    mood_assessments: Iterable[MoodAssessment],
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
) -> int:
    """Relapse risk score in [0, 100]."""
    risk_score = 0.0
    factor_count = 0

    grouped = readings_by_kind(biomarker_readings)
    for kind, biomarker in definitions.items():
        readings = grouped.get(kind, [])[:RISK_BIOMARKER_WINDOW]
        if len(readings) < RISK_MIN_READINGS:
            continue

        deviation = _outside_range_deviation(biomarker, readings[0].value)
        if deviation is not None:
            risk_score += min(deviation * RISK_DEVIATION_WEIGHT, RISK_MAX_DEVIATION_POINTS)
            factor_count += 1

        trend = relative_change(readings[0].value, readings[2].value)
        if trend is not None and trend > RISK_TREND_FRACTION:
            risk_score += RISK_TREND_POINTS
            factor_count += 1

    scores = recent_mood_scores(mood_assessments, RISK_MOOD_WINDOW)
    if len(scores) >= RISK_MIN_MOOD_POINTS:
        avg_mood = mean(scores)
        if avg_mood < RISK_LOW_MOOD_AVERAGE:
            risk_score += (RISK_LOW_MOOD_AVERAGE - avg_mood) * RISK_LOW_MOOD_WEIGHT
            factor_count += 1

        newest_avg = mean(scores[:2])
        oldest_avg = mean(scores[-2:])
        if newest_avg < oldest_avg - RISK_MOOD_DROP:
            risk_score += RISK_MOOD_DROP_POINTS
            factor_count += 1

    if factor_count == 0:
        return 0
    score = round_half_up(min(max(risk_score, 0.0), MAX_RISK))
    log.debug("Relapse risk %d from %d factors", score, factor_count)
    return score


def risk_level(score: int) -> str:
    """Bucket a risk score: ``low`` (<40), ``medium`` (40-69) or ``high`` (≥70)."""
    if score >= RISK_HIGH:
        return "high"
    if score >= RISK_MEDIUM:
        return "medium"
    return "low"


# ═══════════════════════════════════════════════════════════════
#  INSIGHTS
# ═══════════════════════════════════════════════════════════════

def overview_insight(
    relapse_risk: int,
    insights: List[Insight],
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
) -> Optional[Insight]:
    """Top-level risk insight for the given score, or ``None``."""
    if relapse_risk > OVERVIEW_HIGH_ABOVE:
        return Insight(
            type=InsightType.CRITICAL,
            title="High Relapse Risk Detected",
            description=(
                f"Your current relapse risk score is {relapse_risk}/100. "
                "Multiple risk factors have been identified."
            ),
            confidence=88,
            biomarkers_involved=list(definitions),
            recommendations=[
                "Contact your mental health provider as soon as possible",
                "Review and update your relapse prevention plan",
                "Increase monitoring frequency",
                "Ensure medication adherence",
                "Activate your support network",
            ],
            relapse_risk=relapse_risk,
        )

    if relapse_risk > OVERVIEW_MODERATE_ABOVE:
        return Insight(
            type=InsightType.WARNING,
            title="Moderate Relapse Risk",
            description=(
                f"Your relapse risk score is {relapse_risk}/100. "
                "Some risk factors are present."
            ),
            confidence=75,
            biomarkers_involved=list(definitions),
            recommendations=[
                "Schedule a check-in with your care team",
                "Review recent stressors and coping strategies",
                "Maintain consistent self-care routines",
                "Monitor symptoms closely",
            ],
            relapse_risk=relapse_risk,
        )

    n_positive = sum(1 for i in insights if i.type == InsightType.POSITIVE)
    if relapse_risk < OVERVIEW_STABLE_BELOW and n_positive >= OVERVIEW_STABLE_MIN_POSITIVE:
        return Insight(
            type=InsightType.POSITIVE,
            title="Low Relapse Risk - Stable",
            description=(
                f"Your relapse risk score is {relapse_risk}/100. "
                "You're maintaining good stability."
            ),
            confidence=82,
            recommendations=[
                "Continue your current wellness routine",
                "Maintain regular appointments with your care team",
                "Keep tracking your biomarkers and mood",
            ],
            relapse_risk=relapse_risk,
        )

    return None


def sort_by_priority(insights: Iterable[Insight]) -> List[Insight]:
    """Stable sort: critical, warning, neutral, positive."""
    return sorted(insights, key=lambda i: INSIGHT_PRIORITY[InsightType(i.type)])


def generate_insights(
    biomarker_readings: Iterable[BiomarkerReading],
    mood_assessments: Iterable[MoodAssessment],
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
) -> InsightReport:
    """Risk score plus the severity-sorted insight list."""
    readings = list(biomarker_readings)
    moods = list(mood_assessments)

    relapse_risk = calculate_relapse_risk(readings, moods, definitions)

    detected = detect_patterns(readings, moods, definitions)

    candidates: List[Insight] = []
    overview = overview_insight(relapse_risk, detected, definitions)
    if overview is not None:
        candidates.append(overview)
    candidates.extend(detected)

    insights = sort_by_priority(candidates)
    log.info(
        "Generated %d insights (risk=%d, %s) from %d readings, %d assessments",
        len(insights), relapse_risk, risk_level(relapse_risk), len(readings), len(moods),
    )
    return InsightReport(insights=insights, relapse_risk=relapse_risk)
