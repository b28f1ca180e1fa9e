"""
Pattern Detector
================
Heuristic rules that turn recent biomarker and mood series into
human-readable insights.

Three rule families, each an ordered tuple of independent rule objects:

  BIOMARKER_RULES         per kind, over its readings newest first
                          (elevated level, rapid change, stability)
  CROSS_BIOMARKER_RULES   fixed kind pairs that are flagged together
                          (inflammation, metabolic)
  MOOD_RULES              over the 14 most recent mood scores
                          (declining, persistent low, improving)

Rules never depend on each other: several may fire on the same data.
A rule that lacks the data it needs simply returns ``None``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from analytics.series import (
    mean,
    readings_by_kind,
    recent_mood_scores,
    relative_change,
    relative_deviation,
    round_half_up,
)
from biomarkers import BIOMARKERS, CROSS_BIOMARKER_PAIRS, BiomarkerDefinition, CrossBiomarkerPair
from schemas import BiomarkerReading, Insight, InsightType, MoodAssessment

log = logging.getLogger("pattern_detector")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

MIN_BIOMARKER_READINGS = 3

# Elevated level: excess over max (%) above which the insight is critical
ELEVATED_CRITICAL_PCT = 50.0
ELEVATED_BASE_CONFIDENCE = 70
ELEVATED_MAX_CONFIDENCE = 95

# Rapid change: newest vs third-newest
RAPID_CHANGE_FRACTION = 0.20
RAPID_CHANGE_CONFIDENCE = 75

# Stability: 5 most recent readings, spread under 30% of range width
STABILITY_WINDOW = 5
STABILITY_SPREAD_FRACTION = 0.3
STABILITY_CONFIDENCE = 85

CROSS_WINDOW = 7

MOOD_WINDOW = 14
MIN_MOOD_POINTS = 5
MOOD_TREND_POINTS = 3
MOOD_TREND_DELTA = 1.0
LOW_MOOD_SCORE = 3.0
LOW_MOOD_MIN_POINTS = 7
LOW_MOOD_MIN_DAYS = 5
IMPROVING_MIN_AVERAGE = 6.0


# ═══════════════════════════════════════════════════════════════
#  PER-BIOMARKER RULES
# ═══════════════════════════════════════════════════════════════

class BiomarkerRule:
    """Predicate → insight over one kind's readings, newest first."""

    name = "biomarker_rule"

    def evaluate(
        self, biomarker: BiomarkerDefinition, readings: Sequence[BiomarkerReading]
    ) -> Optional[Insight]:
        raise NotImplementedError


class ElevatedLevelRule(BiomarkerRule):
    name = "elevated_level"

    def evaluate(self, biomarker, readings):
        latest = readings[0].value
        if not latest > biomarker.normal_max:
            return None

        excess_pct = relative_deviation(latest, biomarker.normal_max) * 100
        confidence = min(ELEVATED_BASE_CONFIDENCE + excess_pct / 2, ELEVATED_MAX_CONFIDENCE)
        unit = biomarker.unit
        return Insight(
            type=InsightType.CRITICAL if excess_pct > ELEVATED_CRITICAL_PCT else InsightType.WARNING,
            title=f"Elevated {biomarker.name} Levels",
            description=(
                f"Your {biomarker.full_name} level is {latest:.1f} {unit}, which is above "
                f"the normal range ({biomarker.normal_min:g}-{biomarker.normal_max:g} {unit})."
            ),
            confidence=round_half_up(confidence),
            biomarkers_involved=[biomarker.id],
            recommendations=[
                f"Consult with your healthcare provider about elevated {biomarker.name}",
                "Monitor stress levels and practice relaxation techniques",
                "Ensure adequate sleep and maintain regular sleep schedule",
            ],
        )


class RapidChangeRule(BiomarkerRule):
    name = "rapid_change"

    def evaluate(self, biomarker, readings):
        if len(readings) < 3:
            return None
        change = relative_change(readings[0].value, readings[2].value)
        if change is None or not change > RAPID_CHANGE_FRACTION:
            return None
        return Insight(
            type=InsightType.WARNING,
            title=f"Rapid {biomarker.name} Increase",
            description=(
                f"Your {biomarker.name} has increased by {change * 100:.1f}% "
                "over the past few days."
            ),
            confidence=RAPID_CHANGE_CONFIDENCE,
            biomarkers_involved=[biomarker.id],
            recommendations=[
                "Schedule a check-in with your mental health provider",
                "Review recent stressors or lifestyle changes",
                "Consider increasing self-care activities",
            ],
        )


class StabilityRule(BiomarkerRule):
    name = "stability"

    def evaluate(self, biomarker, readings):
        if len(readings) < STABILITY_WINDOW:
            return None
        values = [r.value for r in readings[:STABILITY_WINDOW]]
        if not all(biomarker.in_range(v) for v in values):
            return None
        spread = max(values) - min(values)
        if not spread < biomarker.range_width * STABILITY_SPREAD_FRACTION:
            return None
        return Insight(
            type=InsightType.POSITIVE,
            title=f"Stable {biomarker.name} Levels",
            description=(
                f"Your {biomarker.name} has remained stable and within normal range "
                f"({mean(values):.1f} {biomarker.unit})."
            ),
            confidence=STABILITY_CONFIDENCE,
            biomarkers_involved=[biomarker.id],
            recommendations=[
                "Continue your current wellness routine",
                "Maintain consistent sleep and exercise patterns",
            ],
        )


BIOMARKER_RULES: Tuple[BiomarkerRule, ...] = (
    ElevatedLevelRule(),
    RapidChangeRule(),
    StabilityRule(),
)


def detect_biomarker_patterns(
    biomarker_readings: Iterable[BiomarkerReading],
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
    rules: Sequence[BiomarkerRule] = BIOMARKER_RULES,
) -> List[Insight]:
    """Run every per-kind rule over each defined kind with ≥3 readings."""
    grouped = readings_by_kind(biomarker_readings)
    insights: List[Insight] = []
    for kind, biomarker in definitions.items():
        readings = grouped.get(kind, [])
        if len(readings) < MIN_BIOMARKER_READINGS:
            continue
        for rule in rules:
            insight = rule.evaluate(biomarker, readings)
            if insight is not None:
                log.debug("Rule %s fired for %s", rule.name, kind)
                insights.append(insight)
    return insights


# ═══════════════════════════════════════════════════════════════
#  CROSS-BIOMARKER RULES
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CrossBiomarkerRule:
    """Fires when both kinds of a pair exceed their trigger within the last 7 readings."""
    pair: CrossBiomarkerPair

    @property
    def name(self) -> str:
        return f"cross_{self.pair.kind_a}_{self.pair.kind_b}".lower()

    def evaluate(self, grouped: Mapping[str, Sequence[BiomarkerReading]]) -> Optional[Insight]:
        pair = self.pair
        recent_a = list(grouped.get(pair.kind_a, []))[:CROSS_WINDOW]
        recent_b = list(grouped.get(pair.kind_b, []))[:CROSS_WINDOW]
        if len(recent_a) < MIN_BIOMARKER_READINGS or len(recent_b) < MIN_BIOMARKER_READINGS:
            return None
        a_elevated = any(r.value > pair.trigger_a for r in recent_a)
        b_elevated = any(r.value > pair.trigger_b for r in recent_b)
        if not (a_elevated and b_elevated):
            return None
        return Insight(
            type=InsightType.WARNING,
            title=pair.title,
            description=pair.description,
            confidence=pair.confidence,
            biomarkers_involved=[pair.kind_a, pair.kind_b],
            recommendations=list(pair.recommendations),
        )


CROSS_BIOMARKER_RULES: Tuple[CrossBiomarkerRule, ...] = tuple(
    CrossBiomarkerRule(pair) for pair in CROSS_BIOMARKER_PAIRS
)


def detect_biomarker_correlations(
    biomarker_readings: Iterable[BiomarkerReading],
    rules: Sequence[CrossBiomarkerRule] = CROSS_BIOMARKER_RULES,
) -> List[Insight]:
    grouped = readings_by_kind(biomarker_readings)
    insights: List[Insight] = []
    for rule in rules:
        insight = rule.evaluate(grouped)
        if insight is not None:
            log.debug("Rule %s fired", rule.name)
            insights.append(insight)
    return insights


# ═══════════════════════════════════════════════════════════════
#  MOOD-TREND RULES
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MoodWindow:
    """Up to 14 most recent mood scores, newest first."""
    scores: Tuple[float, ...]

    @property
    def average(self) -> float:
        return mean(self.scores)

    @property
    def recent_average(self) -> float:
        return mean(self.scores[:MOOD_TREND_POINTS])

    @property
    def older_average(self) -> float:
        return mean(self.scores[-MOOD_TREND_POINTS:])

    def count_below(self, threshold: float) -> int:
        return sum(1 for s in self.scores if s < threshold)


class MoodRule:
    name = "mood_rule"

    def evaluate(self, window: MoodWindow) -> Optional[Insight]:
        raise NotImplementedError


class DecliningMoodRule(MoodRule):
    name = "declining_mood"

    def evaluate(self, window):
        recent, older = window.recent_average, window.older_average
        if not recent < older - MOOD_TREND_DELTA:
            return None
        return Insight(
            type=InsightType.WARNING,
            title="Declining Mood Trend",
            description=(
                "Your mood has been declining over the past two weeks. "
                f"Recent average: {recent:.1f}, Previous average: {older:.1f}."
            ),
            confidence=80,
            recommendations=[
                "Schedule an appointment with your therapist or psychiatrist",
                "Increase frequency of mood logging to track patterns",
                "Review medication adherence and effectiveness",
                "Engage in activities that previously improved your mood",
            ],
        )


class PersistentLowMoodRule(MoodRule):
    name = "persistent_low_mood"

    def evaluate(self, window):
        if len(window.scores) < LOW_MOOD_MIN_POINTS or not window.average < LOW_MOOD_SCORE:
            return None
        low_days = window.count_below(LOW_MOOD_SCORE)
        if low_days < LOW_MOOD_MIN_DAYS:
            return None
        return Insight(
            type=InsightType.CRITICAL,
            title="Persistent Low Mood",
            description=(
                f"You've reported low mood on {low_days} of the last "
                f"{len(window.scores)} days."
            ),
            confidence=90,
            recommendations=[
                "Contact your mental health provider immediately",
                "Review your safety plan if you have one",
                "Reach out to your support network",
                "Consider crisis resources if needed",
            ],
        )


class ImprovingMoodRule(MoodRule):
    name = "improving_mood"

    def evaluate(self, window):
        recent, older = window.recent_average, window.older_average
        if not (recent > older + MOOD_TREND_DELTA and window.average > IMPROVING_MIN_AVERAGE):
            return None
        return Insight(
            type=InsightType.POSITIVE,
            title="Improving Mood Trend",
            description=(
                f"Your mood has been improving! Recent average: {recent:.1f}, "
                f"up from {older:.1f}."
            ),
            confidence=85,
            recommendations=[
                "Continue your current treatment and self-care routine",
                "Identify what's been helping and maintain those practices",
                "Share this progress with your care team",
            ],
        )


MOOD_RULES: Tuple[MoodRule, ...] = (
    DecliningMoodRule(),
    PersistentLowMoodRule(),
    ImprovingMoodRule(),
)


def analyze_mood_trends(
    mood_assessments: Iterable[MoodAssessment],
    rules: Sequence[MoodRule] = MOOD_RULES,
) -> List[Insight]:
    """Evaluate mood rules once at least 5 scored assessments exist."""
    scores = recent_mood_scores(mood_assessments, MOOD_WINDOW)
    if len(scores) < MIN_MOOD_POINTS:
        log.debug("Mood trends skipped: %d scored assessments", len(scores))
        return []

    window = MoodWindow(tuple(scores))
    insights: List[Insight] = []
    for rule in rules:
        insight = rule.evaluate(window)
        if insight is not None:
            log.debug("Rule %s fired", rule.name)
            insights.append(insight)
    return insights


def detect_patterns(
    biomarker_readings: Iterable[BiomarkerReading],
    mood_assessments: Iterable[MoodAssessment],
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
) -> List[Insight]:
    """All three rule families, in family order (unsorted)."""
    readings = list(biomarker_readings)
    insights = detect_biomarker_patterns(readings, definitions)
    insights.extend(detect_biomarker_correlations(readings))
    insights.extend(analyze_mood_trends(mood_assessments))
    return insights
