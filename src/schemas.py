"""
Data model for the analytics engine.

Input series (biomarker readings, mood assessments) and every engine output
(correlation results, the correlation matrix, insights) are pydantic models
that serialise to the camelCase shape the dashboards consume:

    model.model_dump(mode="json", by_alias=True)

All models are frozen; the engine builds fresh ones on every call.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ─── Inputs ────────────────────────────────────────────────

class BiomarkerReading(_WireModel):
    biomarker_type: str
    value: float
    timestamp: datetime = Field(
        validation_alias=AliasChoices("timestamp", "date", "readingDate", "measuredAt"),
    )


class MoodAssessment(_WireModel):
    mood_score: Optional[float] = None
    anxiety_score: Optional[float] = None
    stress_score: Optional[float] = None
    timestamp: datetime = Field(
        validation_alias=AliasChoices("timestamp", "date", "assessmentDate"),
    )


class MoodMetric(str, Enum):
    MOOD = "moodScore"
    ANXIETY = "anxietyScore"
    STRESS = "stressScore"


# Column order of the mood block in the correlation matrix
MOOD_METRICS: Tuple[MoodMetric, ...] = (MoodMetric.MOOD, MoodMetric.ANXIETY, MoodMetric.STRESS)


def mood_metric_value(point: MoodAssessment, metric: MoodMetric) -> Optional[float]:
    """Return the value of *metric* on *point* (``None`` when not recorded)."""
    if metric is MoodMetric.MOOD:
        return point.mood_score
    if metric is MoodMetric.ANXIETY:
        return point.anxiety_score
    if metric is MoodMetric.STRESS:
        return point.stress_score
    raise ValueError(f"Unknown mood metric: {metric!r}")


class DateRange(_WireModel):
    start: datetime
    end: datetime


# ─── Correlation outputs ───────────────────────────────────

Strength = Literal["strong", "moderate", "weak", "none"]
Direction = Literal["positive", "negative", "none"]


class CorrelationResult(_WireModel):
    series_a: str
    series_b: str
    coefficient: float = Field(ge=-1.0, le=1.0)
    p_value: float = Field(ge=0.0, le=1.0)
    sample_size: int = Field(ge=0)
    strength: Strength
    direction: Direction


class MatrixMetadata(_WireModel):
    biomarkers: List[str]
    mood_metrics: List[str]
    sample_size: int
    date_range: Optional[DateRange] = None


class CorrelationMatrix(_WireModel):
    labels: List[str]
    data: List[List[float]]
    metadata: MatrixMetadata


# ─── Insights ──────────────────────────────────────────────

class InsightType(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NEUTRAL = "neutral"
    POSITIVE = "positive"


# Final ordering of the insight list: lower sorts first
INSIGHT_PRIORITY = {
    InsightType.CRITICAL: 0,
    InsightType.WARNING: 1,
    InsightType.NEUTRAL: 2,
    InsightType.POSITIVE: 3,
}


class Insight(_WireModel):
    type: InsightType
    title: str
    description: str
    confidence: int = Field(ge=0, le=100)
    biomarkers_involved: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    relapse_risk: Optional[int] = None


class InsightReport(_WireModel):
    insights: List[Insight]
    relapse_risk: int = Field(ge=0, le=100)


class SampleDataset(_WireModel):
    biomarker_readings: List[BiomarkerReading]
    mood_assessments: List[MoodAssessment]
