"""
FastAPI surface for the analytics engine.

The caller supplies already-fetched series for one subject; every route is a
pure computation over the request body.  Route handlers live here; row
coercion and window filtering live in routes/helpers.py.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

import config
from correlation_engine import (
    correlate_all_pairs,
    find_significant_correlations,
    generate_correlation_matrix,
)
from risk_aggregator import calculate_relapse_risk, generate_insights, risk_level
from routes.helpers import window_for_request
from sample_data import generate_sample_data

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT, datefmt=config.LOG_DATEFMT)
log = logging.getLogger("api")


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="MindSense Analytics API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.FRONTEND_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


class AnalysisRequest(BaseModel):
    """Raw series rows for one subject, as returned by the data layer."""
    model_config = ConfigDict(populate_by_name=True)

    biomarker_readings: List[Dict[str, Any]] = Field(default_factory=list, alias="biomarkerReadings")
    mood_assessments: List[Dict[str, Any]] = Field(default_factory=list, alias="moodAssessments")
    end: Optional[datetime] = None
    window_days: Optional[int] = Field(default=None, ge=1, le=3650, alias="windowDays")


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "mindsense-analytics", "status": "ok"}


@app.get("/health-check")
def health_check() -> Dict[str, Any]:
    return {"status": "Online", "message": "Online"}


@app.post("/api/v1/insights/correlations")
def insights_correlations(body: AnalysisRequest) -> Dict[str, Any]:
    """Correlation matrix over the correlation window (default 90 days)."""
    try:
        readings, moods, window = window_for_request(
            body.biomarker_readings,
            body.mood_assessments,
            body.window_days or config.CORRELATION_WINDOW_DAYS,
            body.end,
        )
        matrix = generate_correlation_matrix(readings, moods, window)
        return _dump(matrix)
    except Exception as e:
        log.exception("Correlation matrix failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/insights/correlations/significant")
def insights_significant_correlations(
    body: AnalysisRequest,
    significance_level: float = Query(default=config.SIGNIFICANCE_LEVEL, gt=0, le=1),
) -> Dict[str, Any]:
    try:
        readings, moods, _ = window_for_request(
            body.biomarker_readings,
            body.mood_assessments,
            body.window_days or config.CORRELATION_WINDOW_DAYS,
            body.end,
        )
        significant = find_significant_correlations(
            correlate_all_pairs(readings, moods), significance_level
        )
        return {
            "significanceLevel": significance_level,
            "correlations": [_dump(c) for c in significant],
        }
    except Exception as e:
        log.exception("Significant correlations failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/insights/generate")
def insights_generate(body: AnalysisRequest) -> Dict[str, Any]:
    """Insight list and relapse risk over the insights window (default 30 days)."""
    try:
        readings, moods, _ = window_for_request(
            body.biomarker_readings,
            body.mood_assessments,
            body.window_days or config.INSIGHTS_WINDOW_DAYS,
            body.end,
        )
        return _dump(generate_insights(readings, moods))
    except Exception as e:
        log.exception("Insight generation failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/relapse-risk")
def relapse_risk(body: AnalysisRequest) -> Dict[str, Any]:
    try:
        readings, moods, _ = window_for_request(
            body.biomarker_readings,
            body.mood_assessments,
            body.window_days or config.INSIGHTS_WINDOW_DAYS,
            body.end,
        )
        score = calculate_relapse_risk(readings, moods)
        return {"relapseRisk": score, "level": risk_level(score)}
    except Exception as e:
        log.exception("Relapse risk failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/demo/sample-data")
def demo_sample_data(
    days: int = Query(default=config.SAMPLE_DATA_DAYS, ge=1, le=365),
    include_patterns: bool = Query(default=True),
    seed: Optional[int] = Query(default=None),
) -> Dict[str, Any]:
    try:
        dataset = generate_sample_data(days, include_patterns, seed)
        return _dump(dataset)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
