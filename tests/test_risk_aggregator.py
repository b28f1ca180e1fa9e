"""
Tests for the relapse risk score and the final insight report.
"""
import sys
import os
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from biomarkers import BIOMARKERS
from risk_aggregator import (
    calculate_relapse_risk,
    generate_insights,
    overview_insight,
    risk_level,
    sort_by_priority,
)
from schemas import INSIGHT_PRIORITY, BiomarkerReading, Insight, InsightType, MoodAssessment

BASE = datetime(2026, 6, 1, 7, 30, tzinfo=timezone.utc)


def series(kind, values):
    return [
        BiomarkerReading(biomarker_type=kind, value=v, timestamp=BASE + timedelta(days=i))
        for i, v in enumerate(values)
    ]


def moods(scores):
    return [
        MoodAssessment(mood_score=s, timestamp=BASE + timedelta(days=i))
        for i, s in enumerate(scores)
    ]


def _insight(kind, title="x"):
    return Insight(type=kind, title=title, description="", confidence=50)


# ─── calculate_relapse_risk ───────────────────────────────────


class TestRelapseRisk:

    def test_empty_inputs_is_zero(self):
        assert calculate_relapse_risk([], []) == 0

    def test_in_range_flat_series_is_zero(self):
        readings = series("CRP", [1.0, 1.0, 1.0]) + series("BDNF", [20.0, 20.0, 20.0])
        assert calculate_relapse_risk(readings, moods([7, 7, 7])) == 0

    def test_deviation_and_trend(self):
        # deviation 1.5/3 = 0.5 → 15; trend 3.5 > 0.15 → 15
        assert calculate_relapse_risk(series("CRP", [1.0, 1.0, 4.5]), []) == 30

    def test_deviation_below_minimum(self):
        # BDNF 5 vs min 10 → 0.5 → 15; falling, so no trend points
        assert calculate_relapse_risk(series("BDNF", [20.0, 20.0, 5.0]), []) == 15

    def test_deviation_points_capped_at_thirty(self):
        # deviation 10 → 300, capped at 30; flat so no trend
        assert calculate_relapse_risk(series("CRP", [33.0, 33.0, 33.0]), []) == 30

    def test_trend_only(self):
        # 2.0 → 2.4 is +20%, still within range
        assert calculate_relapse_risk(series("CRP", [2.0, 2.2, 2.4]), []) == 15

    def test_trend_uses_third_newest_within_window(self):
        # newest 7: [..] ; third-newest is 2.0, newest 2.2 → +10%
        readings = series("CRP", [0.1, 0.1, 2.0, 2.1, 2.2])
        assert calculate_relapse_risk(readings, []) == 0

    def test_fewer_than_three_readings_skipped(self):
        assert calculate_relapse_risk(series("CRP", [1.0, 50.0]), []) == 0

    def test_unknown_kind_ignored(self):
        assert calculate_relapse_risk(series("CORTISOL", [1.0, 1.0, 900.0]), []) == 0

    def test_monotonic_in_deviation(self):
        previous = -1
        for step in range(0, 80):
            value = 4.0 + step * 0.25
            score = calculate_relapse_risk(series("CRP", [4.0, 4.0, value]), [])
            assert score >= previous
            previous = score

    def test_capped_at_one_hundred(self):
        readings = []
        for kind, biomarker in BIOMARKERS.items():
            readings += series(kind, [biomarker.normal_max, biomarker.normal_max, biomarker.normal_max * 5])
        score = calculate_relapse_risk(readings, moods([1, 1, 1]))
        assert score == 100

    def test_low_mood_average(self):
        # (4 - 2) * 10
        assert calculate_relapse_risk([], moods([2, 2, 2])) == 20

    def test_mood_drop(self):
        # newest-2 avg 5 vs oldest-2 avg 8
        assert calculate_relapse_risk([], moods([8, 8, 5, 5])) == 15

    def test_mood_needs_three_scores(self):
        assert calculate_relapse_risk([], moods([1, 1])) == 0

    def test_mood_window_is_seven_most_recent(self):
        # the low scores fall outside the 7 most recent
        assert calculate_relapse_risk([], moods([1, 1, 1] + [7] * 7)) == 0

    def test_result_is_int(self):
        score = calculate_relapse_risk([], moods([3, 3, 2]))
        assert isinstance(score, int)
        assert 0 <= score <= 100


class TestRiskLevel:

    @pytest.mark.parametrize("score,expected", [
        (0, "low"), (39, "low"), (40, "medium"), (69, "medium"), (70, "high"), (100, "high"),
    ])
    def test_buckets(self, score, expected):
        assert risk_level(score) == expected


# ─── overview_insight / sort_by_priority ──────────────────────


class TestOverviewInsight:

    def test_high(self):
        insight = overview_insight(71, [])
        assert insight.type == InsightType.CRITICAL
        assert insight.title == "High Relapse Risk Detected"
        assert insight.confidence == 88
        assert insight.biomarkers_involved == list(BIOMARKERS)
        assert len(insight.recommendations) == 5
        assert insight.relapse_risk == 71

    def test_moderate_band(self):
        for score in (41, 70):
            insight = overview_insight(score, [])
            assert insight.type == InsightType.WARNING
            assert insight.title == "Moderate Relapse Risk"
            assert insight.confidence == 75
            assert len(insight.recommendations) == 4

    def test_stable_needs_two_positive_insights(self):
        positives = [_insight(InsightType.POSITIVE), _insight(InsightType.POSITIVE)]
        insight = overview_insight(19, positives)
        assert insight.type == InsightType.POSITIVE
        assert insight.title == "Low Relapse Risk - Stable"
        assert insight.confidence == 82
        assert len(insight.recommendations) == 3

        assert overview_insight(19, positives[:1]) is None
        assert overview_insight(20, positives) is None

    def test_middle_band_has_no_overview(self):
        assert overview_insight(40, []) is None
        assert overview_insight(25, [_insight(InsightType.POSITIVE)] * 3) is None


class TestSortByPriority:

    def test_priority_order_is_stable(self):
        items = [
            _insight(InsightType.POSITIVE, "p1"),
            _insight(InsightType.WARNING, "w1"),
            _insight(InsightType.CRITICAL, "c1"),
            _insight(InsightType.NEUTRAL, "n1"),
            _insight(InsightType.WARNING, "w2"),
            _insight(InsightType.CRITICAL, "c2"),
        ]
        ordered = [i.title for i in sort_by_priority(items)]
        assert ordered == ["c1", "c2", "w1", "w2", "n1", "p1"]


# ─── generate_insights ────────────────────────────────────────


class TestGenerateInsights:

    def _assert_sorted(self, insights):
        keys = [INSIGHT_PRIORITY[InsightType(i.type)] for i in insights]
        assert keys == sorted(keys)

    def test_empty(self):
        report = generate_insights([], [])
        assert report.insights == []
        assert report.relapse_risk == 0

    def test_persistent_low_mood_sorted_first(self):
        readings = series("CRP", [1.0, 1.2, 1.1, 1.3, 1.2]) + series("LEPTIN", [5.0, 5.5, 6.5])
        report = generate_insights(readings, moods([2] * 7))
        titles = [i.title for i in report.insights]
        assert titles.count("Persistent Low Mood") == 1
        assert titles[0] == "Persistent Low Mood"
        assert titles.index("Rapid Leptin Increase") < titles.index("Stable CRP Levels")
        self._assert_sorted(report.insights)

    def test_high_risk_overview_leads(self):
        readings = []
        for kind, biomarker in BIOMARKERS.items():
            readings += series(kind, [biomarker.normal_max, biomarker.normal_max, biomarker.normal_max * 5])
        report = generate_insights(readings, moods([1] * 7))
        assert report.relapse_risk == 100
        assert report.insights[0].title == "High Relapse Risk Detected"
        assert report.insights[0].relapse_risk == 100
        self._assert_sorted(report.insights)

    def test_moderate_risk_overview(self):
        readings = series("CRP", [1.0, 1.0, 4.5]) + series("IL6", [1.0, 1.0, 7.5])
        report = generate_insights(readings, [])
        assert report.relapse_risk == 60
        overview = [i for i in report.insights if i.title == "Moderate Relapse Risk"]
        assert len(overview) == 1
        assert overview[0].relapse_risk == 60
        self._assert_sorted(report.insights)

    def test_stable_overview_with_two_positive_insights(self):
        readings = series("CRP", [1.0, 1.2, 1.1, 1.3, 1.2]) + series("BDNF", [20.0, 21.0, 20.5, 21.5, 20.0])
        report = generate_insights(readings, [])
        assert report.relapse_risk == 0
        assert [i.title for i in report.insights] == [
            "Low Relapse Risk - Stable",
            "Stable CRP Levels",
            "Stable BDNF Levels",
        ]

    def test_wire_shape(self):
        readings = series("CRP", [1.0, 1.0, 4.5]) + series("IL6", [1.0, 1.0, 7.5])
        payload = generate_insights(readings, []).model_dump(mode="json", by_alias=True, exclude_none=True)
        assert set(payload) == {"insights", "relapseRisk"}
        first = payload["insights"][0]
        assert {"type", "title", "description", "confidence", "biomarkersInvolved", "recommendations"} <= set(first)
        assert first["type"] in {"critical", "warning", "neutral", "positive"}
