"""
Tests for the demo sample-data generator.
"""
import sys
import os
from collections import Counter
from datetime import datetime, timezone

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from risk_aggregator import generate_insights
from sample_data import (
    DEMO_RANGES,
    generate_biomarker_readings,
    generate_mood_assessments,
    generate_sample_data,
    generate_value,
)

NOW = datetime(2026, 9, 30, 12, 0, tzinfo=timezone.utc)


class TestGenerateValue:

    def test_stays_within_bounds(self):
        rng = np.random.default_rng(0)
        for trend in (-2.0, -0.3, 0.0, 0.3, 2.0):
            for _ in range(100):
                v = generate_value(rng, 2.0, 8.0, trend, noise=0.5)
                assert 2.0 <= v <= 8.0

    def test_trend_shifts_centre(self):
        rng = np.random.default_rng(1)
        up = np.mean([generate_value(rng, 0.0, 10.0, 0.5) for _ in range(200)])
        down = np.mean([generate_value(rng, 0.0, 10.0, -0.5) for _ in range(200)])
        assert up > down


class TestBiomarkerReadings:

    def test_one_reading_per_kind_per_day(self):
        readings = generate_biomarker_readings(10, True, np.random.default_rng(3), NOW)
        assert len(readings) == 10 * len(DEMO_RANGES)
        counts = Counter(r.biomarker_type for r in readings)
        assert set(counts) == set(DEMO_RANGES)
        assert set(counts.values()) == {10}

    def test_values_within_demo_ranges(self):
        readings = generate_biomarker_readings(30, True, np.random.default_rng(4), NOW)
        for r in readings:
            low, high = DEMO_RANGES[r.biomarker_type]
            assert low <= r.value <= high

    def test_zero_days(self):
        assert generate_biomarker_readings(0, True, np.random.default_rng(5), NOW) == []


class TestMoodAssessments:

    def test_one_or_two_per_day_morning_and_evening(self):
        assessments = generate_mood_assessments(20, True, np.random.default_rng(6), NOW)
        per_day = Counter(a.timestamp.date() for a in assessments)
        assert len(per_day) == 20
        assert set(per_day.values()) <= {1, 2}
        assert {a.timestamp.hour for a in assessments} <= {8, 20}

    def test_scores_are_whole_numbers_in_range(self):
        assessments = generate_mood_assessments(30, True, np.random.default_rng(7), NOW)
        for a in assessments:
            assert 3 <= a.mood_score <= 9
            assert 2 <= a.anxiety_score <= 8
            assert 2 <= a.stress_score <= 8
            assert float(a.mood_score).is_integer()


class TestGenerateSampleData:

    def test_seed_is_reproducible(self):
        a = generate_sample_data(15, True, seed=42, now=NOW)
        b = generate_sample_data(15, True, seed=42, now=NOW)
        assert a == b

    def test_different_seeds_differ(self):
        a = generate_sample_data(15, True, seed=1, now=NOW)
        b = generate_sample_data(15, True, seed=2, now=NOW)
        assert a != b

    def test_without_patterns(self):
        data = generate_sample_data(5, include_patterns=False, seed=9, now=NOW)
        assert len(data.biomarker_readings) == 5 * len(DEMO_RANGES)
        assert data.mood_assessments

    def test_feeds_the_engine(self):
        data = generate_sample_data(30, True, seed=11, now=NOW)
        report = generate_insights(data.biomarker_readings, data.mood_assessments)
        assert 0 <= report.relapse_risk <= 100

    def test_wire_shape(self):
        payload = generate_sample_data(2, True, seed=0, now=NOW).model_dump(mode="json", by_alias=True)
        assert set(payload) == {"biomarkerReadings", "moodAssessments"}
        assert set(payload["biomarkerReadings"][0]) == {"biomarkerType", "value", "timestamp"}
