"""
MindSense Analyze — command-line runner for the analytics engine
=================================================================
Reads one subject's series from a JSON file (or generates demo data) and
prints the engine output as JSON.

Input file shape:
    {"biomarkerReadings": [...], "moodAssessments": [...]}

Usage:
    python analyze.py --input data.json            # Insights + relapse risk
    python analyze.py --input data.json --matrix   # Correlation matrix only
    python analyze.py --input data.json --all      # Matrix + significant pairs + insights
    python analyze.py --demo --days 30 --seed 7    # Same, over generated sample data
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Tuple

import config

logging.basicConfig(
    level=config.LOG_LEVEL,
    format=config.LOG_FORMAT,
    datefmt=config.LOG_DATEFMT,
    stream=sys.stderr,
)
log = logging.getLogger("analyze")

from correlation_engine import (
    correlate_all_pairs,
    find_significant_correlations,
    generate_correlation_matrix,
)
from risk_aggregator import generate_insights
from routes.helpers import parse_biomarker_rows, parse_mood_rows
from sample_data import generate_sample_data
from schemas import BiomarkerReading, MoodAssessment


def load_series(path: str) -> Tuple[List[BiomarkerReading], List[MoodAssessment]]:
    """Read a JSON file holding ``biomarkerReadings`` and ``moodAssessments``."""
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: expected a JSON object at the top level")
    readings = parse_biomarker_rows(payload.get("biomarkerReadings") or [])
    moods = parse_mood_rows(payload.get("moodAssessments") or [])
    log.info("Loaded %d readings, %d assessments from %s", len(readings), len(moods), path)
    return readings, moods


def run_analysis(
    readings: List[BiomarkerReading],
    moods: List[MoodAssessment],
    matrix: bool = False,
    insights: bool = True,
    significance_level: float = config.SIGNIFICANCE_LEVEL,
) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if matrix:
        out["correlationMatrix"] = generate_correlation_matrix(readings, moods).model_dump(
            mode="json", by_alias=True
        )
        significant = find_significant_correlations(correlate_all_pairs(readings, moods), significance_level)
        out["significantCorrelations"] = [
            c.model_dump(mode="json", by_alias=True) for c in significant
        ]
    if insights:
        out.update(generate_insights(readings, moods).model_dump(
            mode="json", by_alias=True, exclude_none=True
        ))
    return out


# ═══════════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════════

def main(argv=None):
    parser = argparse.ArgumentParser(
        description="MindSense biomarker/mood analytics"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", metavar="PATH",
                        help="JSON file with biomarkerReadings and moodAssessments")
    source.add_argument("--demo", action="store_true",
                        help="Analyze generated sample data instead of a file")
    parser.add_argument("--matrix", action="store_true",
                        help="Correlation matrix only")
    parser.add_argument("--insights", action="store_true",
                        help="Insights and relapse risk only (default)")
    parser.add_argument("--all", action="store_true",
                        help="Matrix, significant correlations and insights")
    parser.add_argument("--days", type=int, default=config.SAMPLE_DATA_DAYS,
                        help=f"Days of demo history (default: {config.SAMPLE_DATA_DAYS})")
    parser.add_argument("--no-patterns", action="store_true",
                        help="Demo data without the worsening trends")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for reproducible demo data")
    args = parser.parse_args(argv)

    if args.demo:
        dataset = generate_sample_data(args.days, not args.no_patterns, args.seed)
        readings, moods = dataset.biomarker_readings, dataset.mood_assessments
    else:
        try:
            readings, moods = load_series(args.input)
        except (OSError, ValueError) as e:
            log.error("Could not read %s: %s", args.input, e)
            sys.exit(1)

    want_matrix = args.matrix or args.all
    want_insights = args.insights or args.all or not args.matrix
    result = run_analysis(readings, moods, matrix=want_matrix, insights=want_insights)
    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")
    sys.exit(0)


if __name__ == "__main__":
    main()
