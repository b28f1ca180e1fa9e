"""
Biomarker reference table.
Single source of truth for the five monitored blood biomarkers: normal
ranges, units, display colours and descriptive text.

The table is read-only (``MappingProxyType``); engine functions accept any
mapping of ``BiomarkerDefinition`` so they are not tied to these five kinds.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class BiomarkerDefinition:
    id: str
    name: str
    full_name: str
    unit: str
    normal_min: float
    normal_max: float
    color: str = "#888888"
    description: str = ""
    clinical_role: str = ""

    @property
    def range_width(self) -> float:
        return self.normal_max - self.normal_min

    def in_range(self, value: float) -> bool:
        return self.normal_min <= value <= self.normal_max


BIOMARKERS: Mapping[str, BiomarkerDefinition] = MappingProxyType({
    "CRP": BiomarkerDefinition(
        id="CRP",
        name="CRP",
        full_name="C-Reactive Protein",
        unit="mg/L",
        normal_min=0.0,
        normal_max=3.0,
        color="#00CED1",
        description="Systemic inflammation marker elevated during acute psychotic episodes",
        clinical_role="Inflammatory activation",
    ),
    "IL6": BiomarkerDefinition(
        id="IL6",
        name="IL-6",
        full_name="Interleukin-6",
        unit="pg/mL",
        normal_min=0.0,
        normal_max=5.0,
        color="#4169E1",
        description="Pro-inflammatory cytokine correlating with symptom severity and treatment resistance",
        clinical_role="Cytokine signaling",
    ),
    "LEPTIN": BiomarkerDefinition(
        id="LEPTIN",
        name="Leptin",
        full_name="Leptin",
        unit="ng/mL",
        normal_min=2.0,
        normal_max=15.0,
        color="#9370DB",
        description="Adipokine regulating metabolism and immune function, dysregulated in psychosis",
        clinical_role="Metabolic dysfunction",
    ),
    "PROINSULIN": BiomarkerDefinition(
        id="PROINSULIN",
        name="Proinsulin",
        full_name="Proinsulin",
        unit="pmol/L",
        normal_min=2.0,
        normal_max=20.0,
        color="#FF6347",
        description="Precursor to insulin, elevated in schizophrenia indicating beta-cell dysfunction",
        clinical_role="Insulin resistance",
    ),
    "BDNF": BiomarkerDefinition(
        id="BDNF",
        name="BDNF",
        full_name="Brain-Derived Neurotrophic Factor",
        unit="ng/mL",
        normal_min=10.0,
        normal_max=40.0,
        color="#32CD32",
        description="Neurotrophic factor supporting neuroplasticity, reduced in schizophrenia",
        clinical_role="Neurotrophic signaling",
    ),
})

# Risk-level cut-offs, as % of the normal-range width outside the range
RISK_LEVEL_HIGH_PCT = 50.0
RISK_LEVEL_MEDIUM_PCT = 20.0


@dataclass(frozen=True)
class CrossBiomarkerPair:
    """Two kinds that are flagged together when both exceed their trigger."""
    kind_a: str
    trigger_a: float
    kind_b: str
    trigger_b: float
    title: str
    description: str
    confidence: int
    recommendations: Tuple[str, ...]


CROSS_BIOMARKER_PAIRS: Tuple[CrossBiomarkerPair, ...] = (
    CrossBiomarkerPair(
        kind_a="CRP", trigger_a=3.0,
        kind_b="IL6", trigger_b=5.0,
        title="Elevated Inflammation Markers",
        description=(
            "Both CRP and IL-6 show elevated levels, indicating systemic "
            "inflammation which may increase relapse risk."
        ),
        confidence=82,
        recommendations=(
            "Discuss anti-inflammatory strategies with your provider",
            "Consider dietary changes to reduce inflammation",
            "Ensure adequate rest and stress management",
        ),
    ),
    CrossBiomarkerPair(
        kind_a="LEPTIN", trigger_a=15.0,
        kind_b="PROINSULIN", trigger_b=15.0,
        title="Metabolic Dysregulation Detected",
        description=(
            "Elevated Leptin and Proinsulin suggest metabolic dysfunction, "
            "which can affect mental health stability."
        ),
        confidence=78,
        recommendations=(
            "Review diet and exercise routine with healthcare provider",
            "Consider metabolic screening tests",
            "Monitor blood sugar levels if diabetic",
        ),
    ),
)


def get_biomarker(
    biomarker_id: str,
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
) -> Optional[BiomarkerDefinition]:
    """Case-insensitive lookup; ``None`` for unknown kinds."""
    if not biomarker_id:
        return None
    return definitions.get(biomarker_id.upper())


def get_risk_level(
    biomarker_id: str,
    value: float,
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
) -> str:
    """Classify a single reading as ``low``, ``medium`` or ``high`` risk.

    The distance outside the normal range is measured as a percentage of
    the range width.  Readings inside the range, and unknown kinds, are
    always ``low``.
    """
    biomarker = get_biomarker(biomarker_id, definitions)
    if biomarker is None or biomarker.in_range(value):
        return "low"

    width = biomarker.range_width
    if value < biomarker.normal_min:
        deviation = biomarker.normal_min - value
    else:
        deviation = value - biomarker.normal_max
    if width <= 0:
        return "high"

    pct = deviation / width * 100
    if pct > RISK_LEVEL_HIGH_PCT:
        return "high"
    if pct > RISK_LEVEL_MEDIUM_PCT:
        return "medium"
    return "low"


def format_biomarker_value(
    biomarker_id: str,
    value: float,
    definitions: Mapping[str, BiomarkerDefinition] = BIOMARKERS,
) -> str:
    biomarker = get_biomarker(biomarker_id, definitions)
    if biomarker is None:
        return f"{value:.1f}"
    return f"{value:.1f} {biomarker.unit}"
