"""
Oxidation Regression Cases

Hand-traced reference inputs for the classifier. Each case records the
archetype and confidence the rule order must produce.
"""

from typing import List, NamedTuple

from .models import OxidationConfidence, OxidationType


class OxidationCase(NamedTuple):
    case_id: str
    description: str
    values: dict
    expected_type: OxidationType
    expected_confidence: OxidationConfidence
    note: str


OXIDATION_REGRESSION_CASES: List[OxidationCase] = [
    # === FAST ===
    OxidationCase(
        "FAST_01", "Classic fast oxidizer",
        {"Ca": 30, "Mg": 5, "Na": 55, "K": 20},
        OxidationType.FAST, OxidationConfidence.HIGH,
        "Ca low, Na high, K high, Ca/K=1.5 (fast): 4 fast votes",
    ),
    OxidationCase(
        "FAST_02", "Fast oxidizer with high metabolic activity",
        {"Ca": 28, "Mg": 6, "Na": 60, "K": 22},
        OxidationType.FAST, OxidationConfidence.HIGH,
        "Ca/K=1.27 (fast), Ca/Mg=4.67 (fast), Na/K=2.73 (optimal): 5 fast votes",
    ),
    OxidationCase(
        "FAST_03", "Fast oxidizer, borderline low Ca/Mg",
        {"Ca": 32, "Mg": 5.5, "Na": 52, "K": 19},
        OxidationType.FAST, OxidationConfidence.HIGH,
        "Ca/K=1.68 (fast), Ca/Mg=5.82 (fast): 5 fast votes",
    ),
    # === SLOW ===
    OxidationCase(
        "SLOW_01", "Classic slow oxidizer",
        {"Ca": 60, "Mg": 5, "Na": 18, "K": 6},
        OxidationType.SLOW, OxidationConfidence.HIGH,
        "Ca high, Na low, K low, Ca/Mg=12 (slow) vs Na/K=3 (fast): 4 slow, 1 fast",
    ),
    OxidationCase(
        "SLOW_02", "Slow oxidizer with low stress response",
        {"Ca": 65, "Mg": 4.5, "Na": 15, "K": 5},
        OxidationType.SLOW, OxidationConfidence.HIGH,
        "Ca/K=13 (slow), Ca/Mg=14.4 (slow): 5 slow, 1 fast",
    ),
    OxidationCase(
        "SLOW_03", "Calcium dominance pattern",
        {"Ca": 58, "Mg": 4.8, "Na": 22, "K": 7},
        OxidationType.SLOW, OxidationConfidence.MODERATE,
        "Ca high, K low, Ca/Mg=12.1 (slow) vs Na/K=3.14 (fast): 3 slow, 1 fast",
    ),
    # === BALANCED ===
    OxidationCase(
        "BALANCED_01", "All minerals optimal",
        {"Ca": 45, "Mg": 5.5, "Na": 35, "K": 12},
        OxidationType.BALANCED, OxidationConfidence.HIGH,
        "Na/K=2.92 (fast) but 2 of 3 ratios optimal",
    ),
    OxidationCase(
        "BALANCED_02", "Slight variations within range",
        {"Ca": 42, "Mg": 6, "Na": 38, "K": 14},
        OxidationType.BALANCED, OxidationConfidence.HIGH,
        "Every indicator optimal",
    ),
    OxidationCase(
        "BALANCED_03", "Upper optimal ranges",
        {"Ca": 50, "Mg": 6.5, "Na": 45, "K": 16},
        OxidationType.BALANCED, OxidationConfidence.HIGH,
        "Na/K=2.81 (fast) but 2 of 3 ratios optimal",
    ),
    # === MIXED ===
    OxidationCase(
        "MIXED_01", "Conflicting Ca and Na signals",
        {"Ca": 60, "Mg": 6, "Na": 55, "K": 18},
        OxidationType.MIXED, OxidationConfidence.MODERATE,
        "Ca high (slow), Na high (fast), Na/K=3.06 (fast): 1 slow, 2 fast",
    ),
    OxidationCase(
        "MIXED_02", "One slow and one fast mineral",
        {"Ca": 60, "Mg": 6, "Na": 40, "K": 20},
        OxidationType.MIXED, OxidationConfidence.LOW,
        "Ca high (slow), K high (fast), all ratios optimal: 1 slow, 1 fast",
    ),
    # === BOUNDARY ===
    OxidationCase(
        "BOUNDARY_04", "Na/K just under the fast threshold",
        {"Ca": 36, "Mg": 6, "Na": 47, "K": 16.8},
        OxidationType.BALANCED, OxidationConfidence.HIGH,
        "Na/K=2.798, Ca/Mg=6.0 exactly: both flagged as near-threshold",
    ),
    OxidationCase(
        "BOUNDARY_05", "Ca/Mg exactly at the slow threshold",
        {"Ca": 50, "Mg": 5.0, "Na": 25, "K": 10},
        OxidationType.BALANCED, OxidationConfidence.HIGH,
        "Ca/Mg=10.0 is not > 10, so optimal; flagged as near-threshold",
    ),
    # === EDGE ===
    OxidationCase(
        "EDGE_01", "High calcium but optimal ratios",
        {"Ca": 58, "Mg": 7, "Na": 35, "K": 13},
        OxidationType.BALANCED, OxidationConfidence.HIGH,
        "Ca high, 3 of 4 minerals and all ratios optimal",
    ),
    OxidationCase(
        "EDGE_02", "Low-end minerals, balanced relationships",
        {"Ca": 36, "Mg": 4.2, "Na": 22, "K": 9},
        OxidationType.BALANCED, OxidationConfidence.HIGH,
        "Every indicator optimal",
    ),
    OxidationCase(
        "EDGE_03", "Multiple borderline values",
        {"Ca": 54.9, "Mg": 3.95, "Na": 50.1, "K": 17.9},
        OxidationType.MIXED, OxidationConfidence.LOW,
        "Na high (fast), Ca/Mg=13.9 (slow), Mg low casts no vote: 1 slow, 1 fast",
    ),
]


def get_cases_by_type(oxidation_type: OxidationType) -> List[OxidationCase]:
    return [c for c in OXIDATION_REGRESSION_CASES if c.expected_type == oxidation_type]


def get_boundary_cases() -> List[OxidationCase]:
    return [c for c in OXIDATION_REGRESSION_CASES if c.case_id.startswith("BOUNDARY_")]


def get_edge_cases() -> List[OxidationCase]:
    return [c for c in OXIDATION_REGRESSION_CASES if c.case_id.startswith("EDGE_")]
