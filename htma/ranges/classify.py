"""
HTMA Status Classification
==========================
The classification primitive every engine builds on.

Rules:
- Minerals use a buffer zone: Low below min x 0.7, High above max x 1.3
- Ratios use the raw ideal bounds, no buffer
- A zero ratio (zero denominator) is Low by construction
- Missing readings count as 0; callers must resolve absence upstream

Version: ranges_v1
"""

import logging
from typing import Dict, Mapping, Optional, Tuple

from .models import (
    AdditionalElement,
    AdditionalElementReference,
    MeasurementStatus,
    MineralMeasurement,
    RangeKind,
    RatioMeasurement,
    ReferenceRangeVersion,
    ToxicElement,
    ToxicElementReference,
    ToxicElementStatus,
)

logger = logging.getLogger("htma.ranges")

LOW_THRESHOLD_MULTIPLIER = 0.7
HIGH_THRESHOLD_MULTIPLIER = 1.3

# Full mineral names accepted from upstream parsers
MINERAL_SYMBOLS = {
    "calcium": "Ca",
    "magnesium": "Mg",
    "sodium": "Na",
    "potassium": "K",
    "phosphorus": "P",
    "copper": "Cu",
    "zinc": "Zn",
    "iron": "Fe",
    "manganese": "Mn",
    "chromium": "Cr",
    "selenium": "Se",
    "boron": "B",
    "cobalt": "Co",
    "molybdenum": "Mo",
    "sulfur": "S",
}

STATUS_COLORS = {
    MeasurementStatus.LOW: "#3b82f6",
    MeasurementStatus.OPTIMAL: "#10b981",
    MeasurementStatus.HIGH: "#ef4444",
}


def classify(
    value: float,
    min_ideal: float,
    max_ideal: float,
    kind: RangeKind = RangeKind.MINERAL,
) -> MeasurementStatus:
    """
    Classify a value against an ideal range.

    The mineral/ratio asymmetry is deliberate and must be preserved.
    """
    if kind == RangeKind.RATIO:
        if value == 0 or value < min_ideal:
            return MeasurementStatus.LOW
        if value > max_ideal:
            return MeasurementStatus.HIGH
        return MeasurementStatus.OPTIMAL

    if value < min_ideal * LOW_THRESHOLD_MULTIPLIER:
        return MeasurementStatus.LOW
    if value > max_ideal * HIGH_THRESHOLD_MULTIPLIER:
        return MeasurementStatus.HIGH
    return MeasurementStatus.OPTIMAL


def calculate_ratio(numerator: float, denominator: float) -> float:
    """Zero denominator yields 0 (a numeric guard, not a clinical signal)."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def normalize_values(values: Optional[Mapping[str, Optional[float]]]) -> Dict[str, float]:
    """
    Map full mineral names to symbols and None to 0.

    Unknown keys pass through untouched (toxic/additional elements).
    """
    normalized: Dict[str, float] = {}
    for key, raw in (values or {}).items():
        symbol = MINERAL_SYMBOLS.get(key.lower(), key) if isinstance(key, str) else key
        normalized[symbol] = float(raw) if raw is not None else 0.0
    return normalized


def measure_minerals(
    values: Mapping[str, Optional[float]],
    version: ReferenceRangeVersion,
) -> Tuple[MineralMeasurement, ...]:
    """Classify every tracked mineral of a version, in display order."""
    normalized = normalize_values(values)
    measurements = []
    for rng in sorted(version.mineral_ranges, key=lambda r: r.display_order):
        value = normalized.get(rng.symbol, 0.0)
        measurements.append(MineralMeasurement(
            symbol=rng.symbol,
            name=rng.name,
            value=value,
            unit=rng.unit,
            min_ideal=rng.min_ideal,
            max_ideal=rng.max_ideal,
            status=classify(value, rng.min_ideal, rng.max_ideal, RangeKind.MINERAL),
        ))
    return tuple(measurements)


def compute_ratio_values(
    values: Mapping[str, Optional[float]],
    version: ReferenceRangeVersion,
) -> Dict[str, float]:
    normalized = normalize_values(values)
    return {
        rng.name: calculate_ratio(
            normalized.get(rng.numerator, 0.0),
            normalized.get(rng.denominator, 0.0),
        )
        for rng in version.ratio_ranges
    }


def measure_ratios(
    values: Mapping[str, Optional[float]],
    version: ReferenceRangeVersion,
    ratio_values: Optional[Mapping[str, float]] = None,
) -> Tuple[RatioMeasurement, ...]:
    """
    Classify every tracked ratio of a version, in display order.

    Supplied ratio_values take precedence; absent ones are computed
    from the mineral values.
    """
    computed = compute_ratio_values(values, version)
    supplied = dict(ratio_values or {})
    measurements = []
    for rng in sorted(version.ratio_ranges, key=lambda r: r.display_order):
        raw = supplied.get(rng.name)
        value = float(raw) if raw is not None else computed[rng.name]
        measurements.append(RatioMeasurement(
            name=rng.name,
            numerator=rng.numerator,
            denominator=rng.denominator,
            value=value,
            min_ideal=rng.min_ideal,
            max_ideal=rng.max_ideal,
            status=classify(value, rng.min_ideal, rng.max_ideal, RangeKind.RATIO),
            clinical_significance=rng.clinical_significance,
        ))
    return tuple(measurements)


def non_optimal_ratios(
    values: Mapping[str, Optional[float]],
    version: ReferenceRangeVersion,
) -> Tuple[RatioMeasurement, ...]:
    return tuple(r for r in measure_ratios(values, version) if r.status != MeasurementStatus.OPTIMAL)


def has_required_minerals_for_ratios(
    values: Mapping[str, Optional[float]],
    version: ReferenceRangeVersion,
) -> bool:
    """True when every ratio input was actually provided (not None/absent)."""
    required = {r.numerator for r in version.ratio_ranges} | {r.denominator for r in version.ratio_ranges}
    provided = {
        MINERAL_SYMBOLS.get(k.lower(), k)
        for k, v in (values or {}).items()
        if v is not None
    }
    return required.issubset(provided)


# ============================================================
# DISPLAY-ONLY ELEMENTS
# ============================================================

def measure_toxic_elements(
    values: Mapping[str, Optional[float]],
    references: Tuple[ToxicElementReference, ...],
) -> Tuple[ToxicElement, ...]:
    """Only elements present in the input are reported."""
    normalized = normalize_values(values)
    elements = []
    for ref in sorted(references, key=lambda r: r.display_order):
        if ref.symbol not in normalized:
            continue
        value = normalized[ref.symbol]
        status = ToxicElementStatus.ELEVATED if value > ref.reference_high else ToxicElementStatus.WITHIN
        elements.append(ToxicElement(
            symbol=ref.symbol,
            name=ref.name,
            value=value,
            reference_high=ref.reference_high,
            unit=ref.unit,
            status=status,
        ))
    return tuple(elements)


def measure_additional_elements(
    values: Mapping[str, Optional[float]],
    references: Tuple[AdditionalElementReference, ...],
) -> Tuple[AdditionalElement, ...]:
    normalized = normalize_values(values)
    elements = []
    for ref in sorted(references, key=lambda r: r.display_order):
        if ref.symbol not in normalized:
            continue
        value = normalized[ref.symbol]
        elements.append(AdditionalElement(
            symbol=ref.symbol,
            name=ref.name,
            value=value,
            unit=ref.unit,
            detected=value > 0,
        ))
    return tuple(elements)
