"""
HTMA Oxidation Pattern Classifier
=================================
Rule-based archetype inference over Ca, Mg, Na, K.

Signals (7):
- 4 mineral statuses against the classifier's own locked ranges
- 3 ratio signals: Ca/K, Na/K, Ca/Mg

Votes: Ca high / Na low / K low -> slow; Ca low / Na high / K high -> fast;
each ratio votes its signal. Mg is reported but does not vote.

Rule order:
1. Balanced  - >=3 of 4 minerals optimal AND >=2 of 3 ratios optimal
2. Mixed     - both sides voted and differ by <=1
3. Slow/Fast - side with >=3 votes and a strict majority
4. Mixed     - anything unresolved

This module MUST NOT:
- Raise on missing/zero/negative input (returns a low-confidence fallback)
- Build the explanation from anything but the classifying signals

Version: 1.0.0
"""

import logging
import math
from typing import List, Mapping, NamedTuple, Optional, Tuple

from .models import (
    CoreMineralValues,
    IndicatorStatus,
    OxidationClassification,
    OxidationConfidence,
    OxidationIndicators,
    OxidationMetadata,
    OxidationRatioValues,
    OxidationType,
    RatioSignal,
    RatioSignals,
)

logger = logging.getLogger("htma.oxidation")

OXIDATION_ENGINE_VERSION = "1.0.0"
OXIDATION_ENGINE_REVIEWED_DATE = "2025-12-21"

PROXIMITY_PERCENT = 0.05


# ============================================================
# LOCKED RANGES (TEI-aligned, classifier lens)
# ============================================================

MINERAL_RANGES = {
    "Ca": (35.0, 55.0),
    "Mg": (4.0, 7.0),
    "Na": (20.0, 50.0),
    "K": (8.0, 18.0),
}


class RatioRule(NamedTuple):
    key: str
    label: str
    fast_threshold: float
    slow_threshold: float
    fast_when_below: bool


RATIO_RULES: Tuple[RatioRule, ...] = (
    RatioRule("ca_k", "Ca/K", 2.5, 10.0, True),     # <2.5 fast, >10 slow
    RatioRule("na_k", "Na/K", 2.8, 1.8, False),     # >2.8 fast, <1.8 slow
    RatioRule("ca_mg", "Ca/Mg", 6.0, 10.0, True),   # <6 fast, >10 slow
)

# mineral -> (status that votes slow, status that votes fast)
MINERAL_VOTES = {
    "Ca": (IndicatorStatus.HIGH, IndicatorStatus.LOW),
    "Na": (IndicatorStatus.LOW, IndicatorStatus.HIGH),
    "K": (IndicatorStatus.LOW, IndicatorStatus.HIGH),
}

INTERPRETATIONS = {
    OxidationType.SLOW: "Pattern commonly associated with slower metabolic activity and reduced stress response.",
    OxidationType.FAST: "Pattern commonly associated with higher metabolic activity and increased sympathetic drive.",
    OxidationType.MIXED: "Mixed metabolic signals suggesting adaptive or transitional patterns.",
    OxidationType.BALANCED: "Balanced mineral relationships with no dominant oxidation pattern.",
}

INSUFFICIENT_DATA_INTERPRETATION = "Classification unavailable - insufficient mineral data"

TYPE_LABELS = {
    OxidationType.FAST: "Fast Oxidizer",
    OxidationType.SLOW: "Slow Oxidizer",
    OxidationType.MIXED: "Mixed Oxidizer",
    OxidationType.BALANCED: "Balanced Oxidizer",
}

CONFIDENCE_DESCRIPTIONS = {
    OxidationConfidence.HIGH: "Strong agreement across multiple indicators",
    OxidationConfidence.MODERATE: "Partial agreement across indicators",
    OxidationConfidence.LOW: "Conflicting or unclear indicators",
}


# ============================================================
# SIGNALS
# ============================================================

def mineral_status(symbol: str, value: float) -> IndicatorStatus:
    low, high = MINERAL_RANGES[symbol]
    if value < low:
        return IndicatorStatus.LOW
    if value > high:
        return IndicatorStatus.HIGH
    return IndicatorStatus.OPTIMAL


def ratio_signal(rule: RatioRule, ratio: float) -> RatioSignal:
    if rule.fast_when_below:
        if ratio < rule.fast_threshold:
            return RatioSignal.FAST
        if ratio > rule.slow_threshold:
            return RatioSignal.SLOW
    else:
        if ratio > rule.fast_threshold:
            return RatioSignal.FAST
        if ratio < rule.slow_threshold:
            return RatioSignal.SLOW
    return RatioSignal.OPTIMAL


def _optimal_band(rule: RatioRule) -> str:
    low, high = sorted((rule.fast_threshold, rule.slow_threshold))
    return f"{low:g}-{high:g}"


def _signal_phrase(rule: RatioRule, signal: RatioSignal, ratio: float) -> str:
    if signal == RatioSignal.OPTIMAL:
        return f"{rule.label} ratio {ratio:.1f} is optimal ({_optimal_band(rule)})"
    threshold = rule.fast_threshold if signal == RatioSignal.FAST else rule.slow_threshold
    below = (signal == RatioSignal.FAST) == rule.fast_when_below
    return f"{rule.label} ratio {ratio:.1f} indicates {signal.value} ({'<' if below else '>'} {threshold:g})"


def tally_votes(
    statuses: Mapping[str, IndicatorStatus],
    signals: Mapping[str, RatioSignal],
) -> Tuple[int, int]:
    """Returns (slow_votes, fast_votes)."""
    slow = fast = 0
    for symbol, (slow_status, fast_status) in MINERAL_VOTES.items():
        if statuses[symbol] == slow_status:
            slow += 1
        elif statuses[symbol] == fast_status:
            fast += 1
    for signal in signals.values():
        if signal == RatioSignal.SLOW:
            slow += 1
        elif signal == RatioSignal.FAST:
            fast += 1
    return slow, fast


def resolve_type(
    statuses: Mapping[str, IndicatorStatus],
    signals: Mapping[str, RatioSignal],
) -> Tuple[OxidationType, int]:
    """Returns (type, alignment score)."""
    optimal_minerals = sum(1 for s in statuses.values() if s == IndicatorStatus.OPTIMAL)
    optimal_ratios = sum(1 for s in signals.values() if s == RatioSignal.OPTIMAL)
    if optimal_minerals >= 3 and optimal_ratios >= 2:
        return OxidationType.BALANCED, 6

    slow, fast = tally_votes(statuses, signals)
    if slow > 0 and fast > 0 and abs(slow - fast) <= 1:
        return OxidationType.MIXED, max(slow, fast)
    if slow >= 3 and slow > fast:
        return OxidationType.SLOW, slow
    if fast >= 3 and fast > slow:
        return OxidationType.FAST, fast
    return OxidationType.MIXED, max(slow, fast)


def calculate_confidence(alignment_score: int, oxidation_type: OxidationType) -> OxidationConfidence:
    if oxidation_type == OxidationType.BALANCED:
        return OxidationConfidence.HIGH if alignment_score >= 6 else OxidationConfidence.MODERATE
    if alignment_score >= 4:
        return OxidationConfidence.HIGH
    if alignment_score >= 2:
        return OxidationConfidence.MODERATE
    return OxidationConfidence.LOW


def build_explanation(
    oxidation_type: OxidationType,
    statuses: Mapping[str, IndicatorStatus],
    signals: Mapping[str, RatioSignal],
    ratios: Mapping[str, float],
) -> str:
    parts = [f"Classified as {oxidation_type.value.upper()} oxidizer based on:"]
    parts.append("Ratio signals: " + "; ".join(
        _signal_phrase(rule, signals[rule.key], ratios[rule.key]) for rule in RATIO_RULES
    ))

    mineral_signals = []
    for symbol, (slow_status, fast_status) in MINERAL_VOTES.items():
        status = statuses[symbol]
        if status == IndicatorStatus.OPTIMAL:
            continue
        side = "slow" if status == slow_status else "fast"
        word = "elevated" if status == IndicatorStatus.HIGH else "low"
        mineral_signals.append(f"{symbol} {word} (supports {side})")
    if mineral_signals:
        parts.append("Mineral status: " + "; ".join(mineral_signals))

    if oxidation_type == OxidationType.BALANCED:
        parts.append("All or most indicators within optimal ranges")
    elif oxidation_type == OxidationType.MIXED:
        parts.append("Conflicting signals suggest adaptive or transitional metabolic state")
    return ". ".join(parts) + "."


def detect_threshold_proximity(ratios: Mapping[str, float]) -> List[str]:
    """Flag ratios within 5% (relative) of any classification boundary."""
    warnings = []
    for rule in RATIO_RULES:
        value = ratios[rule.key]
        bounds = sorted(
            (("fast", rule.fast_threshold), ("slow", rule.slow_threshold)),
            key=lambda bound: bound[1],
        )
        for side, threshold in bounds:
            if abs(value - threshold) / threshold <= PROXIMITY_PERCENT:
                warnings.append(
                    f"{rule.label} ratio ({value:.2f}) is within 5% of {side} threshold ({threshold:g})"
                )
    return warnings


# ============================================================
# PUBLIC API
# ============================================================

def _insufficient(ca: float, mg: float, na: float, k: float) -> OxidationClassification:
    logger.warning("Oxidation classification skipped: invalid or missing mineral values")
    return OxidationClassification(
        type=OxidationType.BALANCED,
        confidence=OxidationConfidence.LOW,
        indicators=OxidationIndicators(
            calcium_status=IndicatorStatus.OPTIMAL,
            magnesium_status=IndicatorStatus.OPTIMAL,
            sodium_status=IndicatorStatus.OPTIMAL,
            potassium_status=IndicatorStatus.OPTIMAL,
            ratio_signals=RatioSignals(
                ca_k=RatioSignal.OPTIMAL,
                na_k=RatioSignal.OPTIMAL,
                ca_mg=RatioSignal.OPTIMAL,
            ),
        ),
        interpretation=INSUFFICIENT_DATA_INTERPRETATION,
        explanation=(
            "Cannot classify oxidation type: insufficient data. One or more required "
            "minerals (Ca, Mg, Na, K) are missing or invalid"
        ),
        threshold_warnings=("Incomplete mineral data provided",),
        insufficient_data=True,
        semantics_version=OXIDATION_ENGINE_VERSION,
        metadata=OxidationMetadata(
            mineral_values=CoreMineralValues(ca=ca, mg=mg, na=na, k=k),
            ratio_values=OxidationRatioValues(ca_k=0, na_k=0, ca_mg=0),
            alignment_score=0,
        ),
    )


def classify_oxidation(values: Mapping[str, Optional[float]]) -> OxidationClassification:
    """
    Classify the oxidation pattern from Ca, Mg, Na, K.

    Extra keys in values are ignored.
    """
    core = {}
    for symbol in ("Ca", "Mg", "Na", "K"):
        raw = values.get(symbol)
        value = float(raw) if raw is not None else 0.0
        # NaN and infinities count as missing
        core[symbol] = value if math.isfinite(value) else 0.0
    ca, mg, na, k = core["Ca"], core["Mg"], core["Na"], core["K"]

    if min(ca, mg, na, k) <= 0:
        return _insufficient(ca, mg, na, k)

    ratios = {"ca_k": ca / k, "na_k": na / k, "ca_mg": ca / mg}
    statuses = {symbol: mineral_status(symbol, value) for symbol, value in core.items()}
    signals = {rule.key: ratio_signal(rule, ratios[rule.key]) for rule in RATIO_RULES}

    oxidation_type, alignment = resolve_type(statuses, signals)
    confidence = calculate_confidence(alignment, oxidation_type)

    return OxidationClassification(
        type=oxidation_type,
        confidence=confidence,
        indicators=OxidationIndicators(
            calcium_status=statuses["Ca"],
            magnesium_status=statuses["Mg"],
            sodium_status=statuses["Na"],
            potassium_status=statuses["K"],
            ratio_signals=RatioSignals(**signals),
        ),
        interpretation=INTERPRETATIONS[oxidation_type],
        explanation=build_explanation(oxidation_type, statuses, signals, ratios),
        threshold_warnings=tuple(detect_threshold_proximity(ratios)),
        semantics_version=OXIDATION_ENGINE_VERSION,
        metadata=OxidationMetadata(
            mineral_values=CoreMineralValues(
                ca=round(ca, 1), mg=round(mg, 1), na=round(na, 1), k=round(k, 1),
            ),
            ratio_values=OxidationRatioValues(
                ca_k=round(ratios["ca_k"], 1),
                na_k=round(ratios["na_k"], 1),
                ca_mg=round(ratios["ca_mg"], 1),
            ),
            alignment_score=alignment,
        ),
    )


def get_oxidation_type_label(oxidation_type: OxidationType) -> str:
    return TYPE_LABELS[OxidationType(oxidation_type)]


def get_confidence_description(confidence: OxidationConfidence) -> str:
    return CONFIDENCE_DESCRIPTIONS[OxidationConfidence(confidence)]
