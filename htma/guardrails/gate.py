"""
Interpretation Guardrails Gate
==============================
Every narrative item, rule-generated or produced by an external text
model, passes through apply_guardrails() before reaching a boundary
(ui, pdf, api, storage). The gate does not care where text came from.

Per item:
1. Normalize whitespace; skip empty items
2. Drop forbidden scope                          (removed_count += 1)
3. Drop diagnostic/prescriptive verbs            (removed_count += 1)
4. Soften risky phrasing with a cautious prefix
5. Empty evidence supplied -> limited-data prefix
6. Consumer audience -> redact amounts and timelines

Recommendations always end with exactly one channel disclaimer.

This module MUST NOT:
- Raise on the production path (only the development canary may)
- Return the action trace to a consumer audience
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import is_development
from ..errors import GuardrailsCanaryError
from ..ranges.models import MeasurementStatus, MineralMeasurement, RatioMeasurement
from .disclaimer import DEFAULT_RECOMMENDATION, is_disclaimer_line, recommendation_tail
from .models import (
    Audience,
    GuardrailsContext,
    GuardrailsEvidence,
    GuardrailsResult,
)
from .policy import (
    LIMITED_DATA_PREFIX,
    POLICY_RULES,
    SOFTENERS,
    PolicyAction,
    PolicyRule,
    ensure_educational_tone,
    first_match,
    rules_for,
)

logger = logging.getLogger("htma.guardrails")

INTERPRETATION_GUARDRAILS_VERSION = "1.0.0"
INTERPRETATION_GUARDRAILS_REVIEWED_DATE = "2025-12-21"

SAFE_LANGUAGE_MARKERS: Tuple[str, ...] = SOFTENERS + (
    "educational",
    "pattern",
    "qualified practitioner",
    "not a medical diagnosis",
)


def normalize_whitespace(text: str) -> str:
    return " ".join(str(text).split())


def _apply_evidence(text: str, evidence: Optional[GuardrailsEvidence]) -> str:
    if evidence is None or evidence.total > 0:
        return text
    if text.startswith(LIMITED_DATA_PREFIX):
        return text
    return f"{LIMITED_DATA_PREFIX}{ensure_educational_tone(text)}"


def _apply_redaction(text: str, audience: Audience, rules: Sequence[PolicyRule]) -> Tuple[str, List[str]]:
    applied = []
    for rule in rules_for(PolicyAction.REDACT, tuple(rules)):
        if not rule.applies_to(audience):
            continue
        redacted = rule.regex.sub(rule.replacement or "", text)
        if redacted != text:
            applied.append(rule.rule_id)
            text = redacted
    return text, applied


def _sanitize_list(
    items: Iterable[str],
    kind: str,
    ctx: GuardrailsContext,
    notes: List[str],
    rules: Sequence[PolicyRule],
) -> Tuple[List[str], int]:
    out: List[str] = []
    removed = 0
    rules = tuple(rules)

    for raw in items or []:
        text = normalize_whitespace(raw if raw is not None else "")
        if not text:
            continue

        rule = first_match(text, PolicyAction.DROP_SCOPE, rules)
        if rule is not None:
            removed += 1
            notes.append(f'[removed:{kind}] forbidden scope ({rule.rule_id}) → "{text}"')
            continue

        rule = first_match(text, PolicyAction.DROP_DIAGNOSTIC, rules)
        if rule is not None:
            removed += 1
            notes.append(f'[removed:{kind}] blocked phrase ({rule.rule_id}) → "{text}"')
            continue

        rule = first_match(text, PolicyAction.SOFTEN, rules)
        if rule is not None:
            text = ensure_educational_tone(text)
            notes.append(f"[softened:{kind}] blocked phrase softened ({rule.rule_id})")

        limited = _apply_evidence(text, ctx.evidence)
        if limited != text:
            notes.append(f"[limited-data:{kind}] no supporting evidence signals")
            text = limited

        text, redactions = _apply_redaction(text, ctx.audience, rules)
        for rule_id in redactions:
            notes.append(f"[redacted:{kind}] {rule_id}")

        out.append(text)
    return out, removed


def _is_gate_line(text: str) -> bool:
    return is_disclaimer_line(text) or text == DEFAULT_RECOMMENDATION


def assert_safe_language(texts: Sequence[str]) -> None:
    """
    Development canary: raise if none of the texts carries a
    safe-language marker.
    """
    combined = " ".join(texts).lower()
    if texts and not any(marker in combined for marker in SAFE_LANGUAGE_MARKERS):
        raise GuardrailsCanaryError(
            f"Generated text carries no safe-language marker: {list(texts)[:3]}"
        )


def apply_guardrails(
    insights: Sequence[str],
    recommendations: Sequence[str],
    ctx: Optional[GuardrailsContext] = None,
    rules: Sequence[PolicyRule] = POLICY_RULES,
) -> GuardrailsResult:
    """
    Sanitize narrative text for one boundary.

    Args:
        insights: Narrative insight items
        recommendations: Narrative recommendation items
        ctx: Audience, channel, and optional evidence counts
        rules: Policy table (defaults to the locked table)

    Returns:
        GuardrailsResult whose recommendations end with one disclaimer
    """
    ctx = ctx or GuardrailsContext()
    notes: List[str] = []

    safe_insights, removed_insights = _sanitize_list(insights, "insight", ctx, notes, rules)
    incoming_recs = [
        r for r in (recommendations or [])
        if not _is_gate_line(normalize_whitespace(r or ""))
    ]
    safe_recs, removed_recs = _sanitize_list(incoming_recs, "recommendation", ctx, notes, rules)

    if not safe_recs:
        safe_recs.append(DEFAULT_RECOMMENDATION)
    safe_recs.extend(recommendation_tail(ctx.channel))

    removed_count = removed_insights + removed_recs
    if removed_count:
        logger.warning(
            f"Guardrails removed {removed_count} item(s) (audience={ctx.audience.value}, channel={ctx.channel.value})"
        )

    if is_development():
        assert_safe_language(safe_insights)

    return GuardrailsResult(
        ok=True,
        version=INTERPRETATION_GUARDRAILS_VERSION,
        reviewed_date=INTERPRETATION_GUARDRAILS_REVIEWED_DATE,
        audience=ctx.audience,
        channel=ctx.channel,
        removed_count=removed_count,
        insights=tuple(safe_insights),
        recommendations=tuple(safe_recs),
        notes=tuple(notes) if ctx.audience == Audience.PRACTITIONER else None,
    )


def evidence_from_analysis(
    minerals: Sequence[MineralMeasurement] = (),
    ratios: Sequence[RatioMeasurement] = (),
    flags: Sequence[str] = (),
    trends: Sequence[str] = (),
) -> GuardrailsEvidence:
    """Evidence counts from the deterministic engines' outputs."""
    return GuardrailsEvidence(
        abnormal_minerals=tuple(m.symbol for m in minerals if m.status != MeasurementStatus.OPTIMAL),
        abnormal_ratios=tuple(r.name for r in ratios if r.status != MeasurementStatus.OPTIMAL),
        trends=tuple(trends),
        flags=tuple(flags),
    )
