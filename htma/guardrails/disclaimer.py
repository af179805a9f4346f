"""
Guardrails Disclaimer Copy (LOCKED)

Disclaimer text appended to every sanitized recommendation list.

Rules:
- pdf gets the full legal text, preceded by the TEI reference-interval caveat
- ui, api, and storage get the short text
- Exactly one disclaimer, always last
"""

from .models import Channel

SHORT_DISCLAIMER = "Educational insight only. Not a medical diagnosis."

FULL_DISCLAIMER = (
    "This content is for educational purposes only and is not intended to diagnose, treat, "
    "cure, or prevent any disease, or replace professional medical advice."
)

TEI_REFERENCE_DISCLAIMER = (
    "Important Note: The reference intervals should not be considered as absolute limits "
    "for determining deficiency, toxicity or acceptance."
)

TEI_REFERENCE_NOTE = f"Note: {TEI_REFERENCE_DISCLAIMER} — Trace Elements Inc."

DEFAULT_RECOMMENDATION = (
    "Consider discussing these patterns with a qualified practitioner for personalized context."
)

DISCLAIMERS = frozenset([SHORT_DISCLAIMER, FULL_DISCLAIMER])


def choose_disclaimer(channel: Channel) -> str:
    """
    Full legal text for exported documents, short text everywhere else.

    Args:
        channel: Boundary the recommendations are about to cross

    Returns:
        Locked disclaimer string (never empty)
    """
    if Channel(channel) == Channel.PDF:
        return FULL_DISCLAIMER
    return SHORT_DISCLAIMER


def recommendation_tail(channel: Channel) -> tuple:
    """Lines appended after the sanitized recommendations, in order."""
    if Channel(channel) == Channel.PDF:
        return (TEI_REFERENCE_NOTE, FULL_DISCLAIMER)
    return (choose_disclaimer(channel),)


def is_disclaimer_line(text: str) -> bool:
    """True for lines the gate itself appends (stripped on re-application)."""
    return text in DISCLAIMERS or text == TEI_REFERENCE_NOTE
