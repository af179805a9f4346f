"""
HTMA Interpretation Guardrails Module
=====================================
Deterministic, audience- and channel-aware sanitization for every
narrative string that leaves the system.

Components:
- policy.py: Ordered rule table (drop, soften, redact)
- disclaimer.py: Locked disclaimer copy per channel
- gate.py: apply_guardrails() and the development canary
- admin.py: API endpoints

Usage:
    from htma.guardrails import apply_guardrails, GuardrailsContext, Channel

    result = apply_guardrails(insights, recommendations, GuardrailsContext(channel=Channel.PDF))
"""

from .models import (
    Audience,
    Channel,
    GuardrailsContext,
    GuardrailsEvidence,
    GuardrailsResult,
)

from .disclaimer import (
    DEFAULT_RECOMMENDATION,
    FULL_DISCLAIMER,
    SHORT_DISCLAIMER,
    TEI_REFERENCE_NOTE,
    choose_disclaimer,
    is_disclaimer_line,
)

from .policy import (
    LIMITED_DATA_PREFIX,
    POLICY_RULES,
    SOFTENING_PREFIX,
    PolicyAction,
    PolicyRule,
    describe_policy,
)

from .gate import (
    INTERPRETATION_GUARDRAILS_REVIEWED_DATE,
    INTERPRETATION_GUARDRAILS_VERSION,
    SAFE_LANGUAGE_MARKERS,
    apply_guardrails,
    assert_safe_language,
    evidence_from_analysis,
)

from .admin import router as guardrails_router

__all__ = [
    # Models
    "Audience",
    "Channel",
    "GuardrailsContext",
    "GuardrailsEvidence",
    "GuardrailsResult",
    # Copy
    "DEFAULT_RECOMMENDATION",
    "FULL_DISCLAIMER",
    "SHORT_DISCLAIMER",
    "TEI_REFERENCE_NOTE",
    "choose_disclaimer",
    "is_disclaimer_line",
    # Policy
    "LIMITED_DATA_PREFIX",
    "POLICY_RULES",
    "SOFTENING_PREFIX",
    "PolicyAction",
    "PolicyRule",
    "describe_policy",
    # Gate
    "INTERPRETATION_GUARDRAILS_REVIEWED_DATE",
    "INTERPRETATION_GUARDRAILS_VERSION",
    "SAFE_LANGUAGE_MARKERS",
    "apply_guardrails",
    "assert_safe_language",
    "evidence_from_analysis",
    # Router
    "guardrails_router",
]

__version__ = "1.0.0"
