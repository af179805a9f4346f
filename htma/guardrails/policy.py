"""
Interpretation Guardrails Policy
================================
The content policy as data: an ordered table of (pattern, action,
replacement) rules. Extending the policy means adding a rule here.

Actions, applied per item in this order:
1. drop_scope       - forbidden scope (named diseases, protected populations)
2. drop_diagnostic  - diagnostic/prescriptive verbs
3. soften           - absolute claims, guarantees, dosage tokens, fixed timelines
4. redact           - consumer audience only: dosage amounts and timelines

Version: 1.0.0
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .models import Audience


class PolicyAction(str, Enum):
    DROP_SCOPE = "drop_scope"
    DROP_DIAGNOSTIC = "drop_diagnostic"
    SOFTEN = "soften"
    REDACT = "redact"


@dataclass(frozen=True)
class PolicyRule:
    """One policy entry. audience=None applies to every audience."""
    rule_id: str
    pattern: str
    action: PolicyAction
    replacement: Optional[str] = None
    audience: Optional[Audience] = None
    flags: int = re.IGNORECASE

    @property
    def regex(self) -> "re.Pattern":
        return re.compile(self.pattern, self.flags)

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None

    def applies_to(self, audience: Audience) -> bool:
        return self.audience is None or self.audience == audience


SOFTENERS: Tuple[str, ...] = (
    "may suggest",
    "can reflect",
    "is sometimes associated with",
    "may be worth discussing with a qualified practitioner",
)

SOFTENING_PREFIX = f"This pattern {SOFTENERS[0]}: "
LIMITED_DATA_PREFIX = "Educational note (limited data context): "

SUPPLEMENT_AMOUNT_PLACEHOLDER = "[supplement amount]"
TIMELINE_PLACEHOLDER = "for a period of time"


# ============================================================
# LOCKED POLICY TABLE - ORDER MATTERS
# ============================================================

POLICY_RULES: Tuple[PolicyRule, ...] = (
    # Forbidden scope
    PolicyRule("scope_cancer", r"\bcancer\b", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_diabetes", r"\bdiabetes\b", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_autism", r"\bautis(m|tic)\b", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_adhd", r"\bADHD\b", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_schizophrenia", r"\bschizophren", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_bipolar", r"\bbipolar\b", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_suicide", r"\bsuicid", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_pregnancy", r"\bpregnan(t|cy)\b", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_infant", r"\binfants?\b", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_pediatric", r"\bpa?ediatric", PolicyAction.DROP_SCOPE),
    PolicyRule("scope_child", r"\bchild(ren)?\b", PolicyAction.DROP_SCOPE),

    # Diagnostic / prescriptive verbs
    PolicyRule(
        "diagnostic_verbs",
        r"diagnos\w*|\b(cur(e|es|ed|ing)|treat(s|ed|ing|ment|ments)?|prescri\w*)\b",
        PolicyAction.DROP_DIAGNOSTIC,
    ),

    # Softer risk patterns
    PolicyRule("personal_assertion", r"\byou (have|are|suffer from)\b", PolicyAction.SOFTEN),
    PolicyRule("this_means_you", r"\bthis means you\b", PolicyAction.SOFTEN),
    PolicyRule("confirmation", r"\bconfirms?\b", PolicyAction.SOFTEN),
    PolicyRule("absolute_claim", r"\bdefinitely\b", PolicyAction.SOFTEN),
    PolicyRule("guarantee", r"\bguarantee(d|s)?\b", PolicyAction.SOFTEN),
    PolicyRule("medication", r"\bmedications?\b", PolicyAction.SOFTEN),
    PolicyRule("dose", r"\bdos(e|es|age|ing)\b", PolicyAction.SOFTEN),
    PolicyRule("dosage_token", r"\b(\d{1,3}(,\d{3})+|\d+)(\.\d+)?\s*(mg|mcg|iu)\b", PolicyAction.SOFTEN),
    PolicyRule("fixed_timeline", r"\bfor \d+\s*(days|weeks|months)\b", PolicyAction.SOFTEN),

    # Consumer redaction
    PolicyRule(
        "redact_amount",
        r"\b(\d{1,3}(,\d{3})+|\d+)(\.\d+)?\s*(mg|mcg|g|iu)(\/?(day|daily))?\b",
        PolicyAction.REDACT,
        replacement=SUPPLEMENT_AMOUNT_PLACEHOLDER,
        audience=Audience.CONSUMER,
    ),
    PolicyRule(
        "redact_timeline",
        r"\bfor\s+\d+\s*(days|weeks|months)\b",
        PolicyAction.REDACT,
        replacement=TIMELINE_PLACEHOLDER,
        audience=Audience.CONSUMER,
    ),
)


def rules_for(action: PolicyAction, rules: Tuple[PolicyRule, ...] = POLICY_RULES) -> Tuple[PolicyRule, ...]:
    return tuple(rule for rule in rules if rule.action == action)


def first_match(text: str, action: PolicyAction, rules: Tuple[PolicyRule, ...] = POLICY_RULES) -> Optional[PolicyRule]:
    for rule in rules_for(action, rules):
        if rule.matches(text):
            return rule
    return None


def has_softener(text: str) -> bool:
    lower = text.lower()
    return any(softener in lower for softener in SOFTENERS)


def ensure_educational_tone(text: str) -> str:
    if has_softener(text):
        return text
    return f"{SOFTENING_PREFIX}{text}"


def describe_policy(rules: Tuple[PolicyRule, ...] = POLICY_RULES) -> list:
    """Serializable view of the rule table."""
    return [
        {
            "rule_id": rule.rule_id,
            "pattern": rule.pattern,
            "action": rule.action.value,
            "replacement": rule.replacement,
            "audience": rule.audience.value if rule.audience else None,
        }
        for rule in rules
    ]
