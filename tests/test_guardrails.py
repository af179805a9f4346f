"""
Tests for the Interpretation Guardrails gate

Test Categories:
1. Blocking (scope, diagnostic verbs) across every audience and channel
2. Softening and consumer redaction
3. Evidence-aware limited-data prefix
4. Disclaimer placement and default recommendation
5. Idempotency and the development canary
"""

import pytest

from htma.errors import GuardrailsCanaryError
from htma.guardrails import (
    DEFAULT_RECOMMENDATION,
    FULL_DISCLAIMER,
    LIMITED_DATA_PREFIX,
    SHORT_DISCLAIMER,
    SOFTENING_PREFIX,
    TEI_REFERENCE_NOTE,
    Audience,
    Channel,
    GuardrailsContext,
    GuardrailsEvidence,
    apply_guardrails,
    choose_disclaimer,
    describe_policy,
    evidence_from_analysis,
)
from htma.ranges.classify import measure_minerals, measure_ratios

ALL_CONTEXTS = [
    GuardrailsContext(audience=audience, channel=channel)
    for audience in Audience
    for channel in Channel
]


# ============================================================
# BLOCKING
# ============================================================

class TestBlocking:

    @pytest.mark.parametrize("ctx", ALL_CONTEXTS, ids=lambda c: f"{c.audience.value}-{c.channel.value}")
    def test_diagnostic_verbs_never_survive(self, ctx):
        result = apply_guardrails(["This pattern may diagnose thyroid issues"], [], ctx)
        assert result.insights == ()
        assert result.removed_count == 1

    @pytest.mark.parametrize("text", [
        "Zinc treatment is advised",
        "This will cure fatigue",
        "Ask for a prescription",
        "This pattern is diagnostic of stress",
        "Low magnesium is often undiagnosed",
        "Possibly misdiagnosed thyroid pattern",
    ])
    def test_diagnostic_variants(self, text):
        assert apply_guardrails([text], []).insights == ()

    def test_forbidden_scope(self):
        result = apply_guardrails(
            ["Low zinc is linked to cancer", "Calcium pattern may suggest slow oxidation"],
            ["Not suitable during pregnancy"],
        )
        assert result.insights == ("Calcium pattern may suggest slow oxidation",)
        assert result.removed_count == 2

    def test_word_boundaries(self):
        """'treaty' and 'secure' are not diagnostic verbs"""
        result = apply_guardrails(["A treaty of minerals may suggest a secure balance"], [])
        assert result.removed_count == 0


# ============================================================
# SOFTENING AND REDACTION
# ============================================================

class TestRewriting:

    def test_personal_assertion_softened(self):
        result = apply_guardrails(["You have low magnesium"], [])
        assert result.insights == (f"{SOFTENING_PREFIX}You have low magnesium",)
        assert result.insights[0] == "This pattern may suggest: You have low magnesium"

    def test_existing_softener_not_doubled(self):
        result = apply_guardrails(["This definitely may suggest adrenal stress"], [])
        assert result.insights == ("This definitely may suggest adrenal stress",)

    def test_consumer_redaction(self):
        result = apply_guardrails([], ["Consider magnesium 400 mg daily for 8 weeks"])
        assert result.recommendations[0] == (
            "This pattern may suggest: Consider magnesium [supplement amount] daily for a period of time"
        )

    def test_consumer_redaction_grouped_digits(self):
        result = apply_guardrails([], ["Some protocols use 1,000 mg of vitamin C daily"])
        assert result.recommendations[0] == (
            "This pattern may suggest: Some protocols use [supplement amount] of vitamin C daily"
        )
        assert result.recommendations[0].count("1,") == 0

    def test_practitioner_keeps_amounts(self):
        ctx = GuardrailsContext(audience=Audience.PRACTITIONER)
        result = apply_guardrails([], ["Consider magnesium 400 mg daily for 8 weeks"], ctx)
        assert result.recommendations[0] == (
            "This pattern may suggest: Consider magnesium 400 mg daily for 8 weeks"
        )

    def test_bare_unit_word_is_not_a_dosage(self):
        result = apply_guardrails(["Magnesium levels may suggest low intake"], [])
        assert result.insights == ("Magnesium levels may suggest low intake",)

    def test_whitespace_normalized_and_empty_skipped(self):
        result = apply_guardrails(["  Calcium pattern   may suggest\nstress  ", "", "   "], [])
        assert result.insights == ("Calcium pattern may suggest stress",)


# ============================================================
# EVIDENCE
# ============================================================

class TestEvidence:

    def test_empty_evidence_adds_limited_data_prefix(self):
        ctx = GuardrailsContext(evidence=GuardrailsEvidence())
        result = apply_guardrails(["Calcium is low"], [], ctx)
        assert result.insights == (f"{LIMITED_DATA_PREFIX}{SOFTENING_PREFIX}Calcium is low",)

    def test_missing_evidence_adds_nothing(self):
        result = apply_guardrails(["Calcium is low"], [])
        assert result.insights == ("Calcium is low",)

    def test_supporting_evidence_adds_nothing(self):
        ctx = GuardrailsContext(evidence=GuardrailsEvidence(flags=("Critical Ca/Mg imbalance",)))
        result = apply_guardrails(["Calcium is low"], [], ctx)
        assert result.insights == ("Calcium is low",)

    def test_evidence_from_analysis(self, version, low_calcium_values):
        evidence = evidence_from_analysis(
            measure_minerals(low_calcium_values, version),
            measure_ratios(low_calcium_values, version),
        )
        assert evidence.abnormal_minerals == ("Ca",)
        assert evidence.abnormal_ratios == ("Ca/Mg", "Ca/P", "Ca/K")
        assert evidence.total == 4


# ============================================================
# DISCLAIMERS
# ============================================================

class TestDisclaimers:

    @pytest.mark.parametrize("channel", [Channel.UI, Channel.API, Channel.STORAGE])
    def test_short_disclaimer_last(self, channel):
        result = apply_guardrails([], ["Discuss zinc intake"], GuardrailsContext(channel=channel))
        assert result.recommendations[-1] == SHORT_DISCLAIMER
        assert choose_disclaimer(channel) == SHORT_DISCLAIMER

    def test_pdf_gets_reference_note_then_full_text(self):
        result = apply_guardrails([], ["Discuss zinc intake"], GuardrailsContext(channel=Channel.PDF))
        assert result.recommendations[-2:] == (TEI_REFERENCE_NOTE, FULL_DISCLAIMER)

    def test_default_recommendation(self):
        result = apply_guardrails(["Calcium pattern may suggest stress"], [])
        assert result.recommendations == (DEFAULT_RECOMMENDATION, SHORT_DISCLAIMER)

    def test_default_recommendation_when_all_dropped(self):
        result = apply_guardrails([], ["Treatment with iron"])
        assert result.recommendations == (DEFAULT_RECOMMENDATION, SHORT_DISCLAIMER)
        assert result.removed_count == 1

    def test_exactly_one_disclaimer(self):
        ctx = GuardrailsContext(channel=Channel.PDF)
        result = apply_guardrails([], ["Discuss zinc intake", SHORT_DISCLAIMER, FULL_DISCLAIMER], ctx)
        disclaimers = [r for r in result.recommendations if r in (SHORT_DISCLAIMER, FULL_DISCLAIMER)]
        assert disclaimers == [FULL_DISCLAIMER]


# ============================================================
# TRACE, IDEMPOTENCY, CANARY
# ============================================================

class TestTraceAndIdempotency:

    def test_practitioner_gets_notes(self):
        ctx = GuardrailsContext(audience=Audience.PRACTITIONER)
        result = apply_guardrails(["You have low magnesium", "Possible cancer link"], [], ctx)
        assert "[softened:insight] blocked phrase softened (personal_assertion)" in result.notes
        assert any(note.startswith("[removed:insight] forbidden scope (scope_cancer)") for note in result.notes)

    def test_consumer_gets_no_notes(self):
        result = apply_guardrails(["You have low magnesium"], [])
        assert result.notes is None

    @pytest.mark.parametrize("ctx", ALL_CONTEXTS, ids=lambda c: f"{c.audience.value}-{c.channel.value}")
    def test_reapplication_is_stable(self, ctx):
        first = apply_guardrails(
            ["You have low magnesium", "Diagnosed with fatigue"],
            ["Consider magnesium 400 mg daily for 8 weeks"],
            ctx,
        )
        second = apply_guardrails(first.insights, first.recommendations, ctx)
        assert second.insights == first.insights
        assert second.recommendations == first.recommendations
        assert second.removed_count == 0

    def test_default_recommendation_reapplied_once(self):
        first = apply_guardrails([], [])
        second = apply_guardrails(first.insights, first.recommendations)
        assert second.recommendations == (DEFAULT_RECOMMENDATION, SHORT_DISCLAIMER)

    def test_canary_off_in_production(self):
        result = apply_guardrails(["Your calcium is low"], [])
        assert result.ok

    def test_canary_raises_in_development(self, monkeypatch):
        monkeypatch.setenv("HTMA_ENV", "development")
        with pytest.raises(GuardrailsCanaryError):
            apply_guardrails(["Your calcium is low"], [])

    def test_canary_passes_softened_text(self, monkeypatch):
        monkeypatch.setenv("HTMA_ENV", "development")
        result = apply_guardrails(["You have low magnesium"], [])
        assert result.insights[0].startswith(SOFTENING_PREFIX)

    def test_policy_is_serializable(self):
        rules = describe_policy()
        assert rules[0]["action"] == "drop_scope"
        assert {r["audience"] for r in rules} == {None, "consumer"}
