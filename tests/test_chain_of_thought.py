"""Tests for the chain-of-thought technique."""

import pytest

from promptopt.core.techniques.chain_of_thought import (
    DEFAULT_TRIGGER,
    ChainOfThoughtTechnique,
    estimate_complexity,
    has_cot_trigger,
)
from promptopt.models.config import ChainOfThoughtOptions, DomainReasoningPattern, TechniqueName
from promptopt.models.context import OptimizationContext

MATH_PROMPT = "Calculate the compound interest on a loan and solve for the monthly payment."
PLAIN_PROMPT = "Write a haiku about autumn leaves."


def _technique(**options):
    return ChainOfThoughtTechnique(ChainOfThoughtOptions(**options))


class TestApply:
    """Style variants and the domain variant."""

    @pytest.mark.asyncio
    async def test_one_variant_per_style_without_domain(self):
        variants = await _technique().apply(PLAIN_PROMPT)

        assert len(variants) == 4
        assert all(v.technique == TechniqueName.CHAIN_OF_THOUGHT.value for v in variants)
        assert all(v.content.startswith(PLAIN_PROMPT) for v in variants)
        assert [v.score for v in variants] == sorted((v.score for v in variants), reverse=True)

    @pytest.mark.asyncio
    async def test_matching_domain_adds_a_variant(self):
        variants = await _technique().apply(MATH_PROMPT)

        assert len(variants) == 5
        domain = [v for v in variants if v.content.startswith("[Domain: mathematical]")]
        assert len(domain) == 1
        assert "Apply mathematical reasoning methodology" in domain[0].content
        assert "1. Given: [identify inputs]" in domain[0].content

    @pytest.mark.asyncio
    async def test_simple_style_appends_trigger(self):
        variants = await _technique().apply(PLAIN_PROMPT)
        assert f"{PLAIN_PROMPT}\n\n{DEFAULT_TRIGGER}" in [v.content for v in variants]

    @pytest.mark.asyncio
    async def test_custom_trigger(self):
        variants = await _technique(custom_trigger="Reason carefully first.").apply(PLAIN_PROMPT)
        assert f"{PLAIN_PROMPT}\n\nReason carefully first." in [v.content for v in variants]

    @pytest.mark.asyncio
    async def test_existing_trigger_is_kept_as_is(self):
        prompt = "Explain the haiku step by step."
        variants = await _technique().apply(prompt)
        assert prompt in [v.content for v in variants]

    @pytest.mark.asyncio
    async def test_zero_shot_lead_in(self):
        variants = await _technique().apply(PLAIN_PROMPT)
        assert f"{PLAIN_PROMPT}\n\nLet's approach this step by step:" in [v.content for v in variants]

    @pytest.mark.asyncio
    async def test_structured_steps_respect_max_steps(self):
        variants = await _technique(max_steps=2).apply(PLAIN_PROMPT)
        structured = next(v for v in variants if "Please solve this by following these steps" in v.content)

        assert "Step 2:" in structured.content
        assert "Step 3:" not in structured.content

    @pytest.mark.asyncio
    async def test_max_variants_caps_the_result(self):
        variants = await _technique(max_variants=2).apply(MATH_PROMPT)

        assert len(variants) == 2
        assert variants[0].score >= variants[1].score

    @pytest.mark.asyncio
    async def test_domain_hints_raise_scores(self):
        plain = await _technique().apply(PLAIN_PROMPT)
        hinted = await _technique().apply(PLAIN_PROMPT, OptimizationContext(domain_hints=["poetry"]))

        assert max(v.score for v in hinted) == pytest.approx(max(v.score for v in plain) + 0.05)


class TestDomainPatterns:
    """Pattern lookup and registration."""

    def test_domain_hint_wins_over_keywords(self):
        technique = _technique()
        pattern = technique.detect_domain_pattern(MATH_PROMPT, OptimizationContext(domain_hints=["ERP"]))
        assert pattern.domain == "erp-configuration"

    def test_keyword_match(self):
        pattern = _technique().detect_domain_pattern(
            "Find the bug in this program.", OptimizationContext()
        )
        assert pattern.domain == "code-analysis"

    def test_no_match(self):
        assert _technique().detect_domain_pattern(PLAIN_PROMPT, OptimizationContext()) is None

    @pytest.mark.asyncio
    async def test_registered_pattern_is_used(self):
        technique = _technique()
        technique.register_pattern(DomainReasoningPattern(
            domain="poetry",
            keywords=["haiku", "verse"],
            template="1. Count the syllables\n2. Pick the imagery",
            priority=20,
        ))

        assert technique.get_patterns()[0].domain == "poetry"
        variants = await technique.apply(PLAIN_PROMPT)
        assert any(v.content.startswith("[Domain: poetry]") for v in variants)

    def test_patterns_from_options(self):
        extra = DomainReasoningPattern(domain="legal", keywords=["contract"], template="1. Read the clauses")
        technique = _technique(domain_patterns=[extra])
        assert "legal" in [p.domain for p in technique.get_patterns()]


class TestEvaluate:
    """Reasoning-structure scoring."""

    @pytest.mark.asyncio
    async def test_evaluate_is_deterministic(self):
        technique = _technique()
        variants = await technique.apply(MATH_PROMPT)
        first = await technique.evaluate(variants)
        second = await technique.evaluate(variants)

        assert first.metrics.variants_evaluated == 5
        assert [v.scores for v in first.variants] == [v.scores for v in second.variants]
        assert first.best.scores.clarity == pytest.approx(0.85)

    @pytest.mark.asyncio
    async def test_missing_domain_variant_is_recommended(self):
        technique = _technique()
        result = await technique.evaluate(await technique.apply(PLAIN_PROMPT))
        assert "Consider adding domain-specific reasoning patterns" in result.recommendations

    @pytest.mark.asyncio
    async def test_evaluate_empty_list(self):
        with pytest.raises(ValueError):
            await _technique().evaluate([])


def test_has_cot_trigger():
    assert has_cot_trigger("Let me think about this")
    assert not has_cot_trigger(PLAIN_PROMPT)


def test_estimate_complexity_bounds():
    assert estimate_complexity("") == 0.0
    assert 0.0 < estimate_complexity("Implement and validate the algorithm? If so, then optimize or skip.") <= 1.0
