"""Tests for the feedback-iteration optimizer."""

import asyncio

import pytest

from promptopt.core.techniques.feedback_iteration import (
    FALLBACK_FEEDBACK,
    FeedbackIterationTechnique,
    parse_score_response,
)
from promptopt.errors import ErrorCode
from promptopt.models.config import FeedbackIterationOptions, TechniqueName
from promptopt.models.trajectory import PromptAttempt
from tests.helpers import ScriptedProvider


def _technique(provider, metrics=None, **options):
    return FeedbackIterationTechnique(FeedbackIterationOptions(**options), provider=provider, metrics=metrics)


class TestParseScoreResponse:
    """OVERALL line, then last number, then default."""

    def test_overall_line(self):
        assert parse_score_response("CLARITY: 70/100\nOVERALL: 82/100\nGood.") == pytest.approx(0.82)

    def test_overall_is_case_insensitive(self):
        assert parse_score_response("overall: 64.5") == pytest.approx(0.645)

    def test_last_number(self):
        assert parse_score_response("I would rate this prompt 75") == pytest.approx(0.75)

    def test_last_number_out_of_range(self):
        assert parse_score_response("Score: 150") == 0.5

    def test_no_number(self):
        assert parse_score_response("Looks fine to me.") == 0.5

    def test_clamped(self):
        assert parse_score_response("OVERALL: 120/100") == 1.0


class TestLoopControl:
    """Iteration count and early stopping."""

    @pytest.mark.asyncio
    async def test_steady_improvement_runs_all_iterations(self, seed_prompt):
        provider = ScriptedProvider(scores=[0.5, 0.6, 0.7, 0.8, 0.9, 1.0])
        run = await _technique(provider, max_iterations=5).run(seed_prompt)

        assert not run.stopped_early
        assert len(run.variants) == 5
        assert run.trajectory.total_iterations == 5
        assert len(run.trajectory.attempts) == 6
        assert run.trajectory.best_attempt.score == pytest.approx(1.0)
        assert provider.calls == {"evaluate": 6, "feedback": 5, "rewrite": 5}

    @pytest.mark.asyncio
    async def test_no_early_stop_before_third_iteration(self, seed_prompt):
        provider = ScriptedProvider(scores=[0.5, 0.6, 0.6, 0.6])
        run = await _technique(provider, max_iterations=5).run(seed_prompt)

        assert run.stopped_early
        assert run.trajectory.total_iterations == 3
        assert len(run.trajectory.attempts) == 4

    @pytest.mark.asyncio
    async def test_regression_counts_as_no_improvement(self, seed_prompt):
        provider = ScriptedProvider(scores=[0.5, 0.9, 0.6, 0.7])
        run = await _technique(provider, max_iterations=5).run(seed_prompt)

        assert run.stopped_early
        assert run.trajectory.total_iterations == 3
        assert run.trajectory.best_attempt.iteration == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_iterations", [1, 2, 3, 4, 6])
    async def test_attempt_count_bounds(self, seed_prompt, max_iterations):
        provider = ScriptedProvider()
        run = await _technique(provider, max_iterations=max_iterations).run(seed_prompt)

        attempts = run.trajectory.attempts
        assert 2 <= len(attempts) <= max_iterations + 1
        assert run.trajectory.best_attempt.score == max(a.score for a in attempts)
        assert len(run.variants) == len(attempts) - 1

    @pytest.mark.asyncio
    async def test_threshold_zero_never_stops_on_flat_scores(self, seed_prompt):
        provider = ScriptedProvider()
        run = await _technique(provider, max_iterations=4, min_improvement_threshold=0.0).run(seed_prompt)
        assert not run.stopped_early
        assert run.trajectory.total_iterations == 4


class TestBestSoFar:
    """Best attempt selection."""

    @pytest.mark.asyncio
    async def test_tie_keeps_earlier_attempt(self, seed_prompt):
        provider = ScriptedProvider(scores=[0.5, 0.7, 0.7], rewrites=["First rewrite.", "Second rewrite."])
        run = await _technique(provider, max_iterations=2).run(seed_prompt)

        assert run.trajectory.best_attempt.prompt == "First rewrite."
        assert run.best_prompt == "First rewrite."

    @pytest.mark.asyncio
    async def test_rewrites_start_from_best_prompt(self, seed_prompt):
        provider = ScriptedProvider(
            scores=[0.5, 0.9, 0.6],
            rewrites=["Strong rewrite.", "Weak rewrite.", "Third rewrite."],
        )
        await _technique(provider, max_iterations=3).run(seed_prompt)

        rewrites = provider.prompts("rewrite")
        assert f"CURRENT PROMPT:\n{seed_prompt}\n" in rewrites[0]
        assert "CURRENT PROMPT:\nStrong rewrite.\n" in rewrites[1]
        assert "CURRENT PROMPT:\nStrong rewrite.\n" in rewrites[2]

    @pytest.mark.asyncio
    async def test_history_is_ordered_by_score(self, seed_prompt):
        provider = ScriptedProvider(
            scores=[0.5, 0.9, 0.6],
            rewrites=["Strong rewrite.", "Weak rewrite.", "Third rewrite."],
        )
        await _technique(provider, max_iterations=3).run(seed_prompt)

        rewrites = provider.prompts("rewrite")
        assert "HISTORY OF PREVIOUS ATTEMPTS" not in rewrites[0]
        history = rewrites[2]
        first = history.index("1. (Score: 90.0%) Strong rewrite.")
        second = history.index("2. (Score: 60.0%) Weak rewrite.")
        third = history.index(f"3. (Score: 50.0%) {seed_prompt}")
        assert first < second < third

    @pytest.mark.asyncio
    async def test_history_size_limits_entries(self, seed_prompt):
        provider = ScriptedProvider(scores=[0.5, 0.6, 0.7, 0.8])
        await _technique(provider, max_iterations=3, history_size=1).run(seed_prompt)

        history = provider.prompts("rewrite")[2]
        assert "1. (Score: 70.0%)" in history
        assert "2. (Score:" not in history


class TestFallbacks:
    """Provider failures degrade to fallbacks and are reported."""

    @pytest.mark.asyncio
    async def test_all_calls_fail(self, seed_prompt):
        provider = ScriptedProvider(fail=["all"])
        run = await _technique(provider, max_iterations=5).run(seed_prompt)

        assert len(run.variants) >= 1
        assert all(variant.content == seed_prompt for variant in run.variants)
        assert run.trajectory.seed_score == 0.5
        assert run.errors
        assert all(error.code == ErrorCode.PROVIDER_ERROR for error in run.errors)

    @pytest.mark.asyncio
    async def test_without_provider(self, seed_prompt):
        run = await FeedbackIterationTechnique().run(seed_prompt)

        assert run.variants
        assert all(variant.content == seed_prompt for variant in run.variants)
        assert len(run.errors) == 3 * len(run.variants) + 1

    @pytest.mark.asyncio
    async def test_feedback_failure_uses_fallback_text(self, seed_prompt):
        provider = ScriptedProvider(fail=["feedback"])
        run = await _technique(provider, max_iterations=1).run(seed_prompt)

        assert FALLBACK_FEEDBACK in provider.prompts("rewrite")[0]
        assert run.trajectory.attempts[1].feedback == FALLBACK_FEEDBACK
        assert len(run.errors) == 1

    @pytest.mark.asyncio
    async def test_empty_rewrite_keeps_current_best(self, seed_prompt):
        provider = ScriptedProvider(rewrites=["   "])
        run = await _technique(provider, max_iterations=1).run(seed_prompt)
        assert run.variants[0].content == seed_prompt
        assert not run.errors

    @pytest.mark.asyncio
    async def test_evaluation_timeout(self, seed_prompt):
        provider = ScriptedProvider(fail=["evaluate"], error=asyncio.TimeoutError())
        run = await _technique(provider, max_iterations=1).run(seed_prompt)

        assert run.trajectory.improvement_curve == [0.5, 0.5]
        assert [error.code for error in run.errors] == [ErrorCode.TIMEOUT, ErrorCode.TIMEOUT]


class TestApplyAndEvaluate:
    """Technique contract."""

    @pytest.mark.asyncio
    async def test_apply_returns_variants_and_keeps_trajectory(self, provider, seed_prompt, context):
        technique = _technique(provider, max_iterations=2)
        variants = await technique.apply(seed_prompt, context)

        assert len(variants) == 2
        assert all(v.technique == TechniqueName.REFLECTION.value for v in variants)
        assert all(v.model == "fake-model" for v in variants)
        assert technique.get_trajectory() is not None
        assert technique.get_trajectory().attempts[0].prompt == seed_prompt

    @pytest.mark.asyncio
    async def test_context_reaches_templates(self, provider, seed_prompt, context):
        await _technique(provider, max_iterations=1).apply(seed_prompt, context)

        assert "Domain hints: business, news" in provider.prompts("feedback")[0]
        rewrite = provider.prompts("rewrite")[0]
        assert "Consider domain context: business, news" in rewrite
        assert "- Maximum length: 150 words" in rewrite
        assert "REFERENCE - Good prompts" in provider.prompts("evaluate")[0]

    @pytest.mark.asyncio
    async def test_optimizer_model_used_for_rewrites(self, provider, seed_prompt):
        technique = _technique(provider, max_iterations=1, optimizer_model="gpt-4o", optimizer_temperature=1.1)
        variants = await technique.apply(seed_prompt)

        rewrite_requests = [r for r in provider.requests if "Improve the given prompt" in r.messages[0].content]
        assert rewrite_requests[0].model == "gpt-4o"
        assert rewrite_requests[0].temperature == 1.1
        assert variants[0].model == "gpt-4o"

    @pytest.mark.asyncio
    async def test_metrics_count_operations(self, provider, metrics, seed_prompt):
        await _technique(provider, metrics=metrics, max_iterations=2).apply(seed_prompt)

        assert metrics.get_operation_counts() == {
            "reflection.evaluate": 3,
            "reflection.feedback": 2,
            "reflection.rewrite": 2,
        }

    @pytest.mark.asyncio
    async def test_evaluate_ranks_variants(self, seed_prompt):
        provider = ScriptedProvider(scores=[0.4, 0.6, 0.8])
        technique = _technique(provider, max_iterations=2)
        variants = await technique.apply(seed_prompt)
        result = await technique.evaluate(variants)

        assert result.best.score == pytest.approx(0.8)
        assert result.metrics.variants_evaluated == 2
        assert result.metrics.improvement_over_original == pytest.approx(100.0)
        assert [v.scores.overall for v in result.variants] == sorted(
            (v.scores.overall for v in result.variants), reverse=True
        )

    @pytest.mark.asyncio
    async def test_evaluate_is_deterministic(self, provider, seed_prompt):
        technique = _technique(provider, max_iterations=2)
        variants = await technique.apply(seed_prompt)
        first = await technique.evaluate(variants, original_score=0.5)
        second = await technique.evaluate(variants, original_score=0.5)

        assert [v.scores for v in first.variants] == [v.scores for v in second.variants]
        assert first.recommendations == second.recommendations

    @pytest.mark.asyncio
    async def test_evaluate_only_uses_seed_of_matching_apply(self):
        provider = ScriptedProvider(
            scores=[0.2, 0.5, 0.5, 0.8, 0.4, 0.4],
            rewrites=["Cats rewrite one.", "Cats rewrite two.", "Dogs rewrite one.", "Dogs rewrite two."],
        )
        technique = _technique(provider, max_iterations=2)
        cats = await technique.apply("Write about cats.")
        dogs = await technique.apply("Write about dogs.")

        latest = await technique.evaluate(dogs)
        assert latest.metrics.improvement_over_original == pytest.approx(-50.0)
        assert "Additional iterations may yield further improvements" in latest.recommendations

        stale = await technique.evaluate(cats)
        assert stale.metrics.improvement_over_original == pytest.approx(100.0)
        assert "Additional iterations may yield further improvements" not in stale.recommendations

        explicit = await technique.evaluate(cats, original_score=0.2)
        assert explicit.metrics.improvement_over_original == pytest.approx(150.0)

    @pytest.mark.asyncio
    async def test_get_trajectory_returns_a_copy(self, provider, seed_prompt):
        technique = _technique(provider, max_iterations=2)
        await technique.apply(seed_prompt)

        trajectory = technique.get_trajectory()
        trajectory.record(PromptAttempt(prompt="Injected.", score=1.0, iteration=9))

        kept = technique.get_trajectory()
        assert len(kept.attempts) == 3
        assert kept.best_attempt.prompt != "Injected."
        assert kept.total_iterations == 2

    @pytest.mark.asyncio
    async def test_max_variants_does_not_cap_iterations(self, provider, seed_prompt):
        technique = _technique(provider, max_iterations=4, max_variants=1, min_improvement_threshold=0.0)
        variants = await technique.apply(seed_prompt)
        assert len(variants) == 4

    @pytest.mark.asyncio
    async def test_evaluate_empty_list(self):
        with pytest.raises(ValueError):
            await FeedbackIterationTechnique().evaluate([])

    @pytest.mark.asyncio
    async def test_concurrent_runs_do_not_share_state(self, provider):
        technique = _technique(provider, max_iterations=2)
        first, second = await asyncio.gather(
            technique.run("Write a limerick about cats."),
            technique.run("Explain recursion to a child."),
        )
        assert first.trajectory.attempts[0].prompt == "Write a limerick about cats."
        assert second.trajectory.attempts[0].prompt == "Explain recursion to a child."
        assert first.trajectory is not second.trajectory


def test_metadata():
    metadata = FeedbackIterationTechnique().get_metadata()
    assert metadata["name"] == "reflection"
    assert metadata["priority"] == 8
    assert metadata["options"]["max_iterations"] == 5
