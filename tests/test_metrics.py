"""Tests for the metrics collector and pricing table."""

import pytest

from promptopt.clients.pricing import MODEL_PRICING, calculate_cost, estimate_prompt_cost
from promptopt.core.metrics import MetricsCollector


def test_empty_collector():
    metrics = MetricsCollector()
    assert len(metrics) == 0
    assert metrics.get_total_cost() == 0
    assert metrics.get_total_tokens() == {"input": 0, "output": 0}
    assert metrics.get_operation_counts() == {}


def test_records_and_totals(metrics):
    metrics.record_completion("reflection.evaluate", "gpt-4o-mini", 100, 50, duration_ms=12.5, cost=0.01)
    metrics.record_completion("reflection.rewrite", "gpt-4o-mini", 200, 80, duration_ms=30.0, cost=0.02)
    metrics.record_completion("reflection.evaluate", "gpt-4o-mini", 100, 40, duration_ms=10.0, cost=0.01)

    assert len(metrics) == 3
    assert metrics.get_total_cost() == pytest.approx(0.04)
    assert metrics.get_total_tokens() == {"input": 400, "output": 170}
    assert metrics.get_operation_counts() == {"reflection.evaluate": 2, "reflection.rewrite": 1}


def test_cost_priced_when_omitted(metrics):
    record = metrics.record_completion("op", "gpt-4o-mini", 1000, 1000, duration_ms=1.0)
    assert record.cost == pytest.approx(0.00015 + 0.0006)


def test_summary(metrics):
    metrics.record_completion("reflection.feedback", "gpt-4o", 1500, 500, duration_ms=5.0, cost=0.5)
    summary = metrics.get_summary()
    assert "Total Operations: 1" in summary
    assert "Total Input Tokens: 1,500" in summary
    assert "Total Cost: $0.5000" in summary
    assert "  reflection.feedback: 1" in summary


def test_export_is_a_copy_and_clear_resets(metrics):
    metrics.record_completion("op", "m", 1, 1, duration_ms=1.0, cost=0.0)
    exported = metrics.export()
    exported.clear()
    assert len(metrics) == 1

    metrics.clear()
    assert len(metrics) == 0


def test_collectors_are_independent():
    first, second = MetricsCollector(), MetricsCollector()
    first.record_completion("op", "m", 1, 1, duration_ms=1.0, cost=0.0)
    assert len(second) == 0


class TestPricing:
    """Per-1K-token pricing."""

    def test_known_model(self):
        cost = calculate_cost(2000, 1000, "gpt-4o")
        assert cost.input_cost == pytest.approx(0.01)
        assert cost.output_cost == pytest.approx(0.015)
        assert cost.total_cost == pytest.approx(0.025)
        assert cost.currency == "USD"

    def test_unknown_model_is_free(self):
        assert calculate_cost(1000, 1000, "my-local-model").total_cost == 0

    def test_prompt_cost_estimate(self):
        assert estimate_prompt_cost("Summarize this text.", "gpt-4o") > 0
        assert estimate_prompt_cost("Summarize this text.", "my-local-model") == 0

    def test_output_tokens_dominate_short_prompts(self):
        input_price, output_price = MODEL_PRICING["gpt-4o-mini"]
        assert estimate_prompt_cost("", "gpt-4o-mini", output_tokens=1000) == pytest.approx(output_price)
