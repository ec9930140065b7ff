"""Pytest fixtures for promptopt tests."""

import pytest

from promptopt.core.metrics import MetricsCollector
from promptopt.models.context import Constraint, Example, OptimizationContext
from tests.helpers import ScriptedProvider

SETTINGS_ENV_VARS = (
    "PROMPTOPT_API_KEY",
    "OPENAI_API_KEY",
    "API_KEY",
    "PROMPTOPT_MODEL",
    "MODEL",
    "PROMPTOPT_BASE_URL",
    "OPENAI_BASE_URL",
    "BASE_URL",
    "PROMPTOPT_PROFILE",
)


@pytest.fixture
def seed_prompt():
    """Short, improvable seed prompt."""
    return "Summarize the article in three bullet points for a busy executive."


@pytest.fixture
def provider():
    """Scripted provider with default replies."""
    return ScriptedProvider()


@pytest.fixture
def metrics():
    """Fresh metrics collector per test."""
    return MetricsCollector()


@pytest.fixture
def context():
    """Context with one example, one constraint and domain hints."""
    return OptimizationContext(
        examples=[
            Example(
                before_prompt="Write about dogs.",
                after_prompt="Write a 200-word informative paragraph about dog nutrition for new owners.",
            )
        ],
        constraints=[Constraint(description="Maximum length", value="150 words")],
        domain_hints=["business", "news"],
    )


@pytest.fixture
def clean_env(monkeypatch):
    """
    Remove provider settings from the environment.

    Settings reads the process environment, so tests that check defaults or
    alias precedence start from a known state.
    """
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
