"""Test helpers for promptopt tests."""

from tests.helpers.fake_provider import ScriptedProvider, evaluation_reply

__all__ = [
    "ScriptedProvider",
    "evaluation_reply",
]
