"""Completion provider contract."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.completion import CompletionRequest, CompletionResponse
from ..scoring import estimate_tokens


class CompletionProvider(ABC):
    """Anything that can run a chat completion for the optimizer."""

    name: str = "base"
    default_model: Optional[str] = None

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run a completion request.

        Implementations raise ``ProviderError`` on failure and never retry
        beyond what their transport already does.
        """
        pass

    def estimate_tokens(self, text: str) -> int:
        """Estimate token count with the word/char heuristic."""
        return estimate_tokens(text)
