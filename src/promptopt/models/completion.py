"""Completion request/response models exchanged with providers."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant", "tool"]
FinishReason = Optional[Literal["stop", "length", "tool_calls", "content_filter", "error"]]

DEFAULT_MAX_TOKENS = 2048


class Message(BaseModel):
    """Role-tagged chat message."""

    role: Role
    content: str


class CompletionRequest(BaseModel):
    """Provider-neutral completion request."""

    model: Optional[str] = None
    messages: List[Message]
    system_prompt: Optional[str] = None
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    stop_sequences: Optional[List[str]] = None
    json_mode: bool = False
    timeout_ms: Optional[int] = Field(default=None, ge=1)

    @classmethod
    def from_prompt(cls, prompt: str, **kwargs) -> "CompletionRequest":
        """Build a single-user-message request."""
        return cls(messages=[Message(role="user", content=prompt)], **kwargs)


class CompletionUsage(BaseModel):
    """Token usage reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class CompletionCost(BaseModel):
    """Monetary cost of a completion."""

    input_cost: float = 0.0
    output_cost: float = 0.0
    total_cost: float = 0.0
    currency: str = "USD"


class CompletionResponse(BaseModel):
    """Provider-neutral completion response."""

    content: str
    model: str = ""
    provider: str = ""
    finish_reason: FinishReason = None
    usage: CompletionUsage = Field(default_factory=CompletionUsage)
    cost: CompletionCost = Field(default_factory=CompletionCost)
    latency_ms: float = 0.0
