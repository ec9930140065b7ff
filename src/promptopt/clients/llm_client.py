"""OpenAI-compatible completion provider."""

import time
from typing import Any, Dict, List, Optional

import openai
from loguru import logger
from openai import AsyncOpenAI

from ..config import Settings
from ..errors import ProviderError, ProviderErrorKind
from ..models.completion import (
    CompletionRequest,
    CompletionResponse,
    CompletionUsage,
    FinishReason,
)
from .base import CompletionProvider
from .pricing import calculate_cost

FINISH_REASONS: Dict[str, FinishReason] = {
    "stop": "stop",
    "length": "length",
    "content_filter": "content_filter",
    "tool_calls": "tool_calls",
    "function_call": "tool_calls",
}


class LLMClient(CompletionProvider):
    """OpenAI chat completions client that reports usage, cost and latency."""

    name = "openai"

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        """Initialize client from connection settings."""
        self.settings = settings
        self.default_model = settings.model
        self.temperature = settings.temperature
        if client is None:
            client_kwargs: Dict[str, Any] = {
                "api_key": settings.api_key or "local",
                "timeout": settings.timeout_ms / 1000,
                "max_retries": settings.max_retries,
            }
            if settings.base_url:
                client_kwargs["base_url"] = settings.base_url
            client = AsyncOpenAI(**client_kwargs)
        self.client = client

    def _build_kwargs(self, request: CompletionRequest) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.extend({"role": m.role, "content": m.content} for m in request.messages)

        kwargs: Dict[str, Any] = {
            "model": request.model or self.default_model,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature if request.temperature is not None else self.temperature,
        }
        if request.top_p is not None:
            kwargs["top_p"] = request.top_p
        if request.stop_sequences:
            kwargs["stop"] = request.stop_sequences
        if request.json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if request.timeout_ms:
            kwargs["timeout"] = request.timeout_ms / 1000
        return kwargs

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send a chat completion request."""
        kwargs = self._build_kwargs(request)
        start_time = time.time()
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            error = self._convert_error(e)
            logger.error(f"Completion request failed ({error.kind.value}): {error}")
            raise error from e
        latency = (time.time() - start_time) * 1000

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content if choice else None) or ""
        usage = CompletionUsage(
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
            total_tokens=response.usage.total_tokens if response.usage else 0,
        )
        model = response.model or kwargs["model"]

        logger.debug(
            f"LLM response: {len(content)} chars, "
            f"{usage.total_tokens} tokens, {latency:.0f}ms"
        )

        return CompletionResponse(
            content=content,
            model=model,
            provider=self.name,
            finish_reason=FINISH_REASONS.get(choice.finish_reason) if choice else None,
            usage=usage,
            cost=calculate_cost(usage.input_tokens, usage.output_tokens, kwargs["model"]),
            latency_ms=latency,
        )

    def _convert_error(self, error: openai.APIError) -> ProviderError:
        """Map SDK exceptions onto provider error kinds."""
        if isinstance(error, openai.AuthenticationError):
            return ProviderError(
                "Invalid API key or authentication failed",
                self.name, ProviderErrorKind.AUTHENTICATION, status_code=401, cause=error,
            )
        if isinstance(error, openai.RateLimitError):
            return ProviderError(
                "Rate limit exceeded. Please retry after a delay.",
                self.name, ProviderErrorKind.RATE_LIMIT, status_code=429, cause=error,
            )
        if isinstance(error, openai.BadRequestError):
            message = error.message
            if "context_length" in message or "maximum context length" in message:
                return ProviderError(
                    "Input exceeds model context window",
                    self.name, ProviderErrorKind.CONTEXT_LENGTH_EXCEEDED, status_code=400, cause=error,
                )
            if "content_policy" in message or "content_filter" in message:
                return ProviderError(
                    "Content was filtered by safety systems",
                    self.name, ProviderErrorKind.CONTENT_FILTERED, status_code=400, cause=error,
                )
            return ProviderError(
                f"Invalid request: {message}",
                self.name, ProviderErrorKind.INVALID_REQUEST, status_code=400, cause=error,
            )
        if isinstance(error, openai.NotFoundError):
            return ProviderError(
                "Model not found or not accessible",
                self.name, ProviderErrorKind.MODEL_NOT_FOUND, status_code=404, cause=error,
            )
        if isinstance(error, openai.InternalServerError):
            return ProviderError(
                "Server error. Please retry.",
                self.name, ProviderErrorKind.SERVER_ERROR, status_code=error.status_code, cause=error,
            )
        # APITimeoutError subclasses APIConnectionError
        if isinstance(error, openai.APITimeoutError):
            return ProviderError(
                "Request timed out", self.name, ProviderErrorKind.TIMEOUT, cause=error,
            )
        if isinstance(error, openai.APIConnectionError):
            return ProviderError(
                "Failed to connect to the API", self.name, ProviderErrorKind.NETWORK_ERROR, cause=error,
            )
        return ProviderError(
            error.message,
            self.name,
            ProviderErrorKind.UNKNOWN,
            status_code=getattr(error, "status_code", None),
            retryable=False,
            cause=error,
        )
