"""Error taxonomy and tagged results for technique-level control flow."""

from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Optimizer error codes surfaced to callers."""

    INVALID_PROMPT = "INVALID_PROMPT"
    OPTIMIZATION_FAILED = "OPTIMIZATION_FAILED"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    CONTEXT_TOO_LARGE = "CONTEXT_TOO_LARGE"
    TECHNIQUE_ERROR = "TECHNIQUE_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_CONFIG = "INVALID_CONFIG"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class OptimizerError(BaseModel):
    """Recoverable failure description carried inside a Result."""

    code: ErrorCode
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    recoverable: bool = True
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class Result(BaseModel, Generic[T]):
    """Tagged success/failure value."""

    value: Optional[T] = None
    error: Optional[OptimizerError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Any = None) -> "Result":
        """Wrap a successful value."""
        return cls(value=value)

    @classmethod
    def fail(cls, error: OptimizerError) -> "Result":
        """Wrap a failure."""
        return cls(error=error)


class ProviderErrorKind(str, Enum):
    """Closed set of completion provider failure kinds."""

    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    INVALID_REQUEST = "invalid_request"
    MODEL_NOT_FOUND = "model_not_found"
    CONTEXT_LENGTH_EXCEEDED = "context_length_exceeded"
    CONTENT_FILTERED = "content_filtered"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = {
    ProviderErrorKind.RATE_LIMIT,
    ProviderErrorKind.SERVER_ERROR,
    ProviderErrorKind.NETWORK_ERROR,
    ProviderErrorKind.TIMEOUT,
}


class ProviderError(Exception):
    """Raised by completion provider wrappers."""

    def __init__(
        self,
        message: str,
        provider: str,
        kind: ProviderErrorKind,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.kind = kind
        self.status_code = status_code
        self.retryable = kind in RETRYABLE_KINDS if retryable is None else retryable
        self.cause = cause
