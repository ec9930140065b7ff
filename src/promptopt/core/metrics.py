"""Usage metrics collected across completion calls."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..clients.pricing import calculate_cost


class CompletionRecord(BaseModel):
    """One recorded completion."""

    timestamp: datetime = Field(default_factory=datetime.now)
    operation: str
    model: str
    input_tokens: int = Field(ge=0)
    output_tokens: int = Field(ge=0)
    cost: float = Field(ge=0.0)
    duration_ms: float = Field(ge=0.0)


class MetricsCollector:
    """Collect token usage and cost for completions made by its owner."""

    def __init__(self):
        """Initialize an empty collector."""
        self._records: List[CompletionRecord] = []

    def record_completion(
        self,
        operation: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        duration_ms: float,
        cost: Optional[float] = None,
    ) -> CompletionRecord:
        """Record a completion; cost is priced from the model table when omitted."""
        if cost is None:
            cost = calculate_cost(input_tokens, output_tokens, model).total_cost
        record = CompletionRecord(
            operation=operation,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost,
            duration_ms=duration_ms,
        )
        self._records.append(record)
        return record

    def __len__(self) -> int:
        return len(self._records)

    def get_total_cost(self) -> float:
        return sum(r.cost for r in self._records)

    def get_total_tokens(self) -> Dict[str, int]:
        return {
            "input": sum(r.input_tokens for r in self._records),
            "output": sum(r.output_tokens for r in self._records),
        }

    def get_operation_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for record in self._records:
            counts[record.operation] = counts.get(record.operation, 0) + 1
        return counts

    def get_summary(self) -> str:
        """Human-readable usage summary."""
        tokens = self.get_total_tokens()
        lines = [
            f"Total Operations: {len(self._records)}",
            f"Total Input Tokens: {tokens['input']:,}",
            f"Total Output Tokens: {tokens['output']:,}",
            f"Total Cost: ${self.get_total_cost():.4f}",
            "",
            "Operations:",
        ]
        lines.extend(f"  {op}: {count}" for op, count in self.get_operation_counts().items())
        return "\n".join(lines)

    def clear(self) -> None:
        self._records = []

    def export(self) -> List[CompletionRecord]:
        """Copy of all records in recording order."""
        return list(self._records)
