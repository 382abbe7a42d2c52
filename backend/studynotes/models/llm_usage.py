"""
LLM usage record returned alongside every completion.
"""

from dataclasses import dataclass
from typing import Any, Optional

import litellm


@dataclass
class LLMUsage:
    """Tokens, cost and latency for one LLM request."""

    model: str
    operation: Optional[str] = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: Optional[float] = None
    latency_ms: int = 0


def extract_usage_from_response(
    response: Any,
    model: str,
    latency_ms: int,
    operation: Optional[str] = None,
) -> LLMUsage:
    """Build an LLMUsage from a LiteLLM completion response."""
    usage = getattr(response, "usage", None)

    try:
        cost = litellm.completion_cost(completion_response=response)
    except Exception:
        # Unknown model pricing is not an error for the caller
        cost = None

    return LLMUsage(
        model=model,
        operation=operation,
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
        cost_usd=cost,
        latency_ms=latency_ms,
    )

