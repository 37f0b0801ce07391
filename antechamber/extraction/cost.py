from __future__ import annotations

from typing import Optional

from .models import DEFAULT_MODEL, LLMUsage

# USD per token
MODEL_PRICING = {
    "claude-sonnet-4-20250514": {"input": 3 / 1_000_000, "output": 15 / 1_000_000},
}


def estimate_cost_usd(usage: LLMUsage, model: Optional[str] = None) -> float:
    """Estimate the cost of ``usage``; unknown models use the default pricing."""
    pricing = MODEL_PRICING.get(model or DEFAULT_MODEL, MODEL_PRICING[DEFAULT_MODEL])
    return usage.input_tokens * pricing["input"] + usage.output_tokens * pricing["output"]
