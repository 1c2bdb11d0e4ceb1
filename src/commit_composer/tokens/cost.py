"""
Rough cost estimation for a generation request.

Prices are per one million tokens and only approximate; unknown models
use a conservative default. Local providers (Ollama) are free.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


PRICING: Dict[str, Tuple[float, float]] = {
    # model: (input, output)
    "gpt-4o": (2.5, 10.0),
    "gpt-4o-mini": (0.15, 0.6),
    "gpt-4-turbo": (10.0, 30.0),
    "gpt-4": (30.0, 60.0),
    "gpt-3.5-turbo": (0.5, 1.5),
    "claude-3-5-sonnet-20241022": (3.0, 15.0),
    "claude-3-haiku-20240307": (0.25, 1.25),
    "gemini-1.5-pro": (1.25, 5.0),
    "gemini-1.5-flash": (0.075, 0.3),
}
DEFAULT_PRICING = (1.0, 3.0)


@dataclass
class CostEstimate:
    input_tokens: int
    output_tokens: int
    estimated_cost: float
    currency: str = "$"


def estimate_cost(input_tokens: int, output_tokens: int, model: str, provider: str = "openai") -> CostEstimate:
    """Estimate the price of a request with the given token counts."""
    if provider == "ollama":
        return CostEstimate(input_tokens, output_tokens, 0.0)
    input_price, output_price = PRICING.get(model.lower(), DEFAULT_PRICING)
    cost = (input_tokens / 1_000_000) * input_price + (output_tokens / 1_000_000) * output_price
    return CostEstimate(input_tokens, output_tokens, cost)
