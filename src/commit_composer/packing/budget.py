"""
Token budget of a single generation request.
"""

from __future__ import annotations

from dataclasses import dataclass


# Tokens held back for per-request framing the counters cannot see.
ADJUSTMENT_FACTOR = 20


@dataclass
class TokenBudget:
    """Input budget left for user content in one request.

    Attributes
    ----------
    max_input_tokens : int
        Hard ceiling on input tokens accepted by the backend.
    max_output_tokens : int
        Tokens reserved for the generated reply.
    system_prompt_tokens : int
        Tokens already spent on the shared system prompt and framing.
    adjustment : int
        Fixed allowance subtracted from every request.
    """

    max_input_tokens: int
    max_output_tokens: int
    system_prompt_tokens: int = 0
    adjustment: int = ADJUSTMENT_FACTOR

    @property
    def remaining_budget(self) -> int:
        return self.max_input_tokens - self.adjustment - self.system_prompt_tokens - self.max_output_tokens
