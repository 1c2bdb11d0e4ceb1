"""
Token accounting for commit_composer.

See :mod:`commit_composer.tokens.counter` for the exact/approximate
counters and :mod:`commit_composer.tokens.cost` for price estimates.
"""

from .counter import (  # noqa: F401
    MESSAGE_OVERHEAD_TOKENS,
    TokenCounter,
    approximate_token_count,
    get_default_counter,
    set_default_counter,
    token_count,
)
from .cost import CostEstimate, estimate_cost  # noqa: F401
