"""
Request packing for commit_composer.

Budget arithmetic (:mod:`commit_composer.packing.budget`), greedy chunking
of file diffs (:mod:`commit_composer.packing.composer`) and truncation of
over-budget content (:mod:`commit_composer.packing.truncator`).
"""

from .budget import TokenBudget  # noqa: F401
from .composer import merge_diffs, split_sections  # noqa: F401
from .truncator import (  # noqa: F401
    TRUNCATION_NOTICE,
    BudgetExceededError,
    fit_content_to_budget,
    truncate_by_files,
    truncate_to_tokens,
)
