"""
Forcing request content under the input token ceiling.

Content that still overflows a request after packing is cut down in
order of preference:

1. content that fits (minus a safety buffer) is returned unchanged;
2. multi-file content is trimmed at file boundaries, keeping whole files
   while they fit in 90% of the budget and cutting only the first file
   that does not;
3. otherwise the whole content is cut to its longest fitting prefix;
4. the result is re-measured against the real ceiling and, failing a few
   retries, :class:`BudgetExceededError` is raised.

Cuts always land on a line break and are followed by
:data:`TRUNCATION_NOTICE`.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from commit_composer.diff.splitter import DIFF_SEPARATOR
from commit_composer.packing.budget import TokenBudget
from commit_composer.tokens.counter import TokenCounter, get_default_counter


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


TRUNCATION_NOTICE = "... (diff truncated to fit within the token limit) ..."
SAFETY_BUFFER_TOKENS = 50
# Share of the budget used by the file-boundary pass; the margin absorbs
# drift between approximate and exact counts.
CONSERVATIVE_FRACTION = 0.9
# Below this many tokens a partial file is not worth including.
MIN_PARTIAL_FILE_TOKENS = 20
MAX_VERIFY_RETRIES = 3


class BudgetExceededError(Exception):
    """Raised when a request cannot be brought under the input token ceiling."""

    def __init__(self, system_prompt_tokens: int, remaining_tokens: int, max_input_tokens: int, content_tokens: int) -> None:
        self.system_prompt_tokens = system_prompt_tokens
        self.remaining_tokens = remaining_tokens
        self.max_input_tokens = max_input_tokens
        self.content_tokens = content_tokens
        super().__init__(
            f"Request does not fit within {max_input_tokens} input tokens: the system prompt "
            f"uses {system_prompt_tokens} tokens, leaving {remaining_tokens} tokens for content, "
            f"but the content cannot be reduced below {content_tokens} tokens. "
            f"Increase the configured max_input_tokens."
        )


def _with_notice(prefix: str) -> str:
    return f"{prefix}\n{TRUNCATION_NOTICE}" if prefix else TRUNCATION_NOTICE


def _longest_prefix(text: str, limit: int, counter: TokenCounter) -> int:
    """Length of the longest prefix of ``text`` costing at most ``limit`` tokens."""
    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if counter.count(text[:mid], memoize=False) <= limit:
            lo = mid
        else:
            hi = mid - 1
    return lo


def truncate_to_tokens(text: str, max_tokens: int, counter: Optional[TokenCounter] = None) -> str:
    """Cut ``text`` to at most ``max_tokens`` tokens, notice included.

    The cut is snapped back to the preceding line break. When the budget
    is not positive, or no whole line fits, only the notice is returned.
    """
    if max_tokens <= 0:
        return TRUNCATION_NOTICE
    counter = counter or get_default_counter()
    if counter.count(text, memoize=False) <= max_tokens:
        return text

    limit = max_tokens - counter.count("\n" + TRUNCATION_NOTICE)
    for _ in range(MAX_VERIFY_RETRIES):
        if limit <= 0:
            break
        length = _longest_prefix(text, limit, counter)
        cut = text.rfind("\n", 0, length + 1)
        if cut <= 0:
            break
        result = _with_notice(text[:cut])
        tokens = counter.count(result, memoize=False)
        if tokens <= max_tokens:
            return result
        limit -= tokens - max_tokens
    return TRUNCATION_NOTICE


def truncate_by_files(content: str, max_tokens: int, counter: Optional[TokenCounter] = None) -> Optional[str]:
    """Trim multi-file content at file boundaries.

    Whole files are kept while the running total stays under
    ``CONSERVATIVE_FRACTION * max_tokens``. The first file that does not
    fit is cut to the remaining budget if enough of it is left; all later
    files are dropped.

    Returns
    -------
    Optional[str]
        The trimmed content, or None when the content holds fewer than two
        file sections or nothing at all could be kept.
    """
    chunks = content.split(DIFF_SEPARATOR)
    if len(chunks) < 3:
        return None
    counter = counter or get_default_counter()
    pieces = [chunks[0]] + [DIFF_SEPARATOR + chunk for chunk in chunks[1:]]
    conservative = int(max_tokens * CONSERVATIVE_FRACTION)

    kept: List[str] = []
    used = 0
    truncated = False
    for piece in pieces:
        if not piece:
            continue
        cost = counter.count(piece)
        if used + cost <= conservative:
            kept.append(piece)
            used += cost
            continue
        remaining = conservative - used
        if remaining >= MIN_PARTIAL_FILE_TOKENS:
            kept.append(truncate_to_tokens(piece, remaining, counter))
            truncated = True
        break
    else:
        return content

    if not kept:
        return None
    result = "".join(kept)
    if not truncated:
        result = _with_notice(result.rstrip("\n"))
    logger.debug("File-boundary truncation kept %d of %d section(s)", len(kept), len(pieces))
    return result


def fit_content_to_budget(
    content: str,
    budget: TokenBudget,
    counter: Optional[TokenCounter] = None,
    safety_buffer: int = SAFETY_BUFFER_TOKENS,
) -> str:
    """Return ``content``, shortened if needed to fit the request budget.

    Raises
    ------
    BudgetExceededError
        If the result still exceeds ``budget.remaining_budget`` after
        :data:`MAX_VERIFY_RETRIES` attempts.
    """
    counter = counter or get_default_counter()
    ceiling = budget.remaining_budget
    limit = ceiling - safety_buffer
    if counter.count(content) <= limit:
        return content

    logger.debug("Content exceeds %d tokens, truncating", limit)
    candidate = truncate_by_files(content, limit, counter)
    if candidate is None or counter.count(candidate, memoize=False) > limit:
        candidate = truncate_to_tokens(content, limit, counter)

    tokens = counter.count(candidate, memoize=False)
    for _ in range(MAX_VERIFY_RETRIES):
        if tokens <= ceiling:
            logger.info("Diff truncated to %d tokens to fit the input limit", tokens)
            return candidate
        limit = min(limit, ceiling) - (tokens - ceiling)
        candidate = truncate_to_tokens(content, limit, counter)
        tokens = counter.count(candidate, memoize=False)

    logger.error(
        "Cannot fit request: system prompt %d tokens, %d tokens left, content %d tokens",
        budget.system_prompt_tokens,
        ceiling,
        tokens,
    )
    raise BudgetExceededError(budget.system_prompt_tokens, ceiling, budget.max_input_tokens, tokens)
