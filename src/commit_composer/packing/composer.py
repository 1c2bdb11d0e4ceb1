"""
Packing per-file diffs into token-bounded request chunks.

The packer is a greedy first-fit: files are appended to the current
chunk while the chunk stays within the limit, otherwise a new chunk is
started. It is not an optimal bin-packing, but it keeps file order and
needs a single pass. A file whose own diff exceeds the limit ends up
alone in an oversized chunk and is left to the truncator.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from commit_composer.diff.splitter import DIFF_SEPARATOR
from commit_composer.tokens.counter import TokenCounter, get_default_counter


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CHUNK_JOINER = "\n"


def split_sections(diff: str) -> List[str]:
    """Split a raw diff into per-file sections, keeping each header.

    Text before the first header is dropped.
    """
    return [DIFF_SEPARATOR + chunk for chunk in diff.split(DIFF_SEPARATOR)[1:]]


def merge_diffs(
    diffs: Sequence[str],
    max_tokens: int,
    counter: Optional[TokenCounter] = None,
) -> List[str]:
    """Merge file diffs into chunks of at most ``max_tokens`` tokens.

    Parameters
    ----------
    diffs : Sequence[str]
        Per-file diffs in the order they should appear.
    max_tokens : int
        Maximum token count of a chunk.
    counter : TokenCounter, optional
        Counter used for chunk sizes. Defaults to the shared counter.

    Returns
    -------
    List[str]
        Chunks in file order. Only a chunk holding a single file may exceed
        ``max_tokens``.
    """
    if not diffs:
        return []
    if len(diffs) == 1:
        return [diffs[0]]
    counter = counter or get_default_counter()

    merged: List[str] = []
    current = ""
    for diff in diffs:
        if not current:
            current = diff
            continue
        candidate = current + CHUNK_JOINER + diff
        # The joined text is measured, not the sum of its parts: token
        # boundaries at the seam can differ from the separate encodings.
        if counter.count(candidate) <= max_tokens:
            current = candidate
        else:
            merged.append(current)
            current = diff
    if current:
        merged.append(current)

    logger.debug("Packed %d file diff(s) into %d chunk(s) of <= %d tokens", len(diffs), len(merged), max_tokens)
    return merged
