"""
Shrinking oversized diffs before they are sent to the model.

The optimizer runs four stages over every large file section:

1. drop ``Binary files ... differ`` lines,
2. cut the file body after :data:`MAX_LINES_PER_FILE` lines,
3. collapse long runs of unchanged context lines,
4. collapse long runs of whitespace-only additions/removals.

Every line it keeps is an unmodified diff line; everything it removes is
replaced by a marker line of the form ``... (N ...) ...``.
"""

from __future__ import annotations

import logging
import re
from typing import List

from commit_composer.diff.splitter import DIFF_SEPARATOR


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


OPTIMIZE_THRESHOLD = 5000
FILE_OPTIMIZE_THRESHOLD = 2000
MAX_LINES_PER_FILE = 500
MAX_CONTEXT_LINES = 50
MAX_WHITESPACE_RUN = 5

_BINARY_RE = re.compile(r"^Binary files .* differ$")


def remove_binary_indicators(diff: str) -> str:
    """Remove ``Binary files a/x and b/x differ`` lines."""
    return "\n".join(line for line in diff.split("\n") if not _BINARY_RE.match(line.strip()))


def _header_end(lines: List[str]) -> int:
    """Index of the last header line: the first hunk marker, else ``+++``."""
    for i, line in enumerate(lines):
        if line.startswith("@@"):
            return i
    for i, line in enumerate(lines):
        if line.startswith("+++"):
            return i
    return -1


def truncate_file_diff(file_diff: str, max_lines: int = MAX_LINES_PER_FILE) -> str:
    """Keep the header and the first ``max_lines`` body lines of a file diff."""
    lines = file_diff.split("\n")
    if len(lines) <= max_lines:
        return file_diff
    end = _header_end(lines)
    header, body = lines[: end + 1], lines[end + 1 :]
    if len(body) <= max_lines:
        return file_diff
    removed = len(body) - max_lines
    kept = header + body[:max_lines]
    kept.append(f"... ({removed} more lines truncated to reduce token usage) ...")
    return "\n".join(kept)


def _is_context(line: str) -> bool:
    return line.startswith(" ")


def _flush_context(run: List[str], result: List[str], max_context: int) -> None:
    if len(run) > max_context:
        keep = max_context // 2
        result.extend(run[:keep])
        result.append(f"... ({len(run) - keep * 2} context lines) ...")
        result.extend(run[len(run) - keep :])
    else:
        result.extend(run)


def summarize_context_lines(diff: str, max_context: int = MAX_CONTEXT_LINES) -> str:
    """Replace the middle of long unchanged-context runs with a count marker."""
    result: List[str] = []
    run: List[str] = []
    for line in diff.split("\n"):
        if _is_context(line):
            run.append(line)
            continue
        _flush_context(run, result, max_context)
        run = []
        result.append(line)
    _flush_context(run, result, max_context)
    return "\n".join(result)


def _is_whitespace_change(line: str) -> bool:
    return line[:1] in ("+", "-") and not line[1:].strip()


def compress_whitespace_changes(diff: str, max_run: int = MAX_WHITESPACE_RUN) -> str:
    """Collapse runs of more than ``max_run`` whitespace-only changed lines."""
    result: List[str] = []
    run: List[str] = []

    def flush() -> None:
        if len(run) > max_run:
            result.append(f"... ({len(run)} whitespace-only lines) ...")
        else:
            result.extend(run)

    for line in diff.split("\n"):
        if _is_whitespace_change(line):
            run.append(line)
            continue
        flush()
        run = []
        result.append(line)
    flush()
    return "\n".join(result)


def optimize_file_diff(file_diff: str) -> str:
    """Run all optimization stages over a single file diff."""
    optimized = remove_binary_indicators(file_diff)
    optimized = truncate_file_diff(optimized)
    optimized = summarize_context_lines(optimized)
    return compress_whitespace_changes(optimized)


def optimize_diff(diff: str, threshold: int = OPTIMIZE_THRESHOLD) -> str:
    """Return a cheaper version of ``diff``.

    Diffs shorter than ``threshold`` characters are returned unchanged.
    Multi-file diffs are optimized section by section; sections shorter
    than :data:`FILE_OPTIMIZE_THRESHOLD` only lose their binary markers.
    """
    if not diff or not diff.strip() or len(diff) < threshold:
        return diff

    chunks = diff.split(DIFF_SEPARATOR)
    if len(chunks) <= 1:
        return optimize_file_diff(diff)

    optimized_chunks = [chunks[0]]
    for chunk in chunks[1:]:
        file_diff = DIFF_SEPARATOR + chunk
        if len(file_diff) > FILE_OPTIMIZE_THRESHOLD:
            optimized = optimize_file_diff(file_diff)
        else:
            optimized = remove_binary_indicators(file_diff)
        if optimized.strip() == DIFF_SEPARATOR.strip():
            continue
        # the next header must start on its own line
        if file_diff.endswith("\n") and not optimized.endswith("\n"):
            optimized += "\n"
        optimized_chunks.append(optimized[len(DIFF_SEPARATOR) :])

    result = DIFF_SEPARATOR.join(optimized_chunks)
    logger.debug("Optimized diff from %d to %d characters", len(diff), len(result))
    return result
