"""
Removal of irrelevant and binary files from a diff.

Files are excluded when their path matches one of a set of regular
expressions (build outputs, dependency directories, editor artifacts,
lock and log files) or when the version control system reports them as
binary. Binary detection costs a subprocess round-trip, so it is only
performed when something survives the pattern check and the surviving
diff is large enough to matter.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional, Pattern, Sequence, Set

from commit_composer.diff.splitter import DIFF_SEPARATOR, FileDiff, parse_header_path


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


BINARY_CHECK_THRESHOLD = 5000

DEFAULT_EXCLUDE_PATTERNS: List[Pattern[str]] = [
    re.compile(p)
    for p in (
        r"node_modules",
        r"\.git/",
        r"dist/",
        r"build/",
        r"\.next/",
        r"\.nuxt/",
        r"\.cache/",
        r"coverage/",
        r"\.nyc_output/",
        r"\.vscode/",
        r"\.idea/",
        r"\.DS_Store$",
        r"Thumbs\.db$",
        r"\.log$",
        r"\.lock$",
        r"package-lock\.json$",
        r"yarn\.lock$",
        r"pnpm-lock\.yaml$",
    )
]

BinaryDetector = Callable[[], Iterable[str]]


class NoRelevantChangesError(Exception):
    """Raised when filtering removes every file from a diff."""

    pass


def compile_patterns(patterns: Iterable[str]) -> List[Pattern[str]]:
    """Compile user-supplied regular expressions.

    Raises
    ------
    ValueError
        If a pattern is not a valid regular expression.
    """
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ValueError(f"Invalid exclude pattern {pattern!r}: {exc}") from exc
    return compiled


def should_exclude_file(file_path: str, patterns: Sequence[Pattern[str]]) -> bool:
    return any(pattern.search(file_path) for pattern in patterns)


def _excluded_paths(
    paths: Sequence[str],
    remaining_size: Callable[[Set[str]], int],
    exclude_patterns: Sequence[Pattern[str]],
    binary_detector: Optional[BinaryDetector],
    binary_check_threshold: int,
) -> Set[str]:
    excluded = {path for path in paths if should_exclude_file(path, exclude_patterns)}
    if binary_detector is None or len(excluded) >= len(set(paths)):
        return excluded
    if remaining_size(excluded) <= binary_check_threshold:
        return excluded
    binary = set(binary_detector())
    if binary:
        logger.debug("Binary files reported by VCS: %s", sorted(binary))
    excluded.update(path for path in paths if path in binary)
    return excluded


def filter_file_diffs(
    files: Sequence[FileDiff],
    exclude_patterns: Optional[Sequence[Pattern[str]]] = None,
    binary_detector: Optional[BinaryDetector] = None,
    binary_check_threshold: int = BINARY_CHECK_THRESHOLD,
) -> List[FileDiff]:
    """Return the files that are neither excluded by pattern nor binary.

    Raises
    ------
    NoRelevantChangesError
        If ``files`` is non-empty and every file was filtered out.
    """
    if not files:
        return []
    patterns = DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns

    def remaining_size(excluded: Set[str]) -> int:
        return sum(f.size for f in files if f.file_path not in excluded)

    excluded = _excluded_paths(
        [f.file_path for f in files], remaining_size, patterns, binary_detector, binary_check_threshold
    )
    kept = [f for f in files if f.file_path not in excluded]
    logger.debug("Filtered %d of %d file(s)", len(files) - len(kept), len(files))
    if not kept:
        raise NoRelevantChangesError("No relevant changes to commit after filtering")
    return kept


def filter_diff(
    diff: str,
    exclude_patterns: Optional[Sequence[Pattern[str]]] = None,
    binary_detector: Optional[BinaryDetector] = None,
    binary_check_threshold: int = BINARY_CHECK_THRESHOLD,
) -> str:
    """Filter a raw diff string, preserving the original section boundaries.

    Sections whose header cannot be parsed are kept. A diff without any
    header is returned unchanged.

    Raises
    ------
    NoRelevantChangesError
        If the diff had file sections and all of them were filtered out.
    """
    if not diff or not diff.strip():
        return diff
    chunks = diff.split(DIFF_SEPARATOR)
    if len(chunks) <= 1:
        return diff

    chunk_paths = [parse_header_path(chunk) for chunk in chunks[1:]]
    paths = [p for p in chunk_paths if p is not None]
    if not paths:
        return diff
    patterns = DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns

    def remaining_size(excluded: Set[str]) -> int:
        return sum(
            len(DIFF_SEPARATOR) + len(chunk)
            for chunk, path in zip(chunks[1:], chunk_paths)
            if path not in excluded
        )

    excluded = _excluded_paths(paths, remaining_size, patterns, binary_detector, binary_check_threshold)
    if not excluded:
        return diff

    kept = [chunks[0]]
    for chunk, path in zip(chunks[1:], chunk_paths):
        if path is not None and path in excluded:
            continue
        kept.append(chunk)
    if len(kept) == 1:
        raise NoRelevantChangesError("No relevant changes to commit after filtering")
    logger.debug("Filtered %d section(s) out of the diff", len(chunks) - len(kept))
    return DIFF_SEPARATOR.join(kept)
