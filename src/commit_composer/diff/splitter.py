"""
Splitting a raw unified diff into per-file records.

A diff blob produced by ``git diff`` is a sequence of sections, each
introduced by a ``diff --git a/<path> b/<path>`` header line. The
splitter returns one :class:`FileDiff` per distinct "b" path, in
first-seen order. Sections for the same path (for instance staged and
unstaged edits supplied together) are merged into a single record.

A diff without any header yields no records at all; the whole blob is
never treated as one anonymous file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DIFF_SEPARATOR = "diff --git "
MAX_PATH_LENGTH = 500

_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+?)$")
_NUMERIC_RE = re.compile(r"^[\d\s]+$")


@dataclass
class FileDiff:
    """Diff of a single file.

    Attributes
    ----------
    file_path : str
        Path of the file after the change (the "b" path).
    diff : str
        Unified diff text for the file, header included. May hold several
        concatenated sections for the same path.
    """

    file_path: str
    diff: str

    @property
    def size(self) -> int:
        """Size of the diff text in characters."""
        return len(self.diff)


def parse_header_path(chunk: str) -> Optional[str]:
    """Return the "b" path from the header of a chunk, or None.

    ``chunk`` is the text that followed a ``diff --git `` introducer.
    """
    newline = chunk.find("\n")
    if newline <= 0:
        return None
    header = (DIFF_SEPARATOR + chunk[:newline]).rstrip("\r")
    match = _HEADER_RE.match(header)
    if not match:
        return None
    return match.group(2).strip()


def is_valid_path(path: str) -> bool:
    """Reject candidate paths that are artifacts of a mis-split diff."""
    if not path or len(path) >= MAX_PATH_LENGTH:
        return False
    if "\n" in path or "\r" in path:
        return False
    # Template/interpolation syntax shows up when a diff of test fixtures
    # contains embedded diff headers.
    if "${" in path or "`" in path:
        return False
    if path.startswith("a/"):
        return False
    if _NUMERIC_RE.match(path):
        return False
    return True


def split_diff_by_files(diff: str, known_paths: Optional[Iterable[str]] = None) -> List[FileDiff]:
    """Split a raw diff into :class:`FileDiff` records.

    Parameters
    ----------
    diff : str
        Raw unified diff text.
    known_paths : Iterable[str], optional
        Authoritative list of changed paths from the version control
        system. When given and non-empty, parsed paths missing from it
        are rejected.

    Returns
    -------
    List[FileDiff]
        One record per distinct path, in first-seen order.
    """
    if not diff or not diff.strip():
        return []

    valid_paths = set(known_paths) if known_paths else None
    chunks = diff.split(DIFF_SEPARATOR)
    files: Dict[str, FileDiff] = {}

    for chunk in chunks[1:]:
        path = parse_header_path(chunk)
        if path is None or not is_valid_path(path):
            logger.debug("Skipping diff section with unusable header: %r", chunk[:80])
            continue
        if valid_paths is not None and path not in valid_paths:
            logger.debug("Skipping '%s': not in the list of changed files", path)
            continue
        section = DIFF_SEPARATOR + chunk
        existing = files.get(path)
        if existing is not None:
            existing.diff = existing.diff + "\n" + section
        else:
            files[path] = FileDiff(file_path=path, diff=section)

    logger.debug("Split diff into %d file(s)", len(files))
    return list(files.values())


def combine_file_diffs(files: Iterable[FileDiff]) -> str:
    """Join the diffs of several files into one diff string."""
    return "\n".join(f.diff for f in files)


def format_size(size: int) -> str:
    """Format a size in bytes for display (``"1.5 KB"``)."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
