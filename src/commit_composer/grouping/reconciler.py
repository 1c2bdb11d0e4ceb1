"""
Turning a model-suggested file partition into exactly N commit groups.

The model is asked to return a JSON array of groups, each naming its
files by 1-based index. Its reply is untrusted: it is parsed into a
tagged result (:class:`ParsedGroups` or :class:`ParseFailed`) and
validated field by field. A reply that cannot be parsed is replaced by a
deterministic directory-based grouping.

Parsed suggestions are then reconciled to the requested count by merging
the two smallest groups or splitting the largest one, one group at a
time. Every input file ends up in exactly one output group.
"""

from __future__ import annotations

import itertools
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from commit_composer.diff.splitter import FileDiff
from commit_composer.grouping.group_model import FileGroup


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


_FENCE_START_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\s*```$")


@dataclass(frozen=True)
class SuggestedGroup:
    """One group as proposed by the model, indices still 1-based."""

    files: List[int]
    name: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ParsedGroups:
    groups: List[SuggestedGroup] = field(default_factory=list)


@dataclass(frozen=True)
class ParseFailed:
    reason: str


GroupingParseResult = Union[ParsedGroups, ParseFailed]


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _parse_item(item: Any) -> Optional[SuggestedGroup]:
    if not isinstance(item, dict):
        return None
    raw_files = item.get("files")
    if not isinstance(raw_files, list):
        return None
    # bool is a subclass of int and never a valid index
    indices = [idx for idx in raw_files if isinstance(idx, int) and not isinstance(idx, bool)]
    if not indices:
        return None
    return SuggestedGroup(
        files=indices,
        name=_optional_text(item.get("name")),
        description=_optional_text(item.get("description")),
    )


def parse_grouping_response(response: Optional[str]) -> GroupingParseResult:
    """Parse the model's grouping reply.

    Markdown code fences and any prose around the outermost JSON array
    are removed before decoding. Items that are not objects with a
    non-empty integer ``files`` list are skipped.
    """
    if not response or not response.strip():
        return ParseFailed("empty response")
    cleaned = _FENCE_START_RE.sub("", response.strip())
    cleaned = _FENCE_END_RE.sub("", cleaned)
    first, last = cleaned.find("["), cleaned.rfind("]")
    if first >= 0 and last > first:
        cleaned = cleaned[first : last + 1]
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return ParseFailed(f"invalid JSON: {exc}")
    if not isinstance(data, list):
        return ParseFailed("response is not an array")

    groups = []
    for item in data:
        parsed = _parse_item(item)
        if parsed is None:
            logger.debug("Ignoring malformed grouping entry: %r", item)
            continue
        groups.append(parsed)
    return ParsedGroups(groups)


def build_groups_from_suggestion(files: Sequence[FileDiff], suggestions: Sequence[SuggestedGroup]) -> List[FileGroup]:
    """Convert validated suggestions into :class:`FileGroup` objects.

    Out-of-range indices and indices already claimed by an earlier group
    are dropped. Files claimed by no group become singleton groups.
    """
    groups: List[FileGroup] = []
    claimed: Set[int] = set()

    for i, suggestion in enumerate(suggestions):
        indices = []
        for idx in suggestion.files:
            zero_based = idx - 1
            if 0 <= zero_based < len(files) and zero_based not in claimed and zero_based not in indices:
                indices.append(zero_based)
        if not indices:
            continue
        claimed.update(indices)
        groups.append(
            FileGroup(
                id=f"ai-group-{i}",
                name=suggestion.name or f"Group {i + 1}",
                files=[files[idx] for idx in indices],
                description=suggestion.description,
            )
        )

    for i, file in enumerate(files):
        if i not in claimed:
            groups.append(FileGroup(id=f"ai-file-{i}", name=file.file_path, files=[file]))
    return groups


def group_files_by_directory(files: Sequence[FileDiff], group_by: str = "directory") -> List[FileGroup]:
    """Deterministic grouping by containing directory (or one group per file).

    Root-level files share the ``"."`` group. Groups are sorted by name.
    """
    if group_by == "file":
        return [FileGroup(id=f"file-{i}", name=f.file_path, files=[f]) for i, f in enumerate(files)]
    if group_by != "directory":
        raise ValueError(f"Unknown grouping mode: {group_by!r}")

    by_directory: Dict[str, List[FileDiff]] = {}
    for f in files:
        directory = f.file_path.rsplit("/", 1)[0] if "/" in f.file_path else "."
        by_directory.setdefault(directory or ".", []).append(f)

    groups = []
    for i, (directory, members) in enumerate(by_directory.items()):
        name = f"{directory} ({len(members)} files)" if len(members) > 1 else members[0].file_path
        groups.append(FileGroup(id=f"dir-{i}", name=name, files=members))
    groups.sort(key=lambda g: g.name)
    return groups


def _merge_pair(first: FileGroup, second: FileGroup, group_id: str) -> FileGroup:
    return FileGroup(
        id=group_id,
        name=f"{first.name} + {second.name}",
        files=list(first.files) + list(second.files),
        description=f"Merged: {first.description or first.name} and {second.description or second.name}",
    )


def reconcile_group_count(groups: Sequence[FileGroup], target: int) -> List[FileGroup]:
    """Merge or split groups until there are exactly ``target`` of them.

    Too many groups: the two smallest (by total size) are merged, until the
    target is reached or one group is left. Too few: the largest group is
    split in half by position, until the target is reached or the largest
    group holds a single file, in which case the shortfall is accepted.

    Raises
    ------
    ValueError
        If ``target`` is less than 1.
    """
    if target < 1:
        raise ValueError(f"Target group count must be positive, got {target}")
    result = list(groups)
    merge_ids = itertools.count(1)

    while len(result) > target and len(result) > 1:
        result.sort(key=lambda g: g.total_size)
        smallest, second = result[0], result[1]
        result[0] = _merge_pair(smallest, second, f"merged-{next(merge_ids)}")
        del result[1]
        logger.debug("Merged '%s' and '%s' (%d groups left)", smallest.name, second.name, len(result))

    while 0 < len(result) < target:
        result.sort(key=lambda g: g.total_size, reverse=True)
        largest = result[0]
        if len(largest.files) <= 1:
            logger.debug("Cannot split further; stopping at %d of %d groups", len(result), target)
            break
        mid = len(largest.files) // 2
        result[0] = FileGroup(
            id=f"{largest.id}-1",
            name=f"{largest.name} (part 1)",
            files=largest.files[:mid],
            description=largest.description,
        )
        result.append(
            FileGroup(
                id=f"{largest.id}-2",
                name=f"{largest.name} (part 2)",
                files=largest.files[mid:],
                description=largest.description,
            )
        )
        logger.debug("Split '%s' (%d groups now)", largest.name, len(result))

    return result
