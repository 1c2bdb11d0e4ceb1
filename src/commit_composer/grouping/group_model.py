"""
Data models for commit grouping.

A :class:`FileGroup` is a named set of file diffs that should be committed
together; a :class:`CommitGroup` is a file group that has received a
commit message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from commit_composer.diff.splitter import FileDiff


@dataclass
class FileGroup:
    """A group of related file diffs.

    Attributes
    ----------
    id : str
        Identifier, unique within one grouping.
    name : str
        Short human readable name, e.g. ``"src/utils (5 files)"``.
    files : List[FileDiff]
        Member files in order.
    description : str, optional
        Why the files belong together.
    """

    id: str
    name: str
    files: List[FileDiff] = field(default_factory=list)
    description: Optional[str] = None

    @property
    def total_size(self) -> int:
        """Sum of the member diff sizes, always computed from ``files``."""
        return sum(f.size for f in self.files)

    @property
    def file_paths(self) -> List[str]:
        return [f.file_path for f in self.files]


@dataclass
class CommitGroup(FileGroup):
    """A file group with its generated (or fallback) commit message."""

    message: str = ""
    confirmed: bool = False

    @classmethod
    def from_group(cls, group: FileGroup, message: str) -> "CommitGroup":
        return cls(
            id=group.id,
            name=group.name,
            files=list(group.files),
            description=group.description,
            message=message,
        )
