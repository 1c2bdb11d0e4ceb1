"""
Deriving commit hints from a branch name.

``feature/user-auth`` suggests a ``feat`` commit scoped to ``user-auth``;
``hotfix/JIRA-123-login`` suggests ``fix`` scoped to ``login``. The result
is only a hint passed to the model.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


# prefix -> (branch type, suggested commit type)
_PREFIXES = {
    "feat": ("feature", "feat"),
    "feature": ("feature", "feat"),
    "features": ("feature", "feat"),
    "fix": ("fix", "fix"),
    "bugfix": ("fix", "fix"),
    "hotfix": ("hotfix", "fix"),
    "release": ("release", "chore"),
    "chore": ("chore", "chore"),
    "doc": ("docs", "docs"),
    "docs": ("docs", "docs"),
    "refactor": ("refactor", "refactor"),
    "test": ("test", "test"),
    "tests": ("test", "test"),
    "perf": ("perf", "perf"),
    "performance": ("perf", "perf"),
}
_NOISE_WORDS = {"feature", "feat", "fix", "bug", "hotfix", "chore", "doc", "docs", "refactor", "test", "perf"}


@dataclass
class BranchContext:
    branch_name: str
    branch_type: str = "other"
    scope: Optional[str] = None
    suggested_type: Optional[str] = None


def _clean_scope(scope: str) -> Optional[str]:
    cleaned = re.sub(r"^[a-z]+-\d+-", "", scope)  # JIRA-123-
    cleaned = re.sub(r"^[a-z]+#\d+-", "", cleaned)  # gh#12-
    cleaned = re.sub(r"-\d+-", "-", cleaned)
    cleaned = re.sub(r"-\d{3,}$", "", cleaned)
    cleaned = re.sub(r"--+", "-", cleaned).strip().strip("-")
    return cleaned or None


def analyze_branch(branch_name: str) -> BranchContext:
    """Extract the branch type, suggested commit type and scope from a name."""
    normalized = branch_name.strip().lower()
    prefix, _, rest = normalized.partition("/")
    if prefix not in _PREFIXES:
        # "fix-login-bug" style names carry the type in the first word
        prefix = prefix.split("-", 1)[0]
    branch_type, suggested = _PREFIXES.get(prefix, ("other", None))
    scope: Optional[str] = rest or None

    if scope is None and "-" in normalized:
        words = [w for w in normalized.split("-") if w not in _NOISE_WORDS]
        if words:
            scope = "-".join(words)

    return BranchContext(
        branch_name=branch_name.strip(),
        branch_type=branch_type,
        scope=_clean_scope(scope) if scope else None,
        suggested_type=suggested,
    )


def format_branch_context(context: BranchContext) -> str:
    """Render a branch context as prompt text."""
    lines = [f"Current branch: {context.branch_name}", f"Branch type: {context.branch_type}"]
    if context.suggested_type:
        lines.append(f"Suggested commit type: {context.suggested_type}")
    if context.scope:
        lines.append(f"Suggested scope: {context.scope}")
    return "\n".join(lines)
