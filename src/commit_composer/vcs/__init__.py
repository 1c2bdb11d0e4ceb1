"""
Version control collaborators for commit_composer.

The :class:`GitClient` supplies diffs, the authoritative list of changed
paths and binary-file detection; :mod:`commit_composer.vcs.branch` turns a
branch name into a commit hint.
"""

from .git_client import GitClient, GitError  # noqa: F401
from .branch import BranchContext, analyze_branch, format_branch_context  # noqa: F401
