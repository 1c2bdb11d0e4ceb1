"""
Grouping logic for batch commits.

This package holds the group data models and the reconciliation of a
model-suggested partition to a fixed number of commits. See
:mod:`commit_composer.grouping.group_model` and
:mod:`commit_composer.grouping.reconciler` for details.
"""

from .group_model import CommitGroup, FileGroup  # noqa: F401
from .reconciler import (  # noqa: F401
    ParsedGroups,
    ParseFailed,
    SuggestedGroup,
    build_groups_from_suggestion,
    group_files_by_directory,
    parse_grouping_response,
    reconcile_group_count,
)
