"""
Diff processing for commit_composer.

Splitting raw diffs into per-file records
(:mod:`commit_composer.diff.splitter`), filtering irrelevant files
(:mod:`commit_composer.diff.filter`) and shrinking oversized diffs
(:mod:`commit_composer.diff.optimizer`).
"""

from .splitter import FileDiff, combine_file_diffs, format_size, split_diff_by_files  # noqa: F401
from .filter import NoRelevantChangesError, filter_diff, filter_file_diffs  # noqa: F401
from .optimizer import optimize_diff  # noqa: F401
