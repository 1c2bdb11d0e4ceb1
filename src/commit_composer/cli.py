"""
Command line interface for commit_composer.

The ``acp`` command has two subcommands:

* ``acp message`` prints a commit message for the staged diff (or for a
  diff file given with ``--diff-file``);
* ``acp batch N`` splits the changes into N commit groups, generates a
  message for each and, once confirmed, commits them.

Status output goes to stderr so that the generated message can be piped.
"""

from __future__ import annotations

import functools
import logging
import time
from pathlib import Path
from typing import List, Optional

import click

from commit_composer import __version__
from commit_composer.config.loader import ConfigError, Settings, load_settings
from commit_composer.diff.filter import NoRelevantChangesError, filter_file_diffs
from commit_composer.diff.splitter import format_size, split_diff_by_files
from commit_composer.grouping.group_model import CommitGroup, FileGroup
from commit_composer.llm.client import LLMError, create_client
from commit_composer.llm.commit_message_generator import CommitMessageGenerator
from commit_composer.packing.truncator import BudgetExceededError
from commit_composer.tokens.cost import estimate_cost
from commit_composer.tokens.counter import DEFAULT_ENCODING, TokenCounter, get_default_counter
from commit_composer.vcs.branch import analyze_branch
from commit_composer.vcs.git_client import GitClient, GitError

# Module-level logger with a null handler; the root handlers added by
# ``logging.basicConfig`` in the CLI make messages visible.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_BUDGET_EXCEEDED = 8


# ---------------------------------------------------------------------------
# Status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Print a step message on entry and its duration on exit."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"→ {self.message}...", err=True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            click.echo(f"  ✓ Done ({time.time() - self.start_time:.1f}s)", err=True)
        return False


def print_info(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}ℹ {message}", err=True)


def print_success(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✓ {message}", err=True)


def print_warning(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}⚠ {message}", err=True)


def print_error(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


# ---------------------------------------------------------------------------
# Shared setup
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool) -> None:
    # force=True so repeated invocations (tests) reconfigure handlers
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    # module loggers start detached; attach them to the root handlers now
    for name in list(logging.root.manager.loggerDict):
        if name.split(".", 1)[0] == "commit_composer":
            logging.getLogger(name).propagate = True


def exit_on_unexpected_error(func):
    """Turn an unhandled exception into a message and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, click.Abort):
            raise
        except Exception as exc:
            logging.exception("Unhandled error: %s", exc)
            print_error(f"Unexpected error: {exc}")
            raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    return wrapper


def load_settings_or_exit() -> Settings:
    try:
        return load_settings()
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)


def open_repository() -> GitClient:
    repo_root = GitClient.find_repo_root(Path.cwd())
    if repo_root is None:
        print_error("Current directory is not inside a Git repository.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    return GitClient(repo_root)


def build_generator(
    settings: Settings, git: Optional[GitClient], include_unstaged: bool = False
) -> CommitMessageGenerator:
    try:
        client = create_client(settings)
    except LLMError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    binary_detector = None
    if git is not None:
        binary_detector = functools.partial(git.get_binary_files, staged=True, unstaged=include_unstaged)
    if settings.encoding == DEFAULT_ENCODING:
        counter = get_default_counter()
    else:
        counter = TokenCounter(encoding_name=settings.encoding)
    try:
        return CommitMessageGenerator(
            client,
            settings,
            counter=counter,
            binary_detector=binary_detector,
        )
    except ValueError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)


def read_repository_diff(git: GitClient, include_unstaged: bool) -> str:
    try:
        with ProgressIndicator("Reading changes"):
            return git.get_diff(include_unstaged=include_unstaged)
    except GitError as exc:
        print_error(f"Git error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)


def print_groups(groups: List[FileGroup]) -> None:
    click.echo(f"\n📦 Will create {len(groups)} commit(s):\n", err=True)
    for index, group in enumerate(groups, start=1):
        paths = group.file_paths
        listing = ", ".join(paths) if len(paths) <= 5 else f"{', '.join(paths[:3])} and {len(paths) - 3} more"
        click.echo(
            f"{index:>3}. {click.style(group.name, bold=True)} "
            f"({len(paths)} file{'s' if len(paths) != 1 else ''}, {format_size(group.total_size)})",
            err=True,
        )
        if group.description:
            click.echo(f"     {group.description}", err=True)
        click.echo(f"     Files: {listing}", err=True)


def print_commit_groups(groups: List[CommitGroup]) -> None:
    click.echo(f"\n📝 Commit messages ({len(groups)}):\n")
    for index, group in enumerate(groups, start=1):
        click.echo(f"{index:>3}. {group.message.splitlines()[0] if group.message else ''}")
        for line in group.message.splitlines()[1:]:
            click.echo(f"     {line}")
        click.echo(f"     Files: {', '.join(group.file_paths)}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(version=__version__, prog_name="acp")
def main() -> None:
    """🚀 Commit messages from diffs, within your model's token budget."""


@main.command()
@click.option("--diff-file", type=click.File("r", encoding="utf-8"), help="Read the diff from a file ('-' for stdin).")
@click.option("--all", "include_unstaged", is_flag=True, help="Include unstaged changes.")
@click.option("--context", "-c", default="", help="Additional context for the model.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@exit_on_unexpected_error
def message(diff_file, include_unstaged: bool, context: str, verbose: bool) -> None:
    """Generate a commit message for the current changes."""
    configure_logging(verbose)
    settings = load_settings_or_exit()

    git: Optional[GitClient] = None
    if diff_file is not None:
        diff = diff_file.read()
    else:
        git = open_repository()
        diff = read_repository_diff(git, include_unstaged)

    if not diff.strip():
        print_warning("No changes detected.")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    generator = build_generator(settings, git, include_unstaged)
    try:
        with ProgressIndicator("Generating commit message"):
            result = generator.generate_with_metadata(diff, context)
    except NoRelevantChangesError as exc:
        print_warning(str(exc))
        raise click.exceptions.Exit(EXIT_NO_CHANGES)
    except BudgetExceededError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_BUDGET_EXCEEDED)
    except LLMError as exc:
        print_error(f"LLM error: {exc}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)

    if result.chunk_count > 1:
        print_info(f"Diff was split into {result.chunk_count} requests")
    if settings.provider != "ollama":
        cost = estimate_cost(
            result.input_tokens, settings.max_output_tokens * result.chunk_count, settings.model, settings.provider
        )
        print_info(f"Estimated cost: {cost.currency}{cost.estimated_cost:.4f} ({cost.input_tokens} input tokens)")
    click.echo(result.message)


@main.command()
@click.argument("count", type=click.IntRange(min=1))
@click.option("--all", "include_unstaged", is_flag=True, help="Include unstaged changes.")
@click.option("--context", "-c", default="", help="Additional context for the model.")
@click.option("--yes", "-y", is_flag=True, help="Commit without asking for confirmation.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@exit_on_unexpected_error
def batch(count: int, include_unstaged: bool, context: str, yes: bool, verbose: bool) -> None:
    """Split the current changes into COUNT commits."""
    configure_logging(verbose)
    settings = load_settings_or_exit()
    git = open_repository()
    diff = read_repository_diff(git, include_unstaged)

    known_paths = git.get_changed_file_list(staged=True, unstaged=include_unstaged)
    files = split_diff_by_files(diff, known_paths)
    if not files:
        print_warning("No file changes detected in diff.")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)

    generator = build_generator(settings, git, include_unstaged)
    try:
        files = filter_file_diffs(files, generator.exclude_patterns, generator.binary_detector)
    except NoRelevantChangesError as exc:
        print_warning(str(exc))
        raise click.exceptions.Exit(EXIT_NO_CHANGES)
    print_success(f"Found {len(files)} file(s) with changes")

    if count > len(files):
        print_error(f"Cannot create {count} commits from {len(files)} file(s). Maximum: {len(files)}")
        raise click.exceptions.Exit(EXIT_INVALID_USAGE)

    branch_context = analyze_branch(git.get_current_branch())
    logger.debug("Branch context: %s", branch_context)
    with ProgressIndicator(f"Splitting {len(files)} file(s) into {count} commit(s)"):
        groups = generator.plan_commit_groups(files, count, branch_context)
    print_groups(groups)

    try:
        with ProgressIndicator("Generating commit messages"):
            commit_groups = generator.generate_batch_commits(groups, context, branch_context)
    except BudgetExceededError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_BUDGET_EXCEEDED)
    print_commit_groups(commit_groups)

    if not yes and not click.confirm("\nCommit these groups?", default=False, err=True):
        print_warning("Nothing committed.")
        return

    for index, group in enumerate(commit_groups, start=1):
        try:
            git.stage_files(group.file_paths)
            git.commit(group.message, group.file_paths)
        except GitError as exc:
            print_error(f"Failed to commit group {index}: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        group.confirmed = True
        print_success(f"Committed {index}/{len(commit_groups)}: {group.name}")

    click.echo(f"\n🎉 Created {len(commit_groups)} commit(s).", err=True)
