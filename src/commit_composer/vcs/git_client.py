"""
Git client implementation for commit_composer.

This module wraps the Git commands the commit pipeline depends on:
reading staged and unstaged diffs, listing changed paths, detecting
binary files and committing. All subprocess calls go through
:meth:`GitClient._run` so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Set


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_BRANCH = "main"


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            logger.error("Git executable not found: %s", exc)
            raise GitError("Git executable not found") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Diffs and change detection
    # ------------------------------------------------------------------
    def get_staged_diff(self) -> str:
        return self._run(["diff", "--cached"]).stdout

    def get_unstaged_diff(self) -> str:
        return self._run(["diff"]).stdout

    def get_diff(self, include_unstaged: bool = False) -> str:
        """Return the staged diff, followed by the unstaged one if requested."""
        diff = self.get_staged_diff()
        if include_unstaged:
            unstaged = self.get_unstaged_diff()
            if unstaged:
                diff = f"{diff}\n{unstaged}" if diff else unstaged
        return diff

    def get_changed_file_list(self, staged: bool = True, unstaged: bool = False) -> List[str]:
        """List changed paths as reported by ``git diff --name-only``.

        Returns an empty list when Git fails, so callers fall back to
        validating parsed paths on their own.
        """
        files: List[str] = []
        commands = []
        if staged:
            commands.append(["diff", "--cached", "--name-only"])
        if unstaged:
            commands.append(["diff", "--name-only"])
        try:
            for args in commands:
                for line in self._run(args).stdout.splitlines():
                    path = line.strip()
                    if path and path not in files:
                        files.append(path)
        except GitError as exc:
            logger.warning("Could not list changed files: %s", exc)
            return []
        return files

    def get_binary_files(self, staged: bool = True, unstaged: bool = False) -> Set[str]:
        """Return paths whose ``--numstat`` counts are ``-`` (binary content).

        The result covers the staged diff, the unstaged diff, or both.
        """
        commands = []
        if staged:
            commands.append(["diff", "--cached", "--numstat"])
        if unstaged:
            commands.append(["diff", "--numstat"])
        try:
            output = "\n".join(self._run(args).stdout for args in commands)
        except GitError as exc:
            logger.warning("Could not detect binary files: %s", exc)
            return set()
        binary = set()
        for line in output.splitlines():
            # Format: <added>\t<deleted>\t<path>
            parts = line.split("\t", 2)
            if len(parts) == 3 and (parts[0] == "-" or parts[1] == "-"):
                binary.add(parts[2].strip())
        return binary

    def get_current_branch(self) -> str:
        """Return the current branch name, ``"main"`` if it cannot be determined."""
        try:
            branch = self._run(["branch", "--show-current"]).stdout.strip()
        except GitError:
            return DEFAULT_BRANCH
        return branch or DEFAULT_BRANCH

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------
    def stage_files(self, files: List[str]) -> None:
        """Stage the given files for commit.

        For deleted files, ``git rm`` is used; otherwise ``git add``.
        """
        for file in files:
            if (self.repo_root / file).exists():
                self._run(["add", "--", file])
            else:
                self._run(["rm", "--cached", "--", file])

    def commit(self, message: str, files: Optional[List[str]] = None) -> None:
        """Create a commit with the given message.

        When ``files`` is given only those paths are committed.
        """
        args = ["commit", "-m", message]
        if files:
            args += ["--"] + list(files)
        self._run(args)
