"""
Commit message generation using an LLM.

This module provides the :class:`CommitMessageGenerator` class, which
turns a raw diff into one or more requests that fit the input token
budget, sends them to a chat client and joins the replies. It also
drives batch commits: asking the model for a partition of the changed
files, reconciling it to the requested number of commits and generating
a message per group.

Request flow for a single message::

    raw diff -> filter -> optimize -> size check
             -> one request, or greedy chunks sent concurrently
             -> truncation of anything still over budget
             -> replies joined with a blank line, in file order

A failing chunk or group is logged and replaced by a fallback; only an
unattainable token budget (:class:`BudgetExceededError`) is fatal.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from commit_composer.config.loader import Settings
from commit_composer.diff.filter import (
    DEFAULT_EXCLUDE_PATTERNS,
    NoRelevantChangesError,
    compile_patterns,
    filter_diff,
)
from commit_composer.diff.optimizer import optimize_diff
from commit_composer.diff.splitter import FileDiff, combine_file_diffs
from commit_composer.grouping.group_model import CommitGroup, FileGroup
from commit_composer.grouping.reconciler import (
    ParseFailed,
    build_groups_from_suggestion,
    group_files_by_directory,
    parse_grouping_response,
    reconcile_group_count,
)
from commit_composer.llm.client import LLMError
from commit_composer.llm.prompts import build_grouping_messages, build_system_prompt, wrap_diff
from commit_composer.packing.budget import TokenBudget
from commit_composer.packing.composer import merge_diffs, split_sections
from commit_composer.packing.truncator import SAFETY_BUFFER_TOKENS, BudgetExceededError, fit_content_to_budget
from commit_composer.tokens.counter import MESSAGE_OVERHEAD_TOKENS, TokenCounter, get_default_counter
from commit_composer.vcs.branch import BranchContext, format_branch_context


logger = logging.getLogger(__name__)
# Attach a null handler to prevent logging errors when no handlers are
# configured on the root logger. Logs will propagate when configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Below this share of the budget the approximate count is trusted.
SPLIT_PRECHECK_FRACTION = 0.9

Messages = List[Dict[str, str]]


@dataclass
class GenerationResult:
    """A generated message together with what was sent to produce it."""

    message: str
    filtered_diff: str
    system_messages: Messages
    chunk_count: int = 1
    input_tokens: int = 0


class CommitMessageGenerator:
    """Generate commit messages and batch commit groups with a chat client.

    Parameters
    ----------
    client : object
        Any object with ``generate(messages) -> Optional[str]``.
    settings : Settings, optional
        Token limits, prompt options and extra exclude patterns.
    counter : TokenCounter, optional
        Token counter; defaults to the shared one.
    binary_detector : callable, optional
        Zero-argument callable returning the paths the VCS reports as
        binary. Without it no binary check is made.
    max_workers : int, optional
        Upper bound on concurrent chunk requests. By default every chunk
        gets its own worker.
    """

    def __init__(
        self,
        client,
        settings: Optional[Settings] = None,
        counter: Optional[TokenCounter] = None,
        binary_detector: Optional[Callable[[], Iterable[str]]] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.client = client
        self.settings = settings or Settings()
        self.counter = counter or get_default_counter()
        self.binary_detector = binary_detector
        self.max_workers = max_workers
        self.exclude_patterns = DEFAULT_EXCLUDE_PATTERNS + compile_patterns(self.settings.exclude_patterns)

    # ------------------------------------------------------------------
    # Single message
    # ------------------------------------------------------------------
    def build_budget(self, system_messages: Messages) -> TokenBudget:
        """Budget left for diff content once the fixed prompt text is paid for."""
        framing = self.counter.count(wrap_diff("")) + MESSAGE_OVERHEAD_TOKENS
        return TokenBudget(
            max_input_tokens=self.settings.max_input_tokens,
            max_output_tokens=self.settings.max_output_tokens,
            system_prompt_tokens=self.counter.count_messages(system_messages) + framing,
        )

    def prepare_diff(self, diff: str) -> str:
        """Filter and optimize a raw diff.

        Raises
        ------
        NoRelevantChangesError
            If nothing relevant is left.
        """
        filtered = filter_diff(diff, self.exclude_patterns, self.binary_detector)
        filtered = optimize_diff(filtered)
        if not filtered or not filtered.strip():
            raise NoRelevantChangesError("No relevant changes to commit after filtering")
        return filtered

    def _needs_splitting(self, diff: str, max_tokens: int) -> bool:
        if self.counter.estimate(diff) < max_tokens * SPLIT_PRECHECK_FRACTION:
            return False
        return self.counter.count(diff) > max_tokens

    def _request(self, system_messages: Messages, content: str) -> Messages:
        return list(system_messages) + [{"role": "user", "content": wrap_diff(content)}]

    def _generate_one(self, messages: Messages, index: int) -> Optional[str]:
        try:
            reply = self.client.generate(messages)
        except Exception as exc:
            logger.warning("Generation failed for chunk %d: %s; skipping it.", index + 1, exc)
            return None
        return reply.strip() if reply else None

    def _dispatch(self, payloads: Sequence[Messages]) -> List[Optional[str]]:
        """Send all requests concurrently; results keep the request order.

        A lone request is sent directly and its errors propagate.
        """
        if len(payloads) == 1:
            reply = self.client.generate(payloads[0])
            return [reply.strip() if reply else None]
        workers = len(payloads) if self.max_workers is None else max(1, min(self.max_workers, len(payloads)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._generate_one, messages, i) for i, messages in enumerate(payloads)]
            return [future.result() for future in futures]

    def generate_with_metadata(self, diff: str, context: str = "") -> GenerationResult:
        """Generate a commit message for ``diff``, returning request details.

        Raises
        ------
        NoRelevantChangesError
            If filtering leaves nothing to describe.
        BudgetExceededError
            If a request cannot be made to fit the input token ceiling.
        LLMError
            If no request produced a message.
        """
        system_messages = build_system_prompt(self.settings, context)
        budget = self.build_budget(system_messages)
        filtered = self.prepare_diff(diff)
        max_request = budget.remaining_budget
        # chunks are packed to the same limit the truncator enforces
        chunk_limit = max(1, max_request - SAFETY_BUFFER_TOKENS)
        logger.debug(
            "Token budget: %d input, %d output, %d for the prompt, %d left for the diff",
            budget.max_input_tokens,
            budget.max_output_tokens,
            budget.system_prompt_tokens,
            max_request,
        )

        if self._needs_splitting(filtered, chunk_limit):
            sections = split_sections(filtered) or [filtered]
            chunks = merge_diffs(sections, chunk_limit, self.counter)
        else:
            chunks = [filtered]
        # Truncation is CPU-only and finishes before anything is sent.
        contents = [fit_content_to_budget(chunk, budget, self.counter) for chunk in chunks]
        logger.debug("Sending %d request(s)", len(contents))

        payloads = [self._request(system_messages, content) for content in contents]
        input_tokens = sum(self.counter.count_messages(payload) for payload in payloads)
        replies = self._dispatch(payloads)
        message = "\n\n".join(reply for reply in replies if reply)
        if not message:
            raise LLMError("Failed to generate commit message")
        return GenerationResult(message, filtered, system_messages, len(chunks), input_tokens)

    def generate_commit_message(self, diff: str, context: str = "") -> str:
        return self.generate_with_metadata(diff, context).message

    # ------------------------------------------------------------------
    # Batch commits
    # ------------------------------------------------------------------
    def _suggest(
        self,
        files: Sequence[FileDiff],
        branch_context: Optional[BranchContext],
        target_count: Optional[int],
    ) -> Tuple[List[FileGroup], bool]:
        """Return suggested groups and whether they came from the model."""
        if not files:
            return [], False
        if len(files) == 1:
            return [FileGroup(id="group-0", name=files[0].file_path, files=[files[0]])], True

        branch_hint = format_branch_context(branch_context) if branch_context else None
        messages = build_grouping_messages(files, branch_hint, target_count)
        budget = TokenBudget(
            max_input_tokens=self.settings.max_input_tokens,
            max_output_tokens=self.settings.max_output_tokens,
            system_prompt_tokens=self.counter.count_messages(messages),
        )
        if budget.remaining_budget < 0:
            logger.warning(
                "Grouping request for %d file(s) exceeds the input limit by %d tokens; "
                "using directory-based grouping.",
                len(files),
                -budget.remaining_budget,
            )
            return group_files_by_directory(files), False
        try:
            result = parse_grouping_response(self.client.generate(messages))
        except Exception as exc:
            result = ParseFailed(f"request failed: {exc}")
        if isinstance(result, ParseFailed):
            logger.warning("AI grouping unavailable (%s); using directory-based grouping.", result.reason)
            return group_files_by_directory(files), False
        return build_groups_from_suggestion(files, result.groups), True

    def suggest_logical_groupings(
        self,
        files: Sequence[FileDiff],
        branch_context: Optional[BranchContext] = None,
        target_count: Optional[int] = None,
    ) -> List[FileGroup]:
        """Ask the model for a logical partition of ``files``.

        A reply that cannot be parsed is replaced by the directory-based
        grouping.
        """
        groups, _ = self._suggest(files, branch_context, target_count)
        return groups

    def plan_commit_groups(
        self,
        files: Sequence[FileDiff],
        target_count: int,
        branch_context: Optional[BranchContext] = None,
    ) -> List[FileGroup]:
        """Partition ``files`` into ``target_count`` groups.

        Model suggestions are reconciled to the target; the directory
        fallback is returned as is.
        """
        if target_count < 1:
            raise ValueError(f"Target commit count must be positive, got {target_count}")
        groups, suggested = self._suggest(files, branch_context, target_count)
        if suggested and len(groups) != target_count:
            groups = reconcile_group_count(groups, target_count)
        logger.debug("Planned %d group(s) for a target of %d", len(groups), target_count)
        return groups

    def generate_batch_commits(
        self,
        groups: Sequence[FileGroup],
        context: str = "",
        branch_context: Optional[BranchContext] = None,
    ) -> List[CommitGroup]:
        """Generate a commit message for every group.

        A group whose generation fails gets ``"Update <group name>"``; the
        remaining groups are still processed. An unattainable token budget
        is not absorbed.
        """
        if branch_context is not None:
            hint = format_branch_context(branch_context)
            context = f"{context}\n\n{hint}" if context else hint

        commit_groups: List[CommitGroup] = []
        for group in groups:
            try:
                message = self.generate_commit_message(combine_file_diffs(group.files), context).strip()
            except BudgetExceededError:
                raise
            except Exception as exc:
                logger.warning(
                    "Failed to generate commit message for '%s': %s; using fallback.",
                    group.name,
                    exc,
                )
                message = f"Update {group.name}"
            commit_groups.append(CommitGroup.from_group(group, message))
        return commit_groups
