"""
Prompt construction for commit message and grouping requests.
"""

from __future__ import annotations

from textwrap import dedent
from typing import Dict, List, Optional, Sequence

from commit_composer.config.loader import Settings
from commit_composer.diff.splitter import FileDiff, format_size


GITMOJI_TYPES = {
    "🐛": "Fix a bug",
    "✨": "Introduce new features",
    "📝": "Add or update documentation",
    "🚀": "Deploy stuff",
    "✅": "Add, update, or pass tests",
    "♻️": "Refactor code",
    "⬆️": "Upgrade dependencies",
    "🔧": "Add or update configuration files",
    "🌐": "Internationalization and localization",
    "💡": "Add or update comments in source code",
}

GROUPING_PREVIEW_CHARS = 200


def build_system_prompt(settings: Settings, context: str = "") -> List[Dict[str, str]]:
    """Return the shared system message for commit message requests."""
    prompt = dedent(
        """
        You are an expert software developer tasked with writing clear, concise git commit messages.

        Follow the Conventional Commits specification:
        - Format: <type>[optional scope]: <description>
        - Types: feat, fix, docs, style, refactor, test, chore, perf, ci, build, revert
        - Keep the subject line under 72 characters
        - Use imperative mood ("Add feature" not "Added feature")
        - Be specific and descriptive
        """
    ).strip()

    if settings.emoji:
        emoji_lines = "\n".join(f"{emoji} - {desc}" for emoji, desc in GITMOJI_TYPES.items())
        prompt += f"\n\nPrefix each commit with an appropriate GitMoji emoji:\n{emoji_lines}"
    if settings.description and not settings.one_line:
        prompt += (
            "\n\nAfter the subject line, add a blank line and then a detailed description "
            "(2-3 sentences) explaining:\n- What changed\n- Why the change was made\n"
            "- Any important context or implications"
        )
    if settings.one_line:
        prompt += (
            "\n\nIMPORTANT: Generate ONLY a single-line commit message. "
            "Do not include any description or additional lines."
        )
    if settings.language != "en":
        prompt += f"\n\nGenerate the commit message in {settings.language} language."
    if context:
        prompt += f"\n\nAdditional context: {context}"
    prompt += "\n\nAnalyze the git diff and generate an appropriate commit message. Return ONLY the commit message, nothing else."
    return [{"role": "system", "content": prompt}]


def wrap_diff(diff: str) -> str:
    """Wrap diff content into the user message."""
    return f"Here is the git diff:\n\n{diff}\n\nGenerate a commit message for these changes."


def build_grouping_messages(
    files: Sequence[FileDiff],
    branch_hint: Optional[str] = None,
    target_count: Optional[int] = None,
) -> List[Dict[str, str]]:
    """Messages asking the model to partition ``files`` into commit groups."""
    if target_count:
        count_text = (
            f"CRITICAL: You MUST create exactly {target_count} commit groups. "
            f"Distribute all files across exactly {target_count} groups."
        )
    else:
        count_text = "Try to create meaningful groups (2-5 files per group is ideal, but can vary)."

    system = dedent(
        """
        You are an expert software developer analyzing git changes to suggest logical commit groupings.

        Group the changed files logically for separate commits. Consider:
        - Related functionality (files that work together)
        - Dependencies (files that depend on each other)
        - Feature boundaries (complete features should be in one commit)
        - Test files should be grouped with their source files
        - Documentation should be grouped with related code
        - Avoid grouping unrelated changes together

        {count_text}

        IMPORTANT: Return ONLY a valid JSON array. Each object must have:
        - "files": array of file indices (1-based, matching the order in the file list)
        - "name": short descriptive name for the group
        - "description": brief explanation (1-2 sentences) of why these files are grouped together

        Example:
        [{{"files": [1, 2, 5], "name": "User authentication", "description": "Adds login with related utilities"}}]

        Return ONLY the JSON array, no markdown, no code blocks, no explanations.
        """
    ).strip().format(count_text=count_text)

    summary_lines = []
    for index, f in enumerate(files, start=1):
        preview = f.diff[:500].replace("\n", " ")[:GROUPING_PREVIEW_CHARS]
        summary_lines.append(f"{index}. {f.file_path} ({format_size(f.size)}) - {preview}...")

    user_parts = [
        f"Analyze these {len(files)} changed files and suggest logical commit groupings"
        + (f" (create exactly {target_count} groups)" if target_count else "")
        + ":",
        "\n".join(summary_lines),
    ]
    if branch_hint:
        user_parts.append(f"Branch context:\n{branch_hint}")
    if target_count:
        user_parts.append(
            f"IMPORTANT: You must create exactly {target_count} groups. "
            f"All {len(files)} files must be distributed across these {target_count} groups."
        )
    user_parts.append("Return a JSON array of suggested groups.")
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": "\n\n".join(user_parts)},
    ]
