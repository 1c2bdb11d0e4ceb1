"""
Language model integration for commit_composer.

This package contains the chat clients for Ollama and OpenAI-compatible
servers and the :class:`CommitMessageGenerator`, which fits diffs into
the token budget and produces commit messages and batch commit groups.
"""

from .client import LLMError, OllamaClient, OpenAIClient, create_client  # noqa: F401
from .commit_message_generator import CommitMessageGenerator, GenerationResult  # noqa: F401
