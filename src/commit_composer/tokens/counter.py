"""
Token accounting for generation requests.

Two counting modes are offered. The exact mode encodes the text with a
``tiktoken`` encoding and memoizes the result; the approximate mode uses
``ceil(len(text) / 4)`` and is meant for cheap pre-checks and for very
large inputs where exact tokenization is not worth the cost.

Budget decisions close to a limit must use :meth:`TokenCounter.count`.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, Mapping, Optional

import tiktoken


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_ENCODING = "cl100k_base"
APPROX_CHARS_PER_TOKEN = 4
# Per-message overhead charged by chat-style endpoints (role, separators).
MESSAGE_OVERHEAD_TOKENS = 4
DEFAULT_CACHE_SIZE = 1000
DEFAULT_EXACT_MAX_CHARS = 100_000


def approximate_token_count(text: str) -> int:
    """Return ``ceil(len(text) / 4)``."""
    if not text:
        return 0
    return math.ceil(len(text) / APPROX_CHARS_PER_TOKEN)


class TokenCounter:
    """Count tokens for strings, memoizing exact results.

    Parameters
    ----------
    encoding_name : str, optional
        Name of the ``tiktoken`` encoding used in exact mode.
    precise : bool, optional
        When False every count is approximate and no tokenizer is loaded.
    encoder : object, optional
        Pre-built encoder exposing ``encode(text)``. Mostly useful in tests.
    cache_size : int, optional
        Maximum number of memoized strings. Once full, the cache stops
        accepting new entries; nothing is evicted.
    exact_max_chars : int, optional
        Texts longer than this are counted approximately.

    The cache is shared by concurrent request paths without locking. Each
    value is a pure function of its key, so a duplicate write is harmless.
    """

    def __init__(
        self,
        encoding_name: str = DEFAULT_ENCODING,
        precise: bool = True,
        encoder: Optional[Any] = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
        exact_max_chars: int = DEFAULT_EXACT_MAX_CHARS,
    ) -> None:
        self.encoding_name = encoding_name
        self.precise = precise
        self.cache_size = cache_size
        self.exact_max_chars = exact_max_chars
        self._encoder = encoder
        self._encoder_failed = False
        self._cache: Dict[str, int] = {}

    def _get_encoder(self) -> Optional[Any]:
        if self._encoder is not None or self._encoder_failed or not self.precise:
            return self._encoder
        try:
            self._encoder = tiktoken.get_encoding(self.encoding_name)
        except Exception as exc:
            # The encoding files are fetched on first use; offline machines
            # fall back to the approximation.
            logger.warning(
                "Failed to load tokenizer '%s', using approximation: %s",
                self.encoding_name,
                exc,
            )
            self._encoder_failed = True
        return self._encoder

    @property
    def is_exact(self) -> bool:
        return self._get_encoder() is not None

    def estimate(self, text: str) -> int:
        return approximate_token_count(text)

    def count(self, text: str, memoize: bool = True) -> int:
        """Return the token count of ``text``.

        Exact when a tokenizer is available and the text is no longer than
        ``exact_max_chars``, approximate otherwise. Pass ``memoize=False``
        for one-off probes (such as truncation candidates) that should not
        take up cache slots.
        """
        if not text:
            return 0
        if len(text) > self.exact_max_chars:
            return approximate_token_count(text)
        cached = self._cache.get(text)
        if cached is not None:
            return cached
        encoder = self._get_encoder()
        if encoder is None:
            return approximate_token_count(text)
        # Diffs may legitimately contain strings like "<|endoftext|>".
        value = len(encoder.encode(text, disallowed_special=()))
        if memoize and len(self._cache) < self.cache_size:
            self._cache[text] = value
        return value

    def count_messages(self, messages: Iterable[Mapping[str, str]]) -> int:
        """Return the cost of role-tagged messages, including per-message overhead."""
        return sum(self.count(msg.get("content") or "") + MESSAGE_OVERHEAD_TOKENS for msg in messages)

    def cache_info(self) -> Dict[str, int]:
        return {"entries": len(self._cache), "max_entries": self.cache_size}

    def clear_cache(self) -> None:
        self._cache.clear()


_default_counter: Optional[TokenCounter] = None


def get_default_counter() -> TokenCounter:
    """Return the process-wide counter, creating it on first use."""
    global _default_counter
    if _default_counter is None:
        _default_counter = TokenCounter()
    return _default_counter


def set_default_counter(counter: Optional[TokenCounter]) -> None:
    """Replace the process-wide counter. ``None`` resets it."""
    global _default_counter
    _default_counter = counter


def token_count(text: str) -> int:
    """Count tokens with the process-wide counter."""
    return get_default_counter().count(text)
