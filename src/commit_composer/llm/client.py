"""
Clients for chat-style text generation servers.

Both clients take an ordered list of role-tagged messages
(``{"role": "system" | "user" | "assistant", "content": str}``) and
return the generated text, or ``None`` when the server replied with no
content. HTTP errors, timeouts and unparseable bodies raise
:class:`LLMError`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import requests

from commit_composer.config.loader import Settings


logger = logging.getLogger(__name__)
# Attach a null handler to avoid errors when the root logger is missing a
# stream. Messages will still propagate to the root logger if configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


Message = Mapping[str, str]

_THINKING_PATTERNS = [
    re.compile(rf"<{tag}>.*?</{tag}>", re.DOTALL | re.IGNORECASE)
    for tag in ("think", "thinking", "thought", "reasoning")
]


class LLMError(Exception):
    """Raised when communication with the LLM server fails."""

    pass


def strip_thinking_tags(text: str) -> str:
    """Remove thinking process tags from LLM responses.

    Reasoning models wrap their thinking in tags such as ``<think>`` or
    ``<reasoning>``; only the text outside those tags is the answer.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    """
    result = text
    for pattern in _THINKING_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def _post_json(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float) -> Dict[str, Any]:
    logger.debug("Sending request to LLM at %s (%d messages)", url, len(payload.get("messages", [])))
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Failed to connect to LLM: %s", exc)
        raise LLMError(str(exc)) from exc
    if response.status_code != 200:
        logger.error("LLM returned non-200 status %s: %s", response.status_code, response.text)
        raise LLMError(f"LLM returned status {response.status_code}: {response.text}")
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        logger.error("Failed to parse LLM response: %s", exc)
        raise LLMError("Failed to parse LLM response") from exc
    if not isinstance(data, dict):
        raise LLMError("Unexpected response structure from LLM")
    return data


def _clean(content: Any) -> Optional[str]:
    if not isinstance(content, str):
        return None
    text = strip_thinking_tags(content)
    return text or None


@dataclass
class OllamaClient:
    """Client for an Ollama server's ``/api/chat`` endpoint.

    Parameters
    ----------
    base_url : str
        Base URL of the Ollama server, e.g. ``"http://localhost"``.
    port : int
        Port number of the Ollama server, e.g. ``11434``.
    model : str
        Name of the model to use for generation, e.g. ``"llama3"``.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 60 seconds.
    max_tokens : int, optional
        Maximum number of tokens to generate, sent as ``num_predict``.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None

    def _endpoint(self) -> str:
        return f"{self.base_url}:{self.port}/api/chat"

    def generate(self, messages: Sequence[Message]) -> Optional[str]:
        """Generate a reply to ``messages``.

        Raises
        ------
        LLMError
            If the request fails or the server returns an error.
        """
        options: Dict[str, Any] = {"temperature": 0, "top_p": 0.1}
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
            "stream": False,
            "options": options,
        }
        data = _post_json(self._endpoint(), payload, {}, self.request_timeout)
        message = data.get("message")
        if isinstance(message, dict):
            return _clean(message.get("content"))
        # /api/generate style body
        if "response" in data:
            return _clean(data.get("response"))
        raise LLMError("Unexpected response structure from LLM")


@dataclass
class OpenAIClient:
    """Client for OpenAI-compatible ``/v1/chat/completions`` endpoints."""

    api_key: str
    model: str
    base_url: str = "https://api.openai.com"
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None

    def _endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/chat/completions"

    def generate(self, messages: Sequence[Message]) -> Optional[str]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
            "temperature": 0,
            "top_p": 0.1,
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        headers = {"Authorization": f"Bearer {self.api_key}"}
        data = _post_json(self._endpoint(), payload, headers, self.request_timeout)
        choices = data.get("choices")
        if not isinstance(choices, list):
            raise LLMError("Unexpected response structure from LLM")
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message")
        if message is None:
            return None
        if not isinstance(message, dict):
            raise LLMError("Unexpected response structure from LLM")
        return _clean(message.get("content"))


def create_client(settings: Settings) -> Union[OllamaClient, OpenAIClient]:
    """Build the client selected by ``settings.provider``.

    Raises
    ------
    LLMError
        If the provider needs an API key and none is configured.
    """
    if settings.provider == "openai":
        if not settings.api_key:
            raise LLMError("An API key is required for the openai provider")
        base_url = settings.base_url if settings.base_url != "http://localhost" else "https://api.openai.com"
        return OpenAIClient(
            api_key=settings.api_key,
            model=settings.model,
            base_url=base_url,
            request_timeout=float(settings.request_timeout),
            max_tokens=settings.max_output_tokens,
        )
    return OllamaClient(
        base_url=settings.base_url,
        port=settings.port,
        model=settings.model,
        request_timeout=float(settings.request_timeout),
        max_tokens=settings.max_output_tokens,
    )
