import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import httpx
import openai
from openai import AsyncOpenAI

from somaai.config import OpenRouterConfig, settings
from somaai.errors import MissingCredential, UpstreamError, UpstreamUnavailable

log = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 800

Message = dict[str, str]


class CompletionClient(Protocol):
    configured: bool

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str: ...


def response_text(data: Any) -> str:
    """Pull the completion text out of a chat-completions response body.

    Falls back from ``choices[0].message.content`` to ``choices[0].text``
    and finally to the serialized body, so a successful call always yields
    a string.
    """
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            first = choices[0]
            message = first.get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
            if isinstance(first.get("text"), str):
                return first["text"]
    return json.dumps(data, ensure_ascii=False)


class OpenRouterClient:
    """Chat-completions client for OpenRouter's OpenAI-compatible endpoint.

    One call to ``complete`` is exactly one POST; retries are disabled.
    """

    def __init__(self, config: OpenRouterConfig, http_client: httpx.AsyncClient | None = None):
        self.config = config
        self._http_client = http_client
        self._sdk: AsyncOpenAI | None = None

    @property
    def configured(self) -> bool:
        return self.config.configured

    def _get_sdk(self) -> AsyncOpenAI:
        if not self.config.configured:
            raise MissingCredential("OPENROUTER_API_KEY is required but not configured")
        if self._sdk is None:
            self._sdk = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_s,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": self.config.referer,
                    "X-Title": self.config.title,
                },
                http_client=self._http_client,
            )
        return self._sdk

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        sdk = self._get_sdk()
        model = model or self.config.model
        try:
            raw = await sdk.chat.completions.with_raw_response.create(
                model=model,
                messages=list(messages),
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIConnectionError as exc:
            # APITimeoutError is a subclass, so timeouts land here too
            log.warning("Completion call could not reach upstream: %s", type(exc).__name__)
            raise UpstreamUnavailable(str(exc)) from exc
        except openai.APIStatusError as exc:
            log.warning("Completion call failed: HTTP %d from %s", exc.status_code, model)
            raise UpstreamError(exc.status_code) from exc

        http_response = raw.http_response
        try:
            data = http_response.json()
        except ValueError:
            log.warning("Completion body was not JSON (%d bytes)", len(http_response.content))
            return http_response.text
        return response_text(data)


_client: OpenRouterClient | None = None


def get_client() -> OpenRouterClient:
    global _client
    if _client is None:
        _client = OpenRouterClient(settings.openrouter)
    return _client
