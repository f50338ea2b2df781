"""LiteLLM completion router with rate-limit retry."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import structlog

from agentshell.config import ProviderConfig

logger = structlog.get_logger()

# Retry settings for rate limit errors
_MAX_RETRIES = 5
_BASE_DELAY_S = 2.0
_MAX_DELAY_S = 60.0


class LLMRouter:
    """Sends chat completions to the model a ProviderConfig names.

    Any LiteLLM model string works:
    - "claude-sonnet-4-20250514" -> Anthropic API
    - "gpt-4o" -> OpenAI API
    - "ollama/llama3" -> Ollama (local)
    """

    def __init__(self, min_request_interval_s: float = 0.0) -> None:
        self._min_interval = min_request_interval_s
        self._last_request_time: float = 0.0

    async def complete(
        self,
        provider: ProviderConfig,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Return the assistant message object (``content`` and ``tool_calls``).

        Retries automatically on rate limit errors with exponential backoff.
        """
        import litellm

        completion_kwargs: dict[str, Any] = {
            "model": provider.model,
            "messages": messages,
            "temperature": kwargs.pop("temperature", provider.temperature),
            "max_tokens": kwargs.pop("max_tokens", provider.max_tokens),
        }
        if provider.api_key:
            completion_kwargs["api_key"] = provider.api_key
        if provider.api_base:
            completion_kwargs["api_base"] = provider.api_base
        if tools:
            completion_kwargs["tools"] = tools
        completion_kwargs.update(kwargs)

        # Rate limit spacing: ensure minimum interval between requests
        if self._min_interval > 0:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

        logger.debug("llm_request", model=provider.model, messages=len(messages))

        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                response = await litellm.acompletion(**completion_kwargs)
                message = response.choices[0].message
                logger.debug("llm_response", model=provider.model, length=len(message.content or ""))
                return message
            except litellm.RateLimitError as exc:
                last_exc = exc
                delay = min(_BASE_DELAY_S * (2**attempt), _MAX_DELAY_S)
                logger.warning(
                    "rate_limit_retry",
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                    delay_s=delay,
                    model=provider.model,
                )
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]
