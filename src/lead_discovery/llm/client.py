"""Chat-completion client for an OpenAI-compatible endpoint."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI, APIConnectionError, APITimeoutError, RateLimitError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.exceptions import LLMError
from ..core.logging import get_logger

RETRYABLE_ERRORS = (RateLimitError, APITimeoutError, APIConnectionError)


def parse_json_response(response_text: str) -> Any:
    """
    Parse model output as JSON.

    Markdown code fences and any prose before the first ``{`` or ``[`` are
    stripped.

    Raises:
        ValueError: If no JSON document can be decoded
    """
    if not response_text or not response_text.strip():
        raise ValueError("Empty response")

    text = response_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]

    text = text.strip()
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise ValueError("No JSON found in response")
    text = text[min(starts):]

    # Trailing prose after the document is ignored
    document, _ = json.JSONDecoder().raw_decode(text)
    return document


class ChatClient:
    """
    Thin async wrapper around the OpenAI SDK.

    Calls run in the default executor so the event loop is never blocked.
    Rate limits, timeouts and connection failures are retried here; every
    other failure surfaces as ``LLMError``.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_wait: float = 1.0,
        client: Optional[OpenAI] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.model = model
        self.logger = logger or get_logger("llm")
        self.client = client or OpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )
        self.max_retries = max(1, max_retries)
        self.retry_wait = retry_wait
        self.logger.info(f"ChatClient initialized with model: {self.model}")

    def _retrying(self) -> AsyncRetrying:
        """Attempts for one completion; ``max_retries`` counts the first call."""
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_wait, max=20.0),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(self.logger, logging.WARNING),
            reraise=True
        )

    async def _complete(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            ),
        )

    async def create_chat_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        """
        Run one chat completion and return the message text.

        Args:
            messages: Chat messages as ``{"role", "content"}`` dicts
            temperature: Sampling temperature
            max_tokens: Completion token limit

        Raises:
            LLMError: If the call fails or returns no content
        """
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._complete(messages, temperature, max_tokens)
        except Exception as e:
            self.logger.error(f"Chat completion failed: {e}")
            raise LLMError(f"Chat completion failed: {e}", original_error=e) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("Chat completion returned no content")

        if response.usage:
            self.logger.debug(f"Chat completion used {response.usage.total_tokens} tokens")
        return content
