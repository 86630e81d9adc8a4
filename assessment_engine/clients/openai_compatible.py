from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import time

import httpx

from assessment_engine.clients.retry import RetryPolicy, with_retry
from assessment_engine.domain.dto import LLMClientRequest, LLMClientResult
from assessment_engine.domain.errors import LLMConfigurationError, LLMTimeoutError, UpstreamError

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUT_MS = 300_000
BODY_SNIPPET_LIMIT = 400

logger = logging.getLogger(__name__)


@dataclass
class OpenAICompatibleLLMClient:
    """Chat-completions client for OpenRouter and other OpenAI-compatible APIs.

    The timeout is a deadline for the whole call, not per socket phase.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    transport: httpx.AsyncBaseTransport | None = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def complete(self, request: LLMClientRequest, *, hint: str) -> LLMClientResult:
        if not self.api_key:
            raise LLMConfigurationError(f"{hint} missing LLM_API_KEY")
        return await with_retry(
            lambda: self._complete_once(request, hint=hint),
            policy=self.retry_policy,
            hint=hint,
            sleep=self.sleep,
        )

    async def _complete_once(self, request: LLMClientRequest, *, hint: str) -> LLMClientResult:
        url = f"{self.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        started = time.perf_counter()
        try:
            async with asyncio.timeout(self.timeout_ms / 1000):
                async with httpx.AsyncClient(timeout=None, transport=self.transport) as client:
                    response = await client.post(url, json=request.to_payload(), headers=headers)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise LLMTimeoutError(
                f"{hint} API call timed out after {self.timeout_ms}ms",
                timeout_ms=self.timeout_ms,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"{hint} request failed: {exc}", status=None) from exc

        latency_ms = int((time.perf_counter() - started) * 1000)
        if response.is_error:
            snippet = response.text[:BODY_SNIPPET_LIMIT]
            raise UpstreamError(
                f"{hint} {response.status_code}: {snippet}",
                status=response.status_code,
                body_snippet=snippet,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"{hint} {response.status_code}: response body is not JSON",
                status=response.status_code,
                body_snippet=response.text[:BODY_SNIPPET_LIMIT],
            ) from exc
        if not isinstance(body, dict):
            body = {}

        logger.info(
            "llm call completed",
            extra={"hint": hint, "status": response.status_code, "duration_ms": latency_ms},
        )
        return LLMClientResult(content=_first_message_content(body), raw=body, latency_ms=latency_ms)


def _first_message_content(body: dict[str, object]) -> str:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""
