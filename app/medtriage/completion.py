"""Chat-completion client for the triage model call."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Sequence

import httpx

from medtriage.config import Settings
from medtriage.errors import (
    ConfigurationError,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamTimeout,
    UpstreamUnavailable,
    UpstreamUnknown,
)
from medtriage.prompts import PromptTurn

logger = logging.getLogger(__name__)

_TIMEOUT_STATUSES = {408, 504}
_UNAVAILABLE_STATUSES = {500, 502, 503}


def _retry_after_seconds(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


def _error_for_status(response: httpx.Response) -> UpstreamError:
    status = response.status_code
    message = f"completion service returned HTTP {status}"
    if status == 429:
        return UpstreamRateLimited(message, status_code=status, retry_after_sec=_retry_after_seconds(response))
    if status in _TIMEOUT_STATUSES:
        return UpstreamTimeout(message, status_code=status)
    if status in _UNAVAILABLE_STATUSES:
        return UpstreamUnavailable(message, status_code=status)
    return UpstreamUnknown(message, status_code=status)


def _extract_content(data: Any) -> str:
    if not isinstance(data, dict):
        raise UpstreamUnknown("completion payload is not an object")
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        raise UpstreamUnknown("completion payload has no choices")
    content = ((choices[0].get("message") or {}).get("content")) or ""
    if isinstance(content, list):
        # Some compatible servers return content parts instead of a string.
        content = "".join(str(p.get("text", "")) for p in content if isinstance(p, dict))
    text = str(content).strip()
    if not text:
        raise UpstreamUnknown("completion content is empty")
    return text


class CompletionClient:
    """Single request/response call to an OpenAI-compatible ``/chat/completions`` endpoint.

    Timeout and rate-limit failures are retried with exponential backoff while the
    total ``request_timeout_sec`` budget lasts; every other failure is raised at once.
    """

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    @property
    def model_name(self) -> str:
        return self._settings.model

    def _body(self, turns: Sequence[PromptTurn]) -> dict[str, Any]:
        return {
            "model": self._settings.model,
            "messages": [turn.as_dict() for turn in turns],
            "max_tokens": self._settings.max_output_tokens,
            "temperature": self._settings.temperature,
        }

    async def _post_once(self, body: dict[str, Any], *, timeout_sec: float) -> str:
        url = f"{self._settings.completions_base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self._settings.api_key}"}

        async def _send() -> httpx.Response:
            async with httpx.AsyncClient(timeout=timeout_sec, transport=self._transport) as client:
                return await client.post(url, headers=headers, json=body)

        # httpx timeouts apply per connect/read/write step; wait_for bounds the whole attempt.
        try:
            response = await asyncio.wait_for(_send(), timeout=timeout_sec)
        except asyncio.TimeoutError as exc:
            raise UpstreamTimeout(f"completion call exceeded {timeout_sec:.1f}s") from exc
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"completion call timed out after {timeout_sec:.1f}s") from exc
        except httpx.TransportError as exc:
            raise UpstreamUnavailable(f"{type(exc).__name__}: {exc}") from exc

        if response.is_error:
            raise _error_for_status(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamUnknown("completion payload is not valid JSON", status_code=response.status_code) from exc
        return _extract_content(data)

    async def complete(self, turns: Sequence[PromptTurn]) -> str:
        if not self._settings.credentials_configured:
            raise ConfigurationError("completion api key is not configured")

        body = self._body(turns)
        budget = self._settings.request_timeout_sec
        started = perf_counter()
        attempt = 0
        while True:
            remaining = budget - (perf_counter() - started)
            if remaining <= 0:
                raise UpstreamTimeout(f"completion budget of {budget:.1f}s exhausted")
            try:
                return await self._post_once(body, timeout_sec=remaining)
            except UpstreamError as exc:
                if not exc.retryable or attempt >= self._settings.max_retries:
                    raise
                delay = self._settings.retry_backoff_sec * (2**attempt)
                if isinstance(exc, UpstreamRateLimited) and exc.retry_after_sec is not None:
                    delay = max(delay, exc.retry_after_sec)
                remaining = budget - (perf_counter() - started)
                if delay >= remaining:
                    raise
                attempt += 1
                logger.warning(
                    "completion_retry: kind=%s attempt=%d delay_sec=%.2f",
                    exc.kind.value,
                    attempt,
                    delay,
                )
                await asyncio.sleep(delay)
