"""Per-request triage turn: prompt, model call, parse, fallback."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Protocol, Sequence

from medtriage.completion import CompletionClient
from medtriage.config import Settings
from medtriage.demo import demo_reply
from medtriage.errors import ConfigurationError, FailureKind, UpstreamError
from medtriage.fallback import conversational_reply, credentials_missing_reply, upstream_failure_reply
from medtriage.language import normalize_language_code
from medtriage.parsing import parse_model_reply
from medtriage.prompts import PromptTurn, build_prompt
from medtriage.schemas import TriageRequest, TriageTurnResult
from medtriage.utils import elapsed_ms, now_ms

logger = logging.getLogger(__name__)

EmitFn = Callable[[str, dict[str, Any]], Awaitable[None]]


class CompletionBackend(Protocol):
    async def complete(self, turns: Sequence[PromptTurn]) -> str: ...


class TriageEngine:
    def __init__(self, settings: Settings, client: CompletionBackend | None = None):
        self._settings = settings
        self._client = client if client is not None else CompletionClient(settings)

    @staticmethod
    async def _emit(emit: EmitFn | None, event_name: str, payload: dict[str, Any]) -> None:
        if emit is None:
            return
        try:
            await emit(event_name, payload)
        except Exception:
            logger.exception("emit_failed: event=%s", event_name)

    async def _fallback(
        self,
        reply: TriageTurnResult,
        emit: EmitFn | None,
        *,
        reason: str,
        language: str,
        kind: FailureKind | None = None,
    ) -> TriageTurnResult:
        logger.info("triage_fallback: reason=%s language=%s", reason, language)
        payload: dict[str, Any] = {"reason": reason, "language": language}
        if kind is not None:
            payload["failure_kind"] = kind.value
        await self._emit(emit, "triage.fallback", payload)
        return reply

    async def run(self, request: TriageRequest, emit: EmitFn | None = None) -> TriageTurnResult:
        language = normalize_language_code(request.language)
        emergency_number = self._settings.emergency_number

        if self._settings.demo_mode:
            reply = demo_reply(request.message, emergency_number=emergency_number)
            await self._finish(reply, emit, language=language, latency_ms=0)
            return reply

        if not self._settings.credentials_configured:
            return await self._fallback(
                credentials_missing_reply(language, emergency_number=emergency_number),
                emit,
                reason="credentials_missing",
                language=language,
            )

        turns = build_prompt(
            request.message,
            request.history,
            language,
            emergency_number=emergency_number,
        )
        started = now_ms()
        try:
            raw = await self._client.complete(turns)
        except ConfigurationError:
            return await self._fallback(
                credentials_missing_reply(language, emergency_number=emergency_number),
                emit,
                reason="credentials_missing",
                language=language,
            )
        except UpstreamError as exc:
            logger.warning(
                "completion_failed: kind=%s status=%s elapsed_ms=%d error=%s",
                exc.kind.value,
                exc.status_code,
                elapsed_ms(started),
                exc,
            )
            return await self._fallback(
                upstream_failure_reply(language, emergency_number=emergency_number),
                emit,
                reason="upstream_failure",
                language=language,
                kind=exc.kind,
            )
        except Exception:
            logger.exception("completion_failed: kind=%s", FailureKind.UNKNOWN.value)
            return await self._fallback(
                upstream_failure_reply(language, emergency_number=emergency_number),
                emit,
                reason="upstream_failure",
                language=language,
                kind=FailureKind.UNKNOWN,
            )

        latency = elapsed_ms(started)
        parsed = parse_model_reply(raw)
        logger.debug(
            "completion_parsed: raw_chars=%d message_chars=%d structured=%s",
            len(raw),
            len(parsed.message),
            parsed.triage_result is not None,
        )
        reply = conversational_reply(parsed, language, emergency_number=emergency_number)
        await self._finish(reply, emit, language=language, latency_ms=latency)
        return reply

    async def _finish(
        self,
        reply: TriageTurnResult,
        emit: EmitFn | None,
        *,
        language: str,
        latency_ms: int,
    ) -> None:
        result = reply.triage_result
        risk = result.risk_level.value if result is not None else None
        logger.info("triage_turn: risk=%s demo=%s latency_ms=%d", risk, reply.demo, latency_ms)
        await self._emit(
            emit,
            "triage.result",
            {"risk_level": risk, "language": language, "demo": reply.demo, "latency_ms": latency_ms},
        )
        if result is not None and result.emergency:
            await self._emit(
                emit,
                "triage.emergency",
                {"risk_level": risk, "language": language, "action_plan": list(result.action_plan)},
            )
