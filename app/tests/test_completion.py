import asyncio
import json
import time

import httpx
import pytest

from medtriage.completion import CompletionClient
from medtriage.config import Settings
from medtriage.errors import (
    ConfigurationError,
    FailureKind,
    UpstreamRateLimited,
    UpstreamTimeout,
    UpstreamUnavailable,
    UpstreamUnknown,
)
from medtriage.prompts import build_prompt


def _settings(**overrides) -> Settings:
    values = {
        "api_key": "test-key",
        "model": "gpt-test",
        "completions_base_url": "https://llm.test/v1/",
        "max_output_tokens": 321,
        "temperature": 0.7,
        "request_timeout_sec": 5.0,
        "max_retries": 0,
        "retry_backoff_sec": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


def _ok(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def _complete(client: CompletionClient) -> str:
    return asyncio.run(client.complete(build_prompt("I feel dizzy", [], "en")))


def test_complete_posts_chat_request_and_returns_text():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _ok("  Drink some water.  ")

    client = CompletionClient(_settings(), transport=httpx.MockTransport(handler))
    assert _complete(client) == "Drink some water."

    assert len(seen) == 1
    request = seen[0]
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer test-key"
    body = json.loads(request.content)
    assert body["model"] == "gpt-test"
    assert body["max_tokens"] == 321
    assert body["temperature"] == 0.7
    assert [m["role"] for m in body["messages"]] == ["system", "user"]


def test_missing_key_raises_configuration_error_without_request():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return _ok("unused")

    client = CompletionClient(_settings(api_key="  "), transport=httpx.MockTransport(handler))
    with pytest.raises(ConfigurationError):
        _complete(client)
    assert calls == []


@pytest.mark.parametrize(
    "status, error_type, kind",
    [
        (429, UpstreamRateLimited, FailureKind.RATE_LIMITED),
        (503, UpstreamUnavailable, FailureKind.UNAVAILABLE),
        (500, UpstreamUnavailable, FailureKind.UNAVAILABLE),
        (504, UpstreamTimeout, FailureKind.TIMEOUT),
        (401, UpstreamUnknown, FailureKind.UNKNOWN),
        (400, UpstreamUnknown, FailureKind.UNKNOWN),
    ],
)
def test_http_status_maps_to_failure_kind(status, error_type, kind):
    client = CompletionClient(
        _settings(),
        transport=httpx.MockTransport(lambda request: httpx.Response(status, json={"error": "x"})),
    )
    with pytest.raises(error_type) as info:
        _complete(client)
    assert info.value.kind == kind
    assert info.value.status_code == status


def test_transport_timeout_maps_to_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = CompletionClient(_settings(), transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamTimeout):
        _complete(client)


def test_connect_error_maps_to_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = CompletionClient(_settings(), transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamUnavailable):
        _complete(client)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]}),
        httpx.Response(200, text="not json"),
    ],
)
def test_empty_or_garbled_payload_is_unknown(response):
    client = CompletionClient(_settings(), transport=httpx.MockTransport(lambda request: response))
    with pytest.raises(UpstreamUnknown):
        _complete(client)


def test_rate_limit_is_retried_then_succeeds():
    responses = [httpx.Response(429, headers={"Retry-After": "0"}), _ok("Rest today.")]
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return responses[len(calls) - 1]

    client = CompletionClient(_settings(max_retries=2), transport=httpx.MockTransport(handler))
    assert _complete(client) == "Rest today."
    assert len(calls) == 2


def test_timeout_retries_are_bounded():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        raise httpx.ReadTimeout("timed out", request=request)

    client = CompletionClient(_settings(max_retries=2), transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamTimeout):
        _complete(client)
    assert len(calls) == 3


def test_unavailable_is_not_retried():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(503)

    client = CompletionClient(_settings(max_retries=3), transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamUnavailable):
        _complete(client)
    assert len(calls) == 1


def test_retry_after_longer_than_budget_gives_up():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(429, headers={"Retry-After": "60"})

    client = CompletionClient(
        _settings(max_retries=3, request_timeout_sec=2.0),
        transport=httpx.MockTransport(handler),
    )
    with pytest.raises(UpstreamRateLimited) as info:
        _complete(client)
    assert info.value.retry_after_sec == 60.0
    assert len(calls) == 1


class StallingTransport(httpx.AsyncBaseTransport):
    def __init__(self) -> None:
        self.calls = 0

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        await asyncio.sleep(30)
        return _ok("too late")


def test_stalled_upstream_times_out_within_budget():
    transport = StallingTransport()
    client = CompletionClient(_settings(request_timeout_sec=0.5, max_retries=0), transport=transport)

    started = time.perf_counter()
    with pytest.raises(UpstreamTimeout):
        _complete(client)
    elapsed = time.perf_counter() - started

    assert elapsed < 2.0
    assert transport.calls == 1


def test_dripping_server_cannot_outlast_budget():
    body = json.dumps({"choices": [{"message": {"role": "assistant", "content": "hello"}}]}).encode()

    async def serve(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        await reader.read(65536)
        head = (
            "HTTP/1.1 200 OK\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(body)}\r\n\r\n"
        ).encode()
        try:
            writer.write(head)
            await writer.drain()
            for i in range(len(body)):
                writer.write(body[i : i + 1])
                await writer.drain()
                await asyncio.sleep(0.2)
        except ConnectionError:
            pass
        finally:
            writer.close()

    async def scenario() -> float:
        server = await asyncio.start_server(serve, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        client = CompletionClient(
            _settings(completions_base_url=f"http://127.0.0.1:{port}/v1", request_timeout_sec=1.0, max_retries=0)
        )
        started = time.perf_counter()
        try:
            with pytest.raises(UpstreamTimeout):
                await client.complete(build_prompt("I feel dizzy", [], "en"))
            return time.perf_counter() - started
        finally:
            server.close()

    elapsed = asyncio.run(scenario())
    assert elapsed < 2.5
