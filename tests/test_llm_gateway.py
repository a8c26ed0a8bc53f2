# tests/test_llm_gateway.py
import asyncio
import json

import pytest
import respx
from httpx import Response

from salescrew.config import Settings
from salescrew.exceptions import GatewayError, MissingCredentialsError
from salescrew.services.llm_gateway import LLMGateway, MockLLMGateway

URL = "https://api.perplexity.ai/chat/completions"


def completion(content: str) -> dict:
    return {
        "id": "cmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "sonar-pro",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


def by_key(responses: dict, seen: list):
    """Route side effect answering per Bearer token."""

    def handler(request):
        key = request.headers["authorization"].removeprefix("Bearer ")
        seen.append(key)
        return responses[key]

    return handler


@respx.mock
def test_primary_success_makes_one_call() -> None:
    seen = []
    respx.post(URL).mock(side_effect=by_key({"primary": Response(200, json=completion("ok"))}, seen))

    gateway = LLMGateway("primary", fallback_api_key="fallback")
    assert asyncio.run(gateway.invoke("hello")) == "ok"
    assert seen == ["primary"]


@pytest.mark.parametrize("status", [400, 401, 403, 429])
@respx.mock
def test_failover_statuses_retry_once_on_fallback(status: int) -> None:
    seen = []
    respx.post(URL).mock(side_effect=by_key({
        "primary": Response(status, json={"error": {"message": "nope"}}),
        "fallback": Response(200, json=completion("from fallback")),
    }, seen))

    gateway = LLMGateway("primary", fallback_api_key="fallback")
    assert asyncio.run(gateway.invoke("hello")) == "from fallback"
    assert seen == ["primary", "fallback"]


@respx.mock
def test_server_error_does_not_fail_over() -> None:
    seen = []
    respx.post(URL).mock(side_effect=by_key({
        "primary": Response(500, text="upstream down"),
        "fallback": Response(200, json=completion("unused")),
    }, seen))

    gateway = LLMGateway("primary", fallback_api_key="fallback")
    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("hello"))
    assert exc_info.value.status == 500
    assert seen == ["primary"]


@respx.mock
def test_both_keys_failing_raises_fallback_error() -> None:
    seen = []
    respx.post(URL).mock(side_effect=by_key({
        "primary": Response(401, text="bad key primary"),
        "fallback": Response(429, text="slow down"),
    }, seen))

    gateway = LLMGateway("primary", fallback_api_key="fallback")
    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("hello"))
    assert exc_info.value.status == 429
    assert "slow down" in exc_info.value.body
    assert seen == ["primary", "fallback"]


@respx.mock
def test_no_fallback_key_raises_primary_error() -> None:
    respx.post(URL).mock(return_value=Response(401, text="bad key"))

    gateway = LLMGateway("primary")
    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("hello"))
    assert exc_info.value.status == 401


@respx.mock
def test_error_text_never_contains_keys() -> None:
    respx.post(URL).mock(return_value=Response(403, text="key sk-secret-123 is revoked"))

    gateway = LLMGateway("sk-secret-123")
    with pytest.raises(GatewayError) as exc_info:
        asyncio.run(gateway.invoke("hello"))
    assert "sk-secret-123" not in str(exc_info.value)
    assert "sk-secret-123" not in exc_info.value.body
    assert "***API_KEY***" in exc_info.value.body


@respx.mock
def test_request_carries_model_and_system_prompt() -> None:
    route = respx.post(URL).mock(return_value=Response(200, json=completion("ok")))

    gateway = LLMGateway("primary", model="sonar")
    asyncio.run(gateway.invoke("the prompt", system_prompt="be a coach"))

    body = json.loads(route.calls.last.request.content)
    assert body["model"] == "sonar"
    assert body["messages"] == [
        {"role": "system", "content": "be a coach"},
        {"role": "user", "content": "the prompt"},
    ]


def test_missing_credentials() -> None:
    with pytest.raises(MissingCredentialsError):
        LLMGateway(None)
    with pytest.raises(MissingCredentialsError):
        LLMGateway.from_settings(Settings())


def test_fallback_only_becomes_primary() -> None:
    gateway = LLMGateway(None, fallback_api_key="fallback")
    assert gateway.api_key == "fallback"
    assert gateway.fallback_api_key is None


def test_mock_gateway_replays_and_records() -> None:
    gateway = MockLLMGateway(responses=["first", RuntimeError("boom")])

    assert asyncio.run(gateway.invoke("a")) == "first"
    with pytest.raises(RuntimeError):
        asyncio.run(gateway.invoke("b"))
    assert '"companies"' in asyncio.run(gateway.invoke("c"))
    assert gateway.prompts == ["a", "b", "c"]
    assert gateway.call_count == 3
