import json
from typing import Any, Dict, List

import pytest
from pydantic import BaseModel

from config import LlmRoute
from llm_gateway import LlmGatewayError, call, chat, chat_text, strip_code_fences


class Reply(BaseModel):
    value: int


class FakeResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    @property
    def text(self) -> str:
        return json.dumps(self._payload) if not isinstance(self._payload, Exception) else ""


class FakeClient:
    def __init__(self, responses: List[FakeResponse]) -> None:
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def post(self, url, *, json, headers, timeout):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return self.responses.pop(0)


def _content(text: str) -> FakeResponse:
    return FakeResponse(200, {"choices": [{"message": {"content": text}}]})


def _route(**overrides) -> LlmRoute:
    data = {
        "name": "test",
        "base_url": "http://llm.local",
        "endpoint": "/v1/chat/completions",
        "model": "test-model",
        "timeout_s": 5,
        "max_retries": 1,
        "api_key_env": "TEST_LLM_KEY",
        "temperature": 0.2,
    }
    data.update(overrides)
    return LlmRoute(**data)


@pytest.mark.asyncio
async def test_chat_validates_fenced_json(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TEST_LLM_KEY", "secret")
    client = FakeClient([_content('```json\n{"value": 3}\n```')])

    result = await chat([{"role": "user", "content": "go"}], Reply, cfg=_route(), client=client)

    assert result.value == 3
    call = client.calls[0]
    assert call["url"] == "http://llm.local/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["json"]["temperature"] == 0.2
    assert call["json"]["messages"][0]["role"] == "system"


@pytest.mark.asyncio
async def test_chat_retries_with_hint_then_fails():
    client = FakeClient([_content("not json"), _content('{"value": "x"}')])

    with pytest.raises(LlmGatewayError):
        await chat([{"role": "user", "content": "go"}], Reply, cfg=_route(), client=client)

    assert len(client.calls) == 2
    assert "failed validation" in client.calls[1]["json"]["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_chat_recovers_on_retry():
    client = FakeClient([_content("oops"), _content('{"value": 9}')])
    result = await chat([{"role": "user", "content": "go"}], Reply, cfg=_route(), client=client)
    assert result.value == 9


@pytest.mark.asyncio
async def test_error_status_is_not_retried():
    client = FakeClient([FakeResponse(500, {"error": "boom"}), _content('{"value": 1}')])
    with pytest.raises(LlmGatewayError):
        await chat([{"role": "user", "content": "go"}], Reply, cfg=_route(), client=client)
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_non_json_body_raises():
    client = FakeClient([FakeResponse(200, ValueError("no json"))])
    with pytest.raises(LlmGatewayError):
        await chat_text([{"role": "user", "content": "go"}], cfg=_route(), client=client)


@pytest.mark.asyncio
async def test_chat_text_strips_content():
    client = FakeClient([_content("  A short summary.  ")])
    text = await chat_text([{"role": "user", "content": "go"}], cfg=_route(enforce_json=False), client=client)
    assert text == "A short summary."
    assert client.calls[0]["json"]["messages"][0]["role"] == "user"


def test_strip_code_fences():
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


@pytest.mark.asyncio
async def test_call_wraps_task_as_user_message():
    client = FakeClient([_content('{"value": 4}')])
    result = await call("Return four", Reply, cfg=_route(), client=client)
    assert result.value == 4
    assert client.calls[0]["json"]["messages"][-1] == {"role": "user", "content": "Return four"}
