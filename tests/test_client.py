from types import SimpleNamespace

import httpx
import pytest

from ponder.config.schema import Configuration
from ponder.exceptions import ConnectionError
from ponder.llm import client as client_module
from ponder.llm.client import OllamaClient
from ponder.llm.models import ChatOptions, Message, ToolCall, parse_tool_call_arguments
from ponder.tools.registry import create_default_catalog


class FakeCompletions:
    def __init__(self, result) -> None:
        self.result = result
        self.kwargs: dict | None = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return self.result


def install(client: OllamaClient, result) -> FakeCompletions:
    completions = FakeCompletions(result)
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return completions


def completion(content: str | None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        model="qwen3:8b",
    )


def function_call(name: str, arguments: str):
    return SimpleNamespace(function=SimpleNamespace(name=name, arguments=arguments))


class FakeStream:
    def __init__(self, chunks) -> None:
        self.chunks = chunks

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            yield chunk


def chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


def tool_delta(index: int, name=None, arguments=None):
    return SimpleNamespace(index=index, function=SimpleNamespace(name=name, arguments=arguments))


def test_argument_parsing():
    assert parse_tool_call_arguments('{"task": "sort"}') == {"task": "sort"}
    assert parse_tool_call_arguments("") == {}
    assert parse_tool_call_arguments("{broken") == {"raw_arguments": "{broken"}
    assert parse_tool_call_arguments("[1, 2]") == {"raw_arguments": "[1, 2]"}
    assert ToolCall(name="x", arguments='{"a": 1}').arguments == {"a": 1}


@pytest.mark.asyncio
async def test_chat_with_tools_builds_request_and_parses_calls():
    client = OllamaClient(Configuration())
    completions = install(
        client,
        completion(
            None,
            [
                function_call("write_code", '{"task": "fizzbuzz"}'),
                function_call("browser_click", '{"ref": "e3"}'),
            ],
        ),
    )
    catalog = create_default_catalog(browser_enabled=False)

    response = await client.chat_with_tools(
        "qwen3-vl:8b",
        [Message.system("rules"), Message.user("go")],
        catalog.coding_tools(),
        ChatOptions(temperature=0.1),
    )

    assert completions.kwargs["model"] == "qwen3-vl:8b"
    assert completions.kwargs["temperature"] == 0.1
    assert completions.kwargs["tool_choice"] == "auto"
    assert completions.kwargs["tools"][0]["type"] == "function"
    assert completions.kwargs["tools"][0]["function"]["name"] == "write_code"
    assert completions.kwargs["messages"][1] == {"role": "user", "content": "go"}

    assert response.content == ""
    assert [c.name for c in response.tool_calls] == ["write_code", "browser_click"]
    assert response.tool_calls[0].arguments == {"task": "fizzbuzz"}
    assert response.usage.total_tokens == 15


@pytest.mark.asyncio
async def test_chat_without_tools_omits_tool_fields():
    client = OllamaClient(Configuration())
    completions = install(client, completion("hello"))

    response = await client.chat("qwen3:8b", [Message.user("hi")])

    assert "tools" not in completions.kwargs
    assert "temperature" not in completions.kwargs
    assert response.content == "hello"
    assert not response.has_tool_calls


@pytest.mark.asyncio
async def test_stream_assembles_text_and_tool_calls():
    client = OllamaClient(Configuration())
    install(
        client,
        FakeStream(
            [
                chunk(content="Hel"),
                chunk(content="lo"),
                chunk(tool_calls=[tool_delta(0, name="explain_code", arguments='{"co')]),
                chunk(tool_calls=[tool_delta(0, arguments='de": "x"}')]),
            ]
        ),
    )
    tokens: list[str] = []

    response = await client.chat_stream("qwen3:8b", [Message.user("hi")], on_token=tokens.append)

    assert tokens == ["Hel", "lo"]
    assert response.content == "Hello"
    assert response.tool_calls == [ToolCall(name="explain_code", arguments={"code": "x"})]


def mock_tags(monkeypatch, handler) -> None:
    transport = httpx.MockTransport(handler)
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        client_module.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=transport, **kwargs),
    )


@pytest.mark.asyncio
async def test_list_models_and_availability(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/tags"
        return httpx.Response(
            200,
            json={
                "models": [
                    {"name": "qwen3:8b", "size": 5_000_000_000, "modified_at": "2025-01-01"},
                    {"name": "llama3.2:latest", "size": 2_000_000_000},
                ]
            },
        )

    mock_tags(monkeypatch, handler)
    client = OllamaClient(Configuration())

    models = await client.list_models()

    assert [m.name for m in models] == ["qwen3:8b", "llama3.2:latest"]
    assert models[0].size == 5_000_000_000
    assert await client.is_model_available("qwen3:8b")
    assert await client.is_model_available("llama3.2")
    assert not await client.is_model_available("qwen3-vl:8b")


@pytest.mark.asyncio
async def test_list_models_when_ollama_is_down(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    mock_tags(monkeypatch, handler)

    with pytest.raises(ConnectionError) as exc_info:
        await OllamaClient(Configuration()).list_models()

    assert "Make sure Ollama is running" in exc_info.value.message


@pytest.mark.asyncio
async def test_list_models_http_error(monkeypatch):
    mock_tags(monkeypatch, lambda request: httpx.Response(500))

    with pytest.raises(ConnectionError):
        await OllamaClient(Configuration()).list_models()
