"""
Pytest configuration and fixtures.
"""

import asyncio
from typing import Any, Awaitable, Callable, Sequence

import pytest

from ponder.config.schema import Configuration
from ponder.context.conversation import Conversation
from ponder.exceptions import BrowserError
from ponder.llm.models import ChatOptions, LLMResponse, Message, ModelInfo, ToolCall
from ponder.tools.models import ToolDefinition, ToolResult
from ponder.tools.registry import ToolCatalog, create_default_catalog
from ponder.types import TokenCallback

ChatHandler = Callable[[str, list[Message]], Awaitable[LLMResponse]]


class FakeBackend:
    """
    Scripted model backend.

    ``chat_with_tools`` pops the next scripted response (an ``LLMResponse``
    or an exception to raise) and answers "done" once the script runs out.
    ``chat`` uses ``chat_handler`` when set, otherwise ``chat_content``.
    """

    def __init__(
        self,
        tool_responses: Sequence[LLMResponse | Exception] | None = None,
        chat_content: str = "executor output",
        chat_handler: ChatHandler | None = None,
        stream_chunks: Sequence[str] = ("synthesized ", "answer"),
        installed: Sequence[str] = ("qwen3-vl:8b", "qwen3:8b"),
    ) -> None:
        self.tool_responses: list[LLMResponse | Exception] = list(tool_responses or [])
        self.chat_content: str = chat_content
        self.chat_handler: ChatHandler | None = chat_handler
        self.stream_chunks: list[str] = list(stream_chunks)
        self.installed: list[str] = list(installed)
        self.calls: list[dict[str, Any]] = []

    def _record(self, method: str, model: str, messages: Sequence[Message], **extra: Any) -> None:
        self.calls.append({"method": method, "model": model, "messages": list(messages), **extra})

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method]

    async def chat(
        self,
        model: str,
        messages: Sequence[Message],
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        self._record("chat", model, messages, options=options)
        if self.chat_handler is not None:
            return await self.chat_handler(model, list(messages))
        return LLMResponse(content=self.chat_content, model=model)

    async def chat_with_tools(
        self,
        model: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition],
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        self._record("chat_with_tools", model, messages, tools=list(tools), options=options)
        if not self.tool_responses:
            return LLMResponse(content="done", model=model)

        response = self.tool_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def chat_stream(
        self,
        model: str,
        messages: Sequence[Message],
        options: ChatOptions | None = None,
        on_token: TokenCallback | None = None,
    ) -> LLMResponse:
        self._record("chat_stream", model, messages, options=options)
        for chunk in self.stream_chunks:
            if on_token:
                on_token(chunk)
        return LLMResponse(content="".join(self.stream_chunks), model=model)

    async def list_models(self) -> list[ModelInfo]:
        return [ModelInfo(name=name) for name in self.installed]

    async def is_model_available(self, name: str) -> bool:
        return name in self.installed


class FakeBrowser:
    """
    Browser backend that records the order of operations.

    Operations named in ``failing`` (for example ``{"click"}``) raise
    ``BrowserError`` instead of succeeding.
    """

    def __init__(self, delay: float = 0.0, failing: set[str] | None = None) -> None:
        self.delay: float = delay
        self.failing: set[str] = failing or set()
        self.log: list[str] = []
        self.active: int = 0
        self.max_active: int = 0

    async def _act(self, entry: str) -> ToolResult:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            self.log.append(entry)
            if entry.split()[0] in self.failing:
                raise BrowserError(f"{entry} failed")
        finally:
            self.active -= 1
        return ToolResult.success_result(entry)

    async def open(self, url: str, wait_for_load: bool = True) -> ToolResult:
        return await self._act(f"open {url}")

    async def click(self, ref: str) -> ToolResult:
        return await self._act(f"click {ref}")

    async def fill(self, ref: str, text: str) -> ToolResult:
        return await self._act(f"fill {ref} {text}")

    async def snapshot(self, interactive_only: bool = True) -> ToolResult:
        return await self._act("snapshot")

    async def get_text(self, ref: str) -> ToolResult:
        return await self._act(f"get_text {ref}")

    async def screenshot(self, path: str | None = None, full_page: bool = False) -> ToolResult:
        return await self._act(f"screenshot {path}")

    async def close(self) -> ToolResult:
        return await self._act("close")


def tool_call_response(*calls: tuple[str, dict[str, Any]]) -> LLMResponse:
    """Build an orchestrator response requesting the given tool calls."""
    return LLMResponse(
        content="",
        tool_calls=[ToolCall(name=name, arguments=arguments) for name, arguments in calls],
    )


@pytest.fixture
def config() -> Configuration:
    """Returns a default configuration with streaming disabled."""
    configuration = Configuration()
    configuration.streaming.enabled = False
    return configuration


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def catalog() -> ToolCatalog:
    return create_default_catalog(browser_enabled=True)


@pytest.fixture
def conversation() -> Conversation:
    return Conversation(max_length=100)
