"""
Protocol definitions for the collaborators Ponder talks to.

The runtime reaches the model backend, the browser backend and the
persistence sink only through these protocols, which keeps the reasoning
loop testable with in-memory fakes.
"""

from typing import Any, Protocol, Sequence

from ponder.llm.models import ChatOptions, LLMResponse, Message, ModelInfo
from ponder.tools.models import ToolDefinition, ToolResult
from ponder.types import PathLike, TokenCallback


class ModelBackend(Protocol):
    """
    Protocol for model backends.

    Every chat method returns an ``LLMResponse``; streaming and
    non-streaming calls produce the same final shape.
    """

    async def chat(
        self,
        model: str,
        messages: Sequence[Message],
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        """
        Generate a response without tools.

        Parameters
        ----------
        model : str
            Model to call.
        messages : Sequence[Message]
            Conversation to send.
        options : ChatOptions | None, optional
            Sampling options.

        Returns
        -------
        LLMResponse
            The model's answer.

        Raises
        ------
        ConnectionError
            If the backend cannot be reached.
        APIError
            If the backend returns an error.
        """
        ...

    async def chat_with_tools(
        self,
        model: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition],
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        """Generate a response that may request tool calls."""
        ...

    async def chat_stream(
        self,
        model: str,
        messages: Sequence[Message],
        options: ChatOptions | None = None,
        on_token: TokenCallback | None = None,
    ) -> LLMResponse:
        """
        Generate a streamed response.

        ``on_token`` is called once per text fragment, in arrival order.
        """
        ...

    async def list_models(self) -> list[ModelInfo]:
        ...

    async def is_model_available(self, name: str) -> bool:
        ...


class BrowserBackend(Protocol):
    """
    Protocol for browser automation backends.

    Operations act on one shared session and are not safe to interleave.
    Each returns a ``ToolResult`` and raises ``BrowserError`` on failure.
    """

    async def open(self, url: str, wait_for_load: bool = True) -> ToolResult:
        ...

    async def click(self, ref: str) -> ToolResult:
        ...

    async def fill(self, ref: str, text: str) -> ToolResult:
        ...

    async def snapshot(self, interactive_only: bool = True) -> ToolResult:
        ...

    async def get_text(self, ref: str) -> ToolResult:
        ...

    async def screenshot(self, path: str | None = None, full_page: bool = False) -> ToolResult:
        ...

    async def close(self) -> ToolResult:
        ...


class PersistenceSink(Protocol):
    """Protocol for conversation persistence sinks."""

    def load(self, path: PathLike) -> dict[str, Any] | None:
        """
        Load stored state.

        Returns
        -------
        dict[str, Any] | None
            The stored state, or None if nothing usable is stored.
        """
        ...

    def save(self, path: PathLike, state: dict[str, Any]) -> None:
        """
        Store state.

        Raises
        ------
        PersistenceError
            If the state cannot be written.
        """
        ...
