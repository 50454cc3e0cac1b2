"""
Ollama client for Ponder.

Chat calls go through the OpenAI SDK pointed at Ollama's OpenAI-compatible
``/v1`` endpoint. Model listing uses Ollama's native ``/api/tags`` endpoint
through httpx.
"""

import logging
from typing import Any, Sequence

import httpx
from openai import APIConnectionError, AsyncOpenAI
from openai import APIError as OpenAIAPIError

from ponder.config.schema import Configuration
from ponder.exceptions import APIError, ConnectionError
from ponder.llm.models import (
    ChatOptions,
    LLMResponse,
    Message,
    ModelInfo,
    TokenUsage,
    ToolCall,
    parse_tool_call_arguments,
)
from ponder.llm.retry import RetryStrategy
from ponder.tools.models import ToolDefinition
from ponder.types import MessageDict, TokenCallback, ToolSchema

logger = logging.getLogger(__name__)

# Ollama ignores the key but the SDK requires one
OLLAMA_API_KEY: str = "ollama"


class OllamaClient:
    """
    Model backend talking to a local Ollama server.

    Parameters
    ----------
    config : Configuration
        Configuration object holding the Ollama connection settings.

    Attributes
    ----------
    config : Configuration
        Configuration object.
    _client : AsyncOpenAI | None
        Internal OpenAI client instance (lazy-initialized).
    _retry_strategy : RetryStrategy
        Strategy for handling retries.

    Examples
    --------
    >>> client = OllamaClient(config)
    >>> response = await client.chat("qwen3:8b", [Message.user("Hello")])
    >>> print(response.content)
    >>> await client.close()
    """

    def __init__(self, config: Configuration) -> None:
        self.config: Configuration = config
        self._client: AsyncOpenAI | None = None
        self._retry_strategy: RetryStrategy = RetryStrategy(endpoint=self.base_url)

    @property
    def base_url(self) -> str:
        return self.config.ollama.url

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=OLLAMA_API_KEY,
                base_url=f"{self.base_url}/v1",
                timeout=float(self.config.ollama.timeout),
                max_retries=0,
            )
            logger.debug(f"Ollama client initialized for {self.base_url}")

        return self._client

    async def close(self) -> None:
        """Close the client and release its connections."""
        if self._client:
            await self._client.close()
            self._client = None
            logger.debug("Ollama client closed")

    def _build_messages(self, messages: Sequence[Message]) -> list[MessageDict]:
        return [message.to_dict() for message in messages]

    def _build_tools(self, tools: Sequence[ToolDefinition]) -> list[ToolSchema]:
        """
        Build tool definitions in OpenAI format.

        Parameters
        ----------
        tools : Sequence[ToolDefinition]
            Definitions to offer the model.

        Returns
        -------
        list[ToolSchema]
            Function schemas wrapped in ``{"type": "function"}`` entries.
        """
        return [
            {"type": "function", "function": definition.to_openai_schema()}
            for definition in tools
        ]

    def _build_kwargs(
        self,
        model: str,
        messages: Sequence[Message],
        options: ChatOptions | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(messages),
        }
        if options is not None:
            if options.temperature is not None:
                kwargs["temperature"] = options.temperature
            if options.max_tokens is not None:
                kwargs["max_tokens"] = options.max_tokens
        return kwargs

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
            If Ollama cannot be reached.
        APIError
            If Ollama returns an error.
        """
        kwargs: dict[str, Any] = self._build_kwargs(model, messages, options)
        return await self._complete(kwargs)

    async def chat_with_tools(
        self,
        model: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition],
        options: ChatOptions | None = None,
    ) -> LLMResponse:
        """
        Generate a response that may request tool calls.

        Parameters
        ----------
        model : str
            Model to call.
        messages : Sequence[Message]
            Conversation to send.
        tools : Sequence[ToolDefinition]
            Tools the model may call.
        options : ChatOptions | None, optional
            Sampling options.

        Returns
        -------
        LLMResponse
            The answer, with any tool calls in the order the model emitted them.
        """
        kwargs: dict[str, Any] = self._build_kwargs(model, messages, options)
        if tools:
            kwargs["tools"] = self._build_tools(tools)
            kwargs["tool_choice"] = "auto"
        return await self._complete(kwargs)

    async def _complete(self, kwargs: dict[str, Any]) -> LLMResponse:
        client: AsyncOpenAI = self._get_client()
        response = await self._retry_strategy.execute(
            lambda: client.chat.completions.create(**kwargs),
        )

        if not response.choices:
            return LLMResponse(model=kwargs["model"])

        message = response.choices[0].message

        tool_calls: list[ToolCall] = []
        if message.tool_calls:
            for tc in message.tool_calls:
                tool_calls.append(
                    ToolCall(
                        name=tc.function.name,
                        arguments=parse_tool_call_arguments(tc.function.arguments),
                    )
                )

        usage: TokenUsage | None = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )

        return LLMResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            usage=usage,
            model=response.model or kwargs["model"],
        )

    async def chat_stream(
        self,
        model: str,
        messages: Sequence[Message],
        options: ChatOptions | None = None,
        on_token: TokenCallback | None = None,
    ) -> LLMResponse:
        """
        Generate a streamed response.

        Text deltas are passed to ``on_token`` as they arrive and also
        accumulated, together with any tool-call deltas, into the returned
        response.

        Parameters
        ----------
        model : str
            Model to call.
        messages : Sequence[Message]
            Conversation to send.
        options : ChatOptions | None, optional
            Sampling options.
        on_token : TokenCallback | None, optional
            Called once per text fragment, in arrival order.

        Returns
        -------
        LLMResponse
            The assembled response.
        """
        client: AsyncOpenAI = self._get_client()
        kwargs: dict[str, Any] = self._build_kwargs(model, messages, options)
        kwargs["stream"] = True

        stream = await self._retry_strategy.execute(
            lambda: client.chat.completions.create(**kwargs),
        )

        content_parts: list[str] = []
        tool_calls: dict[int, dict[str, str]] = {}
        usage: TokenUsage | None = None

        try:
            async for chunk in stream:
                if getattr(chunk, "usage", None):
                    usage = TokenUsage(
                        prompt_tokens=chunk.usage.prompt_tokens or 0,
                        completion_tokens=chunk.usage.completion_tokens or 0,
                        total_tokens=chunk.usage.total_tokens or 0,
                    )

                if not chunk.choices:
                    continue

                delta = chunk.choices[0].delta

                if delta.content:
                    content_parts.append(delta.content)
                    if on_token:
                        on_token(delta.content)

                if delta.tool_calls:
                    for tool_call_delta in delta.tool_calls:
                        entry = tool_calls.setdefault(
                            tool_call_delta.index,
                            {"name": "", "arguments": ""},
                        )
                        if tool_call_delta.function:
                            if tool_call_delta.function.name:
                                entry["name"] = tool_call_delta.function.name
                            if tool_call_delta.function.arguments:
                                entry["arguments"] += tool_call_delta.function.arguments
        except APIConnectionError as e:
            raise ConnectionError(
                f"Lost connection to the model backend while streaming: {e}",
                endpoint=self.base_url,
                cause=e,
            ) from e
        except OpenAIAPIError as e:
            raise APIError(f"Streaming failed: {e}", cause=e) from e

        return LLMResponse(
            content="".join(content_parts),
            tool_calls=[
                ToolCall(
                    name=tc["name"],
                    arguments=parse_tool_call_arguments(tc["arguments"]),
                )
                for _, tc in sorted(tool_calls.items())
            ],
            usage=usage,
            model=model,
        )

    async def list_models(self) -> list[ModelInfo]:
        """
        List the models installed in Ollama.

        Returns
        -------
        list[ModelInfo]
            Installed models.

        Raises
        ------
        ConnectionError
            If Ollama is not running or unreachable.
        """
        try:
            async with httpx.AsyncClient(timeout=float(self.config.ollama.timeout)) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                response.raise_for_status()
                data: dict[str, Any] = response.json()
        except httpx.ConnectError as e:
            raise ConnectionError(
                f"Could not connect to Ollama at {self.base_url}. "
                "Make sure Ollama is running.",
                endpoint=self.base_url,
                cause=e,
            ) from e
        except httpx.HTTPStatusError as e:
            raise ConnectionError(
                f"Ollama API error: {e.response.status_code}",
                endpoint=self.base_url,
                cause=e,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ConnectionError(
                f"Failed to list Ollama models: {e}",
                endpoint=self.base_url,
                cause=e,
            ) from e

        return [
            ModelInfo(
                name=model_data.get("name", ""),
                size=model_data.get("size", 0),
                modified_at=model_data.get("modified_at", ""),
            )
            for model_data in data.get("models", [])
        ]

    async def is_model_available(self, name: str) -> bool:
        """
        Check whether a model is installed.

        A name without a tag also matches its ``:latest`` variant.

        Parameters
        ----------
        name : str
            Model name, with or without tag.

        Returns
        -------
        bool
            True if the model is installed.
        """
        installed: set[str] = {model.name for model in await self.list_models()}
        if name in installed:
            return True
        return ":" not in name and f"{name}:latest" in installed
