"""
Data models for model-backend interactions.

This module defines the Pydantic models exchanged with a model backend:
conversation messages, tool calls produced by the model, chat options,
token usage, and the final ``LLMResponse`` shape shared by streaming and
non-streaming calls.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ponder.types import MessageDict


class Role(str, Enum):
    """Roles a conversation message can carry."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ToolCall(BaseModel):
    """
    A tool invocation requested by the model.

    Tool calls are produced only from a model response and never mutated.

    Parameters
    ----------
    name : str
        Name of the tool being called.
    arguments : dict[str, Any], default={}
        Arguments for the call. JSON strings are decoded on construction.

    Examples
    --------
    >>> call = ToolCall(name="write_code", arguments='{"task": "fizzbuzz"}')
    >>> call.arguments["task"]
    'fizzbuzz'
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Tool name")
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description="Tool call arguments",
    )

    @field_validator("arguments", mode="before")
    @classmethod
    def parse_arguments(cls, v: Any) -> dict[str, Any]:
        """
        Decode arguments given as a JSON string.

        Parameters
        ----------
        v : Any
            Arguments value (dict, str, or None).

        Returns
        -------
        dict[str, Any]
            Parsed arguments.
        """
        if v is None:
            return {}
        if isinstance(v, str):
            return parse_tool_call_arguments(v)
        return v


class Message(BaseModel):
    """
    A single conversation message.

    Messages are immutable once created; insertion order in a
    conversation is conversational order.

    Parameters
    ----------
    role : Role
        Who produced the message.
    content : str
        Message text.
    tool_calls : list[ToolCall] | None, optional
        Tool calls attached to an assistant message.

    Examples
    --------
    >>> msg = Message.user("Hello")
    >>> msg.to_dict()
    {'role': 'user', 'content': 'Hello'}
    """

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Message role")
    content: str = Field(default="", description="Message content")
    tool_calls: list[ToolCall] | None = Field(
        default=None,
        description="Tool calls requested in this message",
    )

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)

    def to_dict(self) -> MessageDict:
        """
        Convert to the chat-completions message format.

        Returns
        -------
        MessageDict
            Dictionary with ``role`` and ``content`` and, when present,
            ``tool_calls``.
        """
        result: MessageDict = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            result["tool_calls"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments),
                    },
                }
                for tc in self.tool_calls
            ]
        return result


class ChatOptions(BaseModel):
    """
    Sampling options for a single model call.

    Parameters
    ----------
    temperature : float | None, optional
        Sampling temperature.
    max_tokens : int | None, optional
        Maximum number of tokens to generate.
    """

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)


class TokenUsage(BaseModel):
    """
    Token usage statistics for a model call.

    Parameters
    ----------
    prompt_tokens : int, default=0
        Number of tokens in the prompt.
    completion_tokens : int, default=0
        Number of tokens in the completion.
    total_tokens : int, default=0
        Total number of tokens used.

    Examples
    --------
    >>> usage = TokenUsage(prompt_tokens=100, completion_tokens=50, total_tokens=150)
    >>> (usage + usage).total_tokens
    300
    """

    prompt_tokens: int = Field(default=0, ge=0, description="Prompt tokens")
    completion_tokens: int = Field(default=0, ge=0, description="Completion tokens")
    total_tokens: int = Field(default=0, ge=0, description="Total tokens")

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class LLMResponse(BaseModel):
    """
    Final result of a chat call.

    Streaming and non-streaming calls produce the same shape.

    Parameters
    ----------
    content : str, default=""
        Assistant text.
    tool_calls : list[ToolCall], default=[]
        Tool calls requested by the model, in the order it emitted them.
    usage : TokenUsage | None, optional
        Token usage statistics if the backend reported them.
    model : str, default=""
        Name of the model that answered.
    """

    content: str = Field(default="", description="Response text")
    tool_calls: list[ToolCall] = Field(default_factory=list, description="Tool calls")
    usage: TokenUsage | None = Field(default=None, description="Token usage")
    model: str = Field(default="", description="Model name")

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ModelInfo(BaseModel):
    """
    Information about a model installed in Ollama.

    Parameters
    ----------
    name : str
        Model name including tag.
    size : int, default=0
        Model size in bytes.
    modified_at : str, default=""
        Last modification timestamp.
    """

    name: str
    size: int = 0
    modified_at: str = ""


class RecommendedModel(BaseModel):
    """A model suggested for one of the agent roles."""

    name: str
    description: str
    supports_vision: bool = False


RECOMMENDED_ORCHESTRATORS: list[RecommendedModel] = [
    RecommendedModel(
        name="qwen3-vl:8b",
        description="Vision-language model with strong tool calling",
        supports_vision=True,
    ),
    RecommendedModel(
        name="qwen3:8b",
        description="Fast reasoning model with native tool support",
    ),
    RecommendedModel(
        name="llama3.2-vision:11b",
        description="Meta vision model, good at reading screenshots",
        supports_vision=True,
    ),
    RecommendedModel(
        name="mistral-small3.1:24b",
        description="Larger model for complex multi-step tasks",
        supports_vision=True,
    ),
]

RECOMMENDED_EXECUTORS: list[RecommendedModel] = [
    RecommendedModel(
        name="qwen3:8b",
        description="Balanced code generation and explanation",
    ),
    RecommendedModel(
        name="qwen2.5-coder:7b",
        description="Code-specialized model",
    ),
    RecommendedModel(
        name="deepseek-coder-v2:16b",
        description="Strong code model for larger tasks",
    ),
    RecommendedModel(
        name="llama3.2:3b",
        description="Small and fast, for lightweight tasks",
    ),
]


def parse_tool_call_arguments(arguments_str: str) -> dict[str, Any]:
    """
    Parse tool call arguments from a JSON string.

    Parameters
    ----------
    arguments_str : str
        JSON string containing tool call arguments.

    Returns
    -------
    dict[str, Any]
        Parsed arguments. Empty dict for an empty string, or a dict with a
        ``raw_arguments`` key when the string is not a JSON object.

    Examples
    --------
    >>> parse_tool_call_arguments('{"code": "x = 1"}')["code"]
    'x = 1'
    >>> parse_tool_call_arguments("not json")["raw_arguments"]
    'not json'
    """
    if not arguments_str:
        return {}

    try:
        parsed: Any = json.loads(arguments_str)
    except json.JSONDecodeError:
        return {"raw_arguments": arguments_str}

    if not isinstance(parsed, dict):
        return {"raw_arguments": arguments_str}
    return parsed
