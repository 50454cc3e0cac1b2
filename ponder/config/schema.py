"""
Configuration schema definitions for Ponder.

This module defines the Pydantic models for configuration validation:
Ollama connection settings, the orchestrator and executor models, browser
automation, reasoning-loop limits, and streaming.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ponder.constants import (
    DEFAULT_BROWSER_SESSION,
    DEFAULT_BROWSER_TIMEOUT,
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_EXECUTOR_MODEL,
    DEFAULT_MAX_HISTORY,
    DEFAULT_MAX_TURNS,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_OLLAMA_PORT,
    DEFAULT_OLLAMA_TIMEOUT,
    DEFAULT_ORCHESTRATOR_MODEL,
)
from ponder.exceptions import ValidationError


class OllamaConfig(BaseModel):
    """
    Connection settings for the Ollama server.

    Parameters
    ----------
    host : str, default="localhost"
        Host name or address. A scheme may be included.
    port : int, default=11434
        Port the server listens on.
    timeout : int, default=120
        Request timeout in seconds.

    Examples
    --------
    >>> OllamaConfig(host="gpu-box", port=11434).url
    'http://gpu-box:11434'
    """

    host: str = Field(default=DEFAULT_OLLAMA_HOST, description="Ollama host")
    port: int = Field(default=DEFAULT_OLLAMA_PORT, ge=1, le=65535, description="Ollama port")
    timeout: int = Field(default=DEFAULT_OLLAMA_TIMEOUT, ge=1, description="Timeout in seconds")

    @property
    def url(self) -> str:
        host: str = self.host.rstrip("/")
        if "://" not in host:
            host = f"http://{host}"
        return f"{host}:{self.port}"


class ModelsConfig(BaseModel):
    """
    Models used by the agent.

    Parameters
    ----------
    orchestrator : str, default="qwen3-vl:8b"
        Model that reasons and selects tools.
    executor : str, default="qwen3:8b"
        Model that answers coding and context tool prompts and writes the
        synthesized answer.
    """

    orchestrator: str = Field(
        default=DEFAULT_ORCHESTRATOR_MODEL,
        description="Orchestrator model",
    )
    executor: str = Field(default=DEFAULT_EXECUTOR_MODEL, description="Executor model")

    @field_validator("orchestrator", "executor")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValidationError("Model name cannot be empty", field="models")
        return v


class BrowserConfig(BaseModel):
    """
    Browser automation settings.

    Parameters
    ----------
    enabled : bool, default=True
        Offer browser tools when agent-browser is installed.
    session_name : str, default="ponder"
        agent-browser session to use.
    headed : bool, default=False
        Show the browser window.
    timeout : float, default=60.0
        Per-command timeout in seconds.
    """

    enabled: bool = Field(default=True, description="Enable browser tools")
    session_name: str = Field(default=DEFAULT_BROWSER_SESSION, description="Session name")
    headed: bool = Field(default=False, description="Run with a visible window")
    timeout: float = Field(default=DEFAULT_BROWSER_TIMEOUT, gt=0, description="Command timeout")


class AgentConfig(BaseModel):
    """
    Reasoning loop and conversation settings.

    Parameters
    ----------
    max_history : int, default=1000
        Messages kept in the conversation store.
    context_window : int, default=20
        Most recent messages shown to the orchestrator.
    max_turns : int, default=10
        Tool-executing turns before a synthesized answer.
    system_prompt : str | None, optional
        Extra instructions appended to the reasoning prompt.
    persist_session : bool, default=False
        Keep the conversation in ``.ponder/session.json`` between runs.
    """

    max_history: int = Field(default=DEFAULT_MAX_HISTORY, ge=1, description="History capacity")
    context_window: int = Field(
        default=DEFAULT_CONTEXT_WINDOW,
        ge=0,
        description="Messages shown to the orchestrator",
    )
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=1, description="Turn budget")
    system_prompt: str | None = Field(default=None, description="Extra instructions")
    persist_session: bool = Field(default=False, description="Persist the conversation")


class StreamingConfig(BaseModel):
    enabled: bool = Field(default=True, description="Stream synthesized answers")


class Configuration(BaseModel):
    """
    Main configuration object for Ponder.

    Parameters
    ----------
    ollama : OllamaConfig
        Ollama connection settings.
    models : ModelsConfig
        Orchestrator and executor models.
    browser : BrowserConfig
        Browser automation settings.
    agent : AgentConfig
        Loop and conversation settings.
    streaming : StreamingConfig
        Streaming settings.
    debug : bool, default=False
        Verbose logging.

    Examples
    --------
    >>> config = Configuration()
    >>> config.models.orchestrator
    'qwen3-vl:8b'
    >>> config.ollama.url
    'http://localhost:11434'
    """

    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)
    debug: bool = Field(default=False, description="Enable debug logging")

    def validate(self) -> list[str]:
        """
        Cross-field validation.

        Returns
        -------
        list[str]
            Problems found. Empty if the configuration is usable.
        """
        errors: list[str] = []

        if self.agent.context_window > self.agent.max_history:
            errors.append(
                f"agent.context_window ({self.agent.context_window}) cannot exceed "
                f"agent.max_history ({self.agent.max_history})"
            )

        if self.browser.enabled and not self.browser.session_name.strip():
            errors.append("browser.session_name cannot be empty when the browser is enabled")

        return errors

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
