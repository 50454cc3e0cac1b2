"""
Main agent implementation.

This module provides the Agent class that runs the ReAct reasoning loop:
the orchestrator model picks tools, the dispatcher executes them, and the
loop feeds the observations back until the model answers or the turn
budget runs out.
"""

import logging
from pathlib import Path
from typing import Any, AsyncGenerator

from ponder.agent.dispatcher import ToolDispatcher
from ponder.agent.events import AgentEvent, AgentEventType
from ponder.agent.loop_state import AgentLoopState
from ponder.agent.prompts import (
    build_react_prompt,
    build_synthesis_prompt,
    build_user_content,
)
from ponder.agent.subagents import SubAgentManager, SubAgentResult
from ponder.config.loader import get_session_path
from ponder.config.schema import Configuration
from ponder.constants import (
    EXECUTOR_TEMPERATURE,
    FALLBACK_ANSWER,
    ORCHESTRATOR_TEMPERATURE,
)
from ponder.context.conversation import Conversation
from ponder.exceptions import ModelNotFoundError
from ponder.interfaces import BrowserBackend, ModelBackend
from ponder.llm.client import OllamaClient
from ponder.llm.models import ChatOptions, LLMResponse, Message, ModelInfo, Role
from ponder.tools.browser import BrowserExecutor
from ponder.tools.models import ToolDefinition
from ponder.tools.registry import ToolCatalog, create_default_catalog
from ponder.types import PathLike, TokenCallback

logger = logging.getLogger(__name__)


class Agent:
    """
    ReAct agent over a local model backend.

    Parameters
    ----------
    config : Configuration
        Configuration object with agent settings.
    backend : ModelBackend | None, optional
        Model backend. An ``OllamaClient`` is created if None.
    browser : BrowserBackend | None, optional
        Browser backend. If None, ``initialize`` probes for agent-browser.
    catalog : ToolCatalog | None, optional
        Tool catalog. The built-in tools are registered if None.
    conversation : Conversation | None, optional
        Conversation store. An empty one sized by ``agent.max_history`` is
        created if None.

    Attributes
    ----------
    config : Configuration
        Configuration object.
    conversation : Conversation
        History shared across invocations.
    dispatcher : ToolDispatcher
        Executes the tool calls of each turn.
    browser_available : bool
        Whether browser tools are offered to the orchestrator.

    Examples
    --------
    >>> async with Agent(config) as agent:
    ...     answer = await agent.process("Write a function that reverses a string")
    """

    def __init__(
        self,
        config: Configuration,
        backend: ModelBackend | None = None,
        browser: BrowserBackend | None = None,
        catalog: ToolCatalog | None = None,
        conversation: Conversation | None = None,
    ) -> None:
        self.config: Configuration = config
        self._owns_backend: bool = backend is None
        self.backend: ModelBackend = backend if backend is not None else OllamaClient(config)
        self.catalog: ToolCatalog = (
            catalog if catalog is not None else create_default_catalog(config.browser.enabled)
        )
        self.conversation: Conversation = (
            conversation if conversation is not None else Conversation(config.agent.max_history)
        )
        if config.agent.system_prompt:
            self.conversation.set_system_prompt(config.agent.system_prompt)
        self.browser: BrowserBackend | None = browser
        self.browser_available: bool = browser is not None and config.browser.enabled
        self.dispatcher: ToolDispatcher = ToolDispatcher(
            config,
            self.catalog,
            self.backend,
            self.conversation,
            browser if self.browser_available else None,
        )

    async def initialize(self) -> None:
        """
        Check the backend and probe the browser.

        Raises
        ------
        ConnectionError
            If the model backend cannot be reached.
        ModelNotFoundError
            If the orchestrator or executor model is not installed.
        """
        await self.backend.list_models()

        for model in (self.config.models.orchestrator, self.config.models.executor):
            if not await self.backend.is_model_available(model):
                raise ModelNotFoundError(model)

        if self.config.browser.enabled and self.browser is None:
            if await BrowserExecutor.is_available():
                self.browser = BrowserExecutor(
                    session_name=self.config.browser.session_name,
                    headed=self.config.browser.headed,
                    timeout=self.config.browser.timeout,
                )
                self.browser_available = True
                self.dispatcher.browser = self.browser
                logger.debug("agent-browser detected, browser tools enabled")
            else:
                logger.warning("agent-browser not found, browser tools disabled")

        if self.config.agent.persist_session and self.conversation.persistence_path is None:
            self.enable_persistence(get_session_path())

        logger.debug(
            f"Agent initialized (orchestrator={self.config.models.orchestrator}, "
            f"executor={self.config.models.executor})"
        )

    def tool_definitions(self) -> list[ToolDefinition]:
        """
        Definitions offered to the orchestrator.

        Returns
        -------
        list[ToolDefinition]
            Coding and context tools, plus browser tools when the browser
            is available.
        """
        definitions: list[ToolDefinition] = (
            self.catalog.coding_tools() + self.catalog.context_tools()
        )
        if self.browser_available:
            definitions.extend(self.catalog.browser_tools())
        return definitions

    def _build_context(
        self,
        user_input: str,
        window: list[Message],
        state: AgentLoopState,
    ) -> list[Message]:
        """
        Assemble the orchestrator messages for one turn.

        ``window`` is the conversation's context window. Its leading system
        message, if any, is appended to the ReAct instructions rather than
        sent as a second system message.
        """
        extra_instructions: str | None = None
        history: list[Message] = window
        if window and window[0].role == Role.SYSTEM:
            extra_instructions = window[0].content
            history = window[1:]

        system_prompt: str = build_react_prompt(self.browser_available, extra_instructions)
        return [
            Message.system(system_prompt),
            *history,
            Message.user(build_user_content(user_input, state.format_observations())),
        ]

    async def run(
        self,
        user_input: str,
        on_token: TokenCallback | None = None,
    ) -> AsyncGenerator[AgentEvent, None]:
        """
        Run the reasoning loop for one user input.

        The user message is recorded before the first model call. The answer
        is recorded only once the loop completes, so a cancelled invocation
        leaves no assistant message behind.

        Parameters
        ----------
        user_input : str
            Task or question from the user.
        on_token : TokenCallback | None, optional
            Receives the synthesized answer as it streams.

        Yields
        ------
        AgentEvent
            Progress events, ending with ``agent_end``.

        Raises
        ------
        ConnectionError
            If the model backend cannot be reached.
        APIError
            If the model backend returns an error.
        """
        yield AgentEvent.agent_start(user_input)

        window: list[Message] = self.conversation.get_context_window(
            self.config.agent.context_window
        )
        self.conversation.add_user(user_input)

        state: AgentLoopState = AgentLoopState(max_turns=self.config.agent.max_turns)

        while state.should_continue():
            yield AgentEvent.turn_start(state.turn, state.max_turns)

            response: LLMResponse = await self.backend.chat_with_tools(
                self.config.models.orchestrator,
                self._build_context(user_input, window, state),
                self.tool_definitions(),
                ChatOptions(temperature=ORCHESTRATOR_TEMPERATURE),
            )

            if not response.has_tool_calls:
                state.final_answer = response.content or FALLBACK_ANSWER
                break

            logger.debug(f"Turn {state.turn}: {len(response.tool_calls)} tool call(s)")
            for call in response.tool_calls:
                yield AgentEvent.tool_call_start(call)

            observations = await self.dispatcher.dispatch(response.tool_calls)
            for observation in observations:
                yield AgentEvent.tool_call_complete(observation)

            state.add_observations(observations)
            state.next_turn()

        if state.final_answer is None:
            logger.debug(f"Turn budget of {state.max_turns} exhausted, synthesizing answer")
            yield AgentEvent.synthesis_start(len(state.observations))
            state.final_answer = await self._synthesize(state, on_token)

        answer: str = state.final_answer
        self.conversation.add_assistant(answer)

        yield AgentEvent.agent_end(answer, state.turn, state.status.value)

    async def _synthesize(
        self,
        state: AgentLoopState,
        on_token: TokenCallback | None,
    ) -> str:
        messages: list[Message] = [
            Message.user(build_synthesis_prompt(state.format_observations())),
        ]
        options: ChatOptions = ChatOptions(temperature=EXECUTOR_TEMPERATURE)

        response: LLMResponse
        if self.config.streaming.enabled:
            response = await self.backend.chat_stream(
                self.config.models.executor,
                messages,
                options,
                on_token,
            )
        else:
            response = await self.backend.chat(self.config.models.executor, messages, options)

        return response.content or FALLBACK_ANSWER

    async def process(self, user_input: str, on_token: TokenCallback | None = None) -> str:
        """
        Run the reasoning loop and return the answer.

        Parameters
        ----------
        user_input : str
            Task or question from the user.
        on_token : TokenCallback | None, optional
            Receives the synthesized answer as it streams.

        Returns
        -------
        str
            The final answer.
        """
        answer: str = FALLBACK_ANSWER
        async for event in self.run(user_input, on_token):
            if event.type == AgentEventType.AGENT_END:
                answer = event.data["response"]
        return answer

    async def delegate(self, task: str) -> list[SubAgentResult]:
        """
        Fan a task out to the default sub-agents.

        Parameters
        ----------
        task : str
            Task given to every sub-agent.

        Returns
        -------
        list[SubAgentResult]
            One result per sub-agent, in completion order.
        """
        manager: SubAgentManager = SubAgentManager(
            self.backend,
            self.catalog,
            self.config.models.executor,
        )
        manager.add_defaults()
        return await manager.run_all(task)

    def enable_persistence(self, path: PathLike | None = None) -> None:
        session_path: Path = Path(path) if path is not None else get_session_path()
        self.conversation.enable_persistence(session_path)
        logger.debug(f"Session persistence enabled at {session_path}")

    def clear_history(self) -> None:
        self.conversation.clear()

    def set_orchestrator_model(self, model: str) -> None:
        self.config.models.orchestrator = model
        logger.debug(f"Orchestrator model set to {model}")

    def set_executor_model(self, model: str) -> None:
        self.config.models.executor = model
        logger.debug(f"Executor model set to {model}")

    def set_streaming(self, enabled: bool) -> None:
        self.config.streaming.enabled = enabled

    def set_debug(self, enabled: bool) -> None:
        self.config.debug = enabled
        logging.getLogger().setLevel(logging.DEBUG if enabled else logging.INFO)

    async def list_models(self) -> list[ModelInfo]:
        return await self.backend.list_models()

    @property
    def conversation_length(self) -> int:
        return len(self.conversation)

    @property
    def has_browser(self) -> bool:
        return self.browser_available

    async def close(self) -> None:
        """Release the model backend if this agent created it."""
        if self._owns_backend and isinstance(self.backend, OllamaClient):
            await self.backend.close()
        logger.debug("Agent resources cleaned up")

    async def __aenter__(self) -> "Agent":
        """
        Async context manager entry.

        Returns
        -------
        Agent
            Self instance, initialized.
        """
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
