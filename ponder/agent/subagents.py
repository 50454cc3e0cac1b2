"""
Sub-agent fan-out.

Sub-agents are lightweight, stateless workers with their own system prompt,
model and restricted set of coding tools. The manager runs all of them on
the same task concurrently and gathers their independent answers.
"""

import asyncio
import logging

from pydantic import BaseModel, Field

from ponder.constants import (
    DEFAULT_SUBAGENT_MAX_TURNS,
    EXECUTOR_TEMPERATURE,
    SUBAGENT_TOOL_TEMPERATURE,
)
from ponder.exceptions import PonderError
from ponder.interfaces import ModelBackend
from ponder.llm.models import ChatOptions, LLMResponse, Message
from ponder.tools.models import ToolDefinition
from ponder.tools.registry import ToolCatalog

logger = logging.getLogger(__name__)


class SubagentDefinition(BaseModel):
    """
    Definition for a sub-agent.

    Parameters
    ----------
    name : str
        Unique name for the sub-agent.
    description : str, default=""
        What the sub-agent is for.
    system_prompt : str | None, optional
        Role prompt. A generic prompt naming the sub-agent is used if None.
    allowed_tools : list[str], default=[]
        Coding tools the sub-agent may call. Empty means all of them.
    model : str | None, optional
        Model to use. Defaults to the manager's executor model.
    max_turns : int, default=5
        Turn budget carried with the definition. ``SubAgent.run`` always
        makes a single model call, so the budget is not consulted there.
    timeout_seconds : float, default=300.0
        Maximum execution time in seconds.

    Examples
    --------
    >>> definition = SubagentDefinition(
    ...     name="security_reviewer",
    ...     system_prompt="You review code for security issues.",
    ...     allowed_tools=["explain_code"],
    ... )
    """

    name: str = Field(min_length=1, description="Sub-agent name")
    description: str = Field(default="", description="Sub-agent description")
    system_prompt: str | None = Field(default=None, description="Role prompt")
    allowed_tools: list[str] = Field(
        default_factory=list,
        description="Allowed coding tools (empty = all)",
    )
    model: str | None = Field(default=None, description="Model override")
    max_turns: int = Field(
        default=DEFAULT_SUBAGENT_MAX_TURNS,
        ge=1,
        description="Turn budget (unused by single-call runs)",
    )
    timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Maximum execution time in seconds",
    )

    def resolved_system_prompt(self) -> str:
        if self.system_prompt:
            return self.system_prompt
        return (
            f"You are a helpful sub-agent named '{self.name}'. "
            "Complete the task you are given."
        )


CODE_REVIEWER = SubagentDefinition(
    name="code_reviewer",
    description="Reviews code and gives feedback on quality, bugs and improvements",
    system_prompt="""You are a code review specialist.
Your job is to review code and provide constructive feedback.
Look for bugs, code smells, security issues, and improvement opportunities.""",
    allowed_tools=["explain_code", "debug_code"],
)

CODE_EXPLAINER = SubagentDefinition(
    name="code_explainer",
    description="Explains what code does and how its parts fit together",
    system_prompt="""You are a code explanation specialist.
Your job is to explain code clearly to a developer who has not seen it before.
Cover what it does, how it works, and anything surprising.""",
    allowed_tools=["explain_code"],
)


def get_default_subagent_definitions() -> list[SubagentDefinition]:
    return [CODE_REVIEWER, CODE_EXPLAINER]


class SubAgentResult(BaseModel):
    """
    Outcome of one sub-agent run.

    Parameters
    ----------
    name : str
        Sub-agent that produced the result.
    success : bool
        Whether the run finished without error.
    content : str, default=""
        The sub-agent's answer.
    error : str | None, optional
        Error message when the run failed.
    """

    name: str
    success: bool
    content: str = ""
    error: str | None = None


class SubAgent:
    """
    A stateless worker that answers a task with a single model call.

    Parameters
    ----------
    definition : SubagentDefinition
        Role, tool restrictions and limits.
    backend : ModelBackend
        Model backend to call.
    catalog : ToolCatalog
        Catalog whose coding tools the sub-agent may be offered.
    model : str
        Model to use when the definition does not name one.
    """

    def __init__(
        self,
        definition: SubagentDefinition,
        backend: ModelBackend,
        catalog: ToolCatalog,
        model: str,
    ) -> None:
        self.definition: SubagentDefinition = definition
        self.backend: ModelBackend = backend
        self.catalog: ToolCatalog = catalog
        self.model: str = definition.model or model

    @property
    def name(self) -> str:
        return self.definition.name

    def tool_definitions(self) -> list[ToolDefinition]:
        """
        Coding tools this sub-agent is offered.

        Returns
        -------
        list[ToolDefinition]
            All coding tools when ``allowed_tools`` is empty, otherwise
            the coding tools it names.
        """
        coding: list[ToolDefinition] = self.catalog.coding_tools()
        if not self.definition.allowed_tools:
            return coding

        allowed: set[str] = set(self.definition.allowed_tools)
        return [definition for definition in coding if definition.name in allowed]

    async def run(self, task: str) -> str:
        """
        Run the sub-agent on a task.

        Parameters
        ----------
        task : str
            Task description.

        Returns
        -------
        str
            The model's answer.

        Raises
        ------
        ConnectionError
            If the backend cannot be reached.
        APIError
            If the backend returns an error.
        """
        messages: list[Message] = [
            Message.system(self.definition.resolved_system_prompt()),
            Message.user(task),
        ]
        tools: list[ToolDefinition] = self.tool_definitions()

        logger.debug(f"Sub-agent {self.name} running with {len(tools)} tool(s) on {self.model}")

        response: LLMResponse
        if tools:
            response = await self.backend.chat_with_tools(
                self.model,
                messages,
                tools,
                ChatOptions(temperature=SUBAGENT_TOOL_TEMPERATURE),
            )
        else:
            response = await self.backend.chat(
                self.model,
                messages,
                ChatOptions(temperature=EXECUTOR_TEMPERATURE),
            )

        return response.content


class SubAgentManager:
    """
    Runs a group of sub-agents on the same task.

    Parameters
    ----------
    backend : ModelBackend
        Model backend shared by the sub-agents.
    catalog : ToolCatalog
        Catalog the sub-agents draw their tools from.
    default_model : str
        Model for sub-agents whose definition names none.

    Examples
    --------
    >>> manager = SubAgentManager(backend, catalog, "qwen3:8b")
    >>> manager.add_defaults()
    >>> for result in await manager.run_all("Review this function: ..."):
    ...     print(result.name, result.content)
    """

    def __init__(
        self,
        backend: ModelBackend,
        catalog: ToolCatalog,
        default_model: str,
    ) -> None:
        self.backend: ModelBackend = backend
        self.catalog: ToolCatalog = catalog
        self.default_model: str = default_model
        self._agents: list[SubAgent] = []

    def __len__(self) -> int:
        return len(self._agents)

    @property
    def agents(self) -> list[SubAgent]:
        return list(self._agents)

    def add_agent(self, agent: SubAgent | SubagentDefinition) -> SubAgent:
        """
        Add a sub-agent, building it from a definition if needed.

        Parameters
        ----------
        agent : SubAgent | SubagentDefinition
            Sub-agent or definition to add.

        Returns
        -------
        SubAgent
            The added sub-agent.
        """
        if isinstance(agent, SubagentDefinition):
            agent = SubAgent(agent, self.backend, self.catalog, self.default_model)

        self._agents.append(agent)
        logger.debug(f"Added sub-agent: {agent.name}")
        return agent

    def add_defaults(self) -> None:
        for definition in get_default_subagent_definitions():
            self.add_agent(definition)

    def get_agent(self, name: str) -> SubAgent | None:
        for agent in self._agents:
            if agent.name == name:
                return agent
        return None

    async def _run_one(self, agent: SubAgent, task: str) -> SubAgentResult:
        timeout: float = agent.definition.timeout_seconds
        try:
            content: str = await asyncio.wait_for(agent.run(task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Sub-agent {agent.name} timed out after {timeout}s")
            return SubAgentResult(
                name=agent.name,
                success=False,
                error=f"Timed out after {timeout}s",
            )
        except PonderError as e:
            logger.warning(f"Sub-agent {agent.name} failed: {e}")
            return SubAgentResult(name=agent.name, success=False, error=e.message)
        except Exception as e:
            logger.exception(f"Sub-agent {agent.name} raised unexpected error")
            return SubAgentResult(name=agent.name, success=False, error=str(e))

        return SubAgentResult(name=agent.name, success=True, content=content)

    async def run_all(self, task: str) -> list[SubAgentResult]:
        """
        Run every sub-agent on a task concurrently.

        Parameters
        ----------
        task : str
            Task given to each sub-agent.

        Returns
        -------
        list[SubAgentResult]
            One result per sub-agent, in completion order. A failing
            sub-agent yields an error result without affecting the others.
        """
        if not self._agents:
            return []

        logger.debug(f"Fanning out task to {len(self._agents)} sub-agent(s)")

        results: list[SubAgentResult] = []
        for next_result in asyncio.as_completed(
            [self._run_one(agent, task) for agent in self._agents]
        ):
            results.append(await next_result)
        return results
