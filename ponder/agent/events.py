"""
Event models for the agent lifecycle.

``Agent.run`` yields these events so callers can render progress while the
reasoning loop works through its turns.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ponder.llm.models import ToolCall
from ponder.tools.models import Observation


class AgentEventType(str, Enum):
    """
    Types of events emitted by the agent.

    Attributes
    ----------
    AGENT_START : str
        Agent started processing a user message.
    TURN_START : str
        A reasoning turn is about to call the orchestrator.
    TOOL_CALL_START : str
        A tool call is about to be dispatched.
    TOOL_CALL_COMPLETE : str
        A tool call produced its observation.
    SYNTHESIS_START : str
        The turn budget ran out and a synthesis call is starting.
    AGENT_END : str
        Agent finished with an answer.
    """

    AGENT_START = "agent_start"
    TURN_START = "turn_start"
    TOOL_CALL_START = "tool_call_start"
    TOOL_CALL_COMPLETE = "tool_call_complete"
    SYNTHESIS_START = "synthesis_start"
    AGENT_END = "agent_end"


class AgentEvent(BaseModel):
    """
    Event emitted by the agent during execution.

    Parameters
    ----------
    type : AgentEventType
        Type of the event.
    data : dict[str, Any], default={}
        Event-specific data.

    Examples
    --------
    >>> event = AgentEvent.agent_start("Hello")
    >>> event.data["message"]
    'Hello'
    """

    type: AgentEventType = Field(description="Event type")
    data: dict[str, Any] = Field(default_factory=dict, description="Event data")

    @classmethod
    def agent_start(cls, message: str) -> "AgentEvent":
        return cls(type=AgentEventType.AGENT_START, data={"message": message})

    @classmethod
    def turn_start(cls, turn: int, max_turns: int) -> "AgentEvent":
        """
        Create a turn start event.

        Parameters
        ----------
        turn : int
            Zero-based turn number.
        max_turns : int
            Turn budget for this invocation.

        Returns
        -------
        AgentEvent
            Turn start event.
        """
        return cls(
            type=AgentEventType.TURN_START,
            data={"turn": turn, "max_turns": max_turns},
        )

    @classmethod
    def tool_call_start(cls, call: ToolCall) -> "AgentEvent":
        return cls(
            type=AgentEventType.TOOL_CALL_START,
            data={"name": call.name, "arguments": call.arguments},
        )

    @classmethod
    def tool_call_complete(cls, observation: Observation) -> "AgentEvent":
        """
        Create a tool call complete event.

        Parameters
        ----------
        observation : Observation
            Observation produced by the call.

        Returns
        -------
        AgentEvent
            Tool call complete event.
        """
        return cls(
            type=AgentEventType.TOOL_CALL_COMPLETE,
            data={
                "name": observation.tool_name,
                "success": observation.success,
                "output": observation.output,
            },
        )

    @classmethod
    def synthesis_start(cls, observation_count: int) -> "AgentEvent":
        return cls(
            type=AgentEventType.SYNTHESIS_START,
            data={"observations": observation_count},
        )

    @classmethod
    def agent_end(cls, response: str, turns: int, status: str) -> "AgentEvent":
        """
        Create an agent end event.

        Parameters
        ----------
        response : str
            Final answer.
        turns : int
            Number of tool-executing turns taken.
        status : str
            Final loop status.

        Returns
        -------
        AgentEvent
            Agent end event.
        """
        return cls(
            type=AgentEventType.AGENT_END,
            data={"response": response, "turns": turns, "status": status},
        )
