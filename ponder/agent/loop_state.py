"""
Per-invocation state of the reasoning loop.

A fresh ``AgentLoopState`` is created for every ``Agent.run`` call, updated
turn by turn, and discarded once the answer is produced. It is never
persisted.
"""

from enum import Enum

from pydantic import BaseModel, Field

from ponder.tools.models import Observation


class LoopStatus(str, Enum):
    """Where the loop stands."""

    RUNNING = "running"
    TERMINATED = "terminated"
    MAX_TURNS_EXHAUSTED = "max_turns_exhausted"


class AgentLoopState(BaseModel):
    """
    State of the Thought/Action/Observation loop.

    Parameters
    ----------
    max_turns : int
        Number of tool-executing turns allowed before synthesis.
    turn : int, default=0
        Current turn, counted from zero.
    observations : list[Observation], default=[]
        Observations gathered so far in this invocation.
    final_answer : str | None, optional
        Answer once the loop has finished.

    Examples
    --------
    >>> state = AgentLoopState(max_turns=2)
    >>> state.should_continue()
    True
    >>> state.next_turn(); state.next_turn()
    >>> state.status
    <LoopStatus.MAX_TURNS_EXHAUSTED: 'max_turns_exhausted'>
    """

    max_turns: int = Field(ge=0, description="Maximum tool-executing turns")
    turn: int = Field(default=0, ge=0, description="Current turn")
    observations: list[Observation] = Field(default_factory=list)
    final_answer: str | None = Field(default=None, description="Final answer")

    @property
    def status(self) -> LoopStatus:
        if self.turn >= self.max_turns:
            return LoopStatus.MAX_TURNS_EXHAUSTED
        if self.final_answer is not None:
            return LoopStatus.TERMINATED
        return LoopStatus.RUNNING

    def should_continue(self) -> bool:
        return self.turn < self.max_turns and self.final_answer is None

    def next_turn(self) -> None:
        self.turn += 1

    def add_observations(self, observations: list[Observation]) -> None:
        self.observations.extend(observations)

    def format_observations(self) -> str:
        """
        Render the observations for the next prompt.

        Returns
        -------
        str
            A numbered ``Tool Observations`` section, or an empty string
            when nothing has been observed yet.
        """
        if not self.observations:
            return ""

        parts: list[str] = ["\n\n## Tool Observations:\n"]
        for i, observation in enumerate(self.observations, start=1):
            parts.append(f"\n### Observation {i} ({observation.tool_name})\n{observation.output}\n")
        return "".join(parts)
