"""
Context tools.

``analyze_conversation`` lets the orchestrator query older conversation
history as an external resource instead of relying on what still fits in
its context window. The dispatcher slices the stored history and asks the
executor model to answer from that slice only.
"""

from collections.abc import Sequence

from pydantic import BaseModel, Field

from ponder.llm.models import Message
from ponder.tools.models import ToolCategory, ToolDefinition


class AnalyzeConversationParams(BaseModel):
    """Arguments for ``analyze_conversation``."""

    query: str = Field(
        description="The question to answer about the conversation history",
    )
    start_index: int | None = Field(
        default=None,
        description="Start index of messages to analyze (optional, defaults to beginning)",
    )
    end_index: int | None = Field(
        default=None,
        description="End index of messages to analyze (optional, defaults to current)",
    )


CONTEXT_TOOLS: list[tuple[ToolDefinition, ToolCategory]] = [
    (
        ToolDefinition.from_schema(
            "analyze_conversation",
            "Recursively analyze past conversation history to answer a query. "
            "Use this instead of relying on memory.",
            AnalyzeConversationParams,
        ),
        ToolCategory.CONTEXT,
    ),
]


def build_analysis_prompt(query: str, segment: Sequence[Message]) -> str:
    """
    Build the executor prompt for ``analyze_conversation``.

    Parameters
    ----------
    query : str
        Question asked by the orchestrator.
    segment : Sequence[Message]
        Slice of stored history to answer from.

    Returns
    -------
    str
        Prompt framing the segment and restricting the answer to it.

    Examples
    --------
    >>> prompt = build_analysis_prompt("What port?", [Message.user("use 8080")])
    >>> "[Message 0 - user]" in prompt
    True
    """
    parts: list[str] = [
        "Analyze the following conversation segment to answer the query.\n\n",
        f"QUERY: {query}",
        "\n\n=== CONVERSATION SEGMENT ===\n",
    ]

    for i, message in enumerate(segment):
        parts.append(f"\n[Message {i} - {message.role.value}]\n")
        parts.append(message.content)
        parts.append("\n-------------------")

    parts.append("\n\n=== END SEGMENT ===\n\n")
    parts.append("Provide a concise answer to the query based ONLY on the segment above.")
    return "".join(parts)
