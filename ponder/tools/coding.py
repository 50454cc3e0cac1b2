"""
Coding tools.

Coding tools do not run anything themselves. Each one turns the model's
arguments into a focused prompt that the dispatcher sends to the executor
model, and the executor's answer becomes the Observation.
"""

from pydantic import BaseModel, Field

from ponder.tools.models import ToolCategory, ToolDefinition


class WriteCodeParams(BaseModel):
    """Arguments for ``write_code``."""

    task: str = Field(description="The coding task to perform")
    language: str = Field(
        default="python",
        description="Programming language (python, rust, javascript, etc.)",
    )
    context: str | None = Field(
        default=None,
        description="Additional context or requirements",
    )


class ExplainCodeParams(BaseModel):
    """Arguments for ``explain_code``."""

    code: str = Field(description="The code to explain")
    focus: str | None = Field(default=None, description="Specific aspect to focus on")


class DebugCodeParams(BaseModel):
    """Arguments for ``debug_code``."""

    code: str = Field(description="The code to debug")
    error: str | None = Field(default=None, description="Error message if available")


CODING_TOOLS: list[tuple[ToolDefinition, ToolCategory]] = [
    (
        ToolDefinition.from_schema(
            "write_code",
            "Write or modify code for a specific file or task",
            WriteCodeParams,
        ),
        ToolCategory.CODING,
    ),
    (
        ToolDefinition.from_schema(
            "explain_code",
            "Explain how code works or analyze existing code",
            ExplainCodeParams,
        ),
        ToolCategory.CODING,
    ),
    (
        ToolDefinition.from_schema(
            "debug_code",
            "Debug code and identify issues",
            DebugCodeParams,
        ),
        ToolCategory.CODING,
    ),
]


def build_write_prompt(params: WriteCodeParams) -> str:
    """
    Build the executor prompt for ``write_code``.

    Parameters
    ----------
    params : WriteCodeParams
        Validated arguments.

    Returns
    -------
    str
        Prompt asking for well-commented code in the requested language.
    """
    prompt: str = (
        f"You are an expert {params.language} developer. "
        "Write clean, efficient code for the following task:\n\n"
        f"Task: {params.task}\n"
    )

    if params.context:
        prompt += f"\nContext: {params.context}\n"

    prompt += (
        "\nProvide well-commented code with best practices. Include:\n"
        "- Clear function/variable names\n"
        "- Error handling where appropriate\n"
        "- Brief inline comments for complex logic\n"
    )
    return prompt


def build_explain_prompt(params: ExplainCodeParams) -> str:
    """Build the executor prompt for ``explain_code``."""
    prompt: str = f"Explain the following code in detail:\n\n```\n{params.code}\n```\n\n"

    if params.focus:
        prompt += f"Focus specifically on: {params.focus}\n\n"

    prompt += (
        "Provide a comprehensive explanation including:\n"
        "- What the code does at a high level\n"
        "- How each major part works\n"
        "- Any patterns or techniques used\n"
        "- Potential improvements or considerations"
    )
    return prompt


def build_debug_prompt(params: DebugCodeParams) -> str:
    """Build the executor prompt for ``debug_code``."""
    prompt: str = (
        "Debug the following code and identify any issues:\n\n"
        f"```\n{params.code}\n```\n\n"
    )

    if params.error:
        prompt += f"Error message: {params.error}\n\n"

    prompt += (
        "Please:\n"
        "1. Identify the bug(s) or issue(s)\n"
        "2. Explain why the problem occurs\n"
        "3. Provide a corrected version of the code\n"
        "4. Suggest any additional improvements"
    )
    return prompt
