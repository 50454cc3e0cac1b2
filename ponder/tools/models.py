"""
Data models for the tools system.

This module defines the tool category enum, immutable tool definitions,
tool results returned by backends and handlers, and the Observation
records the reasoning loop folds back into the next prompt.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.json_schema import model_json_schema

from ponder.exceptions import ValidationError

P = TypeVar("P", bound=BaseModel)


class ToolCategory(str, Enum):
    """
    Capability a tool is routed to.

    Attributes
    ----------
    CODING : str
        Prompt-building tools answered by the executor model.
    BROWSER : str
        Page operations run against the shared browser session.
    CONTEXT : str
        Queries over older conversation history.
    """

    CODING = "coding"
    BROWSER = "browser"
    CONTEXT = "context"


class ToolDefinition(BaseModel):
    """
    Descriptor of a tool offered to the model.

    Definitions are immutable once registered in a catalog.

    Parameters
    ----------
    name : str
        Unique tool name.
    description : str
        Human-readable description shown to the model.
    parameters : dict[str, Any]
        JSON schema of the tool arguments.
    concurrency_safe : bool, default=True
        Whether calls may run concurrently with other calls in the same turn.

    Examples
    --------
    >>> definition = ToolDefinition.from_schema(
    ...     "write_code", "Generate code", WriteCodeParams,
    ... )
    >>> definition.to_openai_schema()["name"]
    'write_code'
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Tool name")
    description: str = Field(default="", description="Tool description")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema for the arguments",
    )
    concurrency_safe: bool = Field(
        default=True,
        description="Whether calls may run concurrently",
    )

    @classmethod
    def from_schema(
        cls,
        name: str,
        description: str,
        schema: type[BaseModel],
        concurrency_safe: bool = True,
    ) -> ToolDefinition:
        """
        Build a definition whose parameters come from a Pydantic model.

        Parameters
        ----------
        name : str
            Tool name.
        description : str
            Tool description.
        schema : type[BaseModel]
            Pydantic model describing the arguments.
        concurrency_safe : bool, default=True
            Whether calls may run concurrently.

        Returns
        -------
        ToolDefinition
            The new definition.
        """
        json_schema: dict[str, Any] = model_json_schema(schema, mode="validation")
        return cls(
            name=name,
            description=description,
            parameters={
                "type": "object",
                "properties": json_schema.get("properties", {}),
                "required": json_schema.get("required", []),
            },
            concurrency_safe=concurrency_safe,
        )

    def to_openai_schema(self) -> dict[str, Any]:
        """
        Convert the definition to a function schema.

        Returns
        -------
        dict[str, Any]
            ``{"name", "description", "parameters"}`` mapping.
        """
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


class ToolResult(BaseModel):
    """
    Result of a tool execution.

    Parameters
    ----------
    success : bool
        Whether the tool execution was successful.
    output : str, default=""
        Text output from the tool.
    error : str | None, optional
        Error message if execution failed.
    data : Any | None, optional
        Structured payload, such as a parsed browser snapshot.

    Examples
    --------
    >>> result = ToolResult.success_result("Page loaded")
    >>> result = ToolResult.error_result("Element @e5 not found")
    """

    success: bool = Field(description="Whether execution succeeded")
    output: str = Field(default="", description="Tool output")
    error: str | None = Field(default=None, description="Error message")
    data: Any | None = Field(default=None, description="Structured payload")

    @classmethod
    def error_result(cls, error: str, output: str = "", **kwargs: Any) -> ToolResult:
        """
        Create an error result.

        Parameters
        ----------
        error : str
            Error message.
        output : str, default=""
            Optional output text.
        **kwargs : Any
            Additional fields for the result.

        Returns
        -------
        ToolResult
            Error result instance.
        """
        return cls(success=False, output=output, error=error, **kwargs)

    @classmethod
    def success_result(cls, output: str, **kwargs: Any) -> ToolResult:
        """
        Create a success result.

        Parameters
        ----------
        output : str
            Output text.
        **kwargs : Any
            Additional fields for the result.

        Returns
        -------
        ToolResult
            Success result instance.
        """
        return cls(success=True, output=output, error=None, **kwargs)

    def to_model_output(self) -> str:
        """
        Render the result as text for the model.

        Returns
        -------
        str
            The output on success, otherwise the error followed by any output.
        """
        if self.success:
            return self.output

        if self.output:
            return f"Error: {self.error}\n\nOutput:\n{self.output}"
        return f"Error: {self.error}"


class Observation(BaseModel):
    """
    Normalized outcome of one tool call in one turn.

    Parameters
    ----------
    tool_name : str
        Name of the tool that was called, or ``parallel_task`` when the
        dispatch task itself failed.
    success : bool
        Whether the call succeeded.
    output : str
        Text shown to the model.
    data : Any | None, optional
        Structured payload carried over from the tool result.
    """

    model_config = ConfigDict(frozen=True)

    tool_name: str = Field(description="Tool name")
    success: bool = Field(description="Whether the call succeeded")
    output: str = Field(default="", description="Observation text")
    data: Any | None = Field(default=None, description="Structured payload")

    @classmethod
    def from_result(cls, tool_name: str, result: ToolResult) -> Observation:
        return cls(
            tool_name=tool_name,
            success=result.success,
            output=result.to_model_output(),
            data=result.data,
        )

    @classmethod
    def failure(cls, tool_name: str, message: str) -> Observation:
        return cls(tool_name=tool_name, success=False, output=f"Error: {message}")


def parse_params(schema: type[P], tool_name: str, arguments: dict[str, Any]) -> P:
    """
    Validate tool arguments against a parameter model.

    Parameters
    ----------
    schema : type[P]
        Pydantic model describing the arguments.
    tool_name : str
        Tool the arguments belong to, used in error messages.
    arguments : dict[str, Any]
        Arguments decoded from the model's tool call.

    Returns
    -------
    P
        The validated parameters.

    Raises
    ------
    ValidationError
        If the arguments do not match the schema.

    Examples
    --------
    >>> params = parse_params(WriteCodeParams, "write_code", {"task": "sort a list"})
    >>> params.task
    'sort a list'
    """
    try:
        return schema.model_validate(arguments)
    except PydanticValidationError as e:
        errors: list[str] = []
        for error in e.errors():
            field = ".".join(str(x) for x in error.get("loc", []))
            msg = error.get("msg", "Validation error")
            errors.append(f"Parameter '{field}': {msg}")
        raise ValidationError(
            f"Invalid arguments for {tool_name}: {'; '.join(errors)}",
            field=tool_name,
            details={"errors": errors},
            cause=e,
        ) from e
