"""
Type definitions and aliases for Ponder.

This module provides common type aliases used throughout the codebase.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Union

# Message types for model interactions
MessageDict = Dict[str, Any]

# Tool schemas in OpenAI function format
ToolSchema = Dict[str, Any]
ToolSchemas = List[ToolSchema]

# Path types
PathLike = Union[str, Path]

# Streaming callback receiving each text fragment
TokenCallback = Callable[[str], None]
