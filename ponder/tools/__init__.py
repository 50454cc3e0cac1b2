"""
Tool definitions, the tool catalog, and the built-in tool sets.

This package describes the coding, context and browser tools offered to the
model and provides the agent-browser backend.
"""
