"""
Ponder: a local-first ReAct agent runtime.

This package provides the reasoning loop, the bounded conversation store,
the tool catalog and dispatcher, sub-agent fan-out, and thin adapters for
Ollama and the agent-browser CLI.
"""

__version__ = "0.1.0"
