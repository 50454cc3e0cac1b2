"""
Agent runtime for Ponder.

This package provides the reasoning loop, its per-invocation state, the tool
dispatcher, agent events and sub-agent fan-out.
"""
