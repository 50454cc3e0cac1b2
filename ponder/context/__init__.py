"""
Conversation storage for Ponder.

This package provides the bounded conversation store and the persistence
sink that keeps sessions across runs.
"""
