"""
Configuration management for Ponder.

This package provides the configuration schema and the loader that merges
system, project and environment settings.
"""
