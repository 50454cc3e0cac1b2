"""
Application-wide constants for Ponder.

This module defines constants used throughout the application to ensure
consistency and maintainability.
"""

# Configuration file names
CONFIG_FILE_NAME: str = "config.toml"
SESSION_FILE_NAME: str = "session.json"

# Application directories
APP_NAME: str = "ponder"
CONFIG_DIR_NAME: str = ".ponder"

# Retry defaults
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_BASE_DELAY: float = 1.0
DEFAULT_RETRY_MAX_DELAY: float = 60.0

# Ollama defaults
DEFAULT_OLLAMA_HOST: str = "localhost"
DEFAULT_OLLAMA_PORT: int = 11434
DEFAULT_OLLAMA_TIMEOUT: int = 120

# Model defaults
DEFAULT_ORCHESTRATOR_MODEL: str = "qwen3-vl:8b"
DEFAULT_EXECUTOR_MODEL: str = "qwen3:8b"

# Conversation and loop defaults
DEFAULT_MAX_HISTORY: int = 1000
DEFAULT_CONTEXT_WINDOW: int = 20
DEFAULT_MAX_TURNS: int = 10

# Sampling temperatures
ORCHESTRATOR_TEMPERATURE: float = 0.1
EXECUTOR_TEMPERATURE: float = 0.7
SUBAGENT_TOOL_TEMPERATURE: float = 0.3

# Browser defaults
DEFAULT_BROWSER_SESSION: str = "ponder"
BROWSER_EXECUTABLE: str = "agent-browser"
DEFAULT_BROWSER_TIMEOUT: float = 60.0

# Sub-agent defaults
DEFAULT_SUBAGENT_MAX_TURNS: int = 5

# Answer returned when the model produces no content
FALLBACK_ANSWER: str = "I apologize, but I couldn't generate a response."

# Synthetic tool name for dispatcher task failures
PARALLEL_TASK_NAME: str = "parallel_task"

# File permissions for persisted session state
SESSION_FILE_MODE: int = 0o600

DEFAULT_ENCODING: str = "utf-8"
