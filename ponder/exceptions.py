"""
Exception hierarchy for Ponder.

Every error raised by the runtime derives from ``PonderError`` and carries an
error code, a details mapping and the underlying cause. Only backend errors
(``ConnectionError``, ``APIError``, ``ModelNotFoundError``) are expected to
escape the reasoning loop; tool and persistence errors are captured where
they happen.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    UNKNOWN = "UNKNOWN"
    CONFIGURATION = "CONFIGURATION"
    CONNECTION = "CONNECTION"
    API = "API"
    VALIDATION = "VALIDATION"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    BROWSER = "BROWSER"
    PERSISTENCE = "PERSISTENCE"
    RATE_LIMIT = "RATE_LIMIT"


class PonderError(Exception):
    """
    Base exception class for all Ponder errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    error_code : ErrorCode, default=ErrorCode.UNKNOWN
        Categorization code for the error.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise PonderError("Something went wrong")
    >>> raise PonderError(
    ...     "Invalid configuration",
    ...     ErrorCode.CONFIGURATION,
    ...     details={"key": "models.orchestrator"},
    ... )
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.error_code: ErrorCode = error_code
        self.details: dict[str, Any] = details or {}
        self.cause: Exception | None = cause

    def __str__(self) -> str:
        parts: list[str] = [f"[{self.error_code.value}] {self.message}"]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"Details: {detail_str}")
        if self.cause:
            parts.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code.value!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize the error to a dictionary.

        Returns
        -------
        dict[str, Any]
            Dictionary representation of the error with all context.
        """
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }
        if self.cause:
            result["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return result


class ConfigurationError(PonderError):
    """
    Raised when configuration cannot be loaded, parsed or validated.

    Parameters
    ----------
    message : str
        Human-readable error message.
    config_key : str | None, optional
        The configuration key that caused the error.
    config_file : str | None, optional
        The configuration file path where the error occurred.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        if config_file:
            details["config_file"] = config_file
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION,
            details=details,
            cause=cause,
        )
        self.config_key: str | None = config_key
        self.config_file: str | None = config_file


class ConnectionError(PonderError):
    """
    Raised when the model backend cannot be reached.

    Parameters
    ----------
    message : str
        Human-readable error message.
    endpoint : str | None, optional
        The endpoint that failed to connect.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise ConnectionError(
    ...     "Cannot connect to Ollama. Is it running?",
    ...     endpoint="http://localhost:11434",
    ... )
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if endpoint:
            details["endpoint"] = endpoint
        super().__init__(
            message,
            error_code=ErrorCode.CONNECTION,
            details=details,
            cause=cause,
        )
        self.endpoint: str | None = endpoint


class APIError(PonderError):
    """
    Raised when the model backend answers with an error.

    Parameters
    ----------
    message : str
        Human-readable error message.
    status_code : int | None, optional
        HTTP status code if applicable.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            message,
            error_code=ErrorCode.API,
            details=details,
            cause=cause,
        )
        self.status_code: int | None = status_code


class RateLimitError(APIError):
    """
    Raised when the backend keeps rate limiting after all retries.

    Parameters
    ----------
    message : str
        Human-readable error message.
    retry_after : float | None, optional
        Suggested time in seconds to wait before retrying.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(
            message,
            status_code=429,
            details=details,
            cause=cause,
        )
        self.error_code = ErrorCode.RATE_LIMIT
        self.retry_after: float | None = retry_after


class ModelNotFoundError(PonderError):
    """
    Raised when a configured model is not installed in Ollama.

    Parameters
    ----------
    model : str
        Name of the missing model.
    cause : Exception | None, optional
        The underlying exception that caused this error.

    Examples
    --------
    >>> raise ModelNotFoundError("qwen3:8b")
    """

    def __init__(self, model: str, cause: Exception | None = None) -> None:
        super().__init__(
            f"Model '{model}' not available in Ollama. Run: ollama pull {model}",
            error_code=ErrorCode.MODEL_NOT_FOUND,
            details={"model": model},
            cause=cause,
        )
        self.model: str = model


class ValidationError(PonderError):
    """
    Raised when data validation fails.

    Parameters
    ----------
    message : str
        Human-readable error message.
    field : str | None, optional
        The field that failed validation.
    details : dict[str, Any] | None, optional
        Additional context about the error.
    cause : Exception | None, optional
        The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION,
            details=details,
            cause=cause,
        )
        self.field: str | None = field


class BrowserError(PonderError):
    """
    Raised when an agent-browser command fails.

    Parameters
    ----------
    message : str
        Human-readable error message.
    command : list[str] | None, optional
        The command arguments that failed.
    cause : Exception | None, optional
        The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if command:
            details["command"] = " ".join(command)
        super().__init__(
            message,
            error_code=ErrorCode.BROWSER,
            details=details,
            cause=cause,
        )
        self.command: list[str] | None = command


class BrowserNotFoundError(BrowserError):
    """Raised when the agent-browser executable is not installed."""

    def __init__(self, cause: Exception | None = None) -> None:
        super().__init__(
            "agent-browser not found. Install with: "
            "npm install -g agent-browser && agent-browser install",
            cause=cause,
        )


class PersistenceError(PonderError):
    """
    Raised by persistence sinks when state cannot be written.

    The conversation store catches this and logs it; it never reaches
    the caller of ``Agent.process``.

    Parameters
    ----------
    message : str
        Human-readable error message.
    path : str | None, optional
        Path of the file involved.
    cause : Exception | None, optional
        The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if path:
            details["path"] = path
        super().__init__(
            message,
            error_code=ErrorCode.PERSISTENCE,
            details=details,
            cause=cause,
        )
        self.path: str | None = path
