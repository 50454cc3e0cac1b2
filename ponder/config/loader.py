"""
Configuration loader for Ponder.

This module loads and merges configuration from the system-wide TOML file,
the project's ``.ponder/config.toml`` and environment variables (which the
CLI populates from ``.env`` through python-dotenv).
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

from platformdirs import user_config_dir

from ponder.config.schema import Configuration
from ponder.constants import APP_NAME, CONFIG_DIR_NAME, CONFIG_FILE_NAME, SESSION_FILE_NAME
from ponder.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE_VALUES: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: frozenset[str] = frozenset({"0", "false", "no", "off"})

# Environment variable -> (section, key); None section means top level
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "OLLAMA_HOST": ("ollama", "host"),
    "OLLAMA_PORT": ("ollama", "port"),
    "PONDER_ORCHESTRATOR_MODEL": ("models", "orchestrator"),
    "PONDER_EXECUTOR_MODEL": ("models", "executor"),
    "PONDER_BROWSER_ENABLED": ("browser", "enabled"),
    "PONDER_STREAMING": ("streaming", "enabled"),
    "PONDER_DEBUG": (None, "debug"),
}

_BOOLEAN_OVERRIDES: frozenset[str] = frozenset(
    {"PONDER_BROWSER_ENABLED", "PONDER_STREAMING", "PONDER_DEBUG"}
)


def get_config_dir() -> Path:
    """
    Get the system-wide configuration directory.

    Returns
    -------
    Path
        Path to the system configuration directory.
    """
    return Path(user_config_dir(APP_NAME))


def get_system_config_path() -> Path:
    return get_config_dir() / CONFIG_FILE_NAME


def get_session_path(cwd: Path | None = None) -> Path:
    """
    Get the project session file path.

    Parameters
    ----------
    cwd : Path | None, optional
        Project directory. Defaults to the current directory.

    Returns
    -------
    Path
        ``<cwd>/.ponder/session.json``.
    """
    return (cwd or Path.cwd()) / CONFIG_DIR_NAME / SESSION_FILE_NAME


def _parse_toml(path: Path) -> dict[str, Any]:
    """
    Parse a TOML configuration file.

    Parameters
    ----------
    path : Path
        Path to the TOML file to parse.

    Returns
    -------
    dict[str, Any]
        Parsed configuration as a dictionary.

    Raises
    ------
    ConfigurationError
        If the file cannot be read or contains invalid TOML.
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in {path}: {e}",
            config_file=str(path),
            cause=e,
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file {path}: {e}",
            config_file=str(path),
            cause=e,
        ) from e


def _get_project_config(cwd: Path) -> Path | None:
    config_file: Path = cwd.resolve() / CONFIG_DIR_NAME / CONFIG_FILE_NAME
    if config_file.is_file():
        return config_file
    return None


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two dictionaries.

    Values from `override` take precedence over `base`. Nested dictionaries
    are merged recursively.

    Parameters
    ----------
    base : dict[str, Any]
        Base dictionary to merge into.
    override : dict[str, Any]
        Dictionary with values that override base.

    Returns
    -------
    dict[str, Any]
        Merged dictionary.

    Examples
    --------
    >>> _merge_dicts({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
    {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result: dict[str, Any] = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def _parse_bool(name: str, value: str) -> bool:
    lowered: str = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Invalid boolean value for {name}: {value!r}",
        config_key=name,
    )


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect configuration overrides from environment variables.

    Parameters
    ----------
    environ : Mapping[str, str]
        Environment to read.

    Returns
    -------
    dict[str, Any]
        Nested overrides ready to merge over the file configuration.

    Raises
    ------
    ConfigurationError
        If a boolean variable holds an unrecognized value.
    """
    overrides: dict[str, Any] = {}

    for name, (section, key) in ENV_OVERRIDES.items():
        raw: str | None = environ.get(name)
        if raw is None or raw == "":
            continue

        value: Any = _parse_bool(name, raw) if name in _BOOLEAN_OVERRIDES else raw
        if section is None:
            overrides[key] = value
        else:
            overrides.setdefault(section, {})[key] = value
        logger.debug(f"Applied environment override {name}")

    return overrides


def load_configuration(
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Configuration:
    """
    Load configuration from system, project and environment sources.

    Sources are applied in this order, later ones overriding earlier ones:
    1. System-wide configuration (if exists)
    2. Project configuration in ``.ponder/config.toml`` (if exists)
    3. Environment variables

    Parameters
    ----------
    cwd : Path | None, optional
        Project directory. If None, uses the current directory.
    environ : Mapping[str, str] | None, optional
        Environment to read overrides from. Defaults to ``os.environ``.

    Returns
    -------
    Configuration
        Loaded and validated configuration object.

    Raises
    ------
    ConfigurationError
        If configuration loading or validation fails.

    Examples
    --------
    >>> config = load_configuration()
    >>> config = load_configuration(Path("/path/to/project"), environ={})
    """
    cwd = cwd or Path.cwd()
    environ = os.environ if environ is None else environ
    system_path: Path = get_system_config_path()

    config_dict: dict[str, Any] = {}

    if system_path.is_file():
        try:
            config_dict = _parse_toml(system_path)
            logger.debug(f"Loaded system config from {system_path}")
        except ConfigurationError as e:
            logger.warning(f"Skipping invalid system config {system_path}: {e}")

    project_path: Path | None = _get_project_config(cwd)
    if project_path:
        try:
            config_dict = _merge_dicts(config_dict, _parse_toml(project_path))
            logger.debug(f"Loaded project config from {project_path}")
        except ConfigurationError as e:
            logger.warning(f"Skipping invalid project config {project_path}: {e}")

    config_dict = _merge_dicts(config_dict, _env_overrides(environ))

    try:
        config: Configuration = Configuration(**config_dict)
    except Exception as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            cause=e,
        ) from e

    validation_errors: list[str] = config.validate()
    if validation_errors:
        error_msg: str = "Configuration validation failed:\n" + "\n".join(
            f"  - {err}" for err in validation_errors
        )
        raise ConfigurationError(error_msg)

    logger.debug(f"Configuration loaded from {cwd}")
    return config
