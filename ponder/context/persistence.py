"""
Session persistence for saving and loading conversation state.

This module provides the JSON file sink used by the conversation store to
keep a session across runs. Files are written with owner-only permissions.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from ponder.constants import DEFAULT_ENCODING, SESSION_FILE_MODE
from ponder.exceptions import PersistenceError
from ponder.types import PathLike

logger = logging.getLogger(__name__)


class JsonFileSink:
    """
    Persistence sink that stores state as a JSON document.

    Examples
    --------
    >>> sink = JsonFileSink()
    >>> sink.save(".ponder/session.json", {"messages": []})
    >>> sink.load(".ponder/session.json")
    {'messages': []}
    """

    def load(self, path: PathLike) -> dict[str, Any] | None:
        """
        Load state from a JSON file.

        Parameters
        ----------
        path : PathLike
            File to read.

        Returns
        -------
        dict[str, Any] | None
            The stored state, or None if the file is missing or unreadable.
        """
        file_path: Path = Path(path)

        if not file_path.exists():
            return None

        try:
            with open(file_path, "r", encoding=DEFAULT_ENCODING) as fp:
                data: Any = json.load(fp)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load session from {file_path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring session file with unexpected layout: {file_path}")
            return None

        return data

    def save(self, path: PathLike, state: dict[str, Any]) -> None:
        """
        Write state to a JSON file.

        Parameters
        ----------
        path : PathLike
            File to write. Parent directories are created as needed.
        state : dict[str, Any]
            JSON-serializable state.

        Raises
        ------
        PersistenceError
            If the file cannot be written.
        """
        file_path: Path = Path(path)

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "w", encoding=DEFAULT_ENCODING) as fp:
                json.dump(state, fp, indent=2)
            os.chmod(file_path, SESSION_FILE_MODE)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Failed to save session: {e}",
                path=str(file_path),
                cause=e,
            ) from e

        logger.debug(f"Saved session: {file_path}")
