"""
Bounded conversation history.

The conversation keeps more history than is shown to the model on any one
call. ``get_context_window`` gives the bounded view sent to the model, while
older messages stay reachable through ``get_range`` for the
``analyze_conversation`` tool.
"""

import logging
from collections import deque
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ponder.constants import DEFAULT_MAX_HISTORY
from ponder.context.persistence import JsonFileSink
from ponder.interfaces import PersistenceSink
from ponder.llm.models import Message, Role
from ponder.types import MessageDict, PathLike

logger = logging.getLogger(__name__)


class Conversation:
    """
    Conversation history with a fixed capacity and a system prompt.

    The system prompt is kept apart from the history: it is always returned
    first, never evicted and never counted against ``max_length``. Once the
    history grows past ``max_length`` the oldest messages are evicted first.

    Parameters
    ----------
    max_length : int, default=1000
        Maximum number of messages kept in history.
    system_prompt : str | None, optional
        Prompt returned ahead of the history.

    Attributes
    ----------
    max_length : int
        History capacity.
    _messages : deque[Message]
        Stored history, oldest first.
    _persistence_path : Path | None
        File the state is flushed to, once persistence is enabled.

    Examples
    --------
    >>> conversation = Conversation(max_length=3)
    >>> conversation.add_user("Hello")
    >>> conversation.add_assistant("Hi there!")
    >>> len(conversation)
    2
    >>> conversation.last_user_message().content
    'Hello'
    """

    def __init__(
        self,
        max_length: int = DEFAULT_MAX_HISTORY,
        system_prompt: str | None = None,
    ) -> None:
        if max_length < 1:
            raise ValueError("max_length must be at least 1")

        self.max_length: int = max_length
        self._system_prompt: str | None = system_prompt
        self._messages: deque[Message] = deque()
        self._persistence_path: Path | None = None
        self._sink: PersistenceSink | None = None

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def is_empty(self) -> bool:
        return not self._messages

    @property
    def system_prompt(self) -> str | None:
        return self._system_prompt

    @property
    def history(self) -> tuple[Message, ...]:
        """Snapshot of the stored history without the system prompt."""
        return tuple(self._messages)

    @property
    def persistence_path(self) -> Path | None:
        return self._persistence_path

    def set_system_prompt(self, prompt: str | None) -> None:
        self._system_prompt = prompt
        self._flush()

    def add_user(self, content: str) -> None:
        """
        Append a user message.

        Parameters
        ----------
        content : str
            Message text.
        """
        self._add(Message.user(content))

    def add_assistant(self, content: str) -> None:
        """
        Append an assistant message.

        Parameters
        ----------
        content : str
            Message text.
        """
        self._add(Message.assistant(content))

    def _add(self, message: Message) -> None:
        self._messages.append(message)

        while len(self._messages) > self.max_length:
            self._messages.popleft()

        self._flush()

    def get_messages(self) -> list[Message]:
        """
        Get the system prompt followed by the full history.

        Returns
        -------
        list[Message]
            A new list; mutating it does not affect the conversation.
        """
        result: list[Message] = self._system_messages()
        result.extend(self._messages)
        return result

    def get_context_window(self, window_size: int) -> list[Message]:
        """
        Get the system prompt followed by the most recent messages.

        Parameters
        ----------
        window_size : int
            Number of history messages to include.

        Returns
        -------
        list[Message]
            At most ``window_size`` history messages, plus the system
            prompt when one is set.

        Examples
        --------
        >>> conversation.get_context_window(20)[-1] == conversation.history[-1]
        True
        """
        result: list[Message] = self._system_messages()
        if window_size > 0:
            result.extend(list(self._messages)[-window_size:])
        return result

    def get_range(self, start: int, end: int) -> list[Message]:
        """
        Get a slice of history with clamped bounds.

        ``start`` is clamped into ``[0, len)`` and ``end`` into
        ``(start, len]``, so the result is empty only when the history is.

        Parameters
        ----------
        start : int
            Index of the first message.
        end : int
            Index one past the last message.

        Returns
        -------
        list[Message]
            The selected messages, oldest first.
        """
        length: int = len(self._messages)
        if length == 0:
            return []

        start = min(max(start, 0), length - 1)
        end = min(max(end, start + 1), length)
        return list(self._messages)[start:end]

    def last_n(self, n: int) -> list[Message]:
        if n <= 0:
            return []
        return list(self._messages)[-n:]

    def last_user_message(self) -> Message | None:
        return self._last_with_role(Role.USER)

    def last_assistant_message(self) -> Message | None:
        return self._last_with_role(Role.ASSISTANT)

    def _last_with_role(self, role: Role) -> Message | None:
        for message in reversed(self._messages):
            if message.role == role:
                return message
        return None

    def clear(self) -> None:
        """Remove all history, keeping the system prompt."""
        self._messages.clear()
        logger.debug("Conversation history cleared")
        self._flush()

    def _system_messages(self) -> list[Message]:
        if self._system_prompt:
            return [Message.system(self._system_prompt)]
        return []

    def enable_persistence(self, path: PathLike, sink: PersistenceSink | None = None) -> None:
        """
        Load stored state from ``path`` and flush every later change to it.

        A missing or corrupt file leaves the conversation empty.

        Parameters
        ----------
        path : PathLike
            Session file.
        sink : PersistenceSink | None, optional
            Storage backend. Defaults to ``JsonFileSink``.
        """
        self._persistence_path = Path(path)
        self._sink = sink if sink is not None else JsonFileSink()

        state: dict[str, Any] | None
        try:
            state = self._sink.load(self._persistence_path)
        except Exception as e:
            logger.warning(f"Failed to load session from {self._persistence_path}: {e}")
            state = None
        if state is not None:
            self._restore(state)

        logger.debug(
            f"Persistence enabled at {self._persistence_path} "
            f"({len(self._messages)} messages loaded)"
        )

    def to_state(self) -> dict[str, Any]:
        """
        Serialize the conversation.

        Returns
        -------
        dict[str, Any]
            The system prompt and history as plain data.
        """
        messages: list[MessageDict] = [message.to_dict() for message in self._messages]
        return {
            "system_prompt": self._system_prompt,
            "messages": messages,
        }

    def _restore(self, state: dict[str, Any]) -> None:
        try:
            messages: list[Message] = [
                Message.model_validate(item) for item in state.get("messages", [])
            ]
        except (PydanticValidationError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring corrupt session at {self._persistence_path}: {e}")
            return

        if self._system_prompt is None and isinstance(state.get("system_prompt"), str):
            self._system_prompt = state["system_prompt"]

        self._messages = deque(messages[-self.max_length:])

    def _flush(self) -> None:
        if self._sink is None or self._persistence_path is None:
            return

        try:
            self._sink.save(self._persistence_path, self.to_state())
        except Exception as e:
            logger.warning(f"Failed to persist conversation: {e}")
