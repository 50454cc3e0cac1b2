"""
Models for agent-browser page snapshots.

``agent-browser snapshot --json`` prints an accessibility tree together with
a map of element refs. These models parse that payload so browser results
can carry structured data next to their text output.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

INTERACTIVE_ROLES: frozenset[str] = frozenset(
    {
        "button",
        "link",
        "textbox",
        "checkbox",
        "radio",
        "combobox",
        "menuitem",
        "tab",
        "switch",
        "searchbox",
    }
)

class SnapshotElement(BaseModel):
    """
    An element reachable through a snapshot ref.

    Parameters
    ----------
    role : str, default=""
        ARIA role.
    name : str, default=""
        Accessible name.
    value : str | None, optional
        Current value for inputs.
    focused : bool, default=False
        Whether the element has focus.
    """

    model_config = ConfigDict(extra="allow")

    role: str = ""
    name: str = ""
    value: str | None = None
    focused: bool = False

    @property
    def is_interactive(self) -> bool:
        return self.role in INTERACTIVE_ROLES


class SnapshotData(BaseModel):
    snapshot: str = Field(default="", description="Raw accessibility tree")
    refs: dict[str, SnapshotElement] = Field(default_factory=dict)


class Snapshot(BaseModel):
    """
    Parsed snapshot payload.

    Examples
    --------
    >>> snap = Snapshot.parse('{"success": true, "data": {"refs": {"e1": {"role": "button"}}}}')
    >>> snap.count_elements()
    1
    >>> print(snap.format_for_display())
    Page Elements:
      @e1: button ""
    """

    success: bool = False
    data: SnapshotData | None = None

    @classmethod
    def parse(cls, raw: str) -> Snapshot | None:
        """
        Parse raw CLI output.

        Parameters
        ----------
        raw : str
            JSON printed by ``agent-browser``.

        Returns
        -------
        Snapshot | None
            The parsed snapshot, or None if the output is not a snapshot.
        """
        try:
            return cls.model_validate_json(raw)
        except (PydanticValidationError, json.JSONDecodeError):
            return None

    def count_elements(self) -> int:
        return len(self.data.refs) if self.data else 0

    def interactive_elements(self) -> dict[str, SnapshotElement]:
        if self.data is None:
            return {}
        return {k: v for k, v in self.data.refs.items() if v.is_interactive}

    def format_for_display(self, interactive_only: bool = False) -> str:
        """Render the refs as one line per element."""
        if self.data is None:
            return "No snapshot data available"

        refs: dict[str, SnapshotElement] = (
            self.interactive_elements() if interactive_only else self.data.refs
        )
        lines: list[str] = ["Page Elements:"]
        for ref, element in refs.items():
            line: str = f'  @{ref}: {element.role} "{element.name}"'
            if element.value is not None:
                line += f' = "{element.value}"'
            if element.focused:
                line += " [focused]"
            lines.append(line)
        return "\n".join(lines)
