"""
Ponder theme definition for rich console styling.

Colors are picked for dark terminals.
"""

from rich.theme import Theme

PONDER_THEME = Theme(
    {
        # General styles
        "info": "cyan",
        "warning": "yellow",
        "error": "bright_red bold",
        "success": "green",
        "dim": "dim",
        "muted": "grey50",
        "border": "grey35",
        "highlight": "bold cyan",
        # Role styles
        "user": "bright_blue bold",
        "assistant": "bright_white",
        # Tool styles, keyed by tool category
        "tool": "bright_magenta bold",
        "tool.coding": "yellow",
        "tool.browser": "bright_blue",
        "tool.context": "green",
        "subagent": "bright_cyan bold",
        "code": "white",
    },
)
