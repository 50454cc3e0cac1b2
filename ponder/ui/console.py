"""
Console factory for creating rich console instances.
"""

from rich.console import Console

from ponder.ui.theme import PONDER_THEME

# Singleton console instance
_console: Console | None = None


def get_console() -> Console:
    """
    Get the shared rich Console configured with the Ponder theme.

    Returns
    -------
    Console
        Configured rich Console instance.

    Examples
    --------
    >>> console = get_console()
    >>> console.print("[highlight]Ponder[/highlight]")
    """
    global _console
    if _console is None:
        _console = Console(theme=PONDER_THEME, highlight=False)
    return _console
