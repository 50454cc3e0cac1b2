"""
Text User Interface for the Ponder CLI.

This module renders agent progress, answers and REPL command output with
rich, using the Ponder theme.
"""

import logging
from typing import Any

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from ponder.agent.subagents import SubAgentResult
from ponder.config.schema import Configuration
from ponder.llm.models import (
    RECOMMENDED_EXECUTORS,
    RECOMMENDED_ORCHESTRATORS,
    ModelInfo,
    RecommendedModel,
)

logger = logging.getLogger(__name__)

# Tool output longer than this is cut in the terminal only
MAX_OUTPUT_CHARS: int = 2000

HELP_TEXT: str = """
## Commands

- `help` - Show this help
- `exit` / `quit` - Leave Ponder
- `clear` - Clear the conversation history
- `status` - Show models, browser and history status
- `models` - List models installed in Ollama
- `recommend` - Show recommended models
- `set orchestrator <model>` - Change the orchestrator model
- `set executor <model>` - Change the executor model
- `set debug <on|off>` - Toggle debug logging
- `debug` - Toggle debug logging
- `delegate <task>` - Send a task to all sub-agents in parallel

Anything else is sent to the agent.
"""


def truncate_output(output: str, limit: int = MAX_OUTPUT_CHARS) -> str:
    """
    Shorten tool output for display.

    Parameters
    ----------
    output : str
        Output to shorten.
    limit : int, default=2000
        Maximum number of characters kept.

    Returns
    -------
    str
        The output, cut at ``limit`` with a marker if it was longer.

    Examples
    --------
    >>> truncate_output("abcdef", limit=3)
    'abc\\n... (3 more characters)'
    """
    if len(output) <= limit:
        return output
    return f"{output[:limit]}\n... ({len(output) - limit} more characters)"


def format_size(size: int) -> str:
    value: float = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


class TUI:
    """
    Text User Interface for interactive Ponder sessions.

    Parameters
    ----------
    config : Configuration
        Configuration object.
    console : Console
        Rich console instance for output.

    Examples
    --------
    >>> tui = TUI(config, get_console())
    >>> tui.print_welcome("Ponder", ["orchestrator: qwen3-vl:8b"])
    """

    def __init__(self, config: Configuration, console: Console) -> None:
        self.config: Configuration = config
        self.console: Console = console
        self._assistant_stream_open: bool = False

    def print_welcome(self, title: str, lines: list[str] | None = None) -> None:
        body: str = "\n".join(lines) if lines else ""
        self.console.print(
            Panel(
                Text(body, style="code"),
                title=Text(title, style="highlight"),
                title_align="left",
                border_style="border",
                box=box.ROUNDED,
                padding=(1, 2),
            ),
        )

    def begin_assistant(self) -> None:
        self.console.print()
        self.console.print(Rule(Text("Ponder", style="assistant")))
        self._assistant_stream_open = True

    def stream_assistant_delta(self, content: str) -> None:
        if not self._assistant_stream_open:
            self.begin_assistant()
        self.console.print(content, end="", markup=False)

    def end_assistant(self) -> None:
        if self._assistant_stream_open:
            self.console.print()
        self._assistant_stream_open = False

    @property
    def is_streaming(self) -> bool:
        return self._assistant_stream_open

    def print_answer(self, answer: str) -> None:
        """
        Print a complete answer rendered as Markdown.

        Parameters
        ----------
        answer : str
            Final answer from the agent.
        """
        self.console.print()
        self.console.print(Rule(Text("Ponder", style="assistant")))
        self.console.print(Markdown(answer))

    def turn_start(self, turn: int, max_turns: int) -> None:
        if self.config.debug:
            self.console.print(f"[muted]turn {turn + 1}/{max_turns}[/muted]")

    def tool_call_start(
        self,
        name: str,
        category: str | None,
        arguments: dict[str, Any],
    ) -> None:
        """
        Display a tool call before it runs.

        Parameters
        ----------
        name : str
            Name of the tool.
        category : str | None
            Tool category, used for the border color.
        arguments : dict[str, Any]
            Arguments the model passed.
        """
        border_style: str = f"tool.{category}" if category else "tool"

        if arguments:
            table = Table.grid(padding=(0, 2))
            table.add_column(style="muted", justify="right", no_wrap=True)
            table.add_column(style="code", overflow="fold")
            for key, value in arguments.items():
                table.add_row(key, truncate_output(str(value), 200))
            body: Any = table
        else:
            body = Text("(no args)", style="muted")

        self.console.print()
        self.console.print(
            Panel(
                body,
                title=Text.assemble(("⏺ ", "muted"), (name, "tool")),
                title_align="left",
                subtitle=Text("running", style="muted"),
                subtitle_align="right",
                border_style=border_style,
                box=box.ROUNDED,
                padding=(0, 2),
            ),
        )

    def tool_call_complete(
        self,
        name: str,
        category: str | None,
        success: bool,
        output: str,
    ) -> None:
        border_style: str = f"tool.{category}" if category else "tool"
        status = Text("done", style="success") if success else Text("failed", style="error")

        self.console.print(
            Panel(
                Text(truncate_output(output), style="code" if success else "error"),
                title=Text.assemble(("✓ " if success else "✗ ", "muted"), (name, "tool")),
                title_align="left",
                subtitle=status,
                subtitle_align="right",
                border_style=border_style,
                box=box.ROUNDED,
                padding=(0, 2),
            ),
        )

    def synthesis_start(self, observation_count: int) -> None:
        self.console.print(
            f"\n[warning]Turn budget reached, synthesizing an answer from "
            f"{observation_count} observation(s)[/warning]"
        )

    def show_help(self) -> None:
        self.console.print(Markdown(HELP_TEXT))

    def show_status(
        self,
        browser_available: bool,
        conversation_length: int,
    ) -> None:
        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column(style="muted")
        table.add_column(style="code")
        table.add_row("Ollama", self.config.ollama.url)
        table.add_row("Orchestrator", self.config.models.orchestrator)
        table.add_row("Executor", self.config.models.executor)
        table.add_row("Browser", "available" if browser_available else "unavailable")
        table.add_row("Streaming", "on" if self.config.streaming.enabled else "off")
        table.add_row("Debug", "on" if self.config.debug else "off")
        table.add_row("Max turns", str(self.config.agent.max_turns))
        table.add_row(
            "History",
            f"{conversation_length}/{self.config.agent.max_history} messages",
        )
        self.console.print(table)

    def show_models(self, models: list[ModelInfo]) -> None:
        if not models:
            self.console.print("[warning]No models installed. Run: ollama pull <model>[/warning]")
            return

        table = Table(title="Installed models", box=box.ROUNDED, border_style="border")
        table.add_column("Name", style="highlight")
        table.add_column("Size", justify="right")
        table.add_column("Modified", style="muted")
        for model in models:
            table.add_row(model.name, format_size(model.size), model.modified_at)
        self.console.print(table)

    def _recommendation_table(self, title: str, models: list[RecommendedModel]) -> Table:
        table = Table(title=title, box=box.ROUNDED, border_style="border")
        table.add_column("Name", style="highlight")
        table.add_column("Description")
        table.add_column("Vision", justify="center")
        for model in models:
            table.add_row(model.name, model.description, "yes" if model.supports_vision else "")
        return table

    def show_recommendations(self) -> None:
        self.console.print(
            self._recommendation_table("Recommended orchestrators", RECOMMENDED_ORCHESTRATORS)
        )
        self.console.print(
            self._recommendation_table("Recommended executors", RECOMMENDED_EXECUTORS)
        )

    def show_subagent_results(self, results: list[SubAgentResult]) -> None:
        """
        Display the answers of a sub-agent fan-out.

        Parameters
        ----------
        results : list[SubAgentResult]
            Results in completion order.
        """
        if not results:
            self.console.print("[warning]No sub-agents configured[/warning]")
            return

        for result in results:
            body: Any = Markdown(result.content) if result.success else Text(
                result.error or "Unknown error", style="error"
            )
            self.console.print(
                Panel(
                    body,
                    title=Text(result.name, style="subagent"),
                    title_align="left",
                    border_style="border" if result.success else "error",
                    box=box.ROUNDED,
                    padding=(1, 2),
                ),
            )
