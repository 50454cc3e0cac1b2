"""
Main entry point for the Ponder agent.

This module provides the command-line interface with interactive and
single-prompt modes and the REPL command handling.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from ponder.agent.agent import Agent
from ponder.agent.events import AgentEvent, AgentEventType
from ponder.config.loader import load_configuration
from ponder.config.schema import Configuration
from ponder.exceptions import ConfigurationError, PonderError
from ponder.ui.console import get_console
from ponder.ui.tui import TUI

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

console = get_console()

_ON_VALUES: frozenset[str] = frozenset({"on", "true", "1", "yes"})
_OFF_VALUES: frozenset[str] = frozenset({"off", "false", "0", "no"})


class CLI:
    """
    Command-line interface for the Ponder agent.

    Parameters
    ----------
    config : Configuration
        Configuration object.

    Attributes
    ----------
    agent : Agent | None
        Current agent instance (set when running).
    config : Configuration
        Configuration object.
    tui : TUI
        Text user interface instance.

    Examples
    --------
    >>> config = load_configuration()
    >>> cli = CLI(config)
    >>> await cli.run_single("Write a binary search in Rust")
    """

    def __init__(self, config: Configuration) -> None:
        self.agent: Agent | None = None
        self.config: Configuration = config
        self.tui: TUI = TUI(config, console)

    async def run_single(self, message: str) -> str | None:
        """
        Run the agent on a single prompt.

        Parameters
        ----------
        message : str
            Prompt to process.

        Returns
        -------
        str | None
            The answer, or None if an error occurred.
        """
        try:
            async with Agent(self.config) as agent:
                self.agent = agent
                return await self._process_message(message)
        except PonderError as e:
            console.print(f"[error]{e.message}[/error]")
            return None

    async def run_interactive(self) -> None:
        try:
            async with Agent(self.config) as agent:
                self.agent = agent
                self.tui.print_welcome(
                    "Ponder",
                    lines=[
                        f"orchestrator: {self.config.models.orchestrator}",
                        f"executor: {self.config.models.executor}",
                        f"browser: {'available' if agent.has_browser else 'unavailable'}",
                        "type 'help' for commands",
                    ],
                )
                await self._repl()
        except PonderError as e:
            console.print(f"[error]{e.message}[/error]")
            sys.exit(1)

        console.print("\n[highlight]Goodbye![/highlight]")

    async def _repl(self) -> None:
        while True:
            try:
                user_input: str = console.input("\n[user]→[/user] ").strip()
            except KeyboardInterrupt:
                console.print("\n[dim italic]Tip: type 'exit' to quit[/dim italic]")
                continue
            except EOFError:
                break

            if not user_input:
                continue

            if not await self._handle_command(user_input):
                break

    async def _process_message(self, message: str) -> str | None:
        """
        Run the agent on a message and render its events.

        Parameters
        ----------
        message : str
            User message to process.

        Returns
        -------
        str | None
            Final answer, or None if the model backend failed.
        """
        if not self.agent:
            return None

        answer: str | None = None
        try:
            async for event in self.agent.run(message, on_token=self.tui.stream_assistant_delta):
                answer = self._render_event(event) or answer
        except PonderError as e:
            self.tui.end_assistant()
            console.print(f"\n[error]Error: {e.message}[/error]")
            return None

        return answer

    def _render_event(self, event: AgentEvent) -> str | None:
        if event.type == AgentEventType.TURN_START:
            self.tui.turn_start(event.data["turn"], event.data["max_turns"])
        elif event.type == AgentEventType.TOOL_CALL_START:
            name: str = event.data.get("name", "unknown")
            self.tui.tool_call_start(name, self._category(name), event.data.get("arguments", {}))
        elif event.type == AgentEventType.TOOL_CALL_COMPLETE:
            name = event.data.get("name", "unknown")
            self.tui.tool_call_complete(
                name,
                self._category(name),
                event.data.get("success", False),
                event.data.get("output", ""),
            )
        elif event.type == AgentEventType.SYNTHESIS_START:
            self.tui.synthesis_start(event.data.get("observations", 0))
        elif event.type == AgentEventType.AGENT_END:
            answer: str = event.data["response"]
            if self.tui.is_streaming:
                self.tui.end_assistant()
            else:
                self.tui.print_answer(answer)
            return answer
        return None

    def _category(self, tool_name: str) -> str | None:
        if not self.agent:
            return None
        category = self.agent.catalog.category_of(tool_name)
        return category.value if category else None

    async def _handle_command(self, command: str) -> bool:
        """
        Handle a REPL line.

        Parameters
        ----------
        command : str
            Line typed by the user.

        Returns
        -------
        bool
            True to continue, False to exit.
        """
        if not self.agent:
            return True

        parts: list[str] = command.split(maxsplit=1)
        cmd_name: str = parts[0].lower()
        cmd_args: str = parts[1].strip() if len(parts) > 1 else ""

        if cmd_name in ("exit", "quit"):
            return False
        elif cmd_name == "help" and not cmd_args:
            self.tui.show_help()
        elif cmd_name == "clear" and not cmd_args:
            self.agent.clear_history()
            console.print("[success]Conversation cleared[/success]")
        elif cmd_name == "status" and not cmd_args:
            self.tui.show_status(self.agent.has_browser, self.agent.conversation_length)
        elif cmd_name == "models" and not cmd_args:
            try:
                self.tui.show_models(await self.agent.list_models())
            except PonderError as e:
                console.print(f"[error]{e.message}[/error]")
        elif cmd_name == "recommend" and not cmd_args:
            self.tui.show_recommendations()
        elif cmd_name == "debug" and not cmd_args:
            self._set_debug(not self.config.debug)
        elif cmd_name == "set":
            self._handle_set(cmd_args)
        elif cmd_name == "delegate":
            if not cmd_args:
                console.print("[error]Usage: delegate <task>[/error]")
            else:
                try:
                    self.tui.show_subagent_results(await self.agent.delegate(cmd_args))
                except PonderError as e:
                    console.print(f"[error]{e.message}[/error]")
        else:
            await self._process_message(command)

        return True

    def _handle_set(self, args: str) -> None:
        if not self.agent:
            return

        parts: list[str] = args.split(maxsplit=1)
        if len(parts) != 2:
            console.print("[error]Usage: set <orchestrator|executor|debug> <value>[/error]")
            return

        key: str = parts[0].lower()
        value: str = parts[1].strip()

        if key == "orchestrator":
            self.agent.set_orchestrator_model(value)
            console.print(f"[success]Orchestrator model set to: {value}[/success]")
        elif key == "executor":
            self.agent.set_executor_model(value)
            console.print(f"[success]Executor model set to: {value}[/success]")
        elif key == "debug":
            lowered: str = value.lower()
            if lowered in _ON_VALUES:
                self._set_debug(True)
            elif lowered in _OFF_VALUES:
                self._set_debug(False)
            else:
                console.print(f"[error]Invalid value for debug: {value}[/error]")
        else:
            console.print(f"[error]Unknown setting: {key}[/error]")

    def _set_debug(self, enabled: bool) -> None:
        if not self.agent:
            return
        self.agent.set_debug(enabled)
        console.print(f"[success]Debug {'on' if enabled else 'off'}[/success]")


@click.command()
@click.option("--prompt", "-p", help="Run a single prompt and exit")
@click.option("--orchestrator", help="Orchestrator model")
@click.option("--executor", help="Executor model")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--no-browser", is_flag=True, help="Disable browser tools")
@click.option("--headed", is_flag=True, help="Show the browser window")
@click.option(
    "--cwd",
    "-c",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Project directory",
)
def main(
    prompt: str | None,
    orchestrator: str | None,
    executor: str | None,
    debug: bool,
    no_browser: bool,
    headed: bool,
    cwd: Path | None,
) -> None:
    """
    Ponder - local ReAct agent.

    Run the agent in interactive mode or process a single prompt.
    """
    load_dotenv()

    try:
        config: Configuration = load_configuration(cwd=cwd)
    except ConfigurationError as e:
        console.print(f"[error]Configuration Error: {e.message}[/error]")
        sys.exit(1)

    if orchestrator:
        config.models.orchestrator = orchestrator
    if executor:
        config.models.executor = executor
    if no_browser:
        config.browser.enabled = False
    if headed:
        config.browser.headed = True
    if debug:
        config.debug = True

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    cli = CLI(config)

    if prompt:
        result = asyncio.run(cli.run_single(prompt))
        if result is None:
            sys.exit(1)
    else:
        asyncio.run(cli.run_interactive())


if __name__ == "__main__":
    main()
