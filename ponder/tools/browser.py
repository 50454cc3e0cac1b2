"""
Browser tools backed by the agent-browser CLI.

All browser tools share one named browser session, so their definitions are
marked as not concurrency-safe and the dispatcher runs them one at a time in
the order the model requested them.
"""

import asyncio
import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from ponder.constants import (
    BROWSER_EXECUTABLE,
    DEFAULT_BROWSER_SESSION,
    DEFAULT_BROWSER_TIMEOUT,
)
from ponder.exceptions import BrowserError, BrowserNotFoundError
from ponder.tools.models import ToolCategory, ToolDefinition, ToolResult
from ponder.tools.snapshot import Snapshot

logger = logging.getLogger(__name__)

_REF_PATTERN = re.compile(r"^e\d+$")


class BrowserUrlParams(BaseModel):
    url: str = Field(description="The URL to navigate to")
    wait_for_load: bool = Field(
        default=True,
        description="Wait for network idle before snapshot",
    )


class BrowserRefParams(BaseModel):
    ref: str = Field(description="Element ref from snapshot (e.g., @e1, @e2)")


class BrowserFillParams(BaseModel):
    ref: str = Field(description="Element ref from snapshot")
    text: str = Field(description="Text to enter")


class BrowserScreenshotParams(BaseModel):
    path: str | None = Field(
        default=None,
        description="File path to save screenshot (optional)",
    )
    full_page: bool = Field(
        default=False,
        description="Capture full page instead of viewport",
    )


class BrowserSnapshotParams(BaseModel):
    interactive_only: bool = Field(
        default=True,
        description="Only return interactive elements (buttons, links, inputs)",
    )


class BrowserCloseParams(BaseModel):
    pass


def _browser_tool(name: str, description: str, schema: type[BaseModel]) -> tuple[ToolDefinition, ToolCategory]:
    return (
        ToolDefinition.from_schema(name, description, schema, concurrency_safe=False),
        ToolCategory.BROWSER,
    )


BROWSER_TOOLS: list[tuple[ToolDefinition, ToolCategory]] = [
    _browser_tool(
        "browser_url",
        "Navigate to a URL and get the page structure for analysis",
        BrowserUrlParams,
    ),
    _browser_tool(
        "browser_click",
        "Click an element on the page by its ref from snapshot",
        BrowserRefParams,
    ),
    _browser_tool(
        "browser_fill",
        "Fill text into an input field by its ref",
        BrowserFillParams,
    ),
    _browser_tool(
        "browser_get_text",
        "Get text content from an element",
        BrowserRefParams,
    ),
    _browser_tool(
        "browser_screenshot",
        "Take a screenshot of the current page",
        BrowserScreenshotParams,
    ),
    _browser_tool(
        "browser_snapshot",
        "Get current page accessibility tree with interactive element refs",
        BrowserSnapshotParams,
    ),
    _browser_tool(
        "browser_close",
        "Close the browser session",
        BrowserCloseParams,
    ),
]


def format_ref(ref: str) -> str:
    """
    Normalize an element ref for agent-browser.

    Parameters
    ----------
    ref : str
        A ref such as ``e5`` or ``@e5``, or a CSS selector.

    Returns
    -------
    str
        ``@e5`` for bare refs, anything else unchanged.

    Examples
    --------
    >>> format_ref("e5")
    '@e5'
    >>> format_ref("@e5")
    '@e5'
    >>> format_ref("#submit")
    '#submit'
    """
    if _REF_PATTERN.match(ref):
        return f"@{ref}"
    return ref


def _snapshot_data(raw: str) -> Any | None:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


class BrowserExecutor:
    """
    Browser backend that drives the ``agent-browser`` CLI.

    Every command is run as a subprocess against a named session so the
    page state survives between calls.

    Parameters
    ----------
    session_name : str, default="ponder"
        Session used to isolate this agent's browser.
    headed : bool, default=False
        Show the browser window.
    timeout : float, default=60.0
        Per-command timeout in seconds.

    Examples
    --------
    >>> browser = BrowserExecutor("ponder")
    >>> if await BrowserExecutor.is_available():
    ...     result = await browser.open("https://example.com")
    """

    def __init__(
        self,
        session_name: str = DEFAULT_BROWSER_SESSION,
        headed: bool = False,
        timeout: float = DEFAULT_BROWSER_TIMEOUT,
    ) -> None:
        self.session_name: str = session_name
        self.headed: bool = headed
        self.timeout: float = timeout

    @staticmethod
    async def is_available() -> bool:
        """
        Check whether agent-browser is installed.

        Returns
        -------
        bool
            True if ``agent-browser --version`` exits successfully.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                BROWSER_EXECUTABLE,
                "--version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError:
            return False

        return await process.wait() == 0

    def _build_command(self, args: list[str]) -> list[str]:
        command: list[str] = [BROWSER_EXECUTABLE, "--session", self.session_name]
        if self.headed:
            command.append("--headed")
        command.extend(args)
        return command

    async def _run(self, args: list[str]) -> str:
        """
        Run one agent-browser command.

        Parameters
        ----------
        args : list[str]
            Subcommand and its arguments.

        Returns
        -------
        str
            Decoded stdout.

        Raises
        ------
        BrowserNotFoundError
            If the executable is not installed.
        BrowserError
            If the command fails or times out.
        """
        command: list[str] = self._build_command(args)
        logger.debug(f"Running browser command: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise BrowserNotFoundError(cause=e) from e
        except OSError as e:
            raise BrowserError(
                f"Failed to run agent-browser: {e}",
                command=command,
                cause=e,
            ) from e

        try:
            stdout_data: bytes
            stderr_data: bytes
            stdout_data, stderr_data = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise BrowserError(
                f"agent-browser command timed out after {self.timeout}s",
                command=command,
                cause=e,
            ) from e

        if process.returncode != 0:
            stderr: str = stderr_data.decode("utf-8", errors="replace").strip()
            raise BrowserError(
                f"agent-browser command failed: {stderr}",
                command=command,
            )

        return stdout_data.decode("utf-8", errors="replace")

    async def _wait_for_idle(self) -> None:
        try:
            await self._run(["wait", "--load", "networkidle"])
        except BrowserError as e:
            logger.debug(f"Ignoring wait failure: {e}")

    async def _compact_snapshot(self) -> str:
        return await self._run(["snapshot", "-i", "-c", "--json"])

    async def open(self, url: str, wait_for_load: bool = True) -> ToolResult:
        """
        Navigate to a URL and return a compact snapshot of the page.

        Parameters
        ----------
        url : str
            Address to open.
        wait_for_load : bool, default=True
            Wait for network idle before taking the snapshot.

        Returns
        -------
        ToolResult
            Result whose ``data`` holds the parsed snapshot JSON.
        """
        await self._run(["open", url])
        if wait_for_load:
            await self._wait_for_idle()

        snapshot: str = await self._compact_snapshot()
        return ToolResult.success_result(
            f"Navigated to {url}. Page snapshot:\n{snapshot}",
            data=_snapshot_data(snapshot),
        )

    async def click(self, ref: str) -> ToolResult:
        await self._run(["click", format_ref(ref)])
        await self._wait_for_idle()

        snapshot: str = await self._compact_snapshot()
        return ToolResult.success_result(
            f"Clicked {ref}. Updated page:\n{snapshot}",
            data=_snapshot_data(snapshot),
        )

    async def fill(self, ref: str, text: str) -> ToolResult:
        await self._run(["fill", format_ref(ref), text])
        await self._wait_for_idle()

        snapshot: str = await self._compact_snapshot()
        return ToolResult.success_result(
            f"Filled {ref} with '{text}'. Updated page:\n{snapshot}",
            data=_snapshot_data(snapshot),
        )

    async def get_text(self, ref: str) -> ToolResult:
        output: str = await self._run(["get", "text", format_ref(ref)])
        return ToolResult.success_result(output.strip())

    async def screenshot(self, path: str | None = None, full_page: bool = False) -> ToolResult:
        """
        Capture the current page.

        Without a path agent-browser prints the image as base64; only a
        short prefix of it is returned.
        """
        args: list[str] = ["screenshot"]
        if path:
            args.append(path)
        if full_page:
            args.append("--full")

        output: str = await self._run(args)
        if path:
            return ToolResult.success_result(f"Screenshot saved to {path}")
        return ToolResult.success_result(f"Screenshot captured (base64): {output[:100]}...")

    async def snapshot(self, interactive_only: bool = True) -> ToolResult:
        """
        Return the accessibility tree of the current page.

        Parameters
        ----------
        interactive_only : bool, default=True
            Only include interactive elements.

        Returns
        -------
        ToolResult
            One line per element with the element count when the output
            parses, otherwise the raw output.
        """
        args: list[str] = ["snapshot"]
        if interactive_only:
            args.append("-i")
        args.extend(["-c", "--json"])

        output: str = await self._run(args)
        parsed: Snapshot | None = Snapshot.parse(output)
        if parsed is None:
            return ToolResult.success_result(output)

        return ToolResult.success_result(
            f"Page snapshot ({parsed.count_elements()} elements):\n"
            f"{parsed.format_for_display(interactive_only)}",
            data=parsed.model_dump(),
        )

    async def close(self) -> ToolResult:
        await self._run(["close"])
        return ToolResult.success_result("Browser closed")
