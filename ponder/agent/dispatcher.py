"""
Tool dispatcher for executing a turn's batch of tool calls.

Calls whose definitions are concurrency-safe each run as their own task and
are collected in completion order. Calls that share order-sensitive state
(the browser session) are drained one at a time in the order the model
requested them. Every call yields exactly one Observation, and ``dispatch``
returns only after all of them have resolved.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from ponder.config.schema import Configuration
from ponder.constants import EXECUTOR_TEMPERATURE, PARALLEL_TASK_NAME
from ponder.context.conversation import Conversation
from ponder.exceptions import PonderError, ValidationError
from ponder.interfaces import BrowserBackend, ModelBackend
from ponder.llm.models import ChatOptions, LLMResponse, Message, ToolCall
from ponder.tools.browser import (
    BrowserCloseParams,
    BrowserFillParams,
    BrowserRefParams,
    BrowserScreenshotParams,
    BrowserSnapshotParams,
    BrowserUrlParams,
)
from ponder.tools.coding import (
    DebugCodeParams,
    ExplainCodeParams,
    WriteCodeParams,
    build_debug_prompt,
    build_explain_prompt,
    build_write_prompt,
)
from ponder.tools.context import AnalyzeConversationParams, build_analysis_prompt
from ponder.tools.models import (
    Observation,
    ToolCategory,
    ToolResult,
    parse_params,
)
from ponder.tools.registry import ToolCatalog

logger = logging.getLogger(__name__)

PromptBuilder = tuple[type[BaseModel], Callable[[Any], str]]

CODING_PROMPTS: dict[str, PromptBuilder] = {
    "write_code": (WriteCodeParams, build_write_prompt),
    "explain_code": (ExplainCodeParams, build_explain_prompt),
    "debug_code": (DebugCodeParams, build_debug_prompt),
}


class ToolDispatcher:
    """
    Executes tool calls and normalizes their outcomes into Observations.

    Parameters
    ----------
    config : Configuration
        Configuration; the executor model is read from it on every call so
        model changes apply to the next dispatch.
    catalog : ToolCatalog
        Catalog used to route calls and decide their execution class.
    backend : ModelBackend
        Model backend used by coding and context tools.
    conversation : Conversation
        Conversation queried by context tools.
    browser : BrowserBackend | None, optional
        Browser backend, or None when browser automation is unavailable.

    Examples
    --------
    >>> dispatcher = ToolDispatcher(config, catalog, backend, conversation)
    >>> observations = await dispatcher.dispatch([ToolCall(name="write_code", arguments={...})])
    """

    def __init__(
        self,
        config: Configuration,
        catalog: ToolCatalog,
        backend: ModelBackend,
        conversation: Conversation,
        browser: BrowserBackend | None = None,
    ) -> None:
        self.config: Configuration = config
        self.catalog: ToolCatalog = catalog
        self.backend: ModelBackend = backend
        self.conversation: Conversation = conversation
        self.browser: BrowserBackend | None = browser

    def is_concurrency_safe(self, name: str) -> bool:
        """
        Decide the execution class of a call.

        Unknown names count as concurrency-safe; they fail immediately
        without touching shared state.
        """
        definition = self.catalog.get(name)
        return definition is None or definition.concurrency_safe

    async def dispatch(self, tool_calls: list[ToolCall]) -> list[Observation]:
        """
        Execute a batch of tool calls.

        Parameters
        ----------
        tool_calls : list[ToolCall]
            Calls requested by the model in one turn.

        Returns
        -------
        list[Observation]
            One observation per call: concurrency-safe calls in completion
            order, followed by sequential calls in request order.
        """
        concurrent: list[ToolCall] = []
        sequential: list[ToolCall] = []
        for call in tool_calls:
            if self.is_concurrency_safe(call.name):
                concurrent.append(call)
            else:
                sequential.append(call)

        logger.debug(
            f"Dispatching {len(tool_calls)} tool call(s): "
            f"{len(concurrent)} concurrent, {len(sequential)} sequential"
        )

        observations: list[Observation] = []
        if concurrent:
            observations.extend(await self._run_concurrent(concurrent))
        if sequential:
            observations.extend(await self._drain_sequential(sequential))
        return observations

    async def _run_concurrent(self, calls: list[ToolCall]) -> list[Observation]:
        pending: set[asyncio.Task[Observation]] = {
            asyncio.create_task(self._execute_isolated(call), name=f"tool:{call.name}")
            for call in calls
        }
        observations: list[Observation] = []

        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                for task in done:
                    try:
                        observations.append(task.result())
                    except Exception as e:
                        logger.exception(f"Tool task {task.get_name()} failed")
                        observations.append(
                            Observation.failure(PARALLEL_TASK_NAME, f"Task failed: {e}")
                        )
        finally:
            for task in pending:
                task.cancel()

        return observations

    async def _execute_isolated(self, call: ToolCall) -> Observation:
        try:
            result: ToolResult = await self._execute(call)
        except PonderError as e:
            logger.warning(f"Tool {call.name} failed: {e}")
            return Observation.failure(call.name, e.message)

        return self._observe(call, result)

    async def _drain_sequential(self, calls: list[ToolCall]) -> list[Observation]:
        observations: list[Observation] = []

        for call in calls:
            logger.debug(f"Executing sequential tool: {call.name}")
            try:
                result: ToolResult = await self._execute(call)
            except PonderError as e:
                logger.warning(f"Tool {call.name} failed: {e}")
                observations.append(Observation.failure(call.name, e.message))
                continue
            except Exception as e:
                logger.exception(f"Tool {call.name} raised unexpected error")
                observations.append(Observation.failure(call.name, f"Internal error: {e}"))
                continue

            observations.append(self._observe(call, result))

        return observations

    def _observe(self, call: ToolCall, result: ToolResult) -> Observation:
        if not result.success:
            logger.warning(f"Tool {call.name} returned an error: {result.error}")
        return Observation.from_result(call.name, result)

    async def _execute(self, call: ToolCall) -> ToolResult:
        """
        Route a call by category, then by exact name.

        Unknown tools and invalid arguments become failure results naming
        the tool. Backend errors propagate to the caller.
        """
        category: ToolCategory | None = self.catalog.category_of(call.name)

        try:
            if category == ToolCategory.CODING:
                return await self._execute_coding(call)
            if category == ToolCategory.CONTEXT:
                return await self._execute_context(call)
            if category == ToolCategory.BROWSER:
                return await self._execute_browser(call)
        except ValidationError as e:
            return ToolResult.error_result(e.message)

        return ToolResult.error_result(f"Unknown tool: {call.name}")

    async def _ask_executor(self, prompt: str) -> str:
        response: LLMResponse = await self.backend.chat(
            self.config.models.executor,
            [Message.user(prompt)],
            ChatOptions(temperature=EXECUTOR_TEMPERATURE),
        )
        return response.content

    async def _execute_coding(self, call: ToolCall) -> ToolResult:
        entry: PromptBuilder | None = CODING_PROMPTS.get(call.name)
        if entry is None:
            return ToolResult.error_result(f"Unknown coding tool: {call.name}")

        schema, build_prompt = entry
        params = parse_params(schema, call.name, call.arguments)
        content: str = await self._ask_executor(build_prompt(params))
        return ToolResult.success_result(content)

    async def _execute_context(self, call: ToolCall) -> ToolResult:
        if call.name != "analyze_conversation":
            return ToolResult.error_result(f"Unknown context tool: {call.name}")

        params = parse_params(AnalyzeConversationParams, call.name, call.arguments)
        start: int = params.start_index if params.start_index is not None else 0
        end: int = params.end_index if params.end_index is not None else len(self.conversation)

        segment: list[Message] = self.conversation.get_range(start, end)
        if not segment:
            return ToolResult.error_result("No conversation history to analyze")

        content: str = await self._ask_executor(build_analysis_prompt(params.query, segment))
        return ToolResult.success_result(content, data={"messages_analyzed": len(segment)})

    async def _execute_browser(self, call: ToolCall) -> ToolResult:
        if self.browser is None:
            return ToolResult.error_result("Browser tools are not enabled")

        operation = BROWSER_OPERATIONS.get(call.name)
        if operation is None:
            return ToolResult.error_result(f"Unknown browser tool: {call.name}")
        return await operation(self.browser, call)


async def _browser_url(browser: BrowserBackend, call: ToolCall) -> ToolResult:
    params = parse_params(BrowserUrlParams, call.name, call.arguments)
    return await browser.open(params.url, params.wait_for_load)


async def _browser_click(browser: BrowserBackend, call: ToolCall) -> ToolResult:
    params = parse_params(BrowserRefParams, call.name, call.arguments)
    return await browser.click(params.ref)


async def _browser_fill(browser: BrowserBackend, call: ToolCall) -> ToolResult:
    params = parse_params(BrowserFillParams, call.name, call.arguments)
    return await browser.fill(params.ref, params.text)


async def _browser_get_text(browser: BrowserBackend, call: ToolCall) -> ToolResult:
    params = parse_params(BrowserRefParams, call.name, call.arguments)
    return await browser.get_text(params.ref)


async def _browser_screenshot(browser: BrowserBackend, call: ToolCall) -> ToolResult:
    params = parse_params(BrowserScreenshotParams, call.name, call.arguments)
    return await browser.screenshot(params.path, params.full_page)


async def _browser_snapshot(browser: BrowserBackend, call: ToolCall) -> ToolResult:
    params = parse_params(BrowserSnapshotParams, call.name, call.arguments)
    return await browser.snapshot(params.interactive_only)


async def _browser_close(browser: BrowserBackend, call: ToolCall) -> ToolResult:
    parse_params(BrowserCloseParams, call.name, call.arguments)
    return await browser.close()


BrowserOperation = Callable[[BrowserBackend, ToolCall], Awaitable[ToolResult]]

BROWSER_OPERATIONS: dict[str, BrowserOperation] = {
    "browser_url": _browser_url,
    "browser_click": _browser_click,
    "browser_fill": _browser_fill,
    "browser_get_text": _browser_get_text,
    "browser_screenshot": _browser_screenshot,
    "browser_snapshot": _browser_snapshot,
    "browser_close": _browser_close,
}
