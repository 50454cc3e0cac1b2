import asyncio

import pytest
from conftest import FakeBackend

from ponder.agent.subagents import (
    SubAgent,
    SubagentDefinition,
    SubAgentManager,
    get_default_subagent_definitions,
)
from ponder.exceptions import APIError
from ponder.llm.models import LLMResponse, Message, Role


class RoutingBackend(FakeBackend):
    """Answers each sub-agent according to its system prompt."""

    def __init__(self, delays: dict[str, float], failing: set[str] = frozenset()) -> None:
        super().__init__()
        self.delays = delays
        self.failing = failing

    async def _answer(self, messages) -> LLMResponse:
        role_prompt = messages[0].content
        await asyncio.sleep(self.delays.get(role_prompt, 0))
        if role_prompt in self.failing:
            raise APIError(f"{role_prompt} crashed")
        return LLMResponse(content=f"answer from {role_prompt}")

    async def chat(self, model, messages, options=None):
        self._record("chat", model, messages, options=options)
        return await self._answer(messages)

    async def chat_with_tools(self, model, messages, tools, options=None):
        self._record("chat_with_tools", model, messages, tools=list(tools), options=options)
        return await self._answer(messages)


def test_default_definitions():
    names = [d.name for d in get_default_subagent_definitions()]
    assert names == ["code_reviewer", "code_explainer"]


def test_generic_prompt_names_the_subagent():
    definition = SubagentDefinition(name="helper")

    assert definition.resolved_system_prompt() == (
        "You are a helpful sub-agent named 'helper'. Complete the task you are given."
    )


def test_empty_allowed_tools_means_all_coding_tools(catalog):
    agent = SubAgent(SubagentDefinition(name="all"), FakeBackend(), catalog, "qwen3:8b")

    assert [d.name for d in agent.tool_definitions()] == [
        "write_code",
        "explain_code",
        "debug_code",
    ]


def test_allowed_tools_filter_coding_tools_only(catalog):
    definition = SubagentDefinition(
        name="narrow",
        allowed_tools=["explain_code", "browser_url", "missing"],
    )
    agent = SubAgent(definition, FakeBackend(), catalog, "qwen3:8b")

    assert [d.name for d in agent.tool_definitions()] == ["explain_code"]


@pytest.mark.asyncio
async def test_subagent_with_tools_calls_chat_with_tools(catalog):
    backend = FakeBackend(tool_responses=[LLMResponse(content="reviewed")])
    definition = SubagentDefinition(name="reviewer", system_prompt="Review code.")
    agent = SubAgent(definition, backend, catalog, "qwen3:8b")

    assert await agent.run("check this") == "reviewed"

    call = backend.calls[0]
    assert call["method"] == "chat_with_tools"
    assert call["model"] == "qwen3:8b"
    assert call["options"].temperature == 0.3
    assert call["messages"] == [Message.system("Review code."), Message.user("check this")]


@pytest.mark.asyncio
async def test_subagent_without_matching_tools_uses_plain_chat(catalog):
    backend = FakeBackend(chat_content="plain answer")
    definition = SubagentDefinition(
        name="writer",
        allowed_tools=["nothing_matches"],
        model="llama3.2:3b",
    )
    agent = SubAgent(definition, backend, catalog, "qwen3:8b")

    assert await agent.run("summarize") == "plain answer"

    call = backend.calls[0]
    assert call["method"] == "chat"
    assert call["model"] == "llama3.2:3b"
    assert call["options"].temperature == 0.7
    assert call["messages"][0].role == Role.SYSTEM


@pytest.mark.asyncio
async def test_run_all_returns_results_in_completion_order(catalog):
    backend = RoutingBackend(delays={"slow": 0.05, "fast": 0.0})
    manager = SubAgentManager(backend, catalog, "qwen3:8b")
    manager.add_agent(SubagentDefinition(name="slow_one", system_prompt="slow"))
    manager.add_agent(SubagentDefinition(name="fast_one", system_prompt="fast"))

    results = await manager.run_all("task")

    assert [r.name for r in results] == ["fast_one", "slow_one"]
    assert all(r.success for r in results)
    assert results[1].content == "answer from slow"


@pytest.mark.asyncio
async def test_failed_subagent_does_not_cancel_siblings(catalog):
    backend = RoutingBackend(delays={"steady": 0.02}, failing={"fragile"})
    manager = SubAgentManager(backend, catalog, "qwen3:8b")
    manager.add_agent(SubagentDefinition(name="fragile", system_prompt="fragile"))
    manager.add_agent(SubagentDefinition(name="steady", system_prompt="steady"))

    results = {r.name: r for r in await manager.run_all("task")}

    assert not results["fragile"].success
    assert results["fragile"].error == "fragile crashed"
    assert results["steady"].success
    assert results["steady"].content == "answer from steady"


@pytest.mark.asyncio
async def test_subagent_timeout_becomes_error_result(catalog):
    backend = RoutingBackend(delays={"sleepy": 1.0})
    manager = SubAgentManager(backend, catalog, "qwen3:8b")
    manager.add_agent(
        SubagentDefinition(name="sleepy", system_prompt="sleepy", timeout_seconds=0.01)
    )

    [result] = await manager.run_all("task")

    assert not result.success
    assert "Timed out" in result.error


@pytest.mark.asyncio
async def test_manager_lookup(catalog):
    manager = SubAgentManager(FakeBackend(), catalog, "qwen3:8b")
    manager.add_defaults()

    assert len(manager) == 2
    assert manager.get_agent("code_reviewer").name == "code_reviewer"
    assert manager.get_agent("nobody") is None
    assert await SubAgentManager(FakeBackend(), catalog, "qwen3:8b").run_all("task") == []


@pytest.mark.asyncio
async def test_turn_budget_does_not_change_single_call_run(catalog):
    backend = FakeBackend(tool_responses=[LLMResponse(content="once")])
    definition = SubagentDefinition(name="budgeted", max_turns=3)

    assert await SubAgent(definition, backend, catalog, "qwen3:8b").run("task") == "once"
    assert len(backend.calls) == 1

    with pytest.raises(ValueError):
        SubagentDefinition(name="broken", max_turns=0)
