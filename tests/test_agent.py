import asyncio
import json

import pytest
from conftest import FakeBackend, FakeBrowser, tool_call_response

from ponder.agent.agent import Agent
from ponder.agent.events import AgentEventType
from ponder.constants import FALLBACK_ANSWER
from ponder.context.conversation import Conversation
from ponder.exceptions import APIError, ConnectionError, ModelNotFoundError
from ponder.llm.models import LLMResponse, Role


def make_agent(config, backend, browser=None, conversation=None) -> Agent:
    return Agent(config, backend=backend, browser=browser, conversation=conversation)


@pytest.mark.asyncio
async def test_answer_without_tool_calls_takes_one_call(config):
    backend = FakeBackend(tool_responses=[LLMResponse(content="Paris")])
    agent = make_agent(config, backend)

    answer = await agent.process("Capital of France?")

    assert answer == "Paris"
    assert len(backend.calls) == 1
    call = backend.calls[0]
    assert call["model"] == config.models.orchestrator
    assert call["options"].temperature == 0.1
    assert [m.content for m in agent.conversation.history] == ["Capital of France?", "Paris"]


@pytest.mark.asyncio
async def test_empty_answer_becomes_apology(config):
    backend = FakeBackend(tool_responses=[LLMResponse(content="")])
    agent = make_agent(config, backend)

    assert await agent.process("Hello") == FALLBACK_ANSWER


@pytest.mark.asyncio
async def test_observations_feed_the_next_turn(config):
    backend = FakeBackend(
        tool_responses=[
            tool_call_response(("write_code", {"task": "reverse a string"})),
            LLMResponse(content="Here is the function."),
        ],
        chat_content="def reverse(s): return s[::-1]",
    )
    agent = make_agent(config, backend)

    answer = await agent.process("Write a string reverser")

    assert answer == "Here is the function."
    second_turn = backend.calls_to("chat_with_tools")[1]["messages"][-1]
    assert second_turn.role == Role.USER
    assert second_turn.content.startswith("Write a string reverser\n")
    assert "### Observation 1 (write_code)" in second_turn.content
    assert "def reverse(s)" in second_turn.content


@pytest.mark.asyncio
async def test_turn_budget_bounds_model_calls(config):
    config.agent.max_turns = 3
    backend = FakeBackend(
        tool_responses=[tool_call_response(("write_code", {"task": f"t{i}"})) for i in range(10)]
    )
    agent = make_agent(config, backend)

    answer = await agent.process("Loop forever")

    orchestrator_calls = backend.calls_to("chat_with_tools")
    synthesis_calls = [
        call for call in backend.calls_to("chat") if "comprehensive answer" in call["messages"][0].content
    ]
    assert len(orchestrator_calls) == 3
    assert len(synthesis_calls) == 1
    assert len(orchestrator_calls) + len(synthesis_calls) == config.agent.max_turns + 1
    assert answer == "executor output"


@pytest.mark.asyncio
async def test_failing_probe_scenario(config):
    config.agent.max_turns = 2
    backend = FakeBackend(
        tool_responses=[tool_call_response(("probe", {})) for _ in range(5)],
        chat_content="Probing failed twice.",
    )
    agent = make_agent(config, backend)

    events = [event async for event in agent.run("Use the probe")]

    assert len(backend.calls_to("chat_with_tools")) == 2
    assert len(backend.calls_to("chat")) == 1

    synthesis = next(e for e in events if e.type == AgentEventType.SYNTHESIS_START)
    assert synthesis.data["observations"] == 2

    end = events[-1]
    assert end.type == AgentEventType.AGENT_END
    assert end.data["response"] == "Probing failed twice."
    assert end.data["turns"] == 2
    assert end.data["status"] == "max_turns_exhausted"


@pytest.mark.asyncio
async def test_empty_synthesis_becomes_apology(config):
    config.agent.max_turns = 1
    backend = FakeBackend(
        tool_responses=[tool_call_response(("probe", {}))],
        chat_content="",
    )
    agent = make_agent(config, backend)

    assert await agent.process("anything") == FALLBACK_ANSWER


@pytest.mark.asyncio
async def test_synthesis_streams_tokens_when_enabled(config):
    config.agent.max_turns = 1
    config.streaming.enabled = True
    backend = FakeBackend(
        tool_responses=[tool_call_response(("probe", {}))],
        stream_chunks=["part one, ", "part two"],
    )
    agent = make_agent(config, backend)
    tokens: list[str] = []

    answer = await agent.process("stream it", on_token=tokens.append)

    assert tokens == ["part one, ", "part two"]
    assert answer == "part one, part two"
    assert backend.calls_to("chat_stream")[0]["model"] == config.models.executor


@pytest.mark.asyncio
async def test_event_sequence(config):
    backend = FakeBackend(
        tool_responses=[
            tool_call_response(("write_code", {"task": "x"}), ("explain_code", {"code": "y"})),
            LLMResponse(content="done"),
        ]
    )
    agent = make_agent(config, backend)

    types = [event.type async for event in agent.run("go")]

    assert types == [
        AgentEventType.AGENT_START,
        AgentEventType.TURN_START,
        AgentEventType.TOOL_CALL_START,
        AgentEventType.TOOL_CALL_START,
        AgentEventType.TOOL_CALL_COMPLETE,
        AgentEventType.TOOL_CALL_COMPLETE,
        AgentEventType.TURN_START,
        AgentEventType.AGENT_END,
    ]


@pytest.mark.asyncio
async def test_backend_error_propagates_and_keeps_user_message(config):
    backend = FakeBackend(tool_responses=[ConnectionError("Ollama is down")])
    agent = make_agent(config, backend)

    with pytest.raises(ConnectionError):
        await agent.process("Hello")

    assert [m.content for m in agent.conversation.history] == ["Hello"]


@pytest.mark.asyncio
async def test_api_error_on_later_turn_propagates(config):
    backend = FakeBackend(
        tool_responses=[
            tool_call_response(("write_code", {"task": "x"})),
            APIError("model crashed", status_code=500),
        ]
    )
    agent = make_agent(config, backend)

    with pytest.raises(APIError):
        await agent.process("Hello")


@pytest.mark.asyncio
async def test_cancellation_does_not_record_answer(config):
    never = asyncio.Event()

    class HangingBackend(FakeBackend):
        async def chat_with_tools(self, model, messages, tools, options=None):
            await never.wait()

    agent = make_agent(config, HangingBackend())

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(agent.process("slow question"), timeout=0.05)

    assert [m.content for m in agent.conversation.history] == ["slow question"]


@pytest.mark.asyncio
async def test_previous_conversation_is_sent_as_context(config):
    config.agent.context_window = 2
    conversation = Conversation(max_length=50)
    for i in range(4):
        conversation.add_user(f"old {i}")
    backend = FakeBackend(tool_responses=[LLMResponse(content="ok")])
    agent = make_agent(config, backend, conversation=conversation)

    await agent.process("new question")

    messages = backend.calls[0]["messages"]
    assert messages[0].role == Role.SYSTEM
    assert [m.content for m in messages[1:]] == ["old 2", "old 3", "new question"]


@pytest.mark.asyncio
async def test_configured_system_prompt_is_appended(config):
    config.agent.system_prompt = "Always answer in French."
    backend = FakeBackend(tool_responses=[LLMResponse(content="ok")])
    agent = make_agent(config, backend)

    await agent.process("hi")

    system_prompt = backend.calls[0]["messages"][0].content
    assert "ReAct pattern" in system_prompt
    assert system_prompt.endswith("Always answer in French.")
    assert agent.conversation.system_prompt == "Always answer in French."


@pytest.mark.asyncio
async def test_conversation_system_prompt_reaches_the_model(config):
    conversation = Conversation(max_length=50)
    conversation.set_system_prompt("Reply tersely.")
    backend = FakeBackend(tool_responses=[LLMResponse(content="ok")])
    agent = make_agent(config, backend, conversation=conversation)

    await agent.process("hi")

    messages = backend.calls[0]["messages"]
    assert [m.role for m in messages] == [Role.SYSTEM, Role.USER]
    assert messages[0].content.endswith("Reply tersely.")


@pytest.mark.asyncio
async def test_restored_session_feeds_the_context(config, tmp_path):
    path = tmp_path / "session.json"
    path.write_text(
        json.dumps(
            {
                "system_prompt": "Remember the user prefers Rust.",
                "messages": [
                    {"role": "user", "content": "earlier question"},
                    {"role": "assistant", "content": "earlier answer"},
                ],
            }
        )
    )
    conversation = Conversation(max_length=50)
    conversation.enable_persistence(path)
    backend = FakeBackend(tool_responses=[LLMResponse(content="ok")])
    agent = make_agent(config, backend, conversation=conversation)

    await agent.process("follow-up")

    messages = backend.calls[0]["messages"]
    assert messages[0].content.endswith("Remember the user prefers Rust.")
    assert [m.content for m in messages[1:]] == ["earlier question", "earlier answer", "follow-up"]


@pytest.mark.asyncio
async def test_browser_tools_offered_only_when_available(config):
    backend = FakeBackend(tool_responses=[LLMResponse(content="a"), LLMResponse(content="b")])

    without_browser = make_agent(config, backend)
    await without_browser.process("q")
    with_browser = make_agent(config, backend, browser=FakeBrowser())
    await with_browser.process("q")

    first, second = backend.calls_to("chat_with_tools")
    first_names = {tool.name for tool in first["tools"]}
    second_names = {tool.name for tool in second["tools"]}
    assert "analyze_conversation" in first_names
    assert "browser_url" not in first_names
    assert "browser_url" in second_names
    assert "## Browser Tools" in second["messages"][0].content
    assert "## Browser Tools" not in first["messages"][0].content


@pytest.mark.asyncio
async def test_initialize_reports_missing_model(config):
    config.browser.enabled = False
    agent = make_agent(config, FakeBackend(installed=["qwen3-vl:8b"]))

    with pytest.raises(ModelNotFoundError) as exc_info:
        await agent.initialize()

    assert "ollama pull qwen3:8b" in exc_info.value.message


@pytest.mark.asyncio
async def test_initialize_propagates_unreachable_backend(config):
    class DownBackend(FakeBackend):
        async def list_models(self):
            raise ConnectionError("Could not connect to Ollama")

    agent = make_agent(config, DownBackend())

    with pytest.raises(ConnectionError):
        await agent.initialize()


@pytest.mark.asyncio
async def test_model_switches_apply_to_next_call(config):
    backend = FakeBackend(
        tool_responses=[
            tool_call_response(("write_code", {"task": "x"})),
            LLMResponse(content="done"),
        ]
    )
    agent = make_agent(config, backend)
    agent.set_orchestrator_model("llama3.2-vision:11b")
    agent.set_executor_model("qwen2.5-coder:7b")

    await agent.process("go")

    assert backend.calls_to("chat_with_tools")[0]["model"] == "llama3.2-vision:11b"
    assert backend.calls_to("chat")[0]["model"] == "qwen2.5-coder:7b"


@pytest.mark.asyncio
async def test_clear_history(config):
    agent = make_agent(config, FakeBackend(tool_responses=[LLMResponse(content="ok")]))
    await agent.process("hello")
    assert agent.conversation_length == 2

    agent.clear_history()

    assert agent.conversation_length == 0
