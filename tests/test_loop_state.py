from ponder.agent.loop_state import AgentLoopState, LoopStatus
from ponder.tools.models import Observation


def test_fresh_state_is_running():
    state = AgentLoopState(max_turns=3)

    assert state.status == LoopStatus.RUNNING
    assert state.should_continue()
    assert state.format_observations() == ""


def test_final_answer_terminates():
    state = AgentLoopState(max_turns=3)
    state.final_answer = "42"

    assert state.status == LoopStatus.TERMINATED
    assert not state.should_continue()


def test_turn_budget_exhaustion():
    state = AgentLoopState(max_turns=2)
    state.next_turn()
    assert state.should_continue()

    state.next_turn()
    assert state.status == LoopStatus.MAX_TURNS_EXHAUSTED
    assert not state.should_continue()


def test_exhaustion_wins_over_synthesized_answer():
    state = AgentLoopState(max_turns=1)
    state.next_turn()
    state.final_answer = "synthesized"

    assert state.status == LoopStatus.MAX_TURNS_EXHAUSTED


def test_observations_are_numbered_in_order():
    state = AgentLoopState(max_turns=3)
    state.add_observations(
        [
            Observation(tool_name="write_code", success=True, output="def f(): ..."),
            Observation.failure("browser_click", "Element not found"),
        ]
    )

    assert state.format_observations() == (
        "\n\n## Tool Observations:\n"
        "\n### Observation 1 (write_code)\ndef f(): ...\n"
        "\n### Observation 2 (browser_click)\nError: Element not found\n"
    )
