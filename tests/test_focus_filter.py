import random

from analytics.simulate import simulate_session
from data.models import FieldItem
from game.session import GameSession
from game.state_machine import PHASE_FEEDBACK, PHASE_RESULT, PHASE_WAIT, Respond
from game.tasks import FocusFilterMachine
from game.tasks.focus_filter import AttentionState


ITEMS = (
    FieldItem(item_id=0, x=50, y=50, is_target=True),
    FieldItem(item_id=1, x=20, y=20, is_target=False),
    FieldItem(item_id=2, x=70, y=30, is_target=True),
)


def test_scenario_score_never_goes_below_zero() -> None:
    machine = FocusFilterMachine()
    rng = random.Random(0)
    state = AttentionState(phase=PHASE_WAIT, token=1, round=1, items=ITEMS)

    state = machine.step(state, Respond(now_ms=100, value=1), rng).state
    assert state.score == 0
    assert state.distractor_clicks == 1

    state = machine.step(state, Respond(now_ms=200, value=0), rng).state
    assert state.score == 10

    state = machine.step(state, Respond(now_ms=300, value=1), rng).state
    assert state.score == 5

    found = state
    state = machine.step(state, Respond(now_ms=400, value=0), rng).state
    assert state is found

    step = machine.step(state, Respond(now_ms=500, value=2), rng)
    state = step.state
    assert state.score == 15
    assert state.phase == PHASE_FEEDBACK
    assert state.round_times == (500,)
    assert state.correct_clicks == 2
    assert state.total_clicks == 4
    assert step.timers[0].delay_ms == 1000


def test_unknown_item_is_ignored() -> None:
    machine = FocusFilterMachine()
    state = AttentionState(phase=PHASE_WAIT, token=1, round=1, items=ITEMS)
    assert machine.step(state, Respond(now_ms=100, value=99), random.Random(0)).state is state
    assert machine.step(state, Respond(now_ms=100, value=True), random.Random(0)).state is state
    assert machine.step(state, Respond(now_ms=100, value=False), random.Random(0)).state is state


def test_session_timer_ends_with_timeout() -> None:
    calls = []
    session = GameSession(
        FocusFilterMachine(),
        rng=random.Random(2),
        on_complete=lambda score, payload: calls.append(payload),
    )
    session.start(0)
    assert session.phase == PHASE_WAIT

    session.update(29999)
    assert session.phase == PHASE_WAIT
    session.update(30000)

    assert session.phase == PHASE_RESULT
    assert session.summary.end_reason == "timeout"
    assert session.summary.total_duration_ms == 30000
    assert len(calls) == 1
    assert calls[0]["roundsCompleted"] == 0


def test_all_rounds_cleared_completes() -> None:
    session = simulate_session("attention", seed=6, accuracy=1.0, rt_ms=200, session_id="a-1")
    summary = session.summary

    assert summary.end_reason == "completed"
    assert summary.metrics["roundsCompleted"] == 3
    assert len(summary.metrics["roundTimes"]) == 3
    assert summary.metrics["totalDistractorsClicked"] == 0
    assert summary.metrics["accuracy"] == 100.0
    assert summary.metrics["fastestRound"] == min(summary.metrics["roundTimes"])
    assert summary.final_score == 10 * summary.metrics["totalTargetsFound"]
    assert session.scheduler.pending_count() == 0
