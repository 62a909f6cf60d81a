import random

import pytest

from config.settings import MemoryConfig
from game.session import GameSession
from game.state_machine import (
    PHASE_FEEDBACK,
    PHASE_RESULT,
    PHASE_SHOWING,
    PHASE_WAIT,
    Respond,
    SessionStateError,
    Start,
)
from game.tasks import SequenceMemoryMachine


def _session(seed: int = 1, **kwargs) -> GameSession:
    return GameSession(SequenceMemoryMachine(), rng=random.Random(seed), **kwargs)


def test_scenario_reproduce_first_sequence(advance_to) -> None:
    session = _session()
    session.start(0)
    assert session.phase == PHASE_SHOWING
    assert len(session.state.sequence) == 3

    now = advance_to(session, PHASE_WAIT)
    assert now == 598 * 3
    for offset, cell in enumerate(session.state.sequence):
        session.respond(cell, now + 200 * (offset + 1))

    state = session.state
    assert state.phase == PHASE_FEEDBACK
    assert state.score == 10
    assert state.level == 2
    assert state.lives == 3
    assert len(state.trials) == 1
    assert state.trials[0].correct
    assert state.trials[0].reaction_time_ms == 600


def test_scenario_three_mistakes_end_on_lives(advance_to) -> None:
    calls = []
    session = _session(on_complete=lambda score, payload: calls.append((score, payload)))
    session.start(0)

    for _ in range(3):
        now = advance_to(session, PHASE_WAIT)
        session.respond(session.machine.wrong_response(session.state), now + 100)

    state = session.state
    assert state.phase == PHASE_RESULT
    assert state.end_reason == "lives"
    assert state.lives == 0
    assert state.score == 0
    assert len(calls) == 1
    assert calls[0][1]["livesRemaining"] == 0
    assert calls[0][1]["level"] == 3
    assert session.summary.end_reason == "lives"


def test_wrong_cell_resolves_immediately(advance_to) -> None:
    session = _session()
    session.start(0)
    now = advance_to(session, PHASE_WAIT)
    session.respond(session.machine.wrong_response(session.state), now + 50)

    assert session.phase == PHASE_FEEDBACK
    assert session.state.lives == 2
    assert session.state.trials[-1].correct is False
    # уровень засчитан как попытка
    assert session.state.level == 2


def test_timeout_costs_a_life(advance_to) -> None:
    session = _session()
    session.start(0)
    now = advance_to(session, PHASE_WAIT)
    session.update(now + 6000)

    trial = session.state.trials[-1]
    assert trial.timed_out
    assert not trial.correct
    assert trial.reaction_time_ms == 6000
    assert session.state.lives == 2


def test_clicks_outside_grid_or_window_are_ignored(advance_to) -> None:
    session = _session()
    session.start(0)

    showing = session.state
    session.respond(0, 10)
    assert session.state is showing

    now = advance_to(session, PHASE_WAIT)
    waiting = session.state
    for bad in (16, -1, "a", None, True):
        session.respond(bad, now + 10)
        assert session.state is waiting

    # ответ на чужой trial
    session.respond(waiting.sequence[0], now + 10, trial=5)
    assert session.state is waiting


def test_late_response_after_feedback_is_ignored(advance_to) -> None:
    session = _session()
    session.start(0)
    now = advance_to(session, PHASE_WAIT)
    session.respond(session.machine.wrong_response(session.state), now + 10)
    feedback = session.state
    session.respond(3, now + 20)
    assert session.state is feedback


def test_max_level_completes() -> None:
    machine = SequenceMemoryMachine(MemoryConfig(max_level=2))
    session = GameSession(machine, rng=random.Random(4), start_level=2)
    session.start(0)
    session.update(session.scheduler.next_due_ms())
    now = session.state.window_started_ms
    for cell in session.state.sequence:
        now += 100
        session.respond(cell, now)

    assert session.state.end_reason == "completed"
    assert session.summary.final_score == 20
    assert session.summary.level_reached == 2


def test_finished_session_rejects_start_and_summary_needs_result() -> None:
    machine = SequenceMemoryMachine()
    rng = random.Random(1)
    state = machine.initial_state()
    with pytest.raises(SessionStateError):
        machine.summarize(state, "s")

    started = machine.step(state, Start(now_ms=0), rng).state
    with pytest.raises(SessionStateError):
        machine.step(started, Start(now_ms=5), rng)

    finished = machine.finish(started, 10, "lives").state
    assert machine.step(finished, Respond(now_ms=20, value=1), rng).state is finished
    with pytest.raises(SessionStateError):
        machine.step(finished, Start(now_ms=30), rng)
