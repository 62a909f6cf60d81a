import random

import pytest

from game.session import GameSession
from game.state_machine import PHASE_RESULT, PHASE_SHOWING, SessionStateError
from game.tasks import SequenceMemoryMachine


def test_update_fires_chained_timers_at_their_due_time() -> None:
    calls = []
    session = GameSession(
        SequenceMemoryMachine(),
        rng=random.Random(1),
        on_complete=lambda score, payload: calls.append(score),
    )
    session.start(0)
    session.update(100000)

    summary = session.summary
    assert session.phase == PHASE_RESULT
    assert summary.end_reason == "lives"
    assert [t.timestamp_ms for t in summary.trials] == [7794, 16582, 25364]
    assert all(t.timed_out for t in summary.trials)
    assert summary.total_duration_ms == 25364
    assert calls == [0]


def test_on_complete_fires_once() -> None:
    calls = []
    session = GameSession(
        SequenceMemoryMachine(),
        rng=random.Random(1),
        on_complete=lambda score, payload: calls.append(score),
    )
    session.start(0)
    session.update(100000)
    session.update(200000)
    session.respond(1, 200001)

    assert len(calls) == 1
    assert session.scheduler.pending_count() == 0


def test_stale_timer_after_reset_is_discarded() -> None:
    session = GameSession(SequenceMemoryMachine(), rng=random.Random(1))
    session.start(0)
    old_timer = session.scheduler.pop_due(session.scheduler.next_due_ms())
    assert old_timer is not None

    session.reset()
    session.start(0)
    before = session.state
    session.deliver(old_timer)

    assert session.state is before
    assert session.phase == PHASE_SHOWING


def test_delivered_timer_does_not_fire_again_on_update() -> None:
    session = GameSession(SequenceMemoryMachine(), rng=random.Random(1))
    session.start(0)
    timer = session.scheduler.pending()[0]

    session.deliver(timer)
    after = session.state
    assert after.phase != PHASE_SHOWING
    assert timer not in session.scheduler.pending()

    session.update(timer.due_ms)
    assert session.state is after


def test_abandon_cancels_everything() -> None:
    calls = []
    session = GameSession(
        SequenceMemoryMachine(),
        rng=random.Random(1),
        on_complete=lambda score, payload: calls.append(score),
    )
    session.start(0)
    session.abandon()
    session.update(100000)
    session.respond(1, 100001)

    assert calls == []
    assert session.summary is None
    assert session.scheduler.pending_count() == 0
    with pytest.raises(SessionStateError):
        session.start(100002)

    session.reset()
    session.start(0)
    assert session.phase == PHASE_SHOWING


def test_same_seed_replays_same_session() -> None:
    def play():
        session = GameSession(SequenceMemoryMachine(), rng=random.Random(77), session_id="same")
        session.start(0)
        session.update(100000)
        return session.summary.to_dict()

    assert play() == play()
