import random

from analytics.simulate import simulate_session
from game.session import GameSession
from game.state_machine import PHASE_FEEDBACK, PHASE_SHOWING, PHASE_WAIT
from game.tasks import LightningReflexesMachine


def _session(seed: int = 1, start_level: int = 1, **kwargs) -> GameSession:
    return GameSession(LightningReflexesMachine(), rng=random.Random(seed), start_level=start_level, **kwargs)


def _target(state, order=0):
    return next(item for item in state.items if item.is_target and item.order == order)


def test_round_waits_for_go_signal() -> None:
    session = _session()
    session.start(0)
    assert session.phase == PHASE_SHOWING
    assert 1000 <= session.scheduler.next_due_ms() <= 4000

    showing = session.state
    session.respond(_target(showing).item_id, 500)
    assert session.state is showing


def test_reflex_scoring_and_streak_bonus(advance_to) -> None:
    session = _session()
    session.start(0)

    now = advance_to(session, PHASE_WAIT)
    session.respond(_target(session.state).item_id, now + 300)
    assert session.state.score == 700
    assert session.state.level == 2
    assert session.phase == PHASE_FEEDBACK

    now = advance_to(session, PHASE_WAIT)
    session.respond(_target(session.state).item_id, now + 200)
    # 800 за скорость + 1 * 10 за серию до этого ответа
    assert session.state.score == 700 + 810
    assert session.state.best_streak == 2


def test_distractor_click_is_incorrect_but_round_goes_on(advance_to) -> None:
    session = _session(start_level=10)
    session.start(0)
    now = advance_to(session, PHASE_WAIT)

    first = _target(session.state, 0)
    session.respond(first.item_id, now + 300)
    score = session.state.score

    distractor = next(item for item in session.state.items if not item.is_target)
    session.respond(distractor.item_id, now + 600)
    state = session.state
    assert state.phase == PHASE_WAIT
    assert state.score == score
    assert state.streak == 0
    assert state.trials[-1].correct is False

    # уже найденная цель: ничего не происходит
    session.respond(first.item_id, now + 700)
    assert session.state is state


def test_bool_response_is_not_an_item_id(advance_to) -> None:
    session = _session(start_level=10)
    session.start(0)
    now = advance_to(session, PHASE_WAIT)
    waiting = session.state

    session.respond(True, now + 100)
    session.respond(False, now + 200)
    assert session.state is waiting


def test_timeout_keeps_level(advance_to) -> None:
    session = _session(start_level=5)
    session.start(0)
    now = advance_to(session, PHASE_WAIT)
    session.update(now + 4850)

    state = session.state
    assert state.phase == PHASE_FEEDBACK
    assert state.level == 5
    assert state.trials[-1].timed_out
    assert state.level_history[-1]["completed"] is False


def test_sequence_mode_requires_order(advance_to) -> None:
    session = _session(start_level=60)
    session.start(0)
    now = advance_to(session, PHASE_WAIT)
    assert session.state.ordered

    session.respond(_target(session.state, 1).item_id, now + 300)
    assert session.state.trials[-1].correct is False
    assert len(session.state.remaining) == 7

    session.respond(_target(session.state, 0).item_id, now + 600)
    assert session.state.trials[-1].correct is True
    assert len(session.state.remaining) == 6


def test_pattern_mode_previews_targets(advance_to) -> None:
    session = _session(start_level=40)
    session.start(0)
    go = session.scheduler.next_due_ms()
    session.update(go)

    assert session.phase == PHASE_SHOWING
    assert session.state.stage == "preview"
    assert session.scheduler.next_due_ms() == go + 1100
    session.update(go + 1100)
    assert session.phase == PHASE_WAIT


def test_full_session_reports_metrics() -> None:
    session = simulate_session("reaction", seed=11, accuracy=1.0, rt_ms=300, session_id="r-1")
    summary = session.summary
    assert summary.end_reason == "completed"
    assert summary.metrics["levelsCompleted"] == 10
    assert summary.level_reached == 10
    assert len(summary.metrics["levelHistory"]) == 10
    assert summary.accuracy == 100.0
    assert set(summary.metrics) >= {
        "levelsCompleted",
        "avgAccuracy",
        "avgReactionTime",
        "bestReactionTime",
        "bestStreak",
        "levelHistory",
        "reactionTimes",
    }
