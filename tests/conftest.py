import pytest


def _advance_to(session, phase: str) -> int:
    """Fires timers one by one until the session reaches `phase`; returns the current time."""
    now = session.state.window_started_ms
    while session.phase != phase:
        due = session.scheduler.next_due_ms()
        assert due is not None, f"no pending timers, stuck in {session.phase}"
        now = due
        session.update(now)
    return now


@pytest.fixture
def advance_to():
    return _advance_to
