from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from analytics import metrics
from data.models import SessionSummary, TrialRecord
from game.state_machine import (
    PHASE_INSTRUCTIONS,
    PHASE_RESULT,
    PHASE_WAIT,
    Respond,
    ScheduleTimer,
    SessionStateError,
    Start,
    Step,
    TimerFired,
)


@dataclass(frozen=True)
class SessionState:
    phase: str = PHASE_INSTRUCTIONS
    token: int = 0
    level: int = 1
    score: int = 0
    streak: int = 0
    best_streak: int = 0
    trials: Tuple[TrialRecord, ...] = ()
    started_ms: int = 0
    window_started_ms: int = 0
    ended_ms: int = 0
    end_reason: Optional[str] = None

    @property
    def trial_index(self) -> int:
        return len(self.trials)


class GameMachine:
    """
    Машина состояний одной игры.

    Сама машина ничего не хранит: step(state, event, rng) берёт старое
    состояние и событие и возвращает новое состояние + таймеры.
    Хранит состояние и ставит таймеры GameSession (game/session.py).
    """

    game_id: str = "BASE"
    state_cls = SessionState
    # таймеры уровня всей сессии: не привязаны к token текущего окна
    session_timers: Tuple[str, ...] = ()

    def initial_state(self, start_level: int = 1) -> SessionState:
        return self.state_cls(level=max(1, int(start_level)))

    def step(self, state: SessionState, event: Any, rng: random.Random) -> Step:
        if state.phase == PHASE_RESULT:
            if isinstance(event, Start):
                raise SessionStateError(f"{self.game_id}: session already finished, reset it first")
            # всё, что пришло после конца, просто игнорируем
            return Step(state)

        if isinstance(event, Start):
            if state.phase != PHASE_INSTRUCTIONS:
                raise SessionStateError(f"{self.game_id}: session already started")
            return self.on_start(replace(state, started_ms=event.now_ms), event, rng)

        if isinstance(event, Respond):
            if state.phase != PHASE_WAIT:
                return Step(state)
            if event.trial is not None and event.trial != state.trial_index:
                return Step(state)
            return self.on_respond(state, event, rng)

        if isinstance(event, TimerFired):
            if event.kind not in self.session_timers and event.token != state.token:
                return Step(state)
            return self.on_timer(state, event, rng)

        raise SessionStateError(f"Unknown event: {event!r}")

    # --------------------------
    # Переопределяется в играх
    # --------------------------

    def on_start(self, state: SessionState, event: Start, rng: random.Random) -> Step:
        raise NotImplementedError

    def on_respond(self, state: SessionState, event: Respond, rng: random.Random) -> Step:
        raise NotImplementedError

    def on_timer(self, state: SessionState, event: TimerFired, rng: random.Random) -> Step:
        raise NotImplementedError

    def derive(self, state: SessionState) -> Dict[str, Any]:
        return {}

    def completion_metrics(self, state: SessionState) -> Dict[str, Any]:
        return {}

    def level_reached(self, state: SessionState) -> int:
        return state.level

    def correct_response(self, state: SessionState) -> Any:
        """Правильный ответ в текущем окне WAIT (для скриптового игрока и тестов)."""
        return None

    def wrong_response(self, state: SessionState) -> Any:
        return None

    # --------------------------
    # Общие помощники
    # --------------------------

    def open_window(self, state: SessionState, phase: str, kind: str, delay_ms: int, now_ms: int, **changes) -> Step:
        token = state.token + 1
        new_state = replace(state, phase=phase, token=token, window_started_ms=now_ms, **changes)
        return Step(new_state, (ScheduleTimer(kind=kind, delay_ms=max(0, int(delay_ms)), token=token),))

    def record(
        self,
        state: SessionState,
        now_ms: int,
        correct: bool,
        reaction_time_ms: float,
        timed_out: bool = False,
        **extra,
    ) -> SessionState:
        trial = TrialRecord(
            index=state.trial_index,
            timestamp_ms=now_ms,
            reaction_time_ms=max(0, int(reaction_time_ms)),
            correct=correct,
            level=state.level,
            timed_out=timed_out,
            **extra,
        )
        streak = state.streak + 1 if correct else 0
        return replace(
            state,
            trials=state.trials + (trial,),
            streak=streak,
            best_streak=max(state.best_streak, streak),
        )

    def finish(self, state: SessionState, now_ms: int, reason: str, **changes) -> Step:
        new_state = replace(
            state,
            phase=PHASE_RESULT,
            token=state.token + 1,
            ended_ms=now_ms,
            end_reason=reason,
            **changes,
        )
        return Step(new_state, finished=True)

    def summarize(self, state: SessionState, session_id: str) -> SessionSummary:
        if state.phase != PHASE_RESULT:
            raise SessionStateError(f"{self.game_id}: summary requested before the session ended ({state.phase})")
        correct = sum(1 for t in state.trials if t.correct)
        return SessionSummary(
            session_id=session_id,
            game_id=self.game_id,
            final_score=int(state.score),
            level_reached=self.level_reached(state),
            accuracy=metrics.accuracy(correct, len(state.trials)),
            total_duration_ms=max(0, state.ended_ms - state.started_ms),
            end_reason=state.end_reason or "",
            trials=state.trials,
            derived=self.derive(state),
            metrics=self.completion_metrics(state),
        )
