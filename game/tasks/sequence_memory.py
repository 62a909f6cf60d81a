import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from adaptation.levels import memory_trial_spec
from analytics import metrics
from config.settings import MemoryConfig
from data.models import GAME_MEMORY
from game.scoring import memory_points
from game.state_machine import (
    END_COMPLETED,
    END_LIVES,
    PHASE_FEEDBACK,
    PHASE_SHOWING,
    PHASE_WAIT,
    Respond,
    Start,
    Step,
    TimerFired,
)
from game.tasks.base import GameMachine, SessionState
from game.trial_generator import generate_sequence


TIMER_SEQUENCE_SHOWN = "sequence_shown"
TIMER_INPUT_TIMEOUT = "input_timeout"
TIMER_NEXT_LEVEL = "next_level"


@dataclass(frozen=True)
class MemoryState(SessionState):
    lives: int = 3
    sequence: Tuple[int, ...] = ()
    cell_display_ms: int = 0
    progress: Tuple[int, ...] = ()
    level_times: Tuple[Tuple[int, int], ...] = ()  # (level, ms) для пройденных уровней


class SequenceMemoryMachine(GameMachine):
    """
    Memory Matrix: повторить последовательность подсвеченных клеток 4x4.

    SHOWING (показ клеток) -> WAIT (клики) -> FEEDBACK -> следующий уровень.
    Ошибка или таймаут забирают жизнь; без жизней: конец ("lives").
    """

    game_id = GAME_MEMORY
    state_cls = MemoryState

    def __init__(self, cfg: MemoryConfig = MemoryConfig()) -> None:
        self.cfg = cfg

    def initial_state(self, start_level: int = 1) -> MemoryState:
        return MemoryState(level=max(1, int(start_level)), lives=self.cfg.lives)

    def on_start(self, state: MemoryState, event: Start, rng: random.Random) -> Step:
        return self._show_sequence(state, event.now_ms, rng)

    def on_respond(self, state: MemoryState, event: Respond, rng: random.Random) -> Step:
        cell = event.value
        cells_total = self.cfg.grid_size * self.cfg.grid_size
        if isinstance(cell, bool) or not isinstance(cell, int) or not 0 <= cell < cells_total:
            # клик мимо сетки
            return Step(state)

        progress = state.progress + (cell,)
        expected = state.sequence[len(progress) - 1]
        if cell != expected:
            return self._resolve(replace(state, progress=progress), event.now_ms, correct=False)
        if len(progress) == len(state.sequence):
            return self._resolve(replace(state, progress=progress), event.now_ms, correct=True)
        return Step(replace(state, progress=progress))

    def on_timer(self, state: MemoryState, event: TimerFired, rng: random.Random) -> Step:
        if event.kind == TIMER_SEQUENCE_SHOWN and state.phase == PHASE_SHOWING:
            spec = memory_trial_spec(state.level, self.cfg)
            return self.open_window(state, PHASE_WAIT, TIMER_INPUT_TIMEOUT, spec.input_time_limit_ms, event.now_ms)
        if event.kind == TIMER_INPUT_TIMEOUT and state.phase == PHASE_WAIT:
            return self._resolve(state, event.now_ms, correct=False, timed_out=True)
        if event.kind == TIMER_NEXT_LEVEL and state.phase == PHASE_FEEDBACK:
            return self._show_sequence(state, event.now_ms, rng)
        return Step(state)

    def _show_sequence(self, state: MemoryState, now_ms: int, rng: random.Random) -> Step:
        spec = memory_trial_spec(state.level, self.cfg)
        sequence = generate_sequence(spec, rng)
        return self.open_window(
            state,
            PHASE_SHOWING,
            TIMER_SEQUENCE_SHOWN,
            spec.cell_display_ms * spec.sequence_length,
            now_ms,
            sequence=sequence.cells,
            cell_display_ms=spec.cell_display_ms,
            progress=(),
        )

    def _resolve(self, state: MemoryState, now_ms: int, correct: bool, timed_out: bool = False) -> Step:
        elapsed = now_ms - state.window_started_ms
        state = self.record(state, now_ms, correct, elapsed, timed_out=timed_out)
        if correct:
            state = replace(
                state,
                score=state.score + memory_points(state.level, self.cfg.points_per_level),
                level_times=state.level_times + ((state.level, elapsed),),
            )
        else:
            state = replace(state, lives=state.lives - 1)

        if state.lives <= 0:
            return self.finish(state, now_ms, END_LIVES, lives=0)
        if state.level >= self.cfg.max_level:
            return self.finish(state, now_ms, END_COMPLETED)

        # уровень засчитан как "попытка" даже при ошибке, идём дальше
        delay = self.cfg.level_delay_ms if correct else self.cfg.mistake_delay_ms
        return self.open_window(state, PHASE_FEEDBACK, TIMER_NEXT_LEVEL, delay, now_ms, level=state.level + 1)

    def _fastest_level(self, state: MemoryState) -> Optional[Dict[str, int]]:
        if not state.level_times:
            return None
        level, ms = min(state.level_times, key=lambda item: item[1])
        return {"level": level, "time": ms}

    def derive(self, state: MemoryState) -> Dict[str, Any]:
        times = [ms for _, ms in state.level_times]
        fastest = self._fastest_level(state)
        return {
            "averageTimePerLevel": metrics.mean(times),
            "fastestRoundMs": fastest["time"] if fastest else None,
            "roundTimes": times,
            "consistencyScore": metrics.consistency_score(times),
            "levelProgress": metrics.level_progress_percent(self.level_reached(state), self.cfg.max_level),
        }

    def completion_metrics(self, state: MemoryState) -> Dict[str, Any]:
        times = [ms for _, ms in state.level_times]
        correct = sum(1 for t in state.trials if t.correct)
        return {
            "level": self.level_reached(state),
            "levelTimes": times,
            "totalSessionTime": max(0, state.ended_ms - state.started_ms),
            "averageTimePerLevel": metrics.mean(times),
            "fastestLevel": self._fastest_level(state),
            "livesRemaining": state.lives,
            "accuracy": metrics.accuracy(correct, len(state.trials)),
        }

    def correct_response(self, state: MemoryState) -> Any:
        if state.phase != PHASE_WAIT:
            return None
        return state.sequence[len(state.progress)]

    def wrong_response(self, state: MemoryState) -> Any:
        expected = self.correct_response(state)
        if expected is None:
            return None
        return (expected + 1) % (self.cfg.grid_size * self.cfg.grid_size)
