import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple

from adaptation.levels import attention_trial_spec
from analytics import metrics
from config.settings import AttentionConfig
from data.models import GAME_ATTENTION, FieldItem
from game.scoring import attention_score
from game.state_machine import (
    END_COMPLETED,
    END_TIMEOUT,
    PHASE_FEEDBACK,
    PHASE_WAIT,
    Respond,
    ScheduleTimer,
    Start,
    Step,
    TimerFired,
)
from game.tasks.base import GameMachine, SessionState
from game.trial_generator import generate_attention_round


TIMER_SESSION_TIMEOUT = "session_timeout"
TIMER_NEXT_ROUND = "next_round"


@dataclass(frozen=True)
class AttentionState(SessionState):
    round: int = 0
    items: Tuple[FieldItem, ...] = ()
    found: Tuple[int, ...] = ()
    correct_clicks: int = 0
    total_clicks: int = 0
    distractor_clicks: int = 0
    last_click_ms: int = 0
    round_times: Tuple[int, ...] = ()


class FocusFilterMachine(GameMachine):
    """
    Focus Filter: 3 раунда по 8 объектов, кликать только цели.

    +10 за цель, -5 за помеху (счёт не уходит ниже 0).
    Общий таймер 30 секунд на всю сессию.
    """

    game_id = GAME_ATTENTION
    state_cls = AttentionState
    session_timers = (TIMER_SESSION_TIMEOUT,)

    def __init__(self, cfg: AttentionConfig = AttentionConfig()) -> None:
        self.cfg = cfg

    def on_start(self, state: AttentionState, event: Start, rng: random.Random) -> Step:
        step = self._start_round(state, event.now_ms, rng)
        deadline = ScheduleTimer(kind=TIMER_SESSION_TIMEOUT, delay_ms=self.cfg.session_ms, token=0)
        return replace(step, timers=(deadline,) + step.timers)

    def on_respond(self, state: AttentionState, event: Respond, rng: random.Random) -> Step:
        if isinstance(event.value, bool):
            return Step(state)
        item = next((i for i in state.items if i.item_id == event.value), None)
        if item is None or item.item_id in state.found:
            return Step(state)

        now_ms = event.now_ms
        state = self.record(state, now_ms, item.is_target, now_ms - state.last_click_ms)
        state = replace(
            state,
            score=attention_score(state.score, item.is_target, self.cfg.hit_points, self.cfg.miss_penalty),
            total_clicks=state.total_clicks + 1,
            correct_clicks=state.correct_clicks + (1 if item.is_target else 0),
            distractor_clicks=state.distractor_clicks + (0 if item.is_target else 1),
            found=state.found + ((item.item_id,) if item.is_target else ()),
            last_click_ms=now_ms,
        )

        targets_left = [i for i in state.items if i.is_target and i.item_id not in state.found]
        if targets_left:
            return Step(state)

        state = replace(state, round_times=state.round_times + (now_ms - state.window_started_ms,))
        if state.round >= self.cfg.rounds:
            return self.finish(state, now_ms, END_COMPLETED)
        return self.open_window(state, PHASE_FEEDBACK, TIMER_NEXT_ROUND, self.cfg.round_delay_ms, now_ms)

    def on_timer(self, state: AttentionState, event: TimerFired, rng: random.Random) -> Step:
        if event.kind == TIMER_SESSION_TIMEOUT:
            return self.finish(state, event.now_ms, END_TIMEOUT)
        if event.kind == TIMER_NEXT_ROUND and state.phase == PHASE_FEEDBACK:
            return self._start_round(state, event.now_ms, rng)
        return Step(state)

    def _start_round(self, state: AttentionState, now_ms: int, rng: random.Random) -> Step:
        spec = attention_trial_spec(state.round + 1, self.cfg)
        attention_round = generate_attention_round(spec, rng)
        # окно ввода открыто весь раунд, отдельного таймаута у раунда нет
        new_state = replace(
            state,
            phase=PHASE_WAIT,
            token=state.token + 1,
            window_started_ms=now_ms,
            last_click_ms=now_ms,
            round=spec.round_index,
            items=attention_round.items,
            found=(),
        )
        return Step(new_state)

    def level_reached(self, state: AttentionState) -> int:
        return len(state.round_times)

    def derive(self, state: AttentionState) -> Dict[str, Any]:
        elapsed = max(0, state.ended_ms - state.started_ms)
        return {
            "consistencyScore": metrics.consistency_score(state.round_times),
            "focusEfficiency": metrics.focus_efficiency(state.correct_clicks, state.total_clicks, elapsed),
            "fastestRoundMs": min(state.round_times) if state.round_times else None,
            "roundTimes": list(state.round_times),
            "averageTimePerTarget": metrics.safe_div(elapsed, state.correct_clicks),
        }

    def completion_metrics(self, state: AttentionState) -> Dict[str, Any]:
        derived = self.derive(state)
        return {
            "accuracy": metrics.accuracy(state.correct_clicks, state.total_clicks),
            "correctClicks": state.correct_clicks,
            "totalClicks": state.total_clicks,
            "roundsCompleted": len(state.round_times),
            "roundTimes": list(state.round_times),
            "consistencyScore": derived["consistencyScore"],
            "focusEfficiency": derived["focusEfficiency"],
            "fastestRound": derived["fastestRoundMs"],
            "averageTimePerTarget": derived["averageTimePerTarget"],
            "totalTargetsFound": state.correct_clicks,
            "totalDistractorsClicked": state.distractor_clicks,
        }

    def correct_response(self, state: AttentionState) -> Any:
        if state.phase != PHASE_WAIT:
            return None
        for item in state.items:
            if item.is_target and item.item_id not in state.found:
                return item.item_id
        return None

    def wrong_response(self, state: AttentionState) -> Any:
        if state.phase != PHASE_WAIT:
            return None
        for item in state.items:
            if not item.is_target:
                return item.item_id
        return None
