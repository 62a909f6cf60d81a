import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from adaptation.levels import reaction_trial_spec
from analytics import metrics
from config.settings import ReactionConfig
from data.models import GAME_REACTION, FieldItem
from game.scoring import reflex_points
from game.state_machine import (
    END_COMPLETED,
    PHASE_FEEDBACK,
    PHASE_SHOWING,
    PHASE_WAIT,
    Respond,
    Start,
    Step,
    TimerFired,
)
from game.tasks.base import GameMachine, SessionState
from game.trial_generator import generate_reaction_field


TIMER_GO = "go"
TIMER_PREVIEW_DONE = "preview_done"
TIMER_ROUND_TIMEOUT = "round_timeout"
TIMER_NEXT_ROUND = "next_round"

STAGE_WAITING = "waiting"
STAGE_PREVIEW = "preview"


@dataclass(frozen=True)
class ReactionState(SessionState):
    stage: str = ""
    mode: str = ""
    items: Tuple[FieldItem, ...] = ()
    remaining: Tuple[int, ...] = ()
    ordered: bool = False
    next_order: int = 0
    preview_ms: int = 0
    last_click_ms: int = 0
    round_clicks: int = 0
    round_hits: int = 0
    round_rts: Tuple[int, ...] = ()
    rounds_played: int = 0
    levels_completed: int = 0
    level_history: Tuple[Dict[str, Any], ...] = ()


class LightningReflexesMachine(GameMachine):
    """
    Lightning Reflexes: после случайной паузы кликнуть все цели, не трогая помехи.

    Один раунд = один уровень. Все цели найдены -> уровень +1,
    таймаут -> уровень остаётся. После rounds_per_session раундов: конец.
    """

    game_id = GAME_REACTION
    state_cls = ReactionState

    def __init__(self, cfg: ReactionConfig = ReactionConfig()) -> None:
        self.cfg = cfg

    def on_start(self, state: ReactionState, event: Start, rng: random.Random) -> Step:
        return self._start_round(state, event.now_ms, rng)

    def on_respond(self, state: ReactionState, event: Respond, rng: random.Random) -> Step:
        item = self._find_clickable(state, event.value)
        if item is None:
            return Step(state)

        now_ms = event.now_ms
        rt = now_ms - state.last_click_ms
        in_order = not state.ordered or item.order == state.next_order
        if item.is_target and in_order:
            spec = reaction_trial_spec(state.level)
            points = reflex_points(
                rt,
                spec.speed_multiplier,
                state.streak,
                self.cfg.base_points,
                self.cfg.min_points,
                self.cfg.streak_bonus,
            )
            state = self.record(state, now_ms, True, rt)
            state = replace(
                state,
                score=state.score + points,
                remaining=tuple(i for i in state.remaining if i != item.item_id),
                next_order=state.next_order + 1,
                round_hits=state.round_hits + 1,
                round_rts=state.round_rts + (rt,),
            )
        else:
            state = self.record(state, now_ms, False, rt)

        state = replace(state, round_clicks=state.round_clicks + 1, last_click_ms=now_ms)
        if not state.remaining:
            return self._end_round(state, now_ms, cleared=True)
        return Step(state)

    def on_timer(self, state: ReactionState, event: TimerFired, rng: random.Random) -> Step:
        if state.phase == PHASE_SHOWING:
            if event.kind == TIMER_GO and state.stage == STAGE_WAITING:
                if state.preview_ms > 0:
                    return self.open_window(
                        state, PHASE_SHOWING, TIMER_PREVIEW_DONE, state.preview_ms, event.now_ms, stage=STAGE_PREVIEW
                    )
                return self._open_input(state, event.now_ms)
            if event.kind == TIMER_PREVIEW_DONE and state.stage == STAGE_PREVIEW:
                return self._open_input(state, event.now_ms)
        if event.kind == TIMER_ROUND_TIMEOUT and state.phase == PHASE_WAIT:
            state = self.record(state, event.now_ms, False, event.now_ms - state.last_click_ms, timed_out=True)
            return self._end_round(state, event.now_ms, cleared=False)
        if event.kind == TIMER_NEXT_ROUND and state.phase == PHASE_FEEDBACK:
            return self._start_round(state, event.now_ms, rng)
        return Step(state)

    def _find_clickable(self, state: ReactionState, item_id: Any) -> Optional[FieldItem]:
        if isinstance(item_id, bool):
            # True == 1 в Python, но это не id объекта
            return None
        for item in state.items:
            if item.item_id != item_id:
                continue
            if item.is_target and item.item_id not in state.remaining:
                # уже найденная цель
                return None
            return item
        return None

    def _start_round(self, state: ReactionState, now_ms: int, rng: random.Random) -> Step:
        spec = reaction_trial_spec(state.level)
        field = generate_reaction_field(spec, rng, self.cfg)
        return self.open_window(
            state,
            PHASE_SHOWING,
            TIMER_GO,
            field.wait_ms,
            now_ms,
            stage=STAGE_WAITING,
            mode=spec.mode,
            items=field.items,
            remaining=tuple(item.item_id for item in field.items if item.is_target),
            ordered=field.ordered,
            next_order=0,
            preview_ms=field.preview_ms,
            round_clicks=0,
            round_hits=0,
            round_rts=(),
        )

    def _open_input(self, state: ReactionState, now_ms: int) -> Step:
        spec = reaction_trial_spec(state.level)
        return self.open_window(
            state, PHASE_WAIT, TIMER_ROUND_TIMEOUT, spec.time_limit_ms, now_ms, stage="", last_click_ms=now_ms
        )

    def _end_round(self, state: ReactionState, now_ms: int, cleared: bool) -> Step:
        entry = {
            "level": state.level,
            "mode": state.mode,
            "completed": cleared,
            "accuracy": metrics.accuracy(state.round_hits, state.round_clicks),
            "avgReactionTime": metrics.mean(state.round_rts),
            "timeMs": now_ms - state.window_started_ms,
        }
        level = min(state.level + 1, self.cfg.max_level) if cleared else state.level
        state = replace(
            state,
            rounds_played=state.rounds_played + 1,
            levels_completed=state.levels_completed + (1 if cleared else 0),
            level_history=state.level_history + (entry,),
        )
        if state.rounds_played >= self.cfg.rounds_per_session:
            return self.finish(state, now_ms, END_COMPLETED)
        return self.open_window(state, PHASE_FEEDBACK, TIMER_NEXT_ROUND, self.cfg.feedback_ms, now_ms, level=level)

    def _reaction_times(self, state: ReactionState):
        return [t.reaction_time_ms for t in state.trials if t.correct]

    def level_reached(self, state: ReactionState) -> int:
        if not state.level_history:
            return state.level
        return max(entry["level"] for entry in state.level_history)

    def derive(self, state: ReactionState) -> Dict[str, Any]:
        rts = self._reaction_times(state)
        return {
            "avgReactionTime": metrics.mean(rts),
            "bestReactionTime": min(rts) if rts else None,
            "consistencyScore": metrics.consistency_score(rts),
            "avgAccuracy": metrics.mean([entry["accuracy"] for entry in state.level_history]),
            "levelProgress": metrics.level_progress_percent(self.level_reached(state), self.cfg.max_level),
        }

    def completion_metrics(self, state: ReactionState) -> Dict[str, Any]:
        rts = self._reaction_times(state)
        correct = sum(1 for t in state.trials if t.correct)
        return {
            "levelsCompleted": state.levels_completed,
            "avgAccuracy": metrics.mean([entry["accuracy"] for entry in state.level_history]),
            "avgReactionTime": metrics.mean(rts),
            "bestReactionTime": min(rts) if rts else None,
            "bestStreak": state.best_streak,
            "levelHistory": [dict(entry) for entry in state.level_history],
            "reactionTimes": rts,
            "level": self.level_reached(state),
            "accuracy": metrics.accuracy(correct, len(state.trials)),
        }

    def correct_response(self, state: ReactionState) -> Any:
        if state.phase != PHASE_WAIT:
            return None
        for item in state.items:
            if not item.is_target or item.item_id not in state.remaining:
                continue
            if state.ordered and item.order != state.next_order:
                continue
            return item.item_id
        return None

    def wrong_response(self, state: ReactionState) -> Any:
        if state.phase != PHASE_WAIT:
            return None
        for item in state.items:
            if not item.is_target:
                return item.item_id
        return None
