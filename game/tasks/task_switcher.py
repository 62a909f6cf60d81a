import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from adaptation.levels import switch_trial_spec
from analytics import metrics
from config.settings import SwitchConfig
from data.models import GAME_TASK_SWITCHER
from game.rules import (
    RESPONSE_CLICK,
    RESPONSE_NO_CLICK,
    RESPONSES,
    TASK_RULES,
    SwitchStimulus,
    expected_response,
    is_correct_response,
)
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
from game.trial_generator import generate_switch_stimulus, select_next_rule


TIMER_NEXT_TRIAL = "next_trial"
TIMER_STIMULUS_TIMEOUT = "stimulus_timeout"


@dataclass(frozen=True)
class SwitchState(SessionState):
    rule: str = TASK_RULES[0].rule_id
    stimulus: Optional[SwitchStimulus] = None
    is_switch: bool = False
    trial_in_level: int = 0
    levels_played: int = 0
    highest_level: int = 0
    task_switches: int = 0
    errors: int = 0


class TaskSwitcherMachine(GameMachine):
    """
    Task Switcher: отвечать "click"/"no-click" по активному правилу.

    Правило может смениться на любом trial-е (вероятность растёт с уровнем).
    Trial считается switch, если правило отличается от правила прошлого trial-а.
    """

    game_id = GAME_TASK_SWITCHER
    state_cls = SwitchState

    def __init__(self, cfg: SwitchConfig = SwitchConfig()) -> None:
        self.cfg = cfg

    def on_start(self, state: SwitchState, event: Start, rng: random.Random) -> Step:
        return self._cue_level(state, event.now_ms)

    def on_respond(self, state: SwitchState, event: Respond, rng: random.Random) -> Step:
        if event.value not in RESPONSES:
            return Step(state)
        correct = is_correct_response(state.rule, state.stimulus, event.value)
        return self._resolve(state, event.now_ms, correct)

    def on_timer(self, state: SwitchState, event: TimerFired, rng: random.Random) -> Step:
        if event.kind == TIMER_NEXT_TRIAL and state.phase in (PHASE_SHOWING, PHASE_FEEDBACK):
            return self._present_trial(state, event.now_ms, rng)
        if event.kind == TIMER_STIMULUS_TIMEOUT and state.phase == PHASE_WAIT:
            # нет ответа за время показа = "no-click", оценивается по правилу
            correct = is_correct_response(state.rule, state.stimulus, RESPONSE_NO_CLICK)
            return self._resolve(state, event.now_ms, correct=correct, timed_out=True)
        return Step(state)

    def _cue_level(self, state: SwitchState, now_ms: int) -> Step:
        return self.open_window(
            state, PHASE_SHOWING, TIMER_NEXT_TRIAL, self.cfg.cue_ms, now_ms, trial_in_level=0, stimulus=None
        )

    def _present_trial(self, state: SwitchState, now_ms: int, rng: random.Random) -> Step:
        spec = switch_trial_spec(state.level)
        rule = select_next_rule(spec, rng, state.rule)
        stimulus = generate_switch_stimulus(rng)
        # первый trial сессии не может быть switch: сравнивать не с чем
        is_switch = bool(state.trials) and rule != state.trials[-1].rule
        return self.open_window(
            state,
            PHASE_WAIT,
            TIMER_STIMULUS_TIMEOUT,
            spec.exposure_ms,
            now_ms,
            rule=rule,
            stimulus=stimulus,
            is_switch=is_switch,
            task_switches=state.task_switches + (1 if is_switch else 0),
        )

    def _resolve(self, state: SwitchState, now_ms: int, correct: bool, timed_out: bool = False) -> Step:
        spec = switch_trial_spec(state.level)
        rt = now_ms - state.window_started_ms
        points = 0
        if correct:
            points = reflex_points(
                rt,
                spec.speed_multiplier,
                state.streak,
                self.cfg.base_points,
                self.cfg.min_points,
                self.cfg.streak_bonus,
            )
        state = self.record(state, now_ms, correct, rt, timed_out=timed_out, was_task_switch=state.is_switch, rule=state.rule)
        state = replace(
            state,
            score=state.score + points,
            errors=state.errors + (0 if correct else 1),
            trial_in_level=state.trial_in_level + 1,
            highest_level=max(state.highest_level, state.level),
            stimulus=None,
        )

        if state.trial_in_level < spec.trials_per_level:
            return self.open_window(state, PHASE_FEEDBACK, TIMER_NEXT_TRIAL, self.cfg.feedback_ms, now_ms)

        state = replace(state, levels_played=state.levels_played + 1)
        if state.levels_played >= self.cfg.levels_per_session:
            return self.finish(state, now_ms, END_COMPLETED)
        return self._cue_level(replace(state, level=min(state.level + 1, self.cfg.max_level)), now_ms)

    def level_reached(self, state: SwitchState) -> int:
        return state.highest_level or state.level

    def _rts(self, state: SwitchState):
        return [t.reaction_time_ms for t in state.trials]

    def derive(self, state: SwitchState) -> Dict[str, Any]:
        rts = self._rts(state)
        avg_rt = metrics.mean(rts)
        answered = [t.reaction_time_ms for t in state.trials if t.correct]
        return {
            "avgReactionTime": avg_rt,
            "bestReactionTime": min(answered) if answered else None,
            "switchCost": metrics.switch_cost(state.trials),
            "cognitiveFlexibility": metrics.cognitive_flexibility(state.errors, avg_rt),
            "taskSwitches": state.task_switches,
            "levelProgress": metrics.level_progress_percent(self.level_reached(state), self.cfg.max_level),
        }

    def completion_metrics(self, state: SwitchState) -> Dict[str, Any]:
        derived = self.derive(state)
        correct = sum(1 for t in state.trials if t.correct)
        return {
            "level": self.level_reached(state),
            "accuracy": metrics.accuracy(correct, len(state.trials)),
            "avgReactionTime": derived["avgReactionTime"],
            "bestReactionTime": derived["bestReactionTime"],
            "taskSwitches": state.task_switches,
            "switchCost": derived["switchCost"],
            "cognitiveFlexibility": derived["cognitiveFlexibility"],
            "errors": state.errors,
            "bestStreak": state.best_streak,
            "totalSessionTime": max(0, state.ended_ms - state.started_ms),
        }

    def correct_response(self, state: SwitchState) -> Any:
        if state.phase != PHASE_WAIT or state.stimulus is None:
            return None
        return expected_response(state.rule, state.stimulus)

    def wrong_response(self, state: SwitchState) -> Any:
        expected = self.correct_response(state)
        if expected is None:
            return None
        return RESPONSE_NO_CLICK if expected == RESPONSE_CLICK else RESPONSE_CLICK
