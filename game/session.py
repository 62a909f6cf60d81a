import logging
import random
import uuid
from typing import Any, Callable, Dict, Optional

from data.models import SessionSummary
from game.scheduler import Timer, TimerScheduler
from game.state_machine import Respond, SessionStateError, Start, Step, TimerFired
from game.tasks.base import GameMachine, SessionState


logger = logging.getLogger(__name__)

CompletionCallback = Callable[[int, Dict[str, Any]], None]


class GameSession:
    """
    Одна сессия одной игры: держит состояние машины и её таймеры.

    Машина (GameMachine) чистая, а здесь живёт всё изменяемое:
    текущее состояние, планировщик таймеров и итоговый SessionSummary.
    Внешний цикл (pygame или тест) просто вызывает update(now_ms) каждый кадр.
    """

    def __init__(
        self,
        machine: GameMachine,
        rng: Optional[random.Random] = None,
        on_complete: Optional[CompletionCallback] = None,
        start_level: int = 1,
        session_id: Optional[str] = None,
    ) -> None:
        self.machine = machine
        self.rng = rng or random.Random()
        self.on_complete = on_complete
        self.start_level = start_level
        self.session_id = session_id or uuid.uuid4().hex
        self.scheduler = TimerScheduler()
        self.state: SessionState = machine.initial_state(start_level)
        self.summary: Optional[SessionSummary] = None
        self.abandoned = False

    @property
    def game_id(self) -> str:
        return self.machine.game_id

    @property
    def phase(self) -> str:
        return self.state.phase

    def is_finished(self) -> bool:
        return self.summary is not None

    def start(self, now_ms: int) -> None:
        if self.abandoned:
            raise SessionStateError(f"{self.game_id}: session {self.session_id} was abandoned, reset it first")
        self._apply(self.machine.step(self.state, Start(now_ms=now_ms), self.rng), now_ms)

    def respond(self, value: Any, now_ms: int, trial: Optional[int] = None) -> None:
        if self.abandoned:
            return
        before = self.state
        self._apply(self.machine.step(self.state, Respond(now_ms=now_ms, value=value, trial=trial), self.rng), now_ms)
        if self.state is before:
            logger.debug("%s: ignored response %r in phase %s", self.game_id, value, before.phase)

    def update(self, now_ms: int) -> None:
        """Срабатывают все таймеры, чей срок наступил, по порядку и со своим временем."""
        while True:
            timer = self.scheduler.pop_due(now_ms)
            if timer is None:
                return
            self._fire(timer)

    def deliver(self, timer: Timer) -> None:
        """Для внешних циклов, которые сами держат таймеры (например, pygame.time.set_timer)."""
        if not self.scheduler.is_live(timer):
            logger.debug("%s: stale timer %s delivered, ignoring", self.game_id, timer.kind)
            return
        self.scheduler.discard(timer)
        self._fire(timer)

    def reset(self, start_level: Optional[int] = None, session_id: Optional[str] = None) -> None:
        self.scheduler.cancel_all()
        if start_level is not None:
            self.start_level = start_level
        self.state = self.machine.initial_state(self.start_level)
        self.summary = None
        self.abandoned = False
        self.session_id = session_id or uuid.uuid4().hex

    def abandon(self) -> None:
        # уход со страницы: таймеры гасим, результат не отправляем
        self.scheduler.cancel_all()
        self.abandoned = True
        logger.info("%s: session %s abandoned in phase %s", self.game_id, self.session_id, self.state.phase)

    def _fire(self, timer: Timer) -> None:
        if self.abandoned:
            return
        event = TimerFired(now_ms=timer.due_ms, kind=timer.kind, token=timer.token)
        self._apply(self.machine.step(self.state, event, self.rng), timer.due_ms)

    def _apply(self, step: Step, now_ms: int) -> None:
        self.state = step.state
        for effect in step.timers:
            self.scheduler.schedule(effect.kind, now_ms + effect.delay_ms, effect.token)
        if step.finished:
            self._finish()

    def _finish(self) -> None:
        if self.summary is not None:
            raise SessionStateError(f"{self.game_id}: session {self.session_id} completed twice")
        self.scheduler.cancel_all()
        self.summary = self.machine.summarize(self.state, self.session_id)
        logger.info(
            "%s: session %s finished (%s), score=%s level=%s",
            self.game_id,
            self.session_id,
            self.summary.end_reason,
            self.summary.final_score,
            self.summary.level_reached,
        )
        if self.on_complete is not None:
            self.on_complete(self.summary.final_score, dict(self.summary.metrics))
