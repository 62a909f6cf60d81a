import random
from dataclasses import dataclass
from typing import List, Optional

from data.models import SessionSummary
from game.session import GameSession
from game.state_machine import PHASE_WAIT
from game.tasks import create_machine


FRAME_MS = 16
MAX_SESSION_MS = 30 * 60 * 1000


@dataclass
class ScriptedPlayer:
    """
    Бот-игрок для демо и тестов.

    Отвечает через rt_ms после открытия окна (или после своего прошлого клика),
    правильно: с вероятностью accuracy. Свой собственный rng, чтобы
    поведение игрока не сдвигало генерацию стимулов.
    """

    accuracy: float = 0.9
    rt_ms: int = 450
    rng: Optional[random.Random] = None

    def __post_init__(self) -> None:
        if self.rng is None:
            self.rng = random.Random(0)
        self._last_action_ms: int = 0
        self._token: int = -1

    def act(self, session: GameSession, now_ms: int) -> None:
        state = session.state
        if state.phase != PHASE_WAIT:
            return
        if state.token != self._token:
            # новое окно ввода
            self._token = state.token
            self._last_action_ms = state.window_started_ms
        if now_ms - self._last_action_ms < self.rt_ms:
            return

        self._last_action_ms = now_ms
        machine = session.machine
        if self.rng.random() < self.accuracy:
            value = machine.correct_response(state)
        else:
            value = machine.wrong_response(state)
            if value is None:
                value = machine.correct_response(state)
        if value is None:
            return
        session.respond(value, now_ms, trial=state.trial_index)


def simulate_session(
    game_id: str,
    seed: int = 1,
    accuracy: float = 0.9,
    rt_ms: int = 450,
    start_level: int = 1,
    session_id: Optional[str] = None,
    frame_ms: int = FRAME_MS,
    max_ms: int = MAX_SESSION_MS,
) -> GameSession:
    """Прогоняет одну сессию на симулированных часах (кадр = frame_ms)."""
    session = GameSession(
        create_machine(game_id),
        rng=random.Random(seed),
        start_level=start_level,
        session_id=session_id,
    )
    player = ScriptedPlayer(accuracy=accuracy, rt_ms=rt_ms, rng=random.Random(seed + 1))

    now_ms = 0
    session.start(now_ms)
    while not session.is_finished():
        now_ms += frame_ms
        if now_ms > max_ms:
            session.abandon()
            break
        session.update(now_ms)
        if session.is_finished():
            break
        player.act(session, now_ms)
    return session


def format_report(summary: SessionSummary) -> List[str]:
    lines = [
        f"game:      {summary.game_id}",
        f"session:   {summary.session_id}",
        f"end:       {summary.end_reason}",
        f"score:     {summary.final_score}",
        f"level:     {summary.level_reached}",
        f"accuracy:  {summary.accuracy:.1f}%",
        f"duration:  {summary.total_duration_ms / 1000:.1f}s",
        f"trials:    {len(summary.trials)}",
    ]
    for key, value in sorted(summary.derived.items()):
        if isinstance(value, float):
            lines.append(f"  {key}: {value:.2f}")
        elif not isinstance(value, list):
            lines.append(f"  {key}: {value}")
    return lines
