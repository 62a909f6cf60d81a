from dataclasses import dataclass
from typing import Any, Optional, Tuple


# Фаза сессии хранится строкой прямо в состоянии (это и есть "тег" состояния)
PHASE_INSTRUCTIONS = "INSTRUCTIONS"  # экран правил, сессия ещё не началась
PHASE_SHOWING = "SHOWING"            # показываем стимул / последовательность / ждём сигнала
PHASE_WAIT = "WAIT"                  # ждём ответ игрока (единственное окно ввода)
PHASE_FEEDBACK = "FEEDBACK"          # пауза после ответа / уровня
PHASE_RESULT = "RESULT"              # конец сессии, дальше только reset

END_LIVES = "lives"
END_COMPLETED = "completed"
END_TIMEOUT = "timeout"


class SessionStateError(RuntimeError):
    """Нарушение инварианта машины состояний (ошибка в коде, а не действие игрока)."""


@dataclass(frozen=True)
class Start:
    now_ms: int


@dataclass(frozen=True)
class Respond:
    """
    Ответ игрока.

    value: номер клетки, id объекта или "click"/"no-click", зависит от игры.
    trial: номер trial-а, к которому относится ответ (если ввод его знает).
    """
    now_ms: int
    value: Any
    trial: Optional[int] = None


@dataclass(frozen=True)
class TimerFired:
    now_ms: int
    kind: str
    token: int


@dataclass(frozen=True)
class ScheduleTimer:
    kind: str
    delay_ms: int
    token: int


@dataclass(frozen=True)
class Step:
    """Результат одного перехода: новое состояние + таймеры, которые надо поставить."""
    state: Any
    timers: Tuple[ScheduleTimer, ...] = ()
    finished: bool = False
