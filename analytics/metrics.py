import math
from typing import Any, Iterable, List, Optional, Sequence


MEMORY_MAX_LEVEL = 200
DEFAULT_MAX_LEVEL = 100


def safe_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def safe_div(num: float, den: float) -> float:
    if not den:
        return 0.0
    return safe_number(num / den)


def round_half_up(value: float) -> int:
    return int(math.floor(safe_number(value) + 0.5))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return safe_div(sum(values), len(values))


def stddev(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((x - avg) ** 2 for x in values) / len(values))


def accuracy(correct: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return max(0.0, min(100.0, correct / total * 100))


def consistency_score(round_times: Sequence[float]) -> float:
    if len(round_times) < 2:
        return 100.0
    return max(0.0, 100 - safe_div(stddev(round_times), mean(round_times)) * 100)


def focus_efficiency(correct: int, total: int, elapsed_ms: float) -> float:
    acc = safe_div(correct, total)
    speed = 0.0
    if correct > 0 and elapsed_ms > 0:
        # целей в секунду
        speed = 1000 / (elapsed_ms / correct)
    return min(100.0, (acc * 0.7 + speed * 0.3) * 100)


def cognitive_flexibility(error_count: int, avg_reaction_time_ms: float) -> float:
    return max(0.0, 100 - error_count * 10 - safe_number(avg_reaction_time_ms) / 50)


def level_progress_percent(current_level: int, max_level: int) -> float:
    return safe_div(current_level, max_level) * 100


def max_level_for(game_id: str) -> int:
    return MEMORY_MAX_LEVEL if game_id == "memory" else DEFAULT_MAX_LEVEL


def running_mean(old_mean: float, old_count: int, new_value: float) -> float:
    old_count = max(0, int(old_count))
    return safe_div(safe_number(old_mean) * old_count + safe_number(new_value), old_count + 1)


def improvement_percent(old_mean: float, old_count: int, new_mean: float) -> Optional[float]:
    """
    Насколько упало среднее время реакции, в процентах.

    Без прошлых сессий сравнивать не с чем -> None (а не сравнение с заглушкой 999 мс).
    """
    if old_count <= 0 or old_mean <= 0:
        return None
    return safe_div(old_mean - new_mean, old_mean) * 100


def switch_cost(trials: Iterable[Any]) -> float:
    """
    Средняя разница RT между switch-trial и trial-ом прямо перед ним.

    trials: упорядоченные записи с полями reaction_time_ms и was_task_switch.
    """
    costs: List[float] = []
    prev_rt: Optional[float] = None
    for trial in trials:
        rt = safe_number(trial.reaction_time_ms)
        if trial.was_task_switch and prev_rt is not None:
            costs.append(rt - prev_rt)
        prev_rt = rt
    return mean(costs)
