from analytics.metrics import round_half_up


def reflex_points(
    reaction_time_ms: float,
    multiplier: float,
    streak: int,
    base_points: int = 1000,
    min_points: int = 100,
    streak_bonus: int = 10,
) -> int:
    # streak: серия ДО этого ответа
    speed_points = max(base_points - reaction_time_ms, min_points) * multiplier
    return round_half_up(speed_points) + streak * streak_bonus


def memory_points(level: int, points_per_level: int = 10) -> int:
    return points_per_level * level


def attention_score(score: int, is_target: bool, hit_points: int = 10, miss_penalty: int = 5) -> int:
    if is_target:
        return score + hit_points
    return max(0, score - miss_penalty)
