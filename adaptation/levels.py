from config.settings import AttentionConfig, MemoryConfig
from data.models import (
    GAME_ATTENTION,
    GAME_MEMORY,
    GAME_REACTION,
    GAME_TASK_SWITCHER,
    AttentionTrialSpec,
    MemoryTrialSpec,
    ReactionTrialSpec,
    SwitchTrialSpec,
)
from game.rules import TASK_RULES


MODE_SIMPLE = "simple"
MODE_MULTI = "multi"
MODE_PATTERN = "pattern"
MODE_SEQUENCE = "sequence"
MODE_MEMORY = "memory"


def _clamp_level(level: int) -> int:
    return max(1, int(level))


def speed_multiplier(level: int) -> float:
    # +10% за каждые 10 уровней, но не больше x2
    return min(1.0 + 0.1 * (_clamp_level(level) // 10), 2.0)


def reaction_mode(level: int) -> str:
    level = _clamp_level(level)
    if level < 20:
        return MODE_SIMPLE
    if level < 40:
        return MODE_MULTI
    if level < 60:
        return MODE_PATTERN
    if level < 80:
        return MODE_SEQUENCE
    return MODE_MEMORY


def memory_trial_spec(level: int, cfg: MemoryConfig = MemoryConfig()) -> MemoryTrialSpec:
    level = _clamp_level(level)
    length = 3 + level // 8
    return MemoryTrialSpec(
        level=level,
        sequence_length=length,
        cell_display_ms=max(150, 600 - 2 * level),
        grid_size=cfg.grid_size,
        input_time_limit_ms=length * cfg.input_ms_per_cell,
    )


def reaction_trial_spec(level: int) -> ReactionTrialSpec:
    level = _clamp_level(level)
    return ReactionTrialSpec(
        level=level,
        target_count=min(1 + level // 10, 8),
        distractor_count=min(level // 5, 12),
        time_limit_ms=max(5000 - 30 * level, 1000),
        mode=reaction_mode(level),
        preview_ms=max(1500 - 10 * level, 200),
        speed_multiplier=speed_multiplier(level),
    )


def switch_trial_spec(level: int) -> SwitchTrialSpec:
    level = _clamp_level(level)
    return SwitchTrialSpec(
        level=level,
        exposure_ms=max(3000 - 20 * level, 800),
        switch_probability=min(0.1 + 0.008 * level, 0.9),
        trials_per_level=min(10 + level // 10, 25),
        rules_available=min((level - 1) // 20 + 2, len(TASK_RULES)),
        speed_multiplier=speed_multiplier(level),
    )


def attention_trial_spec(round_index: int, cfg: AttentionConfig = AttentionConfig()) -> AttentionTrialSpec:
    # В Focus Filter нет уровней: сложность фиксирована, меняется только номер раунда
    return AttentionTrialSpec(
        round_index=max(1, int(round_index)),
        rounds=cfg.rounds,
        items_per_round=cfg.items_per_round,
        target_probability=cfg.target_probability,
        session_ms=cfg.session_ms,
    )


def next_trial_spec(game_id: str, level: int):
    if game_id == GAME_MEMORY:
        return memory_trial_spec(level)
    if game_id == GAME_REACTION:
        return reaction_trial_spec(level)
    if game_id == GAME_TASK_SWITCHER:
        return switch_trial_spec(level)
    if game_id == GAME_ATTENTION:
        return attention_trial_spec(level)
    raise ValueError(f"Unsupported game_id: {game_id}")
