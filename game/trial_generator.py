import random
from typing import List, Optional, Tuple

from config.settings import ReactionConfig
from data.models import (
    AttentionRound,
    AttentionTrialSpec,
    FieldItem,
    GridSequence,
    MemoryTrialSpec,
    ReactionField,
    ReactionTrialSpec,
    SwitchTrialSpec,
)
from adaptation.levels import MODE_MEMORY, MODE_PATTERN, MODE_SEQUENCE
from game.rules import COLORS, POSITIONS, SHAPES, SIZES, TASK_RULES, SwitchStimulus


def _random_position(rng: random.Random) -> Tuple[float, float]:
    # проценты от игрового поля: 10-90% по ширине, 15-85% по высоте
    x = rng.random() * 80 + 10
    y = rng.random() * 70 + 15
    return round(x, 2), round(y, 2)


def generate_sequence(spec: MemoryTrialSpec, rng: random.Random) -> GridSequence:
    cells_total = spec.grid_size * spec.grid_size
    cells = tuple(rng.randrange(cells_total) for _ in range(spec.sequence_length))
    return GridSequence(cells=cells, grid_size=spec.grid_size)


def generate_reaction_field(
    spec: ReactionTrialSpec,
    rng: random.Random,
    cfg: ReactionConfig = ReactionConfig(),
) -> ReactionField:
    """
    Поле одного раунда Lightning Reflexes.

    - target_count целей (order = порядковый номер для режимов с очередностью)
    - distractor_count отвлекающих объектов
    - всё перемешано, item_id = позиция в списке
    """
    kinds: List[Optional[int]] = list(range(spec.target_count)) + [None] * spec.distractor_count
    rng.shuffle(kinds)

    items = []
    for item_id, order in enumerate(kinds):
        x, y = _random_position(rng)
        items.append(FieldItem(item_id=item_id, x=x, y=y, is_target=order is not None, order=order))

    wait_ms = int(rng.uniform(cfg.min_wait_ms, cfg.max_wait_ms))
    preview_ms = spec.preview_ms if spec.mode in (MODE_PATTERN, MODE_MEMORY) else 0
    return ReactionField(
        items=tuple(items),
        wait_ms=wait_ms,
        preview_ms=preview_ms,
        ordered=spec.mode in (MODE_SEQUENCE, MODE_MEMORY),
    )


def select_next_rule(spec: SwitchTrialSpec, rng: random.Random, current_rule: str) -> str:
    available = [rule.rule_id for rule in TASK_RULES[: spec.rules_available]]
    if current_rule not in available:
        return rng.choice(available)
    if rng.random() < spec.switch_probability:
        # переключение: любое правило, кроме текущего
        others = [rule_id for rule_id in available if rule_id != current_rule]
        return rng.choice(others)
    return current_rule


def generate_switch_stimulus(rng: random.Random) -> SwitchStimulus:
    return SwitchStimulus(
        shape=rng.choice(SHAPES),
        color=rng.choice(COLORS),
        size=rng.choice(SIZES),
        number=rng.randint(1, 9),
        position=rng.choice(POSITIONS),
    )


def generate_attention_round(spec: AttentionTrialSpec, rng: random.Random) -> AttentionRound:
    flags = [rng.random() < spec.target_probability for _ in range(spec.items_per_round)]
    if not any(flags):
        # раунд без целей нельзя пройти, поэтому одна цель есть всегда
        flags[rng.randrange(spec.items_per_round)] = True

    items = []
    for item_id, is_target in enumerate(flags):
        x, y = _random_position(rng)
        items.append(FieldItem(item_id=item_id, x=x, y=y, is_target=is_target))
    return AttentionRound(items=tuple(items))


def generate_stimulus(spec, rng: random.Random):
    if isinstance(spec, MemoryTrialSpec):
        return generate_sequence(spec, rng)
    if isinstance(spec, ReactionTrialSpec):
        return generate_reaction_field(spec, rng)
    if isinstance(spec, SwitchTrialSpec):
        return generate_switch_stimulus(rng)
    if isinstance(spec, AttentionTrialSpec):
        return generate_attention_round(spec, rng)
    raise ValueError(f"Unsupported trial spec: {type(spec).__name__}")
