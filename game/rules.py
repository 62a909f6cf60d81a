from dataclasses import dataclass
from typing import Callable, Tuple


SHAPES = ("circle", "square", "triangle", "diamond")
COLORS = ("red", "blue", "green", "yellow", "purple", "orange")
SIZES = ("small", "medium", "large")
POSITIONS = ("left", "right", "center")

RESPONSE_CLICK = "click"
RESPONSE_NO_CLICK = "no-click"
RESPONSES = (RESPONSE_CLICK, RESPONSE_NO_CLICK)


@dataclass(frozen=True)
class SwitchStimulus:
    shape: str
    color: str
    size: str
    number: int
    position: str


@dataclass(frozen=True)
class TaskRule:
    rule_id: str
    name: str
    description: str
    should_click: Callable[[SwitchStimulus], bool]


TASK_RULES: Tuple[TaskRule, ...] = (
    TaskRule("color", "Color Task", "Click if the shape is RED or BLUE",
             lambda s: s.color in ("red", "blue")),
    TaskRule("shape", "Shape Task", "Click if the shape is CIRCLE or SQUARE",
             lambda s: s.shape in ("circle", "square")),
    TaskRule("size", "Size Task", "Click if the shape is LARGE",
             lambda s: s.size == "large"),
    TaskRule("number", "Number Task", "Click if the number is EVEN",
             lambda s: s.number % 2 == 0),
    TaskRule("position", "Position Task", "Click if the shape is on the LEFT or RIGHT",
             lambda s: s.position in ("left", "right")),
)

RULES_BY_ID = {rule.rule_id: rule for rule in TASK_RULES}


def get_rule(rule_id: str) -> TaskRule:
    try:
        return RULES_BY_ID[rule_id]
    except KeyError:
        raise ValueError(f"Unsupported rule_id: {rule_id}") from None


def expected_response(rule_id: str, stimulus: SwitchStimulus) -> str:
    return RESPONSE_CLICK if get_rule(rule_id).should_click(stimulus) else RESPONSE_NO_CLICK


def is_correct_response(rule_id: str, stimulus: SwitchStimulus, response: str) -> bool:
    return response == expected_response(rule_id, stimulus)
