from game.tasks.focus_filter import FocusFilterMachine
from game.tasks.lightning_reflexes import LightningReflexesMachine
from game.tasks.sequence_memory import SequenceMemoryMachine
from game.tasks.task_switcher import TaskSwitcherMachine

MACHINES = {
    SequenceMemoryMachine.game_id: SequenceMemoryMachine,
    LightningReflexesMachine.game_id: LightningReflexesMachine,
    FocusFilterMachine.game_id: FocusFilterMachine,
    TaskSwitcherMachine.game_id: TaskSwitcherMachine,
}


def create_machine(game_id: str):
    try:
        return MACHINES[game_id]()
    except KeyError:
        raise ValueError(f"Unknown game: {game_id!r}") from None


__all__ = [
    "SequenceMemoryMachine",
    "LightningReflexesMachine",
    "FocusFilterMachine",
    "TaskSwitcherMachine",
    "MACHINES",
    "create_machine",
]
