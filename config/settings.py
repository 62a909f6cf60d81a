import os
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class MemoryConfig:
    grid_size: int = 4
    lives: int = 3
    max_level: int = 200
    points_per_level: int = 10
    input_ms_per_cell: int = 2000
    level_delay_ms: int = 1000
    mistake_delay_ms: int = 1000


@dataclass(frozen=True)
class ReactionConfig:
    rounds_per_session: int = 10
    max_level: int = 100
    min_wait_ms: int = 1000
    max_wait_ms: int = 4000
    feedback_ms: int = 1500
    base_points: int = 1000
    min_points: int = 100
    streak_bonus: int = 10


@dataclass(frozen=True)
class SwitchConfig:
    levels_per_session: int = 3
    max_level: int = 100
    cue_ms: int = 1000
    feedback_ms: int = 500
    base_points: int = 1000
    min_points: int = 100
    streak_bonus: int = 10


@dataclass(frozen=True)
class AttentionConfig:
    rounds: int = 3
    items_per_round: int = 8
    target_probability: float = 0.4
    session_ms: int = 30000
    round_delay_ms: int = 1000
    hit_points: int = 10
    miss_penalty: int = 5


@dataclass(frozen=True)
class ProfileConfig:
    history_limit: int = 20
    sample_limit: int = 50


@dataclass(frozen=True)
class StorageSettings:
    db_path: Path
    player_id: str = "local"


APP_NAME = "MindTrainer"


def app_data_dir() -> Path:
    if sys.platform.startswith("win"):
        root = Path(os.getenv("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        root = Path.home() / "Library" / "Application Support"
    else:
        root = Path(os.getenv("XDG_DATA_HOME") or Path.home() / ".local" / "share")
    return root / APP_NAME


def load_settings() -> StorageSettings:
    db_default = app_data_dir() / "profiles.db"
    db_path = Path(os.getenv("MINDTRAINER_DB_PATH", str(db_default))).expanduser()
    player_id = os.getenv("MINDTRAINER_PLAYER", "").strip() or "local"
    return StorageSettings(db_path=db_path, player_id=player_id)
