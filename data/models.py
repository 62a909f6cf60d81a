from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from analytics.metrics import safe_number


GAME_MEMORY = "memory"
GAME_REACTION = "reaction"
GAME_ATTENTION = "attention"
GAME_TASK_SWITCHER = "taskSwitcher"

GAME_IDS = (GAME_MEMORY, GAME_REACTION, GAME_ATTENTION, GAME_TASK_SWITCHER)


_num = safe_number


def _int(value: Any) -> int:
    return int(safe_number(value))


def _opt_num(value: Any) -> Optional[float]:
    # null в документе = "ещё нет рекорда", его нельзя превращать в 0
    if value is None:
        return None
    return safe_number(value)


def _str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _samples(value: Any) -> Tuple[float, ...]:
    return tuple(_num(v) for v in value) if isinstance(value, list) else ()


# --------------------------------------------------
# Trial specs (что генерировать на данном уровне)
# --------------------------------------------------


@dataclass(frozen=True)
class MemoryTrialSpec:
    level: int
    sequence_length: int
    cell_display_ms: int
    grid_size: int
    input_time_limit_ms: int


@dataclass(frozen=True)
class ReactionTrialSpec:
    level: int
    target_count: int
    distractor_count: int
    time_limit_ms: int
    mode: str
    preview_ms: int
    speed_multiplier: float


@dataclass(frozen=True)
class SwitchTrialSpec:
    level: int
    exposure_ms: int
    switch_probability: float
    trials_per_level: int
    rules_available: int
    speed_multiplier: float


@dataclass(frozen=True)
class AttentionTrialSpec:
    round_index: int
    rounds: int
    items_per_round: int
    target_probability: float
    session_ms: int


# --------------------------------------------------
# Stimuli
# --------------------------------------------------


@dataclass(frozen=True)
class GridSequence:
    cells: Tuple[int, ...]
    grid_size: int


@dataclass(frozen=True)
class FieldItem:
    item_id: int
    x: float
    y: float
    is_target: bool
    order: Optional[int] = None


@dataclass(frozen=True)
class ReactionField:
    items: Tuple[FieldItem, ...]
    wait_ms: int
    preview_ms: int
    ordered: bool


@dataclass(frozen=True)
class AttentionRound:
    items: Tuple[FieldItem, ...]

    @property
    def target_ids(self) -> Tuple[int, ...]:
        return tuple(item.item_id for item in self.items if item.is_target)


# --------------------------------------------------
# Session output
# --------------------------------------------------


@dataclass(frozen=True)
class TrialRecord:
    index: int
    timestamp_ms: int
    reaction_time_ms: int
    correct: bool
    level: int
    was_task_switch: Optional[bool] = None
    timed_out: bool = False
    rule: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "index": self.index,
            "timestampMs": self.timestamp_ms,
            "reactionTimeMs": self.reaction_time_ms,
            "correct": self.correct,
            "level": self.level,
            "timedOut": self.timed_out,
        }
        if self.was_task_switch is not None:
            payload["wasTaskSwitch"] = self.was_task_switch
        if self.rule is not None:
            payload["rule"] = self.rule
        return payload


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    game_id: str
    final_score: int
    level_reached: int
    accuracy: float
    total_duration_ms: int
    end_reason: str
    trials: Tuple[TrialRecord, ...]
    derived: Dict[str, Any]
    metrics: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "gameId": self.game_id,
            "finalScore": self.final_score,
            "levelReached": self.level_reached,
            "accuracy": self.accuracy,
            "totalDurationMs": self.total_duration_ms,
            "endReason": self.end_reason,
            "trials": [t.to_dict() for t in self.trials],
            "derived": dict(self.derived),
            "metrics": dict(self.metrics),
        }


# --------------------------------------------------
# Persisted documents
# --------------------------------------------------


@dataclass(frozen=True)
class HistoryEntry:
    score: int
    level: int
    accuracy: float
    date: str
    duration_ms: int = 0
    metrics: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level,
            "accuracy": self.accuracy,
            "date": self.date,
            "durationMs": self.duration_ms,
            "metrics": dict(self.metrics),
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "HistoryEntry":
        metrics = doc.get("metrics") if isinstance(doc.get("metrics"), dict) else {}
        return cls(
            score=_int(doc.get("score")),
            level=_int(doc.get("level")),
            accuracy=_num(doc.get("accuracy")),
            date=str(doc.get("date") or ""),
            duration_ms=_int(doc.get("durationMs")),
            metrics={str(k): _num(v) for k, v in metrics.items()},
        )


@dataclass(frozen=True)
class GameProfile:
    best_score: int = 0
    times_played: int = 0
    best_level: int = 0
    history: Tuple[HistoryEntry, ...] = ()
    avg_reaction_time: float = 0.0
    reaction_time_count: int = 0
    avg_accuracy: float = 0.0
    fastest_reaction_time: Optional[float] = None
    fastest_round_ms: Optional[float] = None
    best_streak: int = 0
    recent_reaction_times: Tuple[float, ...] = ()
    recent_round_times: Tuple[float, ...] = ()
    derived_averages: Dict[str, float] = field(default_factory=dict)
    derived_counts: Dict[str, int] = field(default_factory=dict)
    total_time_ms: int = 0
    improvement_percent: Optional[float] = None
    last_played_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bestScore": self.best_score,
            "timesPlayed": self.times_played,
            "bestLevel": self.best_level,
            "history": [h.to_dict() for h in self.history],
            "avgReactionTime": self.avg_reaction_time,
            "reactionTimeCount": self.reaction_time_count,
            "avgAccuracy": self.avg_accuracy,
            "fastestReactionTime": self.fastest_reaction_time,
            "fastestRoundMs": self.fastest_round_ms,
            "bestStreak": self.best_streak,
            "recentReactionTimes": list(self.recent_reaction_times),
            "recentRoundTimes": list(self.recent_round_times),
            "derivedAverages": dict(self.derived_averages),
            "derivedCounts": dict(self.derived_counts),
            "totalTimeMs": self.total_time_ms,
            "improvementPercent": self.improvement_percent,
            "lastPlayedAt": self.last_played_at,
        }

    @classmethod
    def from_dict(cls, doc: Optional[Dict[str, Any]]) -> "GameProfile":
        doc = doc if isinstance(doc, dict) else {}
        history = doc.get("history") if isinstance(doc.get("history"), list) else []
        averages = doc.get("derivedAverages") if isinstance(doc.get("derivedAverages"), dict) else {}
        counts = doc.get("derivedCounts") if isinstance(doc.get("derivedCounts"), dict) else {}
        return cls(
            best_score=_int(doc.get("bestScore")),
            times_played=_int(doc.get("timesPlayed")),
            best_level=_int(doc.get("bestLevel")),
            history=tuple(HistoryEntry.from_dict(h) for h in history if isinstance(h, dict)),
            avg_reaction_time=_num(doc.get("avgReactionTime")),
            reaction_time_count=_int(doc.get("reactionTimeCount")),
            avg_accuracy=_num(doc.get("avgAccuracy")),
            fastest_reaction_time=_opt_num(doc.get("fastestReactionTime")),
            fastest_round_ms=_opt_num(doc.get("fastestRoundMs")),
            best_streak=_int(doc.get("bestStreak")),
            recent_reaction_times=_samples(doc.get("recentReactionTimes")),
            recent_round_times=_samples(doc.get("recentRoundTimes")),
            derived_averages={str(k): _num(v) for k, v in averages.items()},
            derived_counts={str(k): _int(v) for k, v in counts.items()},
            total_time_ms=_int(doc.get("totalTimeMs")),
            improvement_percent=_opt_num(doc.get("improvementPercent")),
            last_played_at=_str(doc.get("lastPlayedAt")),
        )


@dataclass(frozen=True)
class PlayerStats:
    total_score: int = 0
    games_played: int = 0
    sessions_completed: int = 0
    games_played_by_type: Dict[str, int] = field(default_factory=dict)
    total_time_minutes: int = 0
    avg_reaction_time: float = 0.0
    reaction_sessions: int = 0
    streak_days: int = 0
    last_active_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalScore": self.total_score,
            "gamesPlayed": self.games_played,
            "sessionsCompleted": self.sessions_completed,
            "gamesPlayedByType": dict(self.games_played_by_type),
            "totalTimeMinutes": self.total_time_minutes,
            "avgReactionTime": self.avg_reaction_time,
            "reactionSessions": self.reaction_sessions,
            "streakDays": self.streak_days,
            "lastActiveAt": self.last_active_at,
        }

    @classmethod
    def from_dict(cls, doc: Optional[Dict[str, Any]]) -> "PlayerStats":
        doc = doc if isinstance(doc, dict) else {}
        by_type = doc.get("gamesPlayedByType") if isinstance(doc.get("gamesPlayedByType"), dict) else {}
        return cls(
            total_score=_int(doc.get("totalScore")),
            games_played=_int(doc.get("gamesPlayed")),
            sessions_completed=_int(doc.get("sessionsCompleted")),
            games_played_by_type={str(k): _int(v) for k, v in by_type.items()},
            total_time_minutes=_int(doc.get("totalTimeMinutes")),
            avg_reaction_time=_num(doc.get("avgReactionTime")),
            reaction_sessions=_int(doc.get("reactionSessions")),
            streak_days=_int(doc.get("streakDays")),
            last_active_at=_str(doc.get("lastActiveAt")),
        )

