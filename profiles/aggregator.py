"""
Свёртка одного SessionSummary в GameProfile + PlayerStats.

merge() чистая: входные документы не меняются, результат целиком
новый. Повторный merge того же summary НЕ безопасен (очки и счётчики
удвоятся): защита "не больше одного раза" живёт в ProfileStore.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from analytics import metrics
from config.settings import ProfileConfig
from data.models import GAME_REACTION, GameProfile, HistoryEntry, PlayerStats, SessionSummary


logger = logging.getLogger(__name__)


class AggregationError(ValueError):
    """Summary нельзя свернуть в этот профиль (ошибка вызывающего кода)."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def numeric_derived(derived: Dict[str, Any]) -> Dict[str, float]:
    """Только числовые derived-метрики (списки, None и флаги в историю не идут)."""
    return {key: float(value) for key, value in derived.items() if _is_number(value)}


def _capped(old: Iterable[float], new: Iterable[float], limit: int) -> Tuple[float, ...]:
    values = tuple(old) + tuple(new)
    if limit <= 0:
        return ()
    return values[-limit:]


def _longest_streak(trials) -> int:
    best = current = 0
    for trial in trials:
        current = current + 1 if trial.correct else 0
        best = max(best, current)
    return best


def _improved(old: Optional[float], new: Optional[float]) -> Optional[float]:
    # рекорд "быстрее" меняется только при строгом улучшении
    if new is None or new <= 0:
        return old
    if old is None or new < old:
        return new
    return old


def _parse_date(value: Optional[str]):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except (TypeError, ValueError):
        logger.warning("bad lastActiveAt value %r, streak restarts", value)
        return None


def next_streak_days(prev_streak: int, last_active_at: Optional[str], now: datetime) -> int:
    last_day = _parse_date(last_active_at)
    if last_day is None:
        return 1
    delta = (now.date() - last_day).days
    if delta == 0:
        return max(1, prev_streak)
    if delta == 1:
        return prev_streak + 1
    return 1


def merge_profile(
    prev: GameProfile,
    summary: SessionSummary,
    now: datetime,
    cfg: ProfileConfig = ProfileConfig(),
) -> GameProfile:
    date = now.isoformat()
    derived = numeric_derived(summary.derived)

    entry = HistoryEntry(
        score=summary.final_score,
        level=summary.level_reached,
        accuracy=summary.accuracy,
        date=date,
        duration_ms=summary.total_duration_ms,
        metrics=derived,
    )
    history = (prev.history + (entry,))[-cfg.history_limit:] if cfg.history_limit > 0 else ()

    avg_reaction_time = prev.avg_reaction_time
    reaction_time_count = prev.reaction_time_count
    improvement = prev.improvement_percent
    session_rt = derived.get("avgReactionTime", 0.0)
    if session_rt > 0:
        avg_reaction_time = metrics.running_mean(prev.avg_reaction_time, prev.reaction_time_count, session_rt)
        reaction_time_count = prev.reaction_time_count + 1
        improvement = metrics.improvement_percent(prev.avg_reaction_time, prev.reaction_time_count, avg_reaction_time)

    reaction_samples: List[float] = []
    if "avgReactionTime" in summary.derived:
        reaction_samples = [t.reaction_time_ms for t in summary.trials if t.correct and not t.timed_out]
    round_samples = [metrics.safe_number(v) for v in summary.derived.get("roundTimes") or []]

    derived_averages = dict(prev.derived_averages)
    derived_counts = dict(prev.derived_counts)
    for key, value in derived.items():
        count = derived_counts.get(key, 0)
        derived_averages[key] = metrics.running_mean(derived_averages.get(key, 0.0), count, value)
        derived_counts[key] = count + 1

    return replace(
        prev,
        best_score=max(prev.best_score, summary.final_score),
        times_played=prev.times_played + 1,
        best_level=max(prev.best_level, summary.level_reached),
        history=history,
        avg_reaction_time=avg_reaction_time,
        reaction_time_count=reaction_time_count,
        avg_accuracy=metrics.running_mean(prev.avg_accuracy, prev.times_played, summary.accuracy),
        fastest_reaction_time=_improved(prev.fastest_reaction_time, derived.get("bestReactionTime")),
        fastest_round_ms=_improved(prev.fastest_round_ms, derived.get("fastestRoundMs")),
        best_streak=max(prev.best_streak, _longest_streak(summary.trials)),
        recent_reaction_times=_capped(prev.recent_reaction_times, reaction_samples, cfg.sample_limit),
        recent_round_times=_capped(prev.recent_round_times, round_samples, cfg.sample_limit),
        derived_averages=derived_averages,
        derived_counts=derived_counts,
        total_time_ms=prev.total_time_ms + max(0, summary.total_duration_ms),
        improvement_percent=improvement,
        last_played_at=date,
    )


def merge_stats(prev: PlayerStats, game_id: str, summary: SessionSummary, now: datetime) -> PlayerStats:
    by_type = dict(prev.games_played_by_type)
    by_type[game_id] = by_type.get(game_id, 0) + 1

    avg_reaction_time = prev.avg_reaction_time
    reaction_sessions = prev.reaction_sessions
    session_rt = metrics.safe_number(summary.derived.get("avgReactionTime"))
    if game_id == GAME_REACTION and session_rt > 0:
        avg_reaction_time = metrics.running_mean(prev.avg_reaction_time, prev.reaction_sessions, session_rt)
        reaction_sessions = prev.reaction_sessions + 1

    return replace(
        prev,
        total_score=prev.total_score + summary.final_score,
        games_played=prev.games_played + 1,
        sessions_completed=prev.sessions_completed + (1 if summary.end_reason == "completed" else 0),
        games_played_by_type=by_type,
        total_time_minutes=prev.total_time_minutes + metrics.round_half_up(summary.total_duration_ms / 60000),
        avg_reaction_time=avg_reaction_time,
        reaction_sessions=reaction_sessions,
        streak_days=next_streak_days(prev.streak_days, prev.last_active_at, now),
        last_active_at=now.isoformat(),
    )


def merge(
    game_id: str,
    prev_profile: Optional[GameProfile],
    prev_stats: Optional[PlayerStats],
    summary: SessionSummary,
    now: datetime,
    cfg: ProfileConfig = ProfileConfig(),
) -> Tuple[GameProfile, PlayerStats]:
    if summary.game_id != game_id:
        raise AggregationError(f"summary of {summary.game_id!r} cannot be merged into the {game_id!r} profile")
    profile = merge_profile(prev_profile or GameProfile(), summary, now, cfg)
    stats = merge_stats(prev_stats or PlayerStats(), game_id, summary, now)
    return profile, stats
