import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Tuple

from config.settings import ProfileConfig
from data.models import GameProfile, PlayerStats, SessionSummary
from profiles.aggregator import merge


logger = logging.getLogger(__name__)


class DuplicateSessionError(RuntimeError):
    """Этот session_id уже был применён к профилю."""


def _dumps(doc: dict) -> str:
    return json.dumps(doc, ensure_ascii=False, separators=(",", ":"))


def _loads(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("broken profile document in store, using defaults")
        return {}
    return doc if isinstance(doc, dict) else {}


def ensure_db(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS game_profiles (
                player_id TEXT NOT NULL,
                game_id TEXT NOT NULL,
                doc_json TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (player_id, game_id)
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS player_stats (
                player_id TEXT PRIMARY KEY,
                doc_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL UNIQUE,
                player_id TEXT NOT NULL,
                game_id TEXT NOT NULL,
                final_score INTEGER NOT NULL,
                end_reason TEXT NOT NULL,
                applied_at TEXT NOT NULL,
                summary_json TEXT NOT NULL
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_player ON sessions(player_id, id);"
        )


class ProfileStore:
    """
    Локальное хранилище профилей (SQLite).

    apply() единственная точка записи: summary, GameProfile и PlayerStats
    пишутся в одной транзакции. Если что-то падает, не пишется ничего.
    """

    def __init__(self, db_path: Path, cfg: ProfileConfig = ProfileConfig()) -> None:
        self.db_path = Path(db_path)
        self.cfg = cfg
        ensure_db(self.db_path)

    def _load(self, conn: sqlite3.Connection, player_id: str, game_id: str) -> Tuple[GameProfile, PlayerStats]:
        profile_row = conn.execute(
            "SELECT doc_json FROM game_profiles WHERE player_id = ? AND game_id = ?",
            (player_id, game_id),
        ).fetchone()
        stats_row = conn.execute(
            "SELECT doc_json FROM player_stats WHERE player_id = ?",
            (player_id,),
        ).fetchone()
        profile = GameProfile.from_dict(_loads(profile_row[0] if profile_row else None))
        stats = PlayerStats.from_dict(_loads(stats_row[0] if stats_row else None))
        return profile, stats

    def load(self, player_id: str, game_id: str) -> Tuple[GameProfile, PlayerStats]:
        with sqlite3.connect(self.db_path) as conn:
            return self._load(conn, player_id, game_id)

    def apply(
        self,
        player_id: str,
        summary: SessionSummary,
        now: Optional[datetime] = None,
    ) -> Tuple[GameProfile, PlayerStats]:
        now = now or datetime.now(timezone.utc)
        stamp = now.isoformat()
        with sqlite3.connect(self.db_path) as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO sessions (
                        session_id, player_id, game_id, final_score, end_reason, applied_at, summary_json
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        summary.session_id,
                        player_id,
                        summary.game_id,
                        summary.final_score,
                        summary.end_reason,
                        stamp,
                        _dumps(summary.to_dict()),
                    ),
                )
            except sqlite3.IntegrityError:
                logger.warning("session %s already applied, skipping", summary.session_id)
                raise DuplicateSessionError(summary.session_id) from None

            prev_profile, prev_stats = self._load(conn, player_id, summary.game_id)
            profile, stats = merge(summary.game_id, prev_profile, prev_stats, summary, now, self.cfg)

            conn.execute(
                """
                INSERT INTO game_profiles (player_id, game_id, doc_json, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(player_id, game_id) DO UPDATE SET doc_json = excluded.doc_json, updated_at = excluded.updated_at
                """,
                (player_id, summary.game_id, _dumps(profile.to_dict()), stamp),
            )
            conn.execute(
                """
                INSERT INTO player_stats (player_id, doc_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(player_id) DO UPDATE SET doc_json = excluded.doc_json, updated_at = excluded.updated_at
                """,
                (player_id, _dumps(stats.to_dict()), stamp),
            )
            conn.commit()

        logger.info(
            "applied session %s (%s) for %s: score=%s total=%s",
            summary.session_id,
            summary.game_id,
            player_id,
            summary.final_score,
            stats.total_score,
        )
        return profile, stats

    def recent_sessions(self, player_id: str, limit: int = 20) -> list[dict[str, Any]]:
        safe_limit = max(1, min(500, int(limit)))
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT session_id, game_id, final_score, end_reason, applied_at, summary_json
                FROM sessions
                WHERE player_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (player_id, safe_limit),
            ).fetchall()

        return [
            {
                "session_id": session_id,
                "game_id": game_id,
                "final_score": final_score,
                "end_reason": end_reason,
                "applied_at": applied_at,
                "summary": _loads(summary_json),
            }
            for session_id, game_id, final_score, end_reason, applied_at, summary_json in rows
        ]
