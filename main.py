import argparse
import logging
import sys
from pathlib import Path

from analytics.simulate import format_report, simulate_session
from config.settings import load_settings
from data.models import GAME_IDS
from profiles.store import DuplicateSessionError, ProfileStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay a MindTrainer session with a scripted player")
    parser.add_argument("--game", choices=GAME_IDS, default="memory")
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument("--accuracy", type=float, default=0.9, help="Chance of a correct answer (0..1)")
    parser.add_argument("--rt", type=int, default=450, help="Player reaction time, ms")
    parser.add_argument("--level", type=int, default=1, help="Start level")
    parser.add_argument("--player", default=None, help="Player id in the profile store")
    parser.add_argument("--db", default=None, help="Path to the profiles SQLite db")
    parser.add_argument("--no-save", action="store_true", help="Do not write the result to the store")
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session = simulate_session(
        args.game,
        seed=args.seed,
        accuracy=args.accuracy,
        rt_ms=args.rt,
        start_level=args.level,
    )
    if session.summary is None:
        print(f"Session did not finish (phase {session.phase})")
        return 1

    print("Session finished")
    for line in format_report(session.summary):
        print(line)

    if args.no_save:
        return 0

    settings = load_settings()
    db_path = Path(args.db) if args.db else settings.db_path
    player_id = args.player or settings.player_id
    store = ProfileStore(db_path)
    try:
        profile, stats = store.apply(player_id, session.summary)
    except DuplicateSessionError:
        print(f"Session {session.summary.session_id} was already saved")
        return 1

    print(f"\nSaved to {db_path}")
    print(f"best score:   {profile.best_score} (played {profile.times_played}x)")
    print(f"best level:   {profile.best_level}")
    print(f"total score:  {stats.total_score} over {stats.games_played} games")
    print(f"streak days:  {stats.streak_days}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
