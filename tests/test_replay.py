import main
from analytics.simulate import format_report, simulate_session
from profiles.store import ProfileStore


def test_scripted_replay_is_deterministic() -> None:
    first = simulate_session("memory", seed=9, accuracy=0.8, rt_ms=350, session_id="replay")
    second = simulate_session("memory", seed=9, accuracy=0.8, rt_ms=350, session_id="replay")
    assert first.summary.to_dict() == second.summary.to_dict()
    assert first.summary.end_reason in ("lives", "completed")


def test_report_lists_the_basics() -> None:
    summary = simulate_session("taskSwitcher", seed=1, accuracy=0.7, rt_ms=500, session_id="r").summary
    report = "\n".join(format_report(summary))
    assert "game:      taskSwitcher" in report
    assert f"score:     {summary.final_score}" in report
    assert "switchCost" in report


def test_cli_saves_to_store(tmp_path, capsys) -> None:
    db = tmp_path / "cli.db"
    code = main.main(["--game", "reaction", "--seed", "2", "--accuracy", "1.0", "--rt", "300", "--db", str(db)])

    assert code == 0
    assert "Session finished" in capsys.readouterr().out
    profile, stats = ProfileStore(db).load("local", "reaction")
    assert profile.times_played == 1
    assert stats.games_played_by_type == {"reaction": 1}


def test_cli_no_save(tmp_path) -> None:
    db = tmp_path / "unused.db"
    assert main.main(["--game", "attention", "--no-save", "--db", str(db)]) == 0
    assert not db.exists()
