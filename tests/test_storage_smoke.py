"""Smoke tests for stats and score history storage."""

from datetime import date, datetime

import pytest

from pronunciation_progress.errors import InvalidInput, StatsNotFound
from pronunciation_progress.models.progression import UserStats
from pronunciation_progress.models.score import PronunciationScore
from pronunciation_progress.progression.goals import generate_daily_goals
from pronunciation_progress.storage import stats_store
from pronunciation_progress.storage.score_history import append_score_entry, read_score_history
from pronunciation_progress.storage.stats_store import InMemoryStatsStore, JsonStatsStore


class TestJsonStatsStore:
    def test_missing_user_raises_not_found(self, tmp_path):
        with pytest.raises(StatsNotFound):
            JsonStatsStore(tmp_path).load("nobody")

    def test_save_and_load(self, tmp_path):
        store = JsonStatsStore(tmp_path / "stats")
        stats = UserStats(
            user_id="learner",
            level=2,
            xp=1250,
            streak_days=4,
            last_activity_date=date(2026, 3, 2),
            badges_unlocked=["first_steps"],
            daily_goals=generate_daily_goals(date(2026, 3, 2)),
        )
        store.save("learner", stats)

        loaded = store.load("learner")
        assert loaded.xp == 1250
        assert loaded.last_activity_date == date(2026, 3, 2)
        assert loaded.badges_unlocked == ["first_steps"]
        assert loaded.daily_goals == stats.daily_goals

    def test_overwrite_leaves_single_record(self, tmp_path):
        store = JsonStatsStore(tmp_path)
        store.save("learner", UserStats(user_id="learner", xp=10))
        store.save("learner", UserStats(user_id="learner", xp=20))
        assert store.load("learner").xp == 20
        assert sorted(p.name for p in tmp_path.iterdir()) == ["learner.json"]

    def test_list_user_ids(self, tmp_path):
        store = JsonStatsStore(tmp_path)
        assert store.list_user_ids() == []
        for user_id in ["zoe", "adam"]:
            store.save(user_id, UserStats(user_id=user_id))
        assert store.list_user_ids() == ["adam", "zoe"]

    @pytest.mark.parametrize("user_id", ["../etc/passwd", "a b", "", "x" * 65])
    def test_rejects_unsafe_user_ids(self, tmp_path, user_id):
        with pytest.raises(InvalidInput):
            JsonStatsStore(tmp_path).load(user_id)


class TestInMemoryStatsStore:
    def test_copies_on_save(self):
        store = InMemoryStatsStore()
        stats = UserStats(user_id="u")
        store.save("u", stats)
        stats.xp = 500
        assert store.load("u").xp == 0

    def test_missing_user(self):
        with pytest.raises(StatsNotFound):
            InMemoryStatsStore().load("u")


class TestScoreHistory:
    def test_returns_empty_when_no_file(self, tmp_path):
        assert read_score_history(tmp_path, "learner") == []

    def test_appended_entry_content(self, tmp_path):
        score = PronunciationScore.from_components(100, 90, 100, 85)
        append_score_entry(
            tmp_path,
            "learner",
            score,
            reference_text="hello world",
            recorded_at=datetime(2026, 3, 2, 10, 0, 0),
        )
        history = read_score_history(tmp_path, "learner")
        assert len(history) == 1
        entry = history[0]
        assert entry.overall == 96
        assert entry.fluency == 90
        assert entry.reference_text == "hello world"
        assert entry.timestamp == datetime(2026, 3, 2, 10, 0, 0)

    def test_keeps_latest_entries(self, tmp_path):
        for accuracy in range(25):
            append_score_entry(
                tmp_path,
                "learner",
                PronunciationScore.from_components(accuracy, 0, 0, 0),
                limit=20,
            )
        history = read_score_history(tmp_path, "learner")
        assert len(history) == 20
        assert history[0].accuracy == 5
        assert history[-1].accuracy == 24

    def test_histories_are_per_user(self, tmp_path):
        score = PronunciationScore.from_components(50, 50, 50, 50)
        append_score_entry(tmp_path, "a", score)
        assert read_score_history(tmp_path, "b") == []


class TestAtomicWrite:
    def test_failed_replace_removes_temp_file(self, tmp_path, monkeypatch):
        store = JsonStatsStore(tmp_path)
        store.save("learner", UserStats(user_id="learner", xp=10))

        def failing_replace(src, dst):
            raise OSError("cross-device link")

        monkeypatch.setattr(stats_store.os, "replace", failing_replace)
        with pytest.raises(OSError):
            store.save("learner", UserStats(user_id="learner", xp=20))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["learner.json"]
        monkeypatch.undo()
        assert store.load("learner").xp == 10

    def test_failed_history_replace_removes_temp_file(self, tmp_path, monkeypatch):
        def failing_replace(src, dst):
            raise OSError("busy")

        monkeypatch.setattr(stats_store.os, "replace", failing_replace)
        with pytest.raises(OSError):
            append_score_entry(tmp_path, "learner", PronunciationScore.from_components(50, 50, 50, 50))
        assert not list(tmp_path.glob("*.tmp"))
