"""Per-user score history for progress charts."""

import fcntl
import json
from datetime import datetime
from pathlib import Path

from pronunciation_progress.models.progression import ScoreHistoryEntry
from pronunciation_progress.models.score import PronunciationScore
from pronunciation_progress.storage.stats_store import atomic_write_json, validate_user_id

DEFAULT_HISTORY_LIMIT = 20


def get_history_path(history_dir: Path, user_id: str) -> Path:
    return history_dir / f"{validate_user_id(user_id)}.json"


def append_score_entry(
    history_dir: Path,
    user_id: str,
    score: PronunciationScore,
    reference_text: str = "",
    recorded_at: datetime | None = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> ScoreHistoryEntry:
    """Append a score to the user's history, keeping the latest ``limit`` entries."""
    history_dir.mkdir(parents=True, exist_ok=True)
    history_path = get_history_path(history_dir, user_id)
    entry = ScoreHistoryEntry(
        timestamp=recorded_at or datetime.now(),
        reference_text=reference_text,
        **score.model_dump(),
    )

    lock_path = history_dir / (history_path.name + ".lock")
    with open(lock_path, "w") as lock_file:
        fcntl.flock(lock_file, fcntl.LOCK_EX)

        if history_path.exists():
            data = json.loads(history_path.read_text(encoding="utf-8"))
        else:
            data = {"user_id": user_id, "entries": []}

        data["entries"].append(entry.model_dump(mode="json"))
        data["entries"] = data["entries"][-limit:]
        atomic_write_json(history_path, data)

    return entry


def read_score_history(history_dir: Path, user_id: str) -> list[ScoreHistoryEntry]:
    """Oldest first. Empty if the user has no history yet."""
    history_path = get_history_path(history_dir, user_id)
    if not history_path.exists():
        return []
    data = json.loads(history_path.read_text(encoding="utf-8"))
    return [ScoreHistoryEntry.model_validate(e) for e in data.get("entries", [])]
