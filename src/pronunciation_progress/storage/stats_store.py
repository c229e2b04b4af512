"""User stats persistence (JSON + fcntl.flock + atomic write)."""

import fcntl
import json
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from pronunciation_progress.errors import InvalidInput, StatsNotFound
from pronunciation_progress.models.progression import UserStats

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_user_id(user_id: str) -> str:
    if not _USER_ID_RE.match(user_id):
        raise InvalidInput(f"invalid user id: {user_id!r}")
    return user_id


def atomic_write_json(path: Path, data: Any, suffix: str = ".tmp") -> None:
    """Write ``data`` to a temp file beside ``path`` and swap it in.

    The temp file is removed if the write or the swap fails.
    """
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, delete=False, suffix=suffix, encoding="utf-8"
        ) as tmp:
            tmp_name = tmp.name
            json.dump(data, tmp, indent=2)
        os.replace(tmp_name, path)
    except Exception:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise


class StatsStore(Protocol):
    """Key-value contract the engine persists through."""

    def load(self, user_id: str) -> UserStats:
        """Return stored stats or raise ``StatsNotFound``."""
        ...

    def save(self, user_id: str, stats: UserStats) -> None:
        """Overwrite the single record for ``user_id``. Raises ``OSError`` on failure."""
        ...

    def list_user_ids(self) -> list[str]:
        ...


class JsonStatsStore:
    """One JSON document per user under ``stats_dir``."""

    def __init__(self, stats_dir: Path):
        self.stats_dir = stats_dir

    def get_stats_path(self, user_id: str) -> Path:
        return self.stats_dir / f"{validate_user_id(user_id)}.json"

    def load(self, user_id: str) -> UserStats:
        path = self.get_stats_path(user_id)
        if not path.exists():
            raise StatsNotFound(user_id)
        with open(path, encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            data = json.load(f)
            fcntl.flock(f, fcntl.LOCK_UN)
        return UserStats.model_validate(data)

    def save(self, user_id: str, stats: UserStats) -> None:
        path = self.get_stats_path(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_json(path, stats.model_dump(mode="json"))

    def list_user_ids(self) -> list[str]:
        if not self.stats_dir.exists():
            return []
        return sorted(p.stem for p in self.stats_dir.glob("*.json") if _USER_ID_RE.match(p.stem))


class InMemoryStatsStore:
    """Process-local store. Keeps deep copies so callers cannot alias state."""

    def __init__(self):
        self._records: dict[str, UserStats] = {}
        self._lock = threading.Lock()

    def load(self, user_id: str) -> UserStats:
        with self._lock:
            stats = self._records.get(user_id)
        if stats is None:
            raise StatsNotFound(user_id)
        return stats.model_copy(deep=True)

    def save(self, user_id: str, stats: UserStats) -> None:
        with self._lock:
            self._records[user_id] = stats.model_copy(deep=True)

    def list_user_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)
