"""Error taxonomy for scoring and progression."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pronunciation_progress.models.progression import SessionOutcome


class ProgressionError(Exception):
    """Base class for all engine errors."""


class InvalidInput(ProgressionError, ValueError):
    """Malformed score, empty reference text or bad user id."""


class StatsNotFound(ProgressionError, LookupError):
    """No stored stats for a user. Raised by stores only."""

    def __init__(self, user_id: str):
        super().__init__(f"No stats stored for user {user_id!r}")
        self.user_id = user_id


class PersistenceFailed(ProgressionError):
    """State was computed but could not be durably saved.

    The in-memory state already reflects the change. Callers should retry
    the save through ``ProgressionEngine.persist()`` instead of recording
    the session again.

    Args:
        user_id: Owner of the stats record.
        outcome: The computed session outcome, if the failure happened while
            recording a session.
    """

    def __init__(self, user_id: str, outcome: SessionOutcome | None = None):
        super().__init__(f"Failed to persist stats for user {user_id!r}")
        self.user_id = user_id
        self.outcome = outcome
