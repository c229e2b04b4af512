"""Progression state and catalog models."""

import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, Field


class GoalKind(StrEnum):
    """Daily goal categories."""

    PRONUNCIATION_COUNT = "pronunciation_count"
    ACCURACY_THRESHOLD = "accuracy_threshold"
    STREAK_MAINTENANCE = "streak_maintenance"


class DailyGoal(BaseModel):
    """One per-day progress tracker.

    For ``ACCURACY_THRESHOLD`` goals ``current`` is the best score seen today,
    not a sum.
    """

    id: str
    kind: GoalKind
    target: int
    current: int = 0
    xp_reward: int
    completed: bool = False
    date: dt.date


class UserStats(BaseModel):
    user_id: str
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    streak_days: int = Field(default=0, ge=0)
    last_activity_date: dt.date | None = None
    badges_unlocked: list[str] = Field(default_factory=list)
    weekly_xp: int = Field(default=0, ge=0)
    total_pronunciation_score: int = Field(default=0, ge=0)
    session_count: int = Field(default=0, ge=0)
    daily_goals: list[DailyGoal] = Field(default_factory=list)
    updated_at: dt.datetime = Field(default_factory=dt.datetime.now)

    @property
    def average_score(self) -> float | None:
        """Mean overall score, or None before the first session."""
        if self.session_count == 0:
            return None
        return self.total_pronunciation_score / self.session_count


class BadgeRarity(StrEnum):
    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"


class RequirementKind(StrEnum):
    """Cumulative stat a badge requirement checks."""

    MIN_SESSIONS = "min_sessions"
    MIN_STREAK = "min_streak"
    MIN_AVERAGE_SCORE = "min_average_score"
    MIN_XP = "min_xp"


class Requirement(BaseModel, frozen=True):
    kind: RequirementKind
    threshold: float


class Badge(BaseModel, frozen=True):
    """Static catalog entry. Unlocked when every requirement holds."""

    id: str
    name: str
    description: str
    icon: str
    rarity: BadgeRarity
    requirements: tuple[Requirement, ...]


class ChallengeKind(StrEnum):
    PRONUNCIATION = "pronunciation"
    DAILY = "daily"
    WEEKLY = "weekly"
    SOCIAL = "social"


class Difficulty(StrEnum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Challenge(BaseModel, frozen=True):
    id: str
    title: str
    description: str
    kind: ChallengeKind
    difficulty: Difficulty
    target: int
    xp_reward: int
    time_limit_minutes: int | None = None
    participants: int | None = None


class SessionOutcome(BaseModel):
    """Result of recording one scored session.

    ``xp_gained`` is the session award (base, score tier and streak bonus);
    rewards from daily goals completed by this session are in ``goal_xp``.
    """

    xp_gained: int
    goal_xp: int = 0
    leveled_up: bool = False
    level: int = 1
    new_badges: list[Badge] = Field(default_factory=list)
    completed_goals: list[str] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    xp: int
    level: int
    streak_days: int
    is_current_user: bool = False


class ScoreHistoryEntry(BaseModel):
    """One row of a user's score history."""

    timestamp: dt.datetime = Field(default_factory=dt.datetime.now)
    reference_text: str = ""
    overall: int
    accuracy: int
    fluency: int
    completeness: int
    prosody: int
