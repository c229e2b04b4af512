"""Per-user progression engine: XP, levels, streaks, daily goals and badges."""

import datetime as dt
import threading
from collections import OrderedDict
from collections.abc import Callable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from pronunciation_progress.errors import InvalidInput, PersistenceFailed, StatsNotFound
from pronunciation_progress.models.progression import (
    Badge,
    Challenge,
    GoalKind,
    LeaderboardEntry,
    SessionOutcome,
    UserStats,
)
from pronunciation_progress.models.score import PronunciationScore
from pronunciation_progress.progression.catalog import BADGES, CHALLENGES, badge_unlocked
from pronunciation_progress.progression.goals import (
    advance_goal,
    generate_daily_goals,
    goals_are_stale,
    settle_goals,
)
from pronunciation_progress.storage.stats_store import StatsStore

logger = structlog.get_logger()

BASE_SESSION_XP = 20
# (minimum overall score, bonus); first match wins
SCORE_TIER_BONUSES: list[tuple[int, int]] = [(95, 30), (90, 20), (85, 10)]
# (minimum streak, bonus); all matches add up
STREAK_BONUSES: list[tuple[int, int]] = [(7, 10), (30, 20)]
ACCURACY_GOAL_MIN_SCORE = 85
XP_PER_LEVEL = 1000

Clock = Callable[[], dt.date]


def calculate_session_xp(overall: int, streak_days: int) -> int:
    """XP for one session from its overall score and the current streak."""
    xp = BASE_SESSION_XP
    for min_score, bonus in SCORE_TIER_BONUSES:
        if overall >= min_score:
            xp += bonus
            break
    for min_streak, bonus in STREAK_BONUSES:
        if streak_days >= min_streak:
            xp += bonus
    return xp


def xp_for_next_level(level: int) -> int:
    return level * XP_PER_LEVEL


def rank_leaderboard(stats: list[UserStats], current_user_id: str, limit: int) -> list[LeaderboardEntry]:
    """Rank by xp, then streak, then user id. The current user is always kept."""
    ordered = sorted(stats, key=lambda s: (-s.xp, -s.streak_days, s.user_id))
    entries = [
        LeaderboardEntry(
            rank=rank,
            user_id=s.user_id,
            xp=s.xp,
            level=s.level,
            streak_days=s.streak_days,
            is_current_user=s.user_id == current_user_id,
        )
        for rank, s in enumerate(ordered, start=1)
    ]
    top = entries[:limit]
    if not any(e.is_current_user for e in top):
        top.extend(e for e in entries[limit:] if e.is_current_user)
    return top


class ProgressionEngine:
    """Owns one user's stats and applies scored sessions to them.

    Stats are loaded at construction (defaults when the store has none) and
    written back after every mutating call. Mutators are serialized with an
    instance lock; use one engine per user (see ``EngineRegistry``).

    Args:
        user_id: Owner of the stats record.
        store: Persistence backend.
        clock: Returns today's date. Injectable for tests.
    """

    def __init__(self, user_id: str, store: StatsStore, clock: Clock = dt.date.today):
        self.user_id = user_id
        self.store = store
        self.clock = clock
        self._lock = threading.Lock()
        self._unsaved = False
        self._stats = self._load()

    def _load(self) -> UserStats:
        try:
            stats = self.store.load(self.user_id)
        except StatsNotFound:
            logger.info("stats_initialized", user_id=self.user_id)
            return UserStats(user_id=self.user_id, daily_goals=generate_daily_goals(self.clock()))
        except InvalidInput:
            raise
        except (OSError, ValueError) as e:
            logger.error("stats_load_failed", user_id=self.user_id, error=str(e))
            raise PersistenceFailed(self.user_id) from e
        return stats

    def record_session(self, score: PronunciationScore | Mapping[str, Any]) -> SessionOutcome:
        """Apply one scored session.

        Raises:
            InvalidInput: If the score is malformed. Nothing is mutated.
            PersistenceFailed: If the new state could not be saved. The
                in-memory state and ``exc.outcome`` still reflect the session.
        """
        score = self._validate_score(score)
        with self._lock:
            today = self.clock()
            stats = self._stats
            self._refresh_goals(today)
            self._update_streak(today)

            xp_gained = calculate_session_xp(score.overall, stats.streak_days)
            stats.xp += xp_gained
            stats.weekly_xp += xp_gained

            stats.total_pronunciation_score += score.overall
            stats.session_count += 1

            advance_goal(stats.daily_goals, GoalKind.PRONUNCIATION_COUNT, 1)
            if score.overall >= ACCURACY_GOAL_MIN_SCORE:
                advance_goal(stats.daily_goals, GoalKind.ACCURACY_THRESHOLD, score.overall)
            completed = settle_goals(stats.daily_goals)
            goal_xp = sum(goal.xp_reward for goal in completed)
            stats.xp += goal_xp
            for goal in completed:
                logger.info(
                    "daily_goal_completed",
                    user_id=self.user_id,
                    goal_id=goal.id,
                    xp_reward=goal.xp_reward,
                )

            leveled_up = self._apply_level_ups()
            new_badges = self._unlock_badges()

            outcome = SessionOutcome(
                xp_gained=xp_gained,
                goal_xp=goal_xp,
                leveled_up=leveled_up,
                level=stats.level,
                new_badges=new_badges,
                completed_goals=[goal.id for goal in completed],
            )
            logger.info(
                "session_recorded",
                user_id=self.user_id,
                overall=score.overall,
                xp_gained=xp_gained,
                goal_xp=goal_xp,
                xp=stats.xp,
                level=stats.level,
                streak_days=stats.streak_days,
            )
            self._save(outcome)
        return outcome

    def persist(self) -> None:
        """Retry saving the current in-memory state."""
        with self._lock:
            self._save()

    @property
    def has_unsaved_changes(self) -> bool:
        """True after a failed save until ``persist()`` succeeds."""
        return self._unsaved

    @property
    def is_idle(self) -> bool:
        return not self._lock.locked() and not self._unsaved

    def get_stats(self) -> UserStats:
        """Snapshot copy of the stats with today's goals in place."""
        with self._lock:
            self._refresh_goals(self.clock())
            return self._stats.model_copy(deep=True)

    def get_unlocked_badges(self) -> list[Badge]:
        with self._lock:
            unlocked = set(self._stats.badges_unlocked)
        return [badge for badge in BADGES if badge.id in unlocked]

    def get_badge_catalog(self) -> list[Badge]:
        return list(BADGES)

    def get_challenge_catalog(self) -> list[Challenge]:
        return list(CHALLENGES)

    def get_leaderboard_snapshot(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Rank stored users by xp with this user's live stats spliced in."""
        others = []
        for user_id in self.store.list_user_ids():
            if user_id == self.user_id:
                continue
            try:
                others.append(self.store.load(user_id))
            except (StatsNotFound, OSError, ValueError) as e:
                logger.warning("leaderboard_entry_skipped", user_id=user_id, error=str(e))
        return rank_leaderboard(others + [self.get_stats()], self.user_id, limit)

    @staticmethod
    def _validate_score(score: PronunciationScore | Mapping[str, Any]) -> PronunciationScore:
        if isinstance(score, PronunciationScore):
            score = score.model_dump()
        try:
            return PronunciationScore.model_validate(score, strict=True)
        except ValidationError as e:
            raise InvalidInput(f"invalid pronunciation score: {e}") from e

    def _refresh_goals(self, today: dt.date) -> None:
        if goals_are_stale(self._stats.daily_goals, today):
            self._stats.daily_goals = generate_daily_goals(today)
            logger.debug("daily_goals_regenerated", user_id=self.user_id, date=today.isoformat())

    def _update_streak(self, today: dt.date) -> None:
        stats = self._stats
        last = stats.last_activity_date
        if last == today:
            return
        if last is not None and today - last == dt.timedelta(days=1):
            stats.streak_days += 1
        else:
            stats.streak_days = 1
        stats.last_activity_date = today
        advance_goal(stats.daily_goals, GoalKind.STREAK_MAINTENANCE, 1)

    def _apply_level_ups(self) -> bool:
        stats = self._stats
        start_level = stats.level
        while stats.xp >= xp_for_next_level(stats.level):
            stats.level += 1
        if stats.level > start_level:
            logger.info("level_up", user_id=self.user_id, level=stats.level, xp=stats.xp)
            return True
        return False

    def _unlock_badges(self) -> list[Badge]:
        stats = self._stats
        new_badges = []
        for badge in BADGES:
            if badge.id in stats.badges_unlocked:
                continue
            if badge_unlocked(badge, stats):
                stats.badges_unlocked.append(badge.id)
                new_badges.append(badge)
                logger.info("badge_unlocked", user_id=self.user_id, badge_id=badge.id)
        return new_badges

    def _save(self, outcome: SessionOutcome | None = None) -> None:
        self._unsaved = True
        self._stats.updated_at = dt.datetime.now()
        try:
            self.store.save(self.user_id, self._stats)
        except OSError as e:
            logger.error("stats_persist_failed", user_id=self.user_id, error=str(e))
            raise PersistenceFailed(self.user_id, outcome) from e
        self._unsaved = False


class EngineRegistry:
    """Hands out one engine per user, keeping at most ``max_engines`` in memory.

    The registry lock only guards the lookup table; sessions for different
    users run on different engine locks. When the table is full the least
    recently used idle engine is dropped; engines that are mid-call or hold
    unsaved changes are never dropped.
    """

    def __init__(self, store: StatsStore, clock: Clock = dt.date.today, max_engines: int = 1024):
        if max_engines < 1:
            raise ValueError("max_engines must be at least 1")
        self.store = store
        self.clock = clock
        self.max_engines = max_engines
        self._engines: OrderedDict[str, ProgressionEngine] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def get(self, user_id: str) -> ProgressionEngine:
        with self._lock:
            engine = self._engines.get(user_id)
            if engine is not None:
                self._engines.move_to_end(user_id)
                return engine
        engine = ProgressionEngine(user_id, self.store, clock=self.clock)
        with self._lock:
            engine = self._engines.setdefault(user_id, engine)
            self._engines.move_to_end(user_id)
            self._evict_idle()
            return engine

    def _evict_idle(self) -> None:
        excess = len(self._engines) - self.max_engines
        if excess <= 0:
            return
        # Oldest first; the newest entry is the one just handed out
        for user_id in list(self._engines)[:-1]:
            if excess <= 0:
                break
            if self._engines[user_id].is_idle:
                del self._engines[user_id]
                excess -= 1
                logger.debug("engine_evicted", user_id=user_id)
