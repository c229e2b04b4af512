"""Static badge and challenge catalogs."""

from pronunciation_progress.models.progression import (
    Badge,
    BadgeRarity,
    Challenge,
    ChallengeKind,
    Difficulty,
    Requirement,
    RequirementKind,
    UserStats,
)

BADGES: tuple[Badge, ...] = (
    Badge(
        id="first_steps",
        name="First Steps",
        description="Complete your first pronunciation session",
        icon="👶",
        rarity=BadgeRarity.COMMON,
        requirements=(Requirement(kind=RequirementKind.MIN_SESSIONS, threshold=1),),
    ),
    Badge(
        id="pronunciation_novice",
        name="Pronunciation Novice",
        description="Complete 10 pronunciation sessions",
        icon="🗣️",
        rarity=BadgeRarity.COMMON,
        requirements=(Requirement(kind=RequirementKind.MIN_SESSIONS, threshold=10),),
    ),
    Badge(
        id="accuracy_master",
        name="Accuracy Master",
        description="Achieve 95% average pronunciation score",
        icon="🎯",
        rarity=BadgeRarity.RARE,
        requirements=(Requirement(kind=RequirementKind.MIN_AVERAGE_SCORE, threshold=95),),
    ),
    Badge(
        id="streak_warrior",
        name="Streak Warrior",
        description="Maintain a 30-day streak",
        icon="🔥",
        rarity=BadgeRarity.EPIC,
        requirements=(Requirement(kind=RequirementKind.MIN_STREAK, threshold=30),),
    ),
    Badge(
        id="pronunciation_legend",
        name="Pronunciation Legend",
        description="Complete 100 pronunciation sessions with a 90% average score",
        icon="👑",
        rarity=BadgeRarity.LEGENDARY,
        requirements=(
            Requirement(kind=RequirementKind.MIN_SESSIONS, threshold=100),
            Requirement(kind=RequirementKind.MIN_AVERAGE_SCORE, threshold=90),
        ),
    ),
)

CHALLENGES: tuple[Challenge, ...] = (
    Challenge(
        id="daily_pronunciation",
        title="Daily Pronunciation Challenge",
        description="Complete 5 pronunciation exercises today",
        kind=ChallengeKind.DAILY,
        difficulty=Difficulty.EASY,
        target=5,
        xp_reward=100,
    ),
    Challenge(
        id="accuracy_challenge",
        title="Accuracy Challenge",
        description="Achieve 90% accuracy in 3 consecutive sessions",
        kind=ChallengeKind.PRONUNCIATION,
        difficulty=Difficulty.MEDIUM,
        target=3,
        xp_reward=200,
    ),
    Challenge(
        id="weekly_marathon",
        title="Weekly Marathon",
        description="Complete 25 pronunciation sessions this week",
        kind=ChallengeKind.WEEKLY,
        difficulty=Difficulty.HARD,
        target=25,
        xp_reward=500,
    ),
    Challenge(
        id="social_challenge",
        title="Community Challenge",
        description="Compete with friends in pronunciation accuracy",
        kind=ChallengeKind.SOCIAL,
        difficulty=Difficulty.MEDIUM,
        target=1,
        xp_reward=300,
        participants=0,
    ),
)


def requirement_met(requirement: Requirement, stats: UserStats) -> bool:
    """Evaluate one requirement against cumulative stats."""
    match requirement.kind:
        case RequirementKind.MIN_SESSIONS:
            return stats.session_count >= requirement.threshold
        case RequirementKind.MIN_STREAK:
            return stats.streak_days >= requirement.threshold
        case RequirementKind.MIN_XP:
            return stats.xp >= requirement.threshold
        case RequirementKind.MIN_AVERAGE_SCORE:
            average = stats.average_score
            return average is not None and average >= requirement.threshold
    return False


def badge_unlocked(badge: Badge, stats: UserStats) -> bool:
    return all(requirement_met(r, stats) for r in badge.requirements)


def get_badge(badge_id: str) -> Badge | None:
    for badge in BADGES:
        if badge.id == badge_id:
            return badge
    return None
