"""Daily goal generation and progress."""

import datetime as dt

from pronunciation_progress.models.progression import DailyGoal, GoalKind

# (id, kind, target, xp_reward)
DAILY_GOAL_TEMPLATES: list[tuple[str, GoalKind, int, int]] = [
    ("pronunciation_practice", GoalKind.PRONUNCIATION_COUNT, 5, 100),
    ("accuracy_goal", GoalKind.ACCURACY_THRESHOLD, 85, 150),
    ("streak_maintain", GoalKind.STREAK_MAINTENANCE, 1, 50),
]


def generate_daily_goals(today: dt.date) -> list[DailyGoal]:
    """Fresh goal set for ``today``."""
    return [
        DailyGoal(id=goal_id, kind=kind, target=target, xp_reward=xp_reward, date=today)
        for goal_id, kind, target, xp_reward in DAILY_GOAL_TEMPLATES
    ]


def goals_are_stale(goals: list[DailyGoal], today: dt.date) -> bool:
    return not goals or any(goal.date != today for goal in goals)


def regenerate_if_stale(goals: list[DailyGoal], today: dt.date) -> list[DailyGoal]:
    """Return ``goals`` unchanged if they belong to ``today``, else a new set."""
    if goals_are_stale(goals, today):
        return generate_daily_goals(today)
    return goals


def find_goal(goals: list[DailyGoal], kind: GoalKind) -> DailyGoal | None:
    for goal in goals:
        if goal.kind == kind:
            return goal
    return None


def advance_goal(goals: list[DailyGoal], kind: GoalKind, value: int) -> None:
    """Apply progress to the goal of ``kind``. Completed goals are left alone.

    Count goals add ``value``; accuracy goals keep the best value seen;
    streak goals add ``value`` but never pass their target.
    """
    goal = find_goal(goals, kind)
    if goal is None or goal.completed:
        return
    if kind == GoalKind.ACCURACY_THRESHOLD:
        goal.current = max(goal.current, value)
    elif kind == GoalKind.STREAK_MAINTENANCE:
        goal.current = min(goal.current + value, goal.target)
    else:
        goal.current += value


def settle_goals(goals: list[DailyGoal]) -> list[DailyGoal]:
    """Latch goals that reached their target. Returns the newly completed ones."""
    newly_completed = []
    for goal in goals:
        if not goal.completed and goal.current >= goal.target:
            goal.completed = True
            newly_completed.append(goal)
    return newly_completed
