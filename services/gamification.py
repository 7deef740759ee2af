"""Points, levels and achievement unlocks for back-office users."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Achievement, GamificationStats, Project, Quote, UserAchievement

logger = logging.getLogger(__name__)

POINTS_PER_QUOTE = 10
POINTS_PER_COMPLETED_PROJECT = 25
POINTS_PER_ACHIEVEMENT = 5
POINTS_PER_LEVEL = 100

# Installed on first start when the catalog is empty
DEFAULT_ACHIEVEMENTS = (
    {
        "name": "First Quote",
        "description": "Create your first quote",
        "icon": "target",
        "category": "quotes",
        "milestone": 1,
        "points": 10,
        "color": "bronze",
        "rarity": "common",
    },
    {
        "name": "Quote Master",
        "description": "Create 10 quotes",
        "icon": "trophy",
        "category": "quotes",
        "milestone": 10,
        "points": 50,
        "color": "gold",
        "rarity": "rare",
    },
    {
        "name": "Project Pioneer",
        "description": "Complete your first project",
        "icon": "rocket",
        "category": "projects",
        "milestone": 1,
        "points": 25,
        "color": "silver",
        "rarity": "common",
    },
)


def calculate_points(quotes: int, completed_projects: int, achievements: int) -> int:
    return (
        quotes * POINTS_PER_QUOTE
        + completed_projects * POINTS_PER_COMPLETED_PROJECT
        + achievements * POINTS_PER_ACHIEVEMENT
    )


def calculate_level(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def milestone_reached(achievement: Achievement, stats: GamificationStats) -> bool:
    """Check an achievement's milestone against the metric for its category."""
    metric = {
        "quotes": stats.quotes_created,
        "projects": stats.projects_completed,
        "engagement": stats.total_points,
    }.get(achievement.category)
    return metric is not None and metric >= achievement.milestone


@dataclass
class GamificationResult:
    stats: GamificationStats
    achievements: list[Achievement]
    unlocked_ids: set[int]
    newly_unlocked: list[Achievement]


async def refresh_user_progress(db: AsyncSession, user_id: int) -> GamificationResult:
    """
    Recompute a user's stats and unlock every achievement whose milestone is met.

    Points are counted before and after unlocking, so achievements unlocked
    in this pass contribute to the stored total.
    """
    quotes_created = await db.scalar(select(func.count(Quote.id))) or 0
    projects_completed = await db.scalar(
        select(func.count(Project.id)).where(Project.status == "completed")
    ) or 0

    result = await db.execute(
        select(GamificationStats).where(GamificationStats.user_id == user_id)
    )
    stats = result.scalar_one_or_none()
    if stats is None:
        stats = GamificationStats(user_id=user_id)
        db.add(stats)

    result = await db.execute(
        select(UserAchievement.achievement_id).where(
            UserAchievement.user_id == user_id,
            UserAchievement.completed.is_(True),
        )
    )
    unlocked_ids = set(result.scalars().all())

    result = await db.execute(
        select(Achievement)
        .where(Achievement.active.is_(True))
        .order_by(Achievement.category, Achievement.milestone)
    )
    achievements = list(result.scalars().all())

    stats.quotes_created = quotes_created
    stats.projects_completed = projects_completed
    stats.total_points = calculate_points(quotes_created, projects_completed, len(unlocked_ids))

    now = datetime.now(timezone.utc)
    newly_unlocked = []
    for achievement in achievements:
        if achievement.id in unlocked_ids or not milestone_reached(achievement, stats):
            continue
        db.add(UserAchievement(
            user_id=user_id,
            achievement_id=achievement.id,
            progress=achievement.milestone,
            completed=True,
            unlocked_at=now,
        ))
        unlocked_ids.add(achievement.id)
        newly_unlocked.append(achievement)

    stats.achievement_count = len(unlocked_ids)
    stats.total_points = calculate_points(quotes_created, projects_completed, len(unlocked_ids))
    stats.level = calculate_level(stats.total_points)
    stats.last_activity = now

    await db.commit()
    await db.refresh(stats)

    if newly_unlocked:
        names = ", ".join(a.name for a in newly_unlocked)
        logger.info(f"User {user_id} unlocked achievements: {names}")

    return GamificationResult(
        stats=stats,
        achievements=achievements,
        unlocked_ids=unlocked_ids,
        newly_unlocked=newly_unlocked,
    )


async def seed_default_achievements(db: AsyncSession) -> list[Achievement]:
    """Install the starter achievements unless the catalog already has entries."""
    existing = await db.scalar(select(func.count(Achievement.id)))
    if existing:
        logger.info(f"Achievement catalog has {existing} entries, skipping seed")
        return []

    achievements = [Achievement(**values) for values in DEFAULT_ACHIEVEMENTS]
    db.add_all(achievements)
    await db.commit()
    for achievement in achievements:
        await db.refresh(achievement)

    logger.info(f"Seeded {len(achievements)} default achievements")
    return achievements
