"""Visitor tracking, analytics and gamification endpoints."""

import logging
from collections import defaultdict
from datetime import datetime, time, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_admin
from database import get_db
from models import Achievement, Contact, PageView, Product, Project, Quote, User
from schemas import (
    AchievementCreate,
    AchievementProgress,
    AchievementResponse,
    AnalyticsResponse,
    GamificationOverview,
    GamificationStatsResponse,
    MessageResponse,
    PageViewCreate,
)
from security import get_client_ip
from services.gamification import refresh_user_progress

logger = logging.getLogger(__name__)

router = APIRouter()


def visitor_growth(today: int, yesterday: int) -> int:
    """Whole-percent change from yesterday's visitors; 0 without a baseline."""
    if yesterday == 0:
        return 0
    return round((today - yesterday) / yesterday * 100)


async def count_unique_visitors(db: AsyncSession, start: datetime, end: datetime) -> int:
    return await db.scalar(
        select(func.count(func.distinct(PageView.session_id))).where(
            PageView.created_at >= start,
            PageView.created_at < end,
        )
    ) or 0


@router.post("/track/pageview", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def track_pageview(
    request: Request,
    view: PageViewCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    """Record a page view from the public site."""
    db.add(PageView(
        page=view.page,
        session_id=view.session_id,
        referrer=view.referrer,
        user_agent=(request.headers.get("user-agent") or "")[:500] or None,
        ip_address=get_client_ip(request),
    ))
    await db.commit()
    return MessageResponse(message="Page view tracked")


# --- Admin Endpoints ---


@router.get("/admin/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> AnalyticsResponse:
    """Dashboard counters and today's visitor numbers."""
    total_products = await db.scalar(select(func.count(Product.id))) or 0
    total_quotes = await db.scalar(select(func.count(Quote.id))) or 0
    total_projects = await db.scalar(select(func.count(Project.id))) or 0
    total_contacts = await db.scalar(select(func.count(Contact.id))) or 0

    result = await db.execute(select(Quote.status, func.count(Quote.id)).group_by(Quote.status))
    quotes_by_status = {quote_status: count for quote_status, count in result.all()}

    # Page views are stamped by the database clock in UTC
    today_start = datetime.combine(datetime.now(timezone.utc).date(), time.min)
    yesterday_start = today_start - timedelta(days=1)
    tomorrow_start = today_start + timedelta(days=1)

    today_visitors = await count_unique_visitors(db, today_start, tomorrow_start)
    yesterday_visitors = await count_unique_visitors(db, yesterday_start, today_start)

    return AnalyticsResponse(
        total_products=total_products,
        total_quotes=total_quotes,
        total_projects=total_projects,
        total_contacts=total_contacts,
        quotes_by_status=quotes_by_status,
        unique_visitors_today=today_visitors,
        visitor_growth=visitor_growth(today_visitors, yesterday_visitors),
    )


@router.get("/admin/achievements", response_model=list[AchievementResponse])
async def list_achievements(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> list[Achievement]:
    result = await db.execute(
        select(Achievement).order_by(Achievement.category, Achievement.milestone, Achievement.id)
    )
    return list(result.scalars().all())


@router.post(
    "/admin/achievements",
    response_model=AchievementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_achievement(
    achievement_data: AchievementCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Achievement:
    achievement = Achievement(**achievement_data.model_dump())
    db.add(achievement)
    await db.commit()
    await db.refresh(achievement)

    logger.info(f"Achievement created by {current_user.email}: {achievement.name}")
    return achievement


@router.get("/admin/gamification", response_model=GamificationOverview)
async def get_gamification(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> GamificationOverview:
    """Recompute the current admin's points and unlock reached milestones."""
    progress = await refresh_user_progress(db, current_user.id)

    by_category = defaultdict(list)
    for achievement in progress.achievements:
        by_category[achievement.category].append(
            AchievementProgress(
                **AchievementResponse.model_validate(achievement).model_dump(),
                unlocked=achievement.id in progress.unlocked_ids,
            )
        )

    return GamificationOverview(
        total_achievements=len(progress.achievements),
        unlocked_achievements=sum(1 for a in progress.achievements if a.id in progress.unlocked_ids),
        gamification_stats=GamificationStatsResponse.model_validate(progress.stats),
        newly_unlocked=[AchievementResponse.model_validate(a) for a in progress.newly_unlocked],
        achievements_by_category=dict(by_category),
    )
