"""Website content: projects, blog posts, team members and success stories."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_admin
from database import Base, apply_updates, get_db
from models import BlogPost, Project, SuccessStory, TeamMember, User
from schemas import (
    BlogPostCreate,
    BlogPostResponse,
    BlogPostUpdate,
    ProjectCreate,
    ProjectResponse,
    ProjectStatus,
    ProjectUpdate,
    SuccessStoryCreate,
    SuccessStoryResponse,
    SuccessStoryUpdate,
    TeamMemberCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_or_404(db: AsyncSession, model: type[Base], item_id: int, label: str):
    instance = await db.get(model, item_id)
    if not instance:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} not found",
        )
    return instance


async def ensure_unique_slug(db: AsyncSession, slug: str, exclude_id: int | None = None) -> None:
    query = select(BlogPost.id).where(BlogPost.slug == slug)
    if exclude_id is not None:
        query = query.where(BlogPost.id != exclude_id)
    if await db.scalar(query) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Slug already in use",
        )


# --- Projects ---


@router.get("/projects", response_model=list[ProjectResponse])
async def list_completed_projects(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Project]:
    """Public portfolio: completed projects only."""
    result = await db.execute(
        select(Project)
        .where(Project.status == ProjectStatus.COMPLETED.value)
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    return list(result.scalars().all())


@router.get("/admin/projects", response_model=list[ProjectResponse])
async def admin_list_projects(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    status_filter: Annotated[ProjectStatus | None, Query(alias="status")] = None,
) -> list[Project]:
    query = select(Project).order_by(Project.created_at.desc(), Project.id.desc())
    if status_filter:
        query = query.where(Project.status == status_filter.value)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/admin/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Project:
    project = Project(**project_data.model_dump())
    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.info(f"Project created by {current_user.email}: {project.id} - {project.name}")
    return project


@router.put("/admin/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    project_data: ProjectUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Project:
    project = await get_or_404(db, Project, project_id, "Project")
    apply_updates(project, project_data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(project)

    logger.info(f"Project {project.id} updated by {current_user.email} (status: {project.status})")
    return project


# --- Blog ---


@router.get("/blog", response_model=list[BlogPostResponse])
async def list_published_posts(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[BlogPost]:
    result = await db.execute(
        select(BlogPost)
        .where(BlogPost.published.is_(True))
        .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
    )
    return list(result.scalars().all())


@router.get("/blog/{slug}", response_model=BlogPostResponse)
async def get_published_post(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BlogPost:
    """Get a published post by slug. Drafts are reported as not found."""
    result = await db.execute(
        select(BlogPost).where(BlogPost.slug == slug, BlogPost.published.is_(True))
    )
    post = result.scalar_one_or_none()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Blog post not found",
        )
    return post


@router.get("/admin/blog", response_model=list[BlogPostResponse])
async def admin_list_posts(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> list[BlogPost]:
    result = await db.execute(
        select(BlogPost).order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
    )
    return list(result.scalars().all())


@router.post("/admin/blog", response_model=BlogPostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: BlogPostCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> BlogPost:
    await ensure_unique_slug(db, post_data.slug)

    post = BlogPost(**post_data.model_dump(), author_id=current_user.id)
    db.add(post)
    await db.commit()
    await db.refresh(post)

    logger.info(f"Blog post created by {current_user.email}: {post.slug}")
    return post


@router.put("/admin/blog/{post_id}", response_model=BlogPostResponse)
async def update_post(
    post_id: int,
    post_data: BlogPostUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> BlogPost:
    post = await get_or_404(db, BlogPost, post_id, "Blog post")
    updates = post_data.model_dump(exclude_unset=True)
    if updates.get("slug"):
        await ensure_unique_slug(db, updates["slug"], exclude_id=post.id)

    apply_updates(post, updates)
    await db.commit()
    await db.refresh(post)

    logger.info(f"Blog post {post.id} updated by {current_user.email}")
    return post


# --- Team ---


@router.get("/team", response_model=list[TeamMemberResponse])
async def list_active_team(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[TeamMember]:
    """Active team members in display order."""
    result = await db.execute(
        select(TeamMember)
        .where(TeamMember.active.is_(True))
        .order_by(TeamMember.order, TeamMember.id)
    )
    return list(result.scalars().all())


@router.get("/admin/team", response_model=list[TeamMemberResponse])
async def admin_list_team(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    active: bool | None = None,
) -> list[TeamMember]:
    query = select(TeamMember).order_by(TeamMember.order, TeamMember.id)
    if active is not None:
        query = query.where(TeamMember.active.is_(active))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/admin/team", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED)
async def create_team_member(
    member_data: TeamMemberCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> TeamMember:
    member = TeamMember(**member_data.model_dump())
    db.add(member)
    await db.commit()
    await db.refresh(member)

    logger.info(f"Team member created by {current_user.email}: {member.name}")
    return member


@router.put("/admin/team/{member_id}", response_model=TeamMemberResponse)
async def update_team_member(
    member_id: int,
    member_data: TeamMemberUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> TeamMember:
    """Partially update a team member. Setting active=false hides them from the site."""
    member = await get_or_404(db, TeamMember, member_id, "Team member")
    apply_updates(member, member_data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(member)

    logger.info(f"Team member {member.id} updated by {current_user.email}")
    return member


# --- Success Stories ---


@router.get("/success-stories", response_model=list[SuccessStoryResponse])
async def list_active_stories(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[SuccessStory]:
    result = await db.execute(
        select(SuccessStory)
        .where(SuccessStory.active.is_(True))
        .order_by(SuccessStory.featured.desc(), SuccessStory.created_at.desc(), SuccessStory.id.desc())
    )
    return list(result.scalars().all())


@router.get("/admin/success-stories", response_model=list[SuccessStoryResponse])
async def admin_list_stories(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    active: bool | None = None,
    featured: bool | None = None,
) -> list[SuccessStory]:
    query = select(SuccessStory).order_by(SuccessStory.created_at.desc(), SuccessStory.id.desc())
    if active is not None:
        query = query.where(SuccessStory.active.is_(active))
    if featured is not None:
        query = query.where(SuccessStory.featured.is_(featured))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post(
    "/admin/success-stories",
    response_model=SuccessStoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_story(
    story_data: SuccessStoryCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> SuccessStory:
    story = SuccessStory(**story_data.model_dump())
    db.add(story)
    await db.commit()
    await db.refresh(story)

    logger.info(f"Success story created by {current_user.email}: {story.title}")
    return story


@router.put("/admin/success-stories/{story_id}", response_model=SuccessStoryResponse)
async def update_story(
    story_id: int,
    story_data: SuccessStoryUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> SuccessStory:
    story = await get_or_404(db, SuccessStory, story_id, "Success story")
    apply_updates(story, story_data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(story)

    logger.info(f"Success story {story.id} updated by {current_user.email}")
    return story
