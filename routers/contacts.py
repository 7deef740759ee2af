"""Contact form endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_admin
from config import get_settings
from database import get_db
from models import Contact, User
from schemas import ContactCreate, ContactResponse, ContactStatus, ContactUpdate

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@router.post("/contact", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def submit_contact(
    request: Request,
    contact_data: ContactCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Contact:
    """
    Store a contact form message as new.

    Rate limited to 5 messages per minute per IP.
    """
    contact = Contact(**contact_data.model_dump(), status=ContactStatus.NEW.value)
    db.add(contact)
    await db.commit()
    await db.refresh(contact)

    logger.info(f"Contact message {contact.id} from {contact.email}: {contact.subject}")
    return contact


# --- Admin Endpoints ---


@router.get("/admin/contacts", response_model=list[ContactResponse])
async def list_contacts(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    status_filter: Annotated[ContactStatus | None, Query(alias="status")] = None,
) -> list[Contact]:
    query = select(Contact).order_by(Contact.created_at.desc(), Contact.id.desc())
    if status_filter:
        query = query.where(Contact.status == status_filter.value)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.put("/admin/contacts/{contact_id}", response_model=ContactResponse)
async def update_contact_status(
    contact_id: int,
    contact_data: ContactUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Contact:
    contact = await db.get(Contact, contact_id)
    if not contact:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contact not found",
        )

    contact.status = contact_data.status
    await db.commit()
    await db.refresh(contact)

    logger.info(f"Contact {contact.id} marked {contact.status} by {current_user.email}")
    return contact
