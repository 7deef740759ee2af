"""Quote intake and back-office quote management."""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_admin
from config import get_settings
from database import apply_updates, get_db
from models import Product, Quote, User
from schemas import (
    QuoteCreate,
    QuoteResponse,
    QuoteSendResponse,
    QuoteStatus,
    QuoteSubmissionResponse,
    QuoteUpdate,
)
from services.documents import render_boq_document, render_quote_document
from services.notifications import NotificationDispatcher, build_quote_email, get_dispatcher
from services.pricing import calculate_totals, price_items

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

SUBMISSION_MESSAGE = "Quote request submitted successfully. We will contact you within 24 hours."


async def get_quote_or_404(db: AsyncSession, quote_id: int) -> Quote:
    quote = await db.get(Quote, quote_id)
    if not quote:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Quote not found",
        )
    return quote


@router.post(
    "/quotes",
    response_model=QuoteSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("10/minute")
async def submit_quote(
    request: Request,
    quote_data: QuoteCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> QuoteSubmissionResponse:
    """
    Submit a quote request from the public website.

    The quote is stored as pending before the confirmation email is
    attempted; a failed email does not undo the submission.
    Rate limited to 10 requests per minute.
    """
    quote = Quote(**quote_data.model_dump(), status=QuoteStatus.PENDING.value, currency="KSH")

    try:
        db.add(quote)
        await db.commit()
        await db.refresh(quote)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Failed to store quote request from {quote_data.customer_email}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit quote request",
        )

    logger.info(
        f"Quote created: {quote.id} - {quote.customer_email} - "
        f"{quote.project_type} in {quote.location}"
    )

    notification_sent = await dispatcher.send(build_quote_email(quote, dispatcher.config.sender))
    if not notification_sent:
        logger.warning(f"Confirmation email for quote {quote.id} was not delivered")

    return QuoteSubmissionResponse(
        **QuoteResponse.model_validate(quote).model_dump(),
        message=SUBMISSION_MESSAGE,
        notification_sent=notification_sent,
    )


# --- Admin Endpoints ---


@router.get("/admin/quotes", response_model=list[QuoteResponse])
async def list_quotes(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    status_filter: Annotated[QuoteStatus | None, Query(alias="status")] = None,
) -> list[Quote]:
    """List quotes, newest first, optionally filtered by status."""
    query = select(Quote).order_by(Quote.created_at.desc(), Quote.id.desc())
    if status_filter:
        query = query.where(Quote.status == status_filter.value)

    result = await db.execute(query)
    return list(result.scalars().all())


@router.get("/admin/quotes/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Quote:
    return await get_quote_or_404(db, quote_id)


@router.put("/admin/quotes/{quote_id}", response_model=QuoteResponse)
async def update_quote(
    quote_id: int,
    quote_data: QuoteUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Quote:
    """
    Update a quote.

    Supplied items are re-priced and replace the quote's totals; a bare
    totalAmount recomputes VAT and the final total from it.
    """
    quote = await get_quote_or_404(db, quote_id)
    updates = quote_data.model_dump(exclude_unset=True)

    # An explicit null leaves the stored items untouched
    if updates.get("items", ()) is None:
        del updates["items"]

    if updates.get("assigned_to") is not None and not await db.get(User, updates["assigned_to"]):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    repricing = "items" in updates or "total_amount" in updates
    items = updates.pop("items", None)
    subtotal = updates.pop("total_amount", None)

    if items is not None:
        quote.items, totals = price_items(items)
    else:
        totals = calculate_totals(subtotal)

    if repricing:
        quote.total_amount = totals.subtotal if totals else None
        quote.vat_amount = totals.vat if totals else None
        quote.final_total = totals.total if totals else None

    apply_updates(quote, updates)
    await db.commit()
    await db.refresh(quote)

    logger.info(f"Quote {quote.id} updated by {current_user.email} (status: {quote.status})")
    return quote


@router.post("/admin/quotes/{quote_id}/send", response_model=QuoteSendResponse)
async def send_quote(
    quote_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> QuoteSendResponse:
    """Mark a quote as sent and email the quotation to the customer."""
    quote = await get_quote_or_404(db, quote_id)

    quote.status = QuoteStatus.SENT.value
    quote.sent_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(quote)

    delivered = await dispatcher.send(
        build_quote_email(quote, dispatcher.config.sender, kind="quotation")
    )
    logger.info(
        f"Quote {quote.id} sent by {current_user.email} to {quote.customer_email} "
        f"(delivered: {delivered})"
    )

    return QuoteSendResponse(
        message="Quote sent successfully" if delivered else "Quote marked as sent but email delivery failed",
        status=quote.status,
        delivered=delivered,
    )


@router.get("/admin/quotes/{quote_id}/document", response_class=HTMLResponse)
async def quote_document(
    quote_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> HTMLResponse:
    """Printable quotation for browser print-to-PDF."""
    quote = await get_quote_or_404(db, quote_id)
    return HTMLResponse(render_quote_document(quote))


@router.get("/admin/quotes/{quote_id}/boq", response_class=HTMLResponse)
async def quote_boq(
    quote_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> HTMLResponse:
    """Printable bill of quantities, with product details for catalog items."""
    quote = await get_quote_or_404(db, quote_id)

    product_ids = {item.get("product_id") for item in quote.items or []} - {None}
    products = []
    if product_ids:
        result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
        products = list(result.scalars().all())

    return HTMLResponse(render_boq_document(quote, products))
