"""Product catalog endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_admin
from database import apply_updates, get_db
from models import Product, User
from schemas import ProductCategory, ProductCreate, ProductResponse, ProductUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return product


async def _list_products(db: AsyncSession, category: ProductCategory | None) -> list[Product]:
    query = select(Product).order_by(Product.created_at.desc(), Product.id.desc())
    if category:
        query = query.where(Product.category == category.value)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    db: Annotated[AsyncSession, Depends(get_db)],
    category: ProductCategory | None = None,
) -> list[Product]:
    """List catalog products, optionally filtered by category."""
    return await _list_products(db, category)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Product:
    return await get_product_or_404(db, product_id)


# --- Admin Endpoints ---


@router.get("/admin/products", response_model=list[ProductResponse])
async def admin_list_products(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
    category: ProductCategory | None = None,
) -> list[Product]:
    return await _list_products(db, category)


@router.post("/admin/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Product:
    """Add a product to the catalog."""
    product = Product(**product_data.model_dump())
    db.add(product)
    await db.commit()
    await db.refresh(product)

    logger.info(f"Product created by {current_user.email}: {product.id} - {product.name}")
    return product


@router.put("/admin/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
) -> Product:
    """Partially update a product."""
    product = await get_product_or_404(db, product_id)
    apply_updates(product, product_data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(product)

    logger.info(f"Product {product.id} updated by {current_user.email}")
    return product
