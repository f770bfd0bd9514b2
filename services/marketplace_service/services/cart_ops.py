"""Cart maintenance: add, update and remove a user's cart lines."""

import uuid

from libs.common.logging import get_logger
from services.marketplace_service.errors import (
    CartLineNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from services.marketplace_service.models import CartLine
from services.marketplace_service.services.catalog_lookup import (
    store_catalog,
    vendor_catalog,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be a positive integer")


async def list_cart_lines(db: AsyncSession, user_id: str) -> list[CartLine]:
    result = await db.execute(
        select(CartLine)
        .where(CartLine.user_id == user_id)
        .order_by(CartLine.created_at, CartLine.id)
    )
    return list(result.scalars().all())


async def add_to_cart(
    db: AsyncSession, user_id: str, product_id: uuid.UUID, quantity: int = 1
) -> CartLine:
    """Add a product to the cart, merging with an existing line for it.

    The id is looked up in the vendor catalog first, then the first-party
    catalog; the matching catalog decides which reference the line carries.
    """
    if not user_id:
        raise ValidationError("User ID is required")
    _check_quantity(quantity)

    if await vendor_catalog.find_by_id(db, product_id) is not None:
        ref_column = CartLine.vendor_product_id
        ref_field = "vendor_product_id"
    elif await store_catalog.find_by_id(db, product_id) is not None:
        ref_column = CartLine.store_product_id
        ref_field = "store_product_id"
    else:
        raise ProductNotFoundError(product_id)

    result = await db.execute(
        select(CartLine).where(CartLine.user_id == user_id, ref_column == product_id)
    )
    line = result.scalar_one_or_none()
    if line:
        line.quantity += quantity
    else:
        line = CartLine(user_id=user_id, quantity=quantity, **{ref_field: product_id})
        db.add(line)

    await db.commit()
    await db.refresh(line)
    logger.debug("Cart line %s for user %s qty=%d", line.id, user_id, line.quantity)
    return line


async def _get_owned_line(
    db: AsyncSession, user_id: str, line_id: uuid.UUID
) -> CartLine:
    line = await db.get(CartLine, line_id)
    # Someone else's line is reported exactly like a missing one
    if line is None or line.user_id != user_id:
        raise CartLineNotFoundError(line_id)
    return line


async def update_cart_line(
    db: AsyncSession, user_id: str, line_id: uuid.UUID, quantity: int
) -> CartLine:
    _check_quantity(quantity)
    line = await _get_owned_line(db, user_id, line_id)
    line.quantity = quantity
    await db.commit()
    await db.refresh(line)
    return line


async def remove_cart_line(db: AsyncSession, user_id: str, line_id: uuid.UUID) -> None:
    line = await _get_owned_line(db, user_id, line_id)
    await db.delete(line)
    await db.commit()
