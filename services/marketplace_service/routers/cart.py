"""Cart router: the caller's own cart lines."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.marketplace_service.errors import MarketplaceError
from services.marketplace_service.routers._helpers import http_error
from services.marketplace_service.schemas import (
    CartItemCreate,
    CartItemUpdate,
    CartLineResponse,
)
from services.marketplace_service.services import cart_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=list[CartLineResponse])
async def get_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's cart lines."""
    return await cart_ops.list_cart_lines(db, current_user.user_id)


@router.post(
    "/items", response_model=CartLineResponse, status_code=status.HTTP_201_CREATED
)
async def add_cart_item(
    payload: CartItemCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a vendor or first-party product to the cart."""
    try:
        return await cart_ops.add_to_cart(
            db, current_user.user_id, payload.product_id, payload.quantity
        )
    except MarketplaceError as e:
        raise http_error(e)


@router.patch("/items/{line_id}", response_model=CartLineResponse)
async def update_cart_item(
    line_id: uuid.UUID,
    payload: CartItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        return await cart_ops.update_cart_line(
            db, current_user.user_id, line_id, payload.quantity
        )
    except MarketplaceError as e:
        raise http_error(e)


@router.delete("/items/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cart_item(
    line_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        await cart_ops.remove_cart_line(db, current_user.user_id, line_id)
    except MarketplaceError as e:
        raise http_error(e)
