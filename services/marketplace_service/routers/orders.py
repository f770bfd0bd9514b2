"""Orders router: customer order history and vendor fulfillment."""

import uuid

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user, require_vendor
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.marketplace_service.errors import MarketplaceError
from services.marketplace_service.routers._helpers import http_error
from services.marketplace_service.schemas import (
    OrderItemResponse,
    OrderResponse,
    OrderStatusUpdate,
    VendorOrderResponse,
)
from services.marketplace_service.services import orders as order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["orders"])


# ============================================================================
# CUSTOMER
# ============================================================================


@router.get("/orders", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's orders, newest first."""
    return await order_ops.list_user_orders(db, current_user.user_id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get one order. Admins may read any order."""
    owner = None if current_user.is_admin else current_user.user_id
    try:
        return await order_ops.get_order(db, order_id, user_id=owner)
    except MarketplaceError as e:
        raise http_error(e)


# ============================================================================
# VENDOR
# ============================================================================


@router.get("/vendor/orders", response_model=list[VendorOrderResponse])
async def list_vendor_orders(
    vendor_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders containing the vendor's items (other vendors' items hidden)."""
    views = await order_ops.list_vendor_orders(db, uuid.UUID(vendor_user.vendor_id))
    return [VendorOrderResponse.model_validate(view) for view in views]


@router.patch("/vendor/order-items/{item_id}/status", response_model=OrderItemResponse)
async def update_vendor_item_status(
    item_id: uuid.UUID,
    payload: OrderStatusUpdate,
    vendor_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        return await order_ops.update_order_item_status(
            db,
            vendor_id=uuid.UUID(vendor_user.vendor_id),
            item_id=item_id,
            status=payload.status,
        )
    except MarketplaceError as e:
        raise http_error(e)
