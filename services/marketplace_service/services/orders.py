"""Order history, vendor order views and status-only transitions."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.currency import ZERO
from libs.common.logging import get_logger
from services.marketplace_service.errors import (
    NotFoundError,
    OrderNotFoundError,
    PermissionDeniedError,
)
from services.marketplace_service.models import (
    FulfillmentStatus,
    Order,
    OrderItem,
    OrderPaymentStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass
class VendorOrderView:
    """An order as one vendor sees it: only that vendor's items."""

    order_id: uuid.UUID
    user_id: str
    payment_status: OrderPaymentStatus
    order_date: datetime
    shipping_address: Optional[dict]
    items: list[OrderItem] = field(default_factory=list)
    vendor_total: Decimal = ZERO


async def list_user_orders(db: AsyncSession, user_id: str) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def get_order(
    db: AsyncSession, order_id: uuid.UUID, *, user_id: Optional[str] = None
) -> Order:
    """Fetch an order with items. When ``user_id`` is given it must own it."""
    result = await db.execute(
        select(Order).where(Order.id == order_id).options(selectinload(Order.items))
    )
    order = result.scalar_one_or_none()
    if order is None or (user_id is not None and order.user_id != user_id):
        raise OrderNotFoundError(order_id)
    return order


async def list_vendor_orders(
    db: AsyncSession, vendor_id: uuid.UUID
) -> list[VendorOrderView]:
    """Orders containing the vendor's items, newest first, grouped per order."""
    result = await db.execute(
        select(OrderItem, Order)
        .join(Order, Order.id == OrderItem.order_id)
        .where(OrderItem.vendor_id == vendor_id)
        .order_by(Order.created_at.desc(), OrderItem.created_at)
    )

    views: dict[uuid.UUID, VendorOrderView] = {}
    for item, order in result.all():
        view = views.get(order.id)
        if view is None:
            view = VendorOrderView(
                order_id=order.id,
                user_id=order.user_id,
                payment_status=order.payment_status,
                order_date=order.created_at,
                shipping_address=order.shipping_address,
            )
            views[order.id] = view
        view.items.append(item)
        view.vendor_total += item.price * item.quantity
    return list(views.values())


async def update_order_status(
    db: AsyncSession, order_id: uuid.UUID, order_status: FulfillmentStatus
) -> Order:
    """Admin fulfillment transition. Amounts are never touched."""
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    previous = order.order_status
    order.order_status = order_status
    await db.commit()
    logger.info("Order %s status %s -> %s", order_id, previous, order_status)
    return await get_order(db, order_id)


async def update_order_item_status(
    db: AsyncSession,
    *,
    vendor_id: uuid.UUID,
    item_id: uuid.UUID,
    status: FulfillmentStatus,
) -> OrderItem:
    """Vendor fulfillment transition on one of its own items."""
    item = await db.get(OrderItem, item_id)
    if item is None:
        raise NotFoundError(f"Order item {item_id} not found")
    if item.vendor_id != vendor_id:
        raise PermissionDeniedError("Order item belongs to another vendor")
    item.status = status
    await db.commit()
    await db.refresh(item)
    return item
