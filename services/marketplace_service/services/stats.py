"""Admin dashboard figures."""

from dataclasses import dataclass
from decimal import Decimal

from libs.common.currency import to_money
from libs.common.datetime_utils import utc_day_bounds
from services.marketplace_service.models import (
    Order,
    OrderPaymentStatus,
    StoreProduct,
    VendorProduct,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

RECENT_ORDERS_LIMIT = 5


@dataclass
class DashboardStats:
    orders_today: int
    total_revenue: Decimal
    total_products: int
    recent_orders: list[Order]


async def get_dashboard_stats(db: AsyncSession) -> DashboardStats:
    start, end = utc_day_bounds()

    orders_today = await db.scalar(
        select(func.count(Order.id)).where(
            Order.created_at >= start, Order.created_at < end
        )
    )
    revenue = await db.scalar(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.payment_status == OrderPaymentStatus.PAID
        )
    )
    vendor_products = await db.scalar(
        select(func.count(VendorProduct.id)).where(VendorProduct.is_active.is_(True))
    )
    store_products = await db.scalar(
        select(func.count(StoreProduct.id)).where(StoreProduct.is_deleted.is_(False))
    )

    result = await db.execute(
        select(Order).order_by(Order.created_at.desc()).limit(RECENT_ORDERS_LIMIT)
    )

    return DashboardStats(
        orders_today=orders_today or 0,
        total_revenue=to_money(revenue or 0),
        total_products=(vendor_products or 0) + (store_products or 0),
        recent_orders=list(result.scalars().all()),
    )
