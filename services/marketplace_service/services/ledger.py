"""Vendor ledger: gross sales, commission owed, paid out and balance per vendor.

Only committed, paid orders contribute to sales. Balances are not clamped; a
negative balance means the vendor was paid out more than earned.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from libs.common.currency import ZERO, to_money
from services.marketplace_service.errors import VendorNotFoundError
from services.marketplace_service.models import (
    Commission,
    Order,
    OrderItem,
    OrderPaymentStatus,
    Payment,
    PaymentStatus,
    PaymentType,
    Vendor,
    VendorStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

# Order payment states that count as settled revenue
SETTLED_ORDER_STATUSES = (OrderPaymentStatus.PAID,)


@dataclass(frozen=True)
class VendorLedger:
    vendor_id: uuid.UUID
    vendor_name: str
    vendor_status: VendorStatus
    gross_sales: Decimal
    total_commission: Decimal
    total_paid_out: Decimal

    @property
    def balance(self) -> Decimal:
        return self.gross_sales - self.total_commission - self.total_paid_out


def _gross_sales_query():
    return (
        select(
            OrderItem.vendor_id,
            func.coalesce(func.sum(OrderItem.price * OrderItem.quantity), 0),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .where(
            OrderItem.vendor_id.is_not(None),
            Order.payment_status.in_(SETTLED_ORDER_STATUSES),
        )
        .group_by(OrderItem.vendor_id)
    )


def _commission_query():
    return select(
        Commission.vendor_id,
        func.coalesce(func.sum(Commission.commission_amount), 0),
    ).group_by(Commission.vendor_id)


def _paid_out_query():
    return (
        select(Payment.vendor_id, func.coalesce(func.sum(Payment.amount), 0))
        .where(
            Payment.payment_type == PaymentType.VENDOR_PAYOUT,
            Payment.payment_status == PaymentStatus.SUCCESS,
            Payment.vendor_id.is_not(None),
        )
        .group_by(Payment.vendor_id)
    )


async def _sums_by_vendor(
    db: AsyncSession, query, vendor_id: Optional[uuid.UUID]
) -> dict[uuid.UUID, Decimal]:
    if vendor_id is not None:
        key_column = query.selected_columns[0]
        query = query.where(key_column == vendor_id)
    result = await db.execute(query)
    return {row[0]: to_money(row[1]) for row in result}


async def _build_ledgers(
    db: AsyncSession, vendors: list[Vendor], vendor_id: Optional[uuid.UUID] = None
) -> list[VendorLedger]:
    sales = await _sums_by_vendor(db, _gross_sales_query(), vendor_id)
    commissions = await _sums_by_vendor(db, _commission_query(), vendor_id)
    payouts = await _sums_by_vendor(db, _paid_out_query(), vendor_id)

    return [
        VendorLedger(
            vendor_id=vendor.id,
            vendor_name=vendor.name,
            vendor_status=vendor.status,
            gross_sales=sales.get(vendor.id, ZERO),
            total_commission=commissions.get(vendor.id, ZERO),
            total_paid_out=payouts.get(vendor.id, ZERO),
        )
        for vendor in vendors
    ]


async def get_vendor_ledger(db: AsyncSession, vendor_id: uuid.UUID) -> VendorLedger:
    """Ledger for one vendor, whatever its approval status."""
    vendor = await db.get(Vendor, vendor_id)
    if vendor is None:
        raise VendorNotFoundError(vendor_id)
    ledgers = await _build_ledgers(db, [vendor], vendor_id)
    return ledgers[0]


async def list_vendor_ledgers(
    db: AsyncSession, *, approved_only: bool = True
) -> list[VendorLedger]:
    """Ledgers for all (by default only approved) vendors, ordered by name."""
    query = select(Vendor).order_by(Vendor.name, Vendor.id)
    if approved_only:
        query = query.where(Vendor.status == VendorStatus.APPROVED)
    result = await db.execute(query)
    vendors = list(result.scalars().all())
    if not vendors:
        return []
    return await _build_ledgers(db, vendors)
