"""Commission allocation: split order revenue per vendor into commission owed.

Money is ``Decimal`` throughout. Vendor revenue is exact (2 dp prices times
integer quantities); the commission is ``rate × revenue`` rounded to 2 dp
with ROUND_HALF_UP.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Protocol

from libs.common.config import get_settings
from libs.common.currency import ZERO, to_decimal, to_money
from services.marketplace_service.errors import ValidationError, VendorNotFoundError
from services.marketplace_service.models import Vendor
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


class PricedItem(Protocol):
    vendor_id: Optional[uuid.UUID]
    price: Decimal
    quantity: int


@dataclass(frozen=True)
class CommissionAllocation:
    vendor_id: uuid.UUID
    vendor_revenue: Decimal
    rate: Decimal
    commission_amount: Decimal


def order_total(items: Iterable[PricedItem]) -> Decimal:
    """Exact sum of ``price × quantity`` over all items."""
    total = ZERO
    for item in items:
        total += to_money(item.price) * item.quantity
    return to_money(total)


def _effective_rate(
    vendor_id: uuid.UUID, rate: object, default_rate: Decimal
) -> Decimal:
    if rate is None:
        return default_rate
    try:
        value = to_decimal(rate)
    except ValueError as e:
        raise ValidationError(f"Vendor {vendor_id} has an invalid commission rate") from e
    if value < 0 or value > 1:
        raise ValidationError(
            f"Vendor {vendor_id} commission rate {value} is outside [0, 1]"
        )
    return value


def allocate_commissions(
    items: Iterable[PricedItem],
    rates: Mapping[uuid.UUID, Optional[Decimal]],
    *,
    default_rate: Optional[Decimal] = None,
) -> list[CommissionAllocation]:
    """Group items by vendor and compute one commission per vendor.

    First-party items (``vendor_id is None``) are ignored. ``rates`` maps
    every vendor present to its configured rate, or ``None`` to use the
    default. A vendor absent from ``rates`` raises ``VendorNotFoundError``.
    Allocations come back in order of each vendor's first item.
    """
    if default_rate is None:
        default_rate = get_settings().DEFAULT_COMMISSION_RATE

    revenue: dict[uuid.UUID, Decimal] = {}
    for item in items:
        if item.vendor_id is None:
            continue
        if item.quantity <= 0:
            raise ValidationError("Item quantity must be positive")
        revenue[item.vendor_id] = (
            revenue.get(item.vendor_id, ZERO) + to_money(item.price) * item.quantity
        )

    allocations = []
    for vendor_id, vendor_revenue in revenue.items():
        if vendor_id not in rates:
            raise VendorNotFoundError(vendor_id)
        rate = _effective_rate(vendor_id, rates[vendor_id], default_rate)
        allocations.append(
            CommissionAllocation(
                vendor_id=vendor_id,
                vendor_revenue=to_money(vendor_revenue),
                rate=rate,
                commission_amount=to_money(rate * vendor_revenue),
            )
        )
    return allocations


async def load_commission_rates(
    db: AsyncSession, vendor_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, Optional[Decimal]]:
    """Fetch configured rates for the given vendors.

    Every requested vendor must exist; a missing one fails the whole lookup
    with ``VendorNotFoundError`` rather than being skipped.
    """
    wanted = set(vendor_ids)
    if not wanted:
        return {}

    result = await db.execute(
        select(Vendor.id, Vendor.commission_rate).where(Vendor.id.in_(wanted))
    )
    rates = {row.id: row.commission_rate for row in result}

    missing = wanted - rates.keys()
    if missing:
        raise VendorNotFoundError(sorted(str(v) for v in missing)[0])
    return rates
