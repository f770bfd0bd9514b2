"""Cart snapshotting: resolve a user's cart into priced, vendor-tagged lines.

Each cart line references exactly one catalog. The reference is turned into a
tagged ``ProductRef`` once, here, and carried unchanged into the order items.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from libs.common.logging import get_logger
from services.marketplace_service.errors import (
    EmptyCartError,
    ProductNotFoundError,
    ValidationError,
)
from services.marketplace_service.models import CartLine
from services.marketplace_service.services.catalog_lookup import (
    CatalogEntry,
    StoreCatalog,
    VendorCatalog,
    store_catalog,
    vendor_catalog,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class VendorProductRef:
    id: uuid.UUID


@dataclass(frozen=True)
class StoreProductRef:
    id: uuid.UUID


ProductRef = Union[VendorProductRef, StoreProductRef]


@dataclass(frozen=True)
class SnapshotLine:
    """A cart line priced at checkout time."""

    cart_line_id: uuid.UUID
    product_ref: ProductRef
    vendor_id: Optional[uuid.UUID]
    price: Decimal
    quantity: int

    @property
    def is_first_party(self) -> bool:
        return isinstance(self.product_ref, StoreProductRef)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


def product_ref_for(line: CartLine) -> ProductRef:
    """Build the tagged reference for a stored cart line."""
    if line.vendor_product_id is not None and line.store_product_id is None:
        return VendorProductRef(line.vendor_product_id)
    if line.store_product_id is not None and line.vendor_product_id is None:
        return StoreProductRef(line.store_product_id)
    raise ValidationError(f"Cart item {line.id} must reference exactly one product")


async def _resolve(
    db: AsyncSession,
    ref: ProductRef,
    vendors: VendorCatalog,
    store: StoreCatalog,
) -> CatalogEntry:
    if isinstance(ref, VendorProductRef):
        entry = await vendors.find_by_id(db, ref.id)
    else:
        entry = await store.find_by_id(db, ref.id)
    if entry is None:
        raise ProductNotFoundError(ref.id)
    return entry


async def snapshot_cart(
    db: AsyncSession,
    user_id: str,
    *,
    vendors: VendorCatalog = vendor_catalog,
    store: StoreCatalog = store_catalog,
) -> list[SnapshotLine]:
    """Return the user's cart lines, oldest first, with current prices.

    Raises ``ValidationError`` without touching storage when ``user_id`` is
    missing, ``EmptyCartError`` when the cart has no lines and
    ``ProductNotFoundError`` when a referenced product is gone. Read-only.
    """
    if not user_id or not str(user_id).strip():
        raise ValidationError("User ID is required")

    result = await db.execute(
        select(CartLine)
        .where(CartLine.user_id == user_id)
        .order_by(CartLine.created_at, CartLine.id)
    )
    lines = list(result.scalars().all())
    if not lines:
        raise EmptyCartError()

    snapshot: list[SnapshotLine] = []
    for line in lines:
        ref = product_ref_for(line)
        entry = await _resolve(db, ref, vendors, store)
        snapshot.append(
            SnapshotLine(
                cart_line_id=line.id,
                product_ref=ref,
                vendor_id=entry.vendor_id,
                price=entry.price,
                quantity=line.quantity,
            )
        )

    logger.debug("Snapshotted %d cart lines for user %s", len(snapshot), user_id)
    return snapshot
