"""Read-only lookups against the two disjoint product catalogs."""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from services.marketplace_service.models import StoreProduct, VendorProduct
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class CatalogEntry:
    """What checkout needs to know about a product."""

    product_id: uuid.UUID
    price: Decimal
    vendor_id: Optional[uuid.UUID]  # None for first-party products


class VendorCatalog:
    """Products owned by marketplace vendors."""

    async def find_by_id(
        self, db: AsyncSession, product_id: uuid.UUID
    ) -> Optional[CatalogEntry]:
        result = await db.execute(
            select(VendorProduct).where(
                VendorProduct.id == product_id,
                VendorProduct.is_active.is_(True),
            )
        )
        product = result.scalar_one_or_none()
        if product is None:
            return None
        return CatalogEntry(
            product_id=product.id, price=product.price, vendor_id=product.vendor_id
        )


class StoreCatalog:
    """First-party products; they never carry a vendor."""

    async def find_by_id(
        self, db: AsyncSession, product_id: uuid.UUID
    ) -> Optional[CatalogEntry]:
        result = await db.execute(
            select(StoreProduct).where(
                StoreProduct.id == product_id,
                StoreProduct.is_deleted.is_(False),
            )
        )
        product = result.scalar_one_or_none()
        if product is None:
            return None
        return CatalogEntry(product_id=product.id, price=product.price, vendor_id=None)


vendor_catalog = VendorCatalog()
store_catalog = StoreCatalog()
