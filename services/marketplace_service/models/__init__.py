"""Marketplace Service models package."""

from services.marketplace_service.models.catalog import (
    StoreProduct,
    Vendor,
    VendorProduct,
)
from services.marketplace_service.models.commerce import CartLine, Order, OrderItem
from services.marketplace_service.models.enums import (
    FulfillmentStatus,
    OrderPaymentStatus,
    PaymentStatus,
    PaymentType,
    VendorStatus,
)
from services.marketplace_service.models.finance import Commission, Payment

__all__ = [
    "CartLine",
    "Commission",
    "FulfillmentStatus",
    "Order",
    "OrderItem",
    "OrderPaymentStatus",
    "Payment",
    "PaymentStatus",
    "PaymentType",
    "StoreProduct",
    "Vendor",
    "VendorProduct",
    "VendorStatus",
]
