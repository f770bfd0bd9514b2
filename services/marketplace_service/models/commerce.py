"""Commerce models: cart lines, orders and order items."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.marketplace_service.models.enums import (
    FulfillmentStatus,
    OrderPaymentStatus,
    enum_values,
)
from sqlalchemy import JSON, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

# A line references exactly one of the two catalogs
_ONE_PRODUCT_REF = (
    "(vendor_product_id IS NOT NULL AND store_product_id IS NULL) OR "
    "(vendor_product_id IS NULL AND store_product_id IS NOT NULL)"
)


# ============================================================================
# CART
# ============================================================================


class CartLine(Base):
    """A user's cart line. Deleted when the cart is settled into an order."""

    __tablename__ = "marketplace_cart_lines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    vendor_product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("marketplace_vendor_products.id"), nullable=True
    )
    store_product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("marketplace_store_products.id"), nullable=True
    )

    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(_ONE_PRODUCT_REF, name="cart_line_one_product"),
        CheckConstraint("quantity > 0", name="cart_line_positive_quantity"),
    )

    def __repr__(self):
        product = self.vendor_product_id or self.store_product_id
        return f"<CartLine user={self.user_id} product={product} qty={self.quantity}>"


# ============================================================================
# ORDERS
# ============================================================================


class Order(Base):
    """Settled orders. The total is a snapshot and never recomputed."""

    __tablename__ = "marketplace_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    payment_status: Mapped[OrderPaymentStatus] = mapped_column(
        SAEnum(
            OrderPaymentStatus,
            values_callable=enum_values,
            name="marketplace_order_payment_status_enum",
        ),
        default=OrderPaymentStatus.PENDING,
        server_default="pending",
        nullable=False,
    )
    order_status: Mapped[FulfillmentStatus] = mapped_column(
        SAEnum(
            FulfillmentStatus,
            values_callable=enum_values,
            name="marketplace_fulfillment_status_enum",
        ),
        default=FulfillmentStatus.PENDING,
        server_default="pending",
        nullable=False,
    )

    # {"address": "...", "city": "...", "state": "...", "pincode": "..."}
    shipping_address: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="order_total_non_negative"),
        Index("ix_marketplace_orders_payment_status", "payment_status"),
    )

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )

    @validates("total_amount")
    def _freeze_paid_total(self, key, value):
        current = self.total_amount
        if (
            current is not None
            and self.payment_status == OrderPaymentStatus.PAID
            and Decimal(value) != Decimal(current)
        ):
            raise ValueError("total_amount cannot change once an order is paid")
        return value

    def __repr__(self):
        return f"<Order {self.id} total={self.total_amount} {self.payment_status}>"


class OrderItem(Base):
    """Order line items (price snapshot at settlement time)."""

    __tablename__ = "marketplace_order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("marketplace_orders.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    vendor_product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("marketplace_vendor_products.id"), nullable=True
    )
    store_product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("marketplace_store_products.id"), nullable=True
    )
    # NULL for first-party items
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("marketplace_vendors.id"), index=True, nullable=True
    )

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[FulfillmentStatus] = mapped_column(
        SAEnum(
            FulfillmentStatus,
            values_callable=enum_values,
            name="marketplace_fulfillment_status_enum",
        ),
        default=FulfillmentStatus.PENDING,
        server_default="pending",
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint(_ONE_PRODUCT_REF, name="order_item_one_product"),
        CheckConstraint("quantity > 0", name="order_item_positive_quantity"),
        CheckConstraint(
            "vendor_id IS NULL OR vendor_product_id IS NOT NULL",
            name="order_item_vendor_matches_origin",
        ),
    )

    order = relationship("Order", back_populates="items")

    @validates("price")
    def _freeze_price(self, key, value):
        if self.price is not None and Decimal(value) != Decimal(self.price):
            raise ValueError("OrderItem.price is a snapshot and cannot change")
        return value

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def __repr__(self):
        return f"<OrderItem order={self.order_id} price={self.price} qty={self.quantity}>"
