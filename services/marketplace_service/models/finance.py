"""Finance models: payments (order payments and vendor payouts) and commissions."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.marketplace_service.models.enums import (
    PaymentStatus,
    PaymentType,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Payment(Base):
    """Money movements: customer order payments and manual vendor payouts."""

    __tablename__ = "marketplace_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Set for order payments, NULL for payouts
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("marketplace_orders.id"), index=True, nullable=True
    )
    # Set for payouts
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("marketplace_vendors.id"), index=True, nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            values_callable=enum_values,
            name="marketplace_payment_status_enum",
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    payment_type: Mapped[PaymentType] = mapped_column(
        SAEnum(
            PaymentType,
            values_callable=enum_values,
            name="marketplace_payment_type_enum",
        ),
        nullable=False,
    )

    # Gateway payment id for order payments; the idempotency key of settlement
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(128), unique=True, nullable=True
    )
    gateway_order_id: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="payment_non_negative_amount"),
        CheckConstraint(
            "(payment_type = 'order_payment' AND order_id IS NOT NULL) OR "
            "(payment_type = 'vendor_payout' AND vendor_id IS NOT NULL)",
            name="payment_type_reference",
        ),
        Index("ix_marketplace_payments_type_status", "payment_type", "payment_status"),
    )

    def __repr__(self):
        return f"<Payment {self.payment_type} {self.amount} {self.payment_status}>"


class Commission(Base):
    """Commission owed by a vendor on one order."""

    __tablename__ = "marketplace_commissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("marketplace_vendors.id"), index=True, nullable=False
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("marketplace_orders.id"), index=True, nullable=False
    )

    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    # Rate actually applied, kept for audit
    rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        UniqueConstraint("vendor_id", "order_id", name="unique_commission_vendor_order"),
        CheckConstraint("commission_amount >= 0", name="commission_non_negative"),
    )

    def __repr__(self):
        return f"<Commission vendor={self.vendor_id} order={self.order_id} {self.commission_amount}>"
