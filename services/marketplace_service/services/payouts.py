"""Manual vendor payouts. Appends ``vendor_payout`` payments; never settles orders."""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.currency import to_money
from libs.common.logging import get_logger
from services.marketplace_service.errors import (
    StorageConflictError,
    ValidationError,
    VendorNotFoundError,
)
from services.marketplace_service.models import (
    Payment,
    PaymentStatus,
    PaymentType,
    Vendor,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

DEFAULT_PAYOUT_METHOD = "manual"


async def record_payout(
    db: AsyncSession,
    *,
    vendor_id: uuid.UUID,
    amount: Decimal | int | str,
    payment_method: Optional[str] = None,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> Payment:
    """Record money already sent to a vendor.

    Payouts are recorded as completed (status ``success``) and immediately
    reduce the vendor's ledger balance.
    """
    if vendor_id is None:
        raise ValidationError("Vendor ID is required")
    try:
        amount = to_money(amount)
    except ValueError as e:
        raise ValidationError("Payout amount must be a number") from e
    if amount <= 0:
        raise ValidationError("Payout amount must be positive")

    vendor = await db.get(Vendor, vendor_id)
    if vendor is None:
        raise VendorNotFoundError(vendor_id)

    payout = Payment(
        vendor_id=vendor.id,
        amount=amount,
        payment_method=payment_method or DEFAULT_PAYOUT_METHOD,
        payment_status=PaymentStatus.SUCCESS,
        payment_type=PaymentType.VENDOR_PAYOUT,
        transaction_id=reference,
        notes=notes,
    )
    db.add(payout)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise StorageConflictError(
            f"Payout reference {reference} is already recorded"
        ) from e
    await db.refresh(payout)

    logger.info(
        "Recorded payout %s to vendor %s amount=%s method=%s",
        payout.id,
        vendor.id,
        amount,
        payout.payment_method,
    )
    return payout


async def list_payouts(
    db: AsyncSession, vendor_id: Optional[uuid.UUID] = None
) -> list[Payment]:
    """Payouts, newest first, optionally for a single vendor."""
    query = select(Payment).where(Payment.payment_type == PaymentType.VENDOR_PAYOUT)
    if vendor_id is not None:
        query = query.where(Payment.vendor_id == vendor_id)
    result = await db.execute(query.order_by(Payment.created_at.desc()))
    return list(result.scalars().all())
