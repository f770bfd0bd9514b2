"""Settlement: the single atomic write that turns a cart into a paid order.

One database transaction creates the order and its items, the order payment,
one commission per vendor, and clears the user's cart. Either all of it
commits or none of it does.
"""

import asyncio
import uuid
from typing import Optional, Sequence

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.marketplace_service.errors import (
    DuplicatePaymentError,
    EmptyCartError,
    MarketplaceError,
    SettlementTimeoutError,
    StorageConflictError,
    ValidationError,
)
from services.marketplace_service.models import (
    CartLine,
    Commission,
    FulfillmentStatus,
    Order,
    OrderItem,
    OrderPaymentStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)
from services.marketplace_service.services.cart_snapshot import (
    SnapshotLine,
    StoreProductRef,
    VendorProductRef,
)
from services.marketplace_service.services.commission import (
    allocate_commissions,
    load_commission_rates,
    order_total,
)
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

DEFAULT_PAYMENT_METHOD = "razorpay"


async def find_order_for_transaction(
    db: AsyncSession, transaction_id: str
) -> Optional[uuid.UUID]:
    """Return the order already settled for a gateway payment id, if any."""
    result = await db.execute(
        select(Payment.order_id).where(
            Payment.transaction_id == transaction_id,
            Payment.payment_type == PaymentType.ORDER_PAYMENT,
        )
    )
    return result.scalar_one_or_none()


def _order_item_for(line: SnapshotLine) -> OrderItem:
    item = OrderItem(
        vendor_id=line.vendor_id,
        price=line.price,
        quantity=line.quantity,
        status=FulfillmentStatus.PENDING,
    )
    if isinstance(line.product_ref, VendorProductRef):
        item.vendor_product_id = line.product_ref.id
    elif isinstance(line.product_ref, StoreProductRef):
        item.store_product_id = line.product_ref.id
    else:
        raise ValidationError(f"Unknown product reference {line.product_ref!r}")
    return item


async def _apply_settlement(
    db: AsyncSession,
    *,
    user_id: str,
    lines: Sequence[SnapshotLine],
    transaction_id: str,
    gateway_order_id: Optional[str],
    shipping_address: Optional[dict],
    payment_method: str,
) -> Order:
    """Steps of the settlement, all inside the session's open transaction.

    1. Reject an already-settled transaction id
    2. Lock the user's cart lines and check the snapshot still matches
    3. Load vendor commission rates (every vendor must still exist)
    4. Create the order with its items
    5. Create the order payment
    6. Allocate and persist commissions over the created items
    7. Clear the cart
    """
    # 1. Idempotency check
    existing_order_id = await find_order_for_transaction(db, transaction_id)
    if existing_order_id is not None:
        raise DuplicatePaymentError(transaction_id, existing_order_id)

    # 2. Lock cart lines; a concurrent checkout blocks here and then sees them gone
    result = await db.execute(
        select(CartLine.id, CartLine.quantity)
        .where(CartLine.user_id == user_id)
        .with_for_update()
    )
    current = {line_id: quantity for line_id, quantity in result.all()}
    if not current:
        raise EmptyCartError()
    # Lines added, removed or re-quantified since the snapshot
    if current != {line.cart_line_id: line.quantity for line in lines}:
        raise StorageConflictError("Cart changed during checkout, please retry")

    # 3. Rates
    vendor_ids = {line.vendor_id for line in lines if line.vendor_id is not None}
    rates = await load_commission_rates(db, vendor_ids)

    # 4. Order + items
    total = order_total(lines)
    order = Order(
        user_id=user_id,
        total_amount=total,
        payment_status=OrderPaymentStatus.PAID,
        order_status=FulfillmentStatus.PENDING,
        shipping_address=shipping_address,
        paid_at=utc_now(),
    )
    order.items = [_order_item_for(line) for line in lines]
    db.add(order)
    await db.flush()

    # 5. Payment
    db.add(
        Payment(
            order_id=order.id,
            amount=total,
            payment_method=payment_method,
            payment_status=PaymentStatus.SUCCESS,
            payment_type=PaymentType.ORDER_PAYMENT,
            transaction_id=transaction_id,
            gateway_order_id=gateway_order_id,
        )
    )

    # 6. Commissions, computed from what was actually written
    allocations = allocate_commissions(order.items, rates)
    for allocation in allocations:
        db.add(
            Commission(
                vendor_id=allocation.vendor_id,
                order_id=order.id,
                commission_amount=allocation.commission_amount,
                rate=allocation.rate,
            )
        )

    # 7. Clear cart
    await db.execute(delete(CartLine).where(CartLine.user_id == user_id))

    await db.flush()
    await db.commit()

    logger.info(
        "Settled order %s for user %s total=%s vendors=%d txn=%s",
        order.id,
        user_id,
        total,
        len(allocations),
        transaction_id,
    )
    return order


async def _settle_or_rollback(db: AsyncSession, **kwargs) -> Order:
    transaction_id = kwargs["transaction_id"]
    try:
        return await _apply_settlement(db, **kwargs)
    except MarketplaceError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        # Lost a race against another settlement of the same payment
        existing_order_id = await find_order_for_transaction(db, transaction_id)
        if existing_order_id is not None:
            raise DuplicatePaymentError(transaction_id, existing_order_id) from e
        logger.warning("Settlement constraint violation for txn=%s: %s", transaction_id, e)
        raise StorageConflictError("Settlement conflicted with another write") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("Settlement storage failure for txn=%s: %s", transaction_id, e)
        raise StorageConflictError("Storage unavailable during settlement") from e


async def settle_order(
    db: AsyncSession,
    *,
    user_id: str,
    lines: Sequence[SnapshotLine],
    transaction_id: str,
    gateway_order_id: Optional[str] = None,
    shipping_address: Optional[dict] = None,
    payment_method: str = DEFAULT_PAYMENT_METHOD,
    timeout: Optional[float] = None,
) -> Order:
    """Atomically convert a snapshotted cart into a paid order.

    Callers must have verified the payment first. The order total is always
    recomputed from ``lines``. Raises ``DuplicatePaymentError`` when
    ``transaction_id`` was already settled, ``EmptyCartError``,
    ``VendorNotFoundError``, ``StorageConflictError`` or
    ``SettlementTimeoutError``; in every failure case nothing is written.
    """
    if not user_id:
        raise ValidationError("User ID is required")
    if not transaction_id:
        raise ValidationError("Payment transaction ID is required")
    if not lines:
        raise EmptyCartError()

    if timeout is None:
        timeout = get_settings().SETTLEMENT_TIMEOUT_SECONDS

    try:
        return await asyncio.wait_for(
            _settle_or_rollback(
                db,
                user_id=user_id,
                lines=lines,
                transaction_id=transaction_id,
                gateway_order_id=gateway_order_id,
                shipping_address=shipping_address,
                payment_method=payment_method,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        await db.rollback()
        logger.warning(
            "Settlement for txn=%s timed out after %.2fs", transaction_id, timeout
        )
        raise SettlementTimeoutError(
            "Settlement timed out, no changes were applied"
        ) from e
