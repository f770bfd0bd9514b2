"""Checkout flow: quote and gateway order, then verify-and-settle.

Flow (mirrors the gateway's two-step payment):
1. ``start_checkout`` prices the cart and opens a gateway order for the total
2. The customer pays on the gateway, which returns a signed confirmation
3. ``confirm_checkout`` verifies the signature, checks the charged amount
   against the cart and settles it
"""

import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import to_minor_units
from libs.common.logging import get_logger
from services.marketplace_service.errors import (
    DuplicatePaymentError,
    PaymentAmountMismatchError,
)
from services.marketplace_service.gateway_client import (
    GatewayOrder,
    PaymentGatewayClient,
)
from services.marketplace_service.services.cart_snapshot import (
    SnapshotLine,
    snapshot_cart,
)
from services.marketplace_service.services.commission import (
    CommissionAllocation,
    allocate_commissions,
    load_commission_rates,
    order_total,
)
from services.marketplace_service.services.payment_verifier import (
    verify_payment_signature,
)
from services.marketplace_service.services.settlement import (
    find_order_for_transaction,
    settle_order,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class CheckoutQuote:
    lines: list[SnapshotLine]
    total_amount: Decimal
    commissions: list[CommissionAllocation]
    gateway_order: GatewayOrder
    key_id: str


@dataclass
class CheckoutResult:
    order_id: uuid.UUID
    payment_id: str
    created: bool  # False when the payment had already been settled


def _receipt_for(user_id: str) -> str:
    return f"receipt_{int(time.time())}_{user_id[:5]}"


async def start_checkout(
    db: AsyncSession,
    user_id: str,
    gateway: PaymentGatewayClient,
) -> CheckoutQuote:
    """Price the cart and create a gateway order for the total."""
    lines = await snapshot_cart(db, user_id)
    total = order_total(lines)

    vendor_ids = {line.vendor_id for line in lines if line.vendor_id is not None}
    rates = await load_commission_rates(db, vendor_ids)
    commissions = allocate_commissions(lines, rates)

    settings = get_settings()
    gateway_order = await gateway.create_order(
        amount_minor_units=to_minor_units(total),
        currency=settings.PAYMENT_CURRENCY,
        receipt=_receipt_for(user_id),
    )
    logger.info(
        "Opened gateway order %s for user %s total=%s",
        gateway_order.id,
        user_id,
        total,
    )
    return CheckoutQuote(
        lines=lines,
        total_amount=total,
        commissions=commissions,
        gateway_order=gateway_order,
        key_id=gateway.key_id,
    )


async def confirm_checkout(
    db: AsyncSession,
    *,
    user_id: str,
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
    gateway: PaymentGatewayClient,
    shipping_address: Optional[dict] = None,
    secret: Optional[str] = None,
) -> CheckoutResult:
    """Verify a payment confirmation and settle the user's cart.

    A confirmation that was already settled (redelivery, client retry)
    returns the existing order with ``created=False`` instead of failing.
    The cart is only settled when its total equals the amount of the
    gateway order that was paid; otherwise ``PaymentAmountMismatchError``
    is raised and nothing is written.
    """
    verify_payment_signature(
        gateway_order_id, gateway_payment_id, signature, secret=secret
    )

    existing_order_id = await find_order_for_transaction(db, gateway_payment_id)
    if existing_order_id is not None:
        logger.info(
            "Payment %s already settled as order %s",
            gateway_payment_id,
            existing_order_id,
        )
        return CheckoutResult(existing_order_id, gateway_payment_id, created=False)

    lines = await snapshot_cart(db, user_id)

    gateway_order = await gateway.fetch_order(gateway_order_id)
    expected_minor = to_minor_units(order_total(lines))
    if gateway_order.amount != expected_minor:
        logger.warning(
            "Gateway order %s charged %s but cart for user %s totals %s",
            gateway_order_id,
            gateway_order.amount,
            user_id,
            expected_minor,
        )
        raise PaymentAmountMismatchError(
            gateway_order_id, gateway_order.amount, expected_minor
        )

    try:
        order = await settle_order(
            db,
            user_id=user_id,
            lines=lines,
            transaction_id=gateway_payment_id,
            gateway_order_id=gateway_order_id,
            shipping_address=shipping_address,
        )
    except DuplicatePaymentError as e:
        logger.info(
            "Payment %s settled concurrently as order %s", gateway_payment_id, e.order_id
        )
        return CheckoutResult(e.order_id, gateway_payment_id, created=False)

    return CheckoutResult(order.id, gateway_payment_id, created=True)
