"""Checkout router: open a gateway order, then confirm the signed payment."""

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import payment_limit
from libs.db.session import get_async_db
from services.marketplace_service.errors import MarketplaceError
from services.marketplace_service.gateway_client import (
    PaymentGatewayClient,
    PaymentGatewayError,
    get_gateway_client,
)
from services.marketplace_service.routers._helpers import http_error
from services.marketplace_service.schemas import (
    CheckoutConfirmRequest,
    CheckoutConfirmResponse,
    CheckoutLineResponse,
    CheckoutStartResponse,
)
from services.marketplace_service.services.cart_snapshot import StoreProductRef
from services.marketplace_service.services.checkout import (
    confirm_checkout,
    start_checkout,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/checkout", tags=["checkout"])
logger = get_logger(__name__)


@router.post("/start", response_model=CheckoutStartResponse)
@payment_limit
async def start(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGatewayClient = Depends(get_gateway_client),
):
    """Price the cart and create the gateway order the customer pays."""
    try:
        quote = await start_checkout(db, current_user.user_id, gateway)
    except (MarketplaceError, PaymentGatewayError) as e:
        raise http_error(e)

    return CheckoutStartResponse(
        gateway_order_id=quote.gateway_order.id,
        amount=quote.gateway_order.amount,
        currency=quote.gateway_order.currency,
        key=quote.key_id,
        total_amount=quote.total_amount,
        lines=[
            CheckoutLineResponse(
                cart_line_id=line.cart_line_id,
                product_id=line.product_ref.id,
                origin="store" if isinstance(line.product_ref, StoreProductRef) else "vendor",
                vendor_id=line.vendor_id,
                unit_price=line.price,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            for line in quote.lines
        ],
    )


@router.post("/confirm", response_model=CheckoutConfirmResponse)
@payment_limit
async def confirm(
    request: Request,
    payload: CheckoutConfirmRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGatewayClient = Depends(get_gateway_client),
):
    """Verify the gateway's signed confirmation and settle the cart."""
    try:
        result = await confirm_checkout(
            db,
            user_id=current_user.user_id,
            gateway_order_id=payload.gateway_order_id,
            gateway_payment_id=payload.gateway_payment_id,
            signature=payload.signature,
            gateway=gateway,
            shipping_address=(
                payload.shipping_address.model_dump()
                if payload.shipping_address
                else None
            ),
        )
    except (MarketplaceError, PaymentGatewayError) as e:
        logger.warning(
            "Checkout confirm failed for user %s payment %s: %s",
            current_user.user_id,
            payload.gateway_payment_id,
            e.message,
        )
        raise http_error(e)

    return CheckoutConfirmResponse(
        message=(
            "Payment success and order placed"
            if result.created
            else "Payment already processed"
        ),
        order_id=result.order_id,
        payment_id=result.payment_id,
        created=result.created,
    )
