"""Admin router: payouts, vendor ledgers, order status and dashboard stats."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.marketplace_service.errors import MarketplaceError
from services.marketplace_service.routers._helpers import http_error
from services.marketplace_service.schemas import (
    DashboardStatsResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentResponse,
    PayoutCreate,
    VendorLedgerResponse,
)
from services.marketplace_service.services import orders as order_ops
from services.marketplace_service.services.ledger import (
    get_vendor_ledger,
    list_vendor_ledgers,
)
from services.marketplace_service.services.payouts import list_payouts, record_payout
from services.marketplace_service.services.stats import get_dashboard_stats
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin", tags=["admin"])


# ============================================================================
# PAYOUTS
# ============================================================================


@router.post(
    "/payouts", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED
)
async def create_vendor_payout(
    payload: PayoutCreate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Record a payout already sent to a vendor."""
    try:
        return await record_payout(
            db,
            vendor_id=payload.vendor_id,
            amount=payload.amount,
            payment_method=payload.payment_method,
            reference=payload.reference,
            notes=payload.notes,
        )
    except MarketplaceError as e:
        raise http_error(e)


@router.get("/payouts", response_model=list[PaymentResponse])
async def get_payouts(
    vendor_id: Optional[uuid.UUID] = Query(None),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await list_payouts(db, vendor_id)


# ============================================================================
# LEDGER
# ============================================================================


@router.get("/vendors/ledger", response_model=list[VendorLedgerResponse])
async def get_vendor_payout_stats(
    include_unapproved: bool = Query(False),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Sales, commission, payouts and balance for every approved vendor."""
    ledgers = await list_vendor_ledgers(db, approved_only=not include_unapproved)
    return [VendorLedgerResponse.model_validate(ledger) for ledger in ledgers]


@router.get("/vendors/{vendor_id}/ledger", response_model=VendorLedgerResponse)
async def get_single_vendor_ledger(
    vendor_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        ledger = await get_vendor_ledger(db, vendor_id)
    except MarketplaceError as e:
        raise http_error(e)
    return VendorLedgerResponse.model_validate(ledger)


# ============================================================================
# ORDERS & STATS
# ============================================================================


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        return await order_ops.update_order_status(db, order_id, payload.status)
    except MarketplaceError as e:
        raise http_error(e)


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return DashboardStatsResponse.model_validate(await get_dashboard_stats(db))
