"""Pydantic schemas for the marketplace service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.marketplace_service.models import (
    FulfillmentStatus,
    OrderPaymentStatus,
    PaymentStatus,
    PaymentType,
    VendorStatus,
)

# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CartLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vendor_product_id: Optional[uuid.UUID] = None
    store_product_id: Optional[uuid.UUID] = None
    quantity: int
    created_at: datetime


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class ShippingAddress(BaseModel):
    address: str = Field(..., max_length=500)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=100)
    pincode: str = Field(..., max_length=20)


class CheckoutLineResponse(BaseModel):
    cart_line_id: uuid.UUID
    product_id: uuid.UUID
    origin: str  # "vendor" or "store"
    vendor_id: Optional[uuid.UUID] = None
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class CheckoutStartResponse(BaseModel):
    gateway_order_id: str
    amount: int  # minor units, as charged by the gateway
    currency: str
    key: str
    total_amount: Decimal
    lines: list[CheckoutLineResponse]


class CheckoutConfirmRequest(BaseModel):
    gateway_order_id: str = Field(..., min_length=1)
    gateway_payment_id: str = Field(..., min_length=1, max_length=128)
    signature: str = Field(..., min_length=1)
    shipping_address: Optional[ShippingAddress] = None


class CheckoutConfirmResponse(BaseModel):
    message: str
    order_id: uuid.UUID
    payment_id: str
    created: bool


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vendor_product_id: Optional[uuid.UUID] = None
    store_product_id: Optional[uuid.UUID] = None
    vendor_id: Optional[uuid.UUID] = None
    price: Decimal
    quantity: int
    status: FulfillmentStatus


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    total_amount: Decimal
    payment_status: OrderPaymentStatus
    order_status: FulfillmentStatus
    shipping_address: Optional[dict] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemResponse] = []


class OrderSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    total_amount: Decimal
    payment_status: OrderPaymentStatus
    order_status: FulfillmentStatus
    created_at: datetime


class VendorOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: uuid.UUID
    user_id: str
    payment_status: OrderPaymentStatus
    order_date: datetime
    shipping_address: Optional[dict] = None
    items: list[OrderItemResponse]
    vendor_total: Decimal


class OrderStatusUpdate(BaseModel):
    status: FulfillmentStatus


# ============================================================================
# PAYOUT & LEDGER SCHEMAS
# ============================================================================


class PayoutCreate(BaseModel):
    vendor_id: uuid.UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=32)
    reference: Optional[str] = Field(None, max_length=128)
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: Optional[uuid.UUID] = None
    vendor_id: Optional[uuid.UUID] = None
    amount: Decimal
    payment_method: str
    payment_status: PaymentStatus
    payment_type: PaymentType
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class VendorLedgerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vendor_id: uuid.UUID
    vendor_name: str
    vendor_status: VendorStatus
    gross_sales: Decimal
    total_commission: Decimal
    total_paid_out: Decimal
    balance: Decimal


class DashboardStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    orders_today: int
    total_revenue: Decimal
    total_products: int
    recent_orders: list[OrderSummaryResponse]
