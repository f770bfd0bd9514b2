"""
Payment gateway API client.

Provides async methods for:
- Creating gateway orders that the customer pays against
- Fetching a gateway order

Amounts are always integers in the smallest currency unit (paise for INR).
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from libs.common.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class GatewayOrder:
    """A payable order on the gateway side."""

    id: str
    amount: int  # minor units
    currency: str
    receipt: Optional[str]
    status: str  # created, attempted, paid


class PaymentGatewayError(Exception):
    """Base exception for payment gateway API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class PaymentGatewayClient:
    """Async client for the gateway Orders API."""

    def __init__(
        self,
        key_id: str = None,
        key_secret: str = None,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.key_id = key_id or settings.PAYMENT_GATEWAY_KEY_ID
        self.key_secret = key_secret or settings.PAYMENT_GATEWAY_KEY_SECRET
        if not self.key_id or not self.key_secret:
            raise ValueError(
                "PAYMENT_GATEWAY_KEY_ID and PAYMENT_GATEWAY_KEY_SECRET are required"
            )
        self.base_url = (base_url or settings.PAYMENT_GATEWAY_URL).rstrip("/")
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS
        self._transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
    ) -> dict:
        """Make an authenticated request to the gateway API."""
        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient(
            timeout=self.timeout,
            auth=(self.key_id, self.key_secret),
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(method=method, url=url, json=json_data)
            except httpx.HTTPError as e:
                logger.error("Payment gateway request failed: %s %s - %s", method, url, e)
                raise PaymentGatewayError(f"Payment gateway unreachable: {e}") from e

            try:
                data = response.json()
            except ValueError:
                data = {}

            if not response.is_success:
                logger.error(
                    "Payment gateway API error: %s - %s", response.status_code, data
                )
                error = data.get("error") or {}
                raise PaymentGatewayError(
                    message=error.get("description", "Unknown payment gateway error"),
                    status_code=response.status_code,
                    response_data=data,
                )

            return data

    @staticmethod
    def _to_order(data: dict) -> GatewayOrder:
        return GatewayOrder(
            id=data["id"],
            amount=int(data.get("amount", 0)),
            currency=data.get("currency", ""),
            receipt=data.get("receipt"),
            status=data.get("status", "created"),
        )

    # =========================================================================
    # Order Methods
    # =========================================================================

    async def create_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt: str,
    ) -> GatewayOrder:
        """
        Create a gateway order for the customer to pay.

        Args:
            amount_minor_units: Amount in the smallest currency unit (integer)
            currency: ISO currency code, e.g. INR
            receipt: Our reference for reconciliation

        Returns:
            GatewayOrder whose id is later signed into the payment confirmation
        """
        if isinstance(amount_minor_units, bool) or not isinstance(
            amount_minor_units, int
        ):
            raise ValueError("amount_minor_units must be an integer")
        if amount_minor_units <= 0:
            raise ValueError("amount_minor_units must be positive")

        data = await self._request(
            "POST",
            "/orders",
            json_data={
                "amount": amount_minor_units,
                "currency": currency,
                "receipt": receipt,
            },
        )
        if "id" not in data:
            raise PaymentGatewayError("Payment gateway returned no order id", response_data=data)
        return self._to_order(data)

    async def fetch_order(self, gateway_order_id: str) -> GatewayOrder:
        """Get a gateway order by id."""
        data = await self._request("GET", f"/orders/{gateway_order_id}")
        return self._to_order(data)


def get_gateway_client() -> PaymentGatewayClient:
    """Get a PaymentGatewayClient instance (FastAPI dependency)."""
    return PaymentGatewayClient()
