"""Domain exceptions raised by the marketplace services.

Routers translate these into HTTP responses (see ``routers/_helpers.py``).
``retryable`` marks failures a caller may safely retry unchanged.
"""

import uuid
from typing import Optional


class MarketplaceError(Exception):
    """Base exception for marketplace domain errors."""

    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(MarketplaceError):
    """Missing or malformed input, or an unusable monetary record."""


class PermissionDeniedError(MarketplaceError):
    """The caller does not own the resource it tried to touch."""


class NotFoundError(MarketplaceError):
    """A referenced entity does not exist."""


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: uuid.UUID | str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class VendorNotFoundError(NotFoundError):
    def __init__(self, vendor_id: uuid.UUID | str):
        self.vendor_id = vendor_id
        super().__init__(f"Vendor {vendor_id} not found")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: uuid.UUID | str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class CartLineNotFoundError(NotFoundError):
    def __init__(self, line_id: uuid.UUID | str):
        self.line_id = line_id
        super().__init__(f"Cart item {line_id} not found")


class SignatureMismatchError(MarketplaceError):
    """The payment confirmation was not issued by the gateway."""

    def __init__(self, message: str = "Invalid payment signature"):
        super().__init__(message)


class EmptyCartError(MarketplaceError):
    """There is nothing to settle."""

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class DuplicatePaymentError(MarketplaceError):
    """The payment transaction was already settled into an order."""

    def __init__(self, transaction_id: str, order_id: Optional[uuid.UUID]):
        self.transaction_id = transaction_id
        self.order_id = order_id
        super().__init__(
            f"Payment {transaction_id} already settled as order {order_id}"
        )


class StorageConflictError(MarketplaceError):
    """A storage constraint or lock conflict aborted the operation."""

    retryable = True


class SettlementTimeoutError(StorageConflictError):
    """Settlement exceeded its time budget and was rolled back."""


class PaymentAmountMismatchError(ValidationError):
    """The gateway charged a different amount than the cart now totals."""

    def __init__(self, gateway_order_id: str, charged_minor: int, expected_minor: int):
        self.gateway_order_id = gateway_order_id
        self.charged_minor = charged_minor
        self.expected_minor = expected_minor
        super().__init__(
            f"Gateway order {gateway_order_id} was for {charged_minor} but the cart "
            f"totals {expected_minor}, please restart checkout"
        )
