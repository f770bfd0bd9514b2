"""Shared helpers for marketplace routers."""

from fastapi import HTTPException, status
from libs.common.logging import get_logger
from services.marketplace_service.errors import (
    EmptyCartError,
    MarketplaceError,
    NotFoundError,
    PermissionDeniedError,
    SettlementTimeoutError,
    SignatureMismatchError,
    StorageConflictError,
    ValidationError,
)
from services.marketplace_service.gateway_client import PaymentGatewayError

logger = get_logger(__name__)

_STATUS_BY_ERROR = (
    (SettlementTimeoutError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageConflictError, status.HTTP_409_CONFLICT),
    (SignatureMismatchError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (EmptyCartError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
)


def http_error(error: Exception) -> HTTPException:
    """Translate a domain error into the HTTPException the API returns."""
    if isinstance(error, PaymentGatewayError):
        logger.warning("Payment gateway error: %s", error.message)
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment gateway error.",
        )

    if isinstance(error, MarketplaceError):
        for error_cls, status_code in _STATUS_BY_ERROR:
            if isinstance(error, error_cls):
                headers = {"Retry-After": "1"} if error.retryable else None
                return HTTPException(
                    status_code=status_code, detail=error.message, headers=headers
                )

    logger.error("Unmapped error reached the API layer: %r", error)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )
