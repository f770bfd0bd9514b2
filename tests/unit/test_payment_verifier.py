"""Unit tests for gateway payment signature verification."""

import hashlib
import hmac

import pytest
from services.marketplace_service.errors import SignatureMismatchError, ValidationError
from services.marketplace_service.services.payment_verifier import (
    compute_payment_signature,
    verify_payment_signature,
)

ORDER_REF = "order_1"
PAYMENT_REF = "pay_1"
SECRET = "s3cr3t"
HEX_DIGITS = "0123456789abcdef"


def _expected_signature() -> str:
    return hmac.new(
        SECRET.encode(), f"{ORDER_REF}|{PAYMENT_REF}".encode(), hashlib.sha256
    ).hexdigest()


# ---------------------------------------------------------------------------
# compute_payment_signature
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_signature_is_hmac_sha256_hex_of_order_and_payment():
    signature = compute_payment_signature(ORDER_REF, PAYMENT_REF, SECRET)

    assert signature == _expected_signature()
    assert len(signature) == 64


@pytest.mark.unit
def test_signature_uses_configured_secret_by_default():
    # conftest configures PAYMENT_GATEWAY_KEY_SECRET
    assert compute_payment_signature(ORDER_REF, PAYMENT_REF) == (
        compute_payment_signature(ORDER_REF, PAYMENT_REF, "test-gateway-secret")
    )


# ---------------------------------------------------------------------------
# verify_payment_signature
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_exact_signature_is_accepted():
    assert verify_payment_signature(
        ORDER_REF, PAYMENT_REF, _expected_signature(), secret=SECRET
    )


@pytest.mark.unit
def test_every_single_character_mutation_is_rejected():
    signature = _expected_signature()

    for position, original in enumerate(signature):
        for replacement in HEX_DIGITS:
            if replacement == original:
                continue
            mutated = signature[:position] + replacement + signature[position + 1 :]
            with pytest.raises(SignatureMismatchError):
                verify_payment_signature(
                    ORDER_REF, PAYMENT_REF, mutated, secret=SECRET
                )


@pytest.mark.unit
@pytest.mark.parametrize(
    "tamper",
    [
        lambda s: s.upper(),
        lambda s: s + " ",
        lambda s: " " + s,
        lambda s: s[:-1],
        lambda s: s + "0",
    ],
    ids=["uppercase", "trailing-space", "leading-space", "truncated", "extended"],
)
def test_signature_is_not_normalized(tamper):
    with pytest.raises(SignatureMismatchError):
        verify_payment_signature(
            ORDER_REF, PAYMENT_REF, tamper(_expected_signature()), secret=SECRET
        )


@pytest.mark.unit
def test_signature_for_other_payment_is_rejected():
    other = compute_payment_signature(ORDER_REF, "pay_2", SECRET)

    with pytest.raises(SignatureMismatchError):
        verify_payment_signature(ORDER_REF, PAYMENT_REF, other, secret=SECRET)


@pytest.mark.unit
def test_signature_with_wrong_secret_is_rejected():
    with pytest.raises(SignatureMismatchError):
        verify_payment_signature(
            ORDER_REF, PAYMENT_REF, _expected_signature(), secret="not-the-secret"
        )


@pytest.mark.unit
def test_empty_signature_is_rejected():
    with pytest.raises(SignatureMismatchError):
        verify_payment_signature(ORDER_REF, PAYMENT_REF, "", secret=SECRET)


@pytest.mark.unit
@pytest.mark.parametrize("order_ref,payment_ref", [("", PAYMENT_REF), (ORDER_REF, "")])
def test_missing_references_are_validation_errors(order_ref, payment_ref):
    with pytest.raises(ValidationError):
        verify_payment_signature(
            order_ref, payment_ref, _expected_signature(), secret=SECRET
        )


@pytest.mark.unit
def test_unconfigured_secret_raises():
    with pytest.raises(ValueError):
        verify_payment_signature(ORDER_REF, PAYMENT_REF, _expected_signature(), secret="")
