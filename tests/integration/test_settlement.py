"""Integration tests for the settlement transaction.

Tests call the services directly with the db_session fixture; settlement
commits for real against the per-test SQLite database.
"""

import asyncio
import random
import uuid
from decimal import Decimal

import pytest
from libs.common.currency import to_money
from services.marketplace_service.errors import (
    DuplicatePaymentError,
    EmptyCartError,
    ProductNotFoundError,
    SettlementTimeoutError,
    StorageConflictError,
    ValidationError,
    VendorNotFoundError,
)
from services.marketplace_service.models import (
    CartLine,
    Commission,
    Order,
    OrderItem,
    OrderPaymentStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)
from services.marketplace_service.services import settlement
from services.marketplace_service.services.cart_snapshot import (
    SnapshotLine,
    StoreProductRef,
    VendorProductRef,
    snapshot_cart,
)
from services.marketplace_service.services.settlement import settle_order
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tests.factories import (
    CartLineFactory,
    StoreProductFactory,
    VendorFactory,
    VendorProductFactory,
)

USER_ID = "user-1"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def _make_vendor_product(db, price="40.00", rate=None, vendor=None):
    vendor = vendor or VendorFactory.create(commission_rate=rate)
    product = VendorProductFactory.create(vendor_id=vendor.id, price=Decimal(price))
    db.add_all([vendor, product])
    await db.commit()
    return vendor, product


async def _make_store_product(db, price="30.00"):
    product = StoreProductFactory.create(price=Decimal(price))
    db.add(product)
    await db.commit()
    return product


async def _add_to_cart(db, product, quantity=1, user_id=USER_ID, store=False):
    ref = "store_product_id" if store else "vendor_product_id"
    line = CartLineFactory.create(user_id=user_id, quantity=quantity, **{ref: product.id})
    db.add(line)
    await db.commit()
    return line


async def _mixed_cart(db):
    """First-party 30.00 x2 plus a vendor line 40.00 x1 at rate 0.2."""
    store_product = await _make_store_product(db, "30.00")
    vendor, vendor_product = await _make_vendor_product(db, "40.00", Decimal("0.2"))
    await _add_to_cart(db, store_product, quantity=2, store=True)
    await _add_to_cart(db, vendor_product, quantity=1)
    return vendor


async def _assert_nothing_written(db, cart_lines: int):
    assert await _count(db, Order) == 0
    assert await _count(db, OrderItem) == 0
    assert await _count(db, Payment) == 0
    assert await _count(db, Commission) == 0
    assert await _count(db, CartLine) == cart_lines


# ---------------------------------------------------------------------------
# snapshot_cart
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshot_resolves_tagged_refs_and_prices(db_session):
    vendor = await _mixed_cart(db_session)

    lines = await snapshot_cart(db_session, USER_ID)

    assert [type(line.product_ref) for line in lines] == [
        StoreProductRef,
        VendorProductRef,
    ]
    assert lines[0].vendor_id is None and lines[0].is_first_party
    assert lines[1].vendor_id == vendor.id
    assert [line.line_total for line in lines] == [Decimal("60.00"), Decimal("40.00")]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshot_of_empty_cart_raises(db_session):
    with pytest.raises(EmptyCartError):
        await snapshot_cart(db_session, USER_ID)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshot_without_user_is_a_validation_error(db_session):
    with pytest.raises(ValidationError):
        await snapshot_cart(db_session, "")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshot_with_inactive_product_raises_not_found(db_session):
    _, product = await _make_vendor_product(db_session)
    await _add_to_cart(db_session, product)
    product.is_active = False
    await db_session.commit()

    with pytest.raises(ProductNotFoundError):
        await snapshot_cart(db_session, USER_ID)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshot_with_deleted_store_product_raises_not_found(db_session):
    product = await _make_store_product(db_session)
    await _add_to_cart(db_session, product, store=True)
    product.is_deleted = True
    await db_session.commit()

    with pytest.raises(ProductNotFoundError):
        await snapshot_cart(db_session, USER_ID)


# ---------------------------------------------------------------------------
# settle_order: happy path and invariants
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mixed_origin_cart_settles_with_one_vendor_commission(db_session):
    vendor = await _mixed_cart(db_session)
    lines = await snapshot_cart(db_session, USER_ID)

    order = await settle_order(
        db_session, user_id=USER_ID, lines=lines, transaction_id="pay_mixed"
    )

    assert order.total_amount == Decimal("100.00")
    assert order.payment_status == OrderPaymentStatus.PAID
    assert order.paid_at is not None

    commissions = (await db_session.execute(select(Commission))).scalars().all()
    assert len(commissions) == 1
    assert commissions[0].vendor_id == vendor.id
    assert commissions[0].order_id == order.id
    assert commissions[0].commission_amount == Decimal("8.00")

    payment = (await db_session.execute(select(Payment))).scalar_one()
    assert payment.order_id == order.id
    assert payment.amount == Decimal("100.00")
    assert payment.payment_status == PaymentStatus.SUCCESS
    assert payment.payment_type == PaymentType.ORDER_PAYMENT
    assert payment.transaction_id == "pay_mixed"

    items = (await db_session.execute(select(OrderItem))).scalars().all()
    first_party = [item for item in items if item.store_product_id is not None]
    assert len(first_party) == 1
    assert first_party[0].vendor_id is None
    assert first_party[0].vendor_product_id is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_total_and_commission_invariants_over_random_carts(db_session):
    rng = random.Random(20261019)
    vendors = []
    products = []
    for rate in (Decimal("0.05"), None, Decimal("0.333"), Decimal("1")):
        vendor, product = await _make_vendor_product(db_session, "1.00", rate)
        vendors.append(vendor)
        products.append(product)
        # A second product for the same vendor
        _, extra = await _make_vendor_product(db_session, "1.00", vendor=vendor)
        products.append(extra)
    store_products = [await _make_store_product(db_session, "1.00") for _ in range(2)]
    rates = {
        v.id: v.commission_rate if v.commission_rate is not None else Decimal("0.10")
        for v in vendors
    }

    for round_no in range(8):
        user_id = f"user-{round_no}"
        for product in rng.sample(products, rng.randint(1, len(products))):
            product.price = Decimal(rng.randint(1, 99999)) / 100
            await db_session.commit()
            await _add_to_cart(
                db_session, product, quantity=rng.randint(1, 5), user_id=user_id
            )
        if rng.random() < 0.5:
            await _add_to_cart(
                db_session,
                rng.choice(store_products),
                quantity=rng.randint(1, 3),
                user_id=user_id,
                store=True,
            )

        lines = await snapshot_cart(db_session, user_id)
        order = await settle_order(
            db_session, user_id=user_id, lines=lines, transaction_id=f"pay_{round_no}"
        )

        items = (
            await db_session.execute(select(OrderItem).where(OrderItem.order_id == order.id))
        ).scalars().all()
        assert order.total_amount == sum(
            (item.price * item.quantity for item in items), Decimal("0")
        )

        revenue: dict[uuid.UUID, Decimal] = {}
        for item in items:
            if item.vendor_id is not None:
                revenue[item.vendor_id] = (
                    revenue.get(item.vendor_id, Decimal("0")) + item.price * item.quantity
                )

        commissions = (
            await db_session.execute(
                select(Commission).where(Commission.order_id == order.id)
            )
        ).scalars().all()
        assert sorted(c.vendor_id for c in commissions) == sorted(revenue)
        for commission in commissions:
            expected = to_money(
                rates[commission.vendor_id] * revenue[commission.vendor_id]
            )
            assert commission.commission_amount == expected


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_items_keep_snapshot_price(db_session):
    _, product = await _make_vendor_product(db_session, "25.00")
    await _add_to_cart(db_session, product, quantity=2)
    lines = await snapshot_cart(db_session, USER_ID)

    order = await settle_order(
        db_session, user_id=USER_ID, lines=lines, transaction_id="pay_snap"
    )
    product.price = Decimal("99.00")
    await db_session.commit()

    item = (await db_session.execute(select(OrderItem))).scalar_one()
    assert item.order_id == order.id
    assert item.price == Decimal("25.00")

    with pytest.raises(ValueError):
        item.price = Decimal("99.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_settlement_clears_only_the_users_cart(db_session):
    _, product = await _make_vendor_product(db_session)
    await _add_to_cart(db_session, product)
    await _add_to_cart(db_session, product, user_id="someone-else")
    lines = await snapshot_cart(db_session, USER_ID)

    await settle_order(db_session, user_id=USER_ID, lines=lines, transaction_id="pay_1")

    remaining = (await db_session.execute(select(CartLine))).scalars().all()
    assert [line.user_id for line in remaining] == ["someone-else"]


# ---------------------------------------------------------------------------
# settle_order: idempotency and empty carts
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_same_transaction_settles_once(db_session):
    await _mixed_cart(db_session)
    lines = await snapshot_cart(db_session, USER_ID)
    order = await settle_order(
        db_session, user_id=USER_ID, lines=lines, transaction_id="pay_dup"
    )
    order_id = order.id

    with pytest.raises(DuplicatePaymentError) as exc_info:
        await settle_order(
            db_session, user_id=USER_ID, lines=lines, transaction_id="pay_dup"
        )

    assert exc_info.value.order_id == order_id
    assert await _count(db_session, Order) == 1
    assert await _count(db_session, Payment) == 1
    assert await _count(db_session, Commission) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_settling_an_exhausted_cart_raises_empty_cart(db_session):
    _, product = await _make_vendor_product(db_session)
    await _add_to_cart(db_session, product)
    lines = await snapshot_cart(db_session, USER_ID)
    await settle_order(db_session, user_id=USER_ID, lines=lines, transaction_id="pay_a")

    with pytest.raises(EmptyCartError):
        await settle_order(
            db_session, user_id=USER_ID, lines=lines, transaction_id="pay_b"
        )

    assert await _count(db_session, Order) == 1
    assert await _count(db_session, Payment) == 1
    assert await _count(db_session, CartLine) == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_settling_with_no_lines_writes_nothing(db_session):
    with pytest.raises(EmptyCartError):
        await settle_order(db_session, user_id=USER_ID, lines=[], transaction_id="pay_x")

    await _assert_nothing_written(db_session, cart_lines=0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_transaction_id_is_a_validation_error(db_session):
    with pytest.raises(ValidationError):
        await settle_order(db_session, user_id=USER_ID, lines=[], transaction_id="")


# ---------------------------------------------------------------------------
# settle_order: atomicity
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_vanished_vendor_aborts_without_writes(db_session):
    store_product = await _make_store_product(db_session)
    line = await _add_to_cart(db_session, store_product, store=True)
    _, vendor_product = await _make_vendor_product(db_session)
    vendor_line = await _add_to_cart(db_session, vendor_product)

    lines = [
        SnapshotLine(
            cart_line_id=line.id,
            product_ref=StoreProductRef(store_product.id),
            vendor_id=None,
            price=Decimal("30.00"),
            quantity=1,
        ),
        SnapshotLine(
            cart_line_id=vendor_line.id,
            product_ref=VendorProductRef(vendor_product.id),
            vendor_id=uuid.uuid4(),  # no such vendor
            price=Decimal("40.00"),
            quantity=1,
        ),
    ]

    with pytest.raises(VendorNotFoundError):
        await settle_order(
            db_session, user_id=USER_ID, lines=lines, transaction_id="pay_gone"
        )

    await _assert_nothing_written(db_session, cart_lines=2)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_timeout_rolls_back_and_keeps_cart(db_session, monkeypatch):
    await _mixed_cart(db_session)
    lines = await snapshot_cart(db_session, USER_ID)

    async def slow_rates(db, vendor_ids):
        await asyncio.sleep(5)
        return {}

    monkeypatch.setattr(settlement, "load_commission_rates", slow_rates)

    with pytest.raises(SettlementTimeoutError) as exc_info:
        await settle_order(
            db_session,
            user_id=USER_ID,
            lines=lines,
            transaction_id="pay_slow",
            timeout=0.05,
        )

    assert exc_info.value.retryable
    await _assert_nothing_written(db_session, cart_lines=2)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stale_snapshot_is_a_retryable_conflict(db_session):
    _, product = await _make_vendor_product(db_session)
    line = await _add_to_cart(db_session, product)
    other = await _add_to_cart(db_session, product, quantity=2)
    other_id = other.id
    lines = await snapshot_cart(db_session, USER_ID)

    await db_session.delete(line)
    await db_session.commit()

    with pytest.raises(StorageConflictError) as exc_info:
        await settle_order(
            db_session, user_id=USER_ID, lines=lines, transaction_id="pay_stale"
        )

    assert exc_info.value.retryable
    assert await _count(db_session, Order) == 0
    remaining = (await db_session.execute(select(CartLine))).scalars().all()
    assert [r.id for r in remaining] == [other_id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_line_added_after_snapshot_is_a_conflict(db_session):
    await _mixed_cart(db_session)
    lines = await snapshot_cart(db_session, USER_ID)
    _, late_product = await _make_vendor_product(db_session, "500.00")
    await _add_to_cart(db_session, late_product)

    with pytest.raises(StorageConflictError):
        await settle_order(
            db_session, user_id=USER_ID, lines=lines, transaction_id="pay_late"
        )

    await _assert_nothing_written(db_session, cart_lines=3)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_quantity_change_after_snapshot_is_a_conflict(db_session):
    _, product = await _make_vendor_product(db_session)
    line = await _add_to_cart(db_session, product, quantity=1)
    lines = await snapshot_cart(db_session, USER_ID)
    line.quantity = 4
    await db_session.commit()

    with pytest.raises(StorageConflictError):
        await settle_order(
            db_session, user_id=USER_ID, lines=lines, transaction_id="pay_qty"
        )

    await _assert_nothing_written(db_session, cart_lines=1)


# ---------------------------------------------------------------------------
# settle_order: competing settlements
# ---------------------------------------------------------------------------


def _second_session(test_engine) -> AsyncSession:
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_lost_race_on_transaction_id_reports_the_winning_order(
    db_session, test_engine, monkeypatch
):
    _, product = await _make_vendor_product(db_session, rate=Decimal("0.2"))
    await _add_to_cart(db_session, product)
    await _add_to_cart(db_session, product, user_id="user-2")
    winner = await settle_order(
        db_session,
        user_id=USER_ID,
        lines=await snapshot_cart(db_session, USER_ID),
        transaction_id="pay_race",
    )
    winner_id = winner.id

    # The loser's pre-check ran before the winner committed
    real_lookup = settlement.find_order_for_transaction
    calls = []

    async def lookup_after_race(db, transaction_id):
        calls.append(transaction_id)
        if len(calls) == 1:
            return None
        return await real_lookup(db, transaction_id)

    monkeypatch.setattr(settlement, "find_order_for_transaction", lookup_after_race)

    async with _second_session(test_engine) as other_session:
        lines = await snapshot_cart(other_session, "user-2")
        with pytest.raises(DuplicatePaymentError) as exc_info:
            await settle_order(
                other_session,
                user_id="user-2",
                lines=lines,
                transaction_id="pay_race",
            )

    assert len(calls) == 2
    assert exc_info.value.order_id == winner_id
    assert await _count(db_session, Order) == 1
    assert await _count(db_session, Payment) == 1
    assert await _count(db_session, Commission) == 1
    remaining = (await db_session.execute(select(CartLine.user_id))).scalars().all()
    assert remaining == ["user-2"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_two_checkouts_of_one_cart_settle_once(db_session, test_engine):
    await _mixed_cart(db_session)

    async with _second_session(test_engine) as other_session:
        first_lines = await snapshot_cart(db_session, USER_ID)
        second_lines = await snapshot_cart(other_session, USER_ID)

        await settle_order(
            db_session, user_id=USER_ID, lines=first_lines, transaction_id="pay_one"
        )
        with pytest.raises(EmptyCartError):
            await settle_order(
                other_session,
                user_id=USER_ID,
                lines=second_lines,
                transaction_id="pay_two",
            )

    assert await _count(db_session, Order) == 1
    assert await _count(db_session, Payment) == 1
    assert await _count(db_session, Commission) == 1
    assert await _count(db_session, CartLine) == 0
