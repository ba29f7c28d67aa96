from decimal import Decimal

import pytest
from sqlalchemy import func, select

from stockorders.app.db.models.core_types import OrderStatus
from stockorders.app.db.models.models_v1 import Order, OrderItem, Product
from stockorders.app.errors import (
    InsufficientStock,
    OrderNumberExhausted,
    OrderTooLarge,
    ProductNotFound,
    ValidationError,
)
from stockorders.services.order_numbers import generate_order_number
from stockorders.services.reservation import OrderLine, create_order, validate_lines


def _count(session_factory, model) -> int:
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_create_order_computes_total_and_snapshots_prices(session_factory, make_product, stock_of):
    """
    GIVEN
    - SKU-A à 10.00 (stock 10), SKU-B à 5.00 (stock 10)

    WHEN
    - commande [A x2, B x1]

    THEN
    - total_amount == 25.00, statut PENDING
    - deux items avec le prix du produit au moment de la commande
    - stock décrémenté
    """
    make_product("SKU-A", 10, "10.00")
    make_product("SKU-B", 10, "5.00")

    order = create_order(session_factory, [OrderLine("SKU-A", 2), OrderLine("SKU-B", 1)])

    assert order.status == OrderStatus.pending
    assert order.total_amount == Decimal("25.00")
    assert order.order_number.startswith("ORD-")
    assert order.item_count == 2

    items = {item.sku: item for item in order.items}
    assert items["SKU-A"].quantity == 2
    assert items["SKU-A"].unit_price == Decimal("10.00")
    assert items["SKU-B"].unit_price == Decimal("5.00")
    assert items["SKU-A"].product.sku == "SKU-A"
    assert sum(i.unit_price * i.quantity for i in order.items) == order.total_amount

    assert stock_of("SKU-A") == 8
    assert stock_of("SKU-B") == 9


def test_price_snapshot_survives_later_price_change(session_factory, make_product):
    make_product("SKU-A", 10, "10.00")
    order = create_order(session_factory, [OrderLine("SKU-A", 1)])

    with session_factory() as db:
        product = db.execute(select(Product).where(Product.sku == "SKU-A")).scalar_one()
        product.price = Decimal("99.00")
        db.commit()

    with session_factory() as db:
        item = db.execute(select(OrderItem).where(OrderItem.order_id == order.id)).scalar_one()
        assert item.unit_price == Decimal("10.00")


def test_unknown_sku_rolls_back_whole_order(session_factory, make_product, stock_of):
    """
    GIVEN
    - SKU-A stock 20

    WHEN
    - commande [SKU-A x5, INVALID x1]

    THEN
    - ProductNotFound(INVALID)
    - stock SKU-A inchangé, aucune commande ni item
    """
    make_product("SKU-A", 20)

    with pytest.raises(ProductNotFound) as excinfo:
        create_order(session_factory, [OrderLine("SKU-A", 5), OrderLine("INVALID", 1)])

    assert excinfo.value.sku == "INVALID"
    assert excinfo.value.status_code == 404
    assert stock_of("SKU-A") == 20
    assert _count(session_factory, Order) == 0
    assert _count(session_factory, OrderItem) == 0


def test_insufficient_stock_on_last_line_changes_nothing(session_factory, make_product, stock_of):
    make_product("SKU-A", 10)
    make_product("SKU-B", 3)

    with pytest.raises(InsufficientStock) as excinfo:
        create_order(session_factory, [OrderLine("SKU-A", 4), OrderLine("SKU-B", 4)])

    err = excinfo.value
    assert (err.sku, err.available, err.requested) == ("SKU-B", 3, 4)
    assert err.to_dict()["available"] == 3
    assert stock_of("SKU-A") == 10
    assert stock_of("SKU-B") == 3
    assert _count(session_factory, Order) == 0


def test_exact_stock_can_be_fully_reserved(session_factory, make_product, stock_of):
    make_product("SKU-A", 5)

    create_order(session_factory, [OrderLine("SKU-A", 5)])

    assert stock_of("SKU-A") == 0
    with pytest.raises(InsufficientStock):
        create_order(session_factory, [OrderLine("SKU-A", 1)])
    assert stock_of("SKU-A") == 0


def test_duplicate_skus_are_merged_before_stock_check(session_factory, make_product, stock_of):
    """Deux lignes du même SKU comptent ensemble : 30 + 30 > 50 est refusé."""
    make_product("SKU-A", 50)

    with pytest.raises(InsufficientStock) as excinfo:
        create_order(session_factory, [OrderLine("SKU-A", 30), OrderLine("SKU-A", 30)])
    assert excinfo.value.requested == 60
    assert stock_of("SKU-A") == 50

    order = create_order(session_factory, [OrderLine("SKU-A", 20), OrderLine("SKU-A", 5)])
    assert order.item_count == 1
    assert order.items[0].quantity == 25
    assert stock_of("SKU-A") == 25


@pytest.mark.parametrize(
    "lines",
    [
        [],
        [OrderLine("SKU-A", 0)],
        [OrderLine("SKU-A", -3)],
        [OrderLine("   ", 1)],
        [OrderLine("SKU-A", True)],
    ],
)
def test_invalid_requests_never_open_a_transaction(lines):
    def forbidden_factory():
        raise AssertionError("store must not be touched")

    with pytest.raises(ValidationError) as excinfo:
        create_order(forbidden_factory, lines)
    assert excinfo.value.status_code == 400


def test_validate_lines_strips_and_keeps_request_order():
    requested = validate_lines([OrderLine(" SKU-B ", 1), OrderLine("SKU-A", 2), OrderLine("SKU-B", 3)])
    assert list(requested.items()) == [("SKU-B", 4), ("SKU-A", 2)]


def test_order_number_collision_is_retried(session_factory, make_product, stock_of):
    make_product("SKU-A", 10)
    first = create_order(session_factory, [OrderLine("SKU-A", 1)])

    numbers = iter([first.order_number, "ORD-TEST-FRESH"])
    second = create_order(
        session_factory,
        [OrderLine("SKU-A", 2)],
        number_factory=lambda: next(numbers),
    )

    assert second.order_number == "ORD-TEST-FRESH"
    assert second.items[0].quantity == 2
    assert stock_of("SKU-A") == 7
    assert _count(session_factory, Order) == 2


def test_order_number_exhaustion_rolls_back_reservation(session_factory, make_product, stock_of):
    make_product("SKU-A", 10)
    first = create_order(session_factory, [OrderLine("SKU-A", 1)])

    with pytest.raises(OrderNumberExhausted) as excinfo:
        create_order(
            session_factory,
            [OrderLine("SKU-A", 2)],
            number_factory=lambda: first.order_number,
            number_attempts=3,
        )

    assert excinfo.value.retryable
    assert stock_of("SKU-A") == 9
    assert _count(session_factory, Order) == 1


def test_total_beyond_stored_precision_is_rejected(session_factory, make_product, stock_of):
    """
    GIVEN
    - SKU001 à 1299.99, stock 100000

    WHEN
    - commande de 80000 unités (total 103999200.00 > 99999999.99)

    THEN
    - OrderTooLarge typée, aucune commande, stock intact
    """
    make_product("SKU001", 100000, "1299.99")

    with pytest.raises(OrderTooLarge) as excinfo:
        create_order(session_factory, [OrderLine("SKU001", 80000)])

    assert excinfo.value.status_code == 409
    assert excinfo.value.total == Decimal("103999200.00")
    assert excinfo.value.limit == Decimal("99999999.99")
    assert stock_of("SKU001") == 100000
    assert _count(session_factory, Order) == 0

    # juste sous la limite : accepté
    order = create_order(session_factory, [OrderLine("SKU001", 76923)])
    assert order.total_amount == Decimal("99999130.77")


def test_generated_order_numbers_are_namespaced_and_distinct():
    numbers = {generate_order_number() for _ in range(500)}
    assert len(numbers) == 500
    assert all(n.startswith("ORD-") and len(n) == len("ORD-20260101-") + 10 for n in numbers)
    assert generate_order_number(prefix="WEB").startswith("WEB-")
