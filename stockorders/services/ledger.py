from __future__ import annotations

from decimal import Decimal
from typing import Callable, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockorders.app.db.models.core_types import OrderStatus
from stockorders.app.db.models.models_v1 import Order, OrderItem
from stockorders.app.errors import OrderNumberExhausted, OrderTooLarge
from stockorders.app.logger import logger


def _numeric_limit(column) -> Decimal:
    numeric = column.type
    return Decimal(10) ** (numeric.precision - numeric.scale) - Decimal(1).scaleb(-numeric.scale)


# plus grand montant que orders.total_amount peut stocker (99999999.99)
MAX_TOTAL_AMOUNT = _numeric_limit(Order.__table__.c.total_amount)


def lock_order(db: Session, order_id: int) -> Order | None:
    return (
        db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .one_or_none()
    )


def save_order(db: Session, order: Order) -> None:
    db.add(order)
    db.flush()


def save_order_items(db: Session, items: Iterable[OrderItem]) -> None:
    db.add_all(list(items))
    db.flush()


def insert_order(
    db: Session,
    *,
    total_amount: Decimal,
    number_factory: Callable[[], str],
    attempts: int,
) -> Order:
    """
    Insère la commande PENDING avec un numéro unique.

    Chaque tentative vit dans un SAVEPOINT : une collision sur
    order_number n'annule que la tentative, pas la réservation de stock.
    """
    if total_amount > MAX_TOTAL_AMOUNT:
        raise OrderTooLarge(total_amount, MAX_TOTAL_AMOUNT)

    for attempt in range(1, attempts + 1):
        order = Order(
            order_number=number_factory(),
            status=OrderStatus.pending,
            total_amount=total_amount,
        )
        try:
            with db.begin_nested():
                db.add(order)
                db.flush()
        except IntegrityError:
            logger.warning(
                "order number {} already taken (attempt {}/{})",
                order.order_number,
                attempt,
                attempts,
            )
            continue
        return order

    raise OrderNumberExhausted(attempts)
