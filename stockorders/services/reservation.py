from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable

from sqlalchemy.orm import sessionmaker

from stockorders.app.config import ORDER_NUMBER_ATTEMPTS
from stockorders.app.db.models.models_v1 import Order, OrderItem
from stockorders.app.errors import (
    InsufficientStock,
    OrderServiceError,
    ProductNotFound,
    ValidationError,
)
from stockorders.app.logger import logger
from stockorders.services.inventory import lock_products, save_products
from stockorders.services.ledger import insert_order, save_order_items
from stockorders.services.order_numbers import generate_order_number
from stockorders.services.order_queries import load_order
from stockorders.services.unit_of_work import transaction


@dataclass(frozen=True)
class OrderLine:
    sku: str
    qty: int


def validate_lines(lines: Iterable[OrderLine]) -> dict[str, int]:
    """
    Contrôle des lignes AVANT toute transaction.

    Retourne {sku: quantité}, dans l'ordre de la requête ;
    un SKU répété est fusionné en une seule ligne.
    """
    requested: dict[str, int] = {}
    for line in lines:
        sku = line.sku.strip() if isinstance(line.sku, str) else ""
        if not sku:
            raise ValidationError("Each item must have a non-empty sku")
        if isinstance(line.qty, bool) or not isinstance(line.qty, int) or line.qty < 1:
            raise ValidationError(f"Quantity must be at least 1 (sku={sku})")
        requested[sku] = requested.get(sku, 0) + line.qty

    if not requested:
        raise ValidationError("Order must contain at least one item")
    return requested


def create_order(
    session_factory: sessionmaker,
    lines: Iterable[OrderLine],
    *,
    number_factory: Callable[[], str] = generate_order_number,
    number_attempts: int = ORDER_NUMBER_ATTEMPTS,
    lock_timeout_ms: int | None = None,
) -> Order:
    """
    Réserve le stock et crée la commande, tout ou rien.

    Règle métier :
        stock_qty -= qty pour chaque SKU
        total_amount = SUM(qty * prix verrouillé)

    Propriétés :
    - verrous FOR UPDATE pris en ordre de SKU croissant
    - aucune décrémentation si une seule ligne échoue
    - prix capturé dans la transaction (snapshot sur chaque item)
    """
    requested = validate_lines(lines)

    try:
        with transaction(session_factory, lock_timeout_ms=lock_timeout_ms) as db:
            products = lock_products(db, requested)

            for sku, qty in requested.items():
                product = products[sku]
                if product is None:
                    raise ProductNotFound(sku)
                if product.stock_qty < qty:
                    raise InsufficientStock(sku, product.stock_qty, qty)

            total = Decimal("0.00")
            items: list[OrderItem] = []
            for sku, qty in requested.items():
                product = products[sku]
                product.stock_qty -= qty
                total += product.price * qty
                items.append(
                    OrderItem(
                        product_id=product.id,
                        sku=product.sku,
                        quantity=qty,
                        unit_price=product.price,
                    )
                )
            save_products(db, (products[sku] for sku in requested))

            order = insert_order(
                db,
                total_amount=total,
                number_factory=number_factory,
                attempts=number_attempts,
            )
            for item in items:
                item.order_id = order.id
            save_order_items(db, items)

            order_id = order.id
            order_number = order.order_number
    except OrderServiceError as exc:
        logger.info("create_order rejected: {} ({})", exc.message, exc.code)
        raise

    logger.info(
        "order {} reserved {} sku(s), total={}",
        order_number,
        len(requested),
        total,
    )
    return load_order(session_factory, order_id)
