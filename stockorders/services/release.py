from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from stockorders.app.db.models.core_types import CANCELLABLE_STATUSES, OrderStatus
from stockorders.app.db.models.models_v1 import Order, Product
from stockorders.app.errors import (
    AlreadyCancelled,
    InvalidState,
    OrderNotFound,
    OrderServiceError,
)
from stockorders.app.logger import logger
from stockorders.services.inventory import lock_products, save_products
from stockorders.services.ledger import lock_order, save_order
from stockorders.services.order_queries import load_order
from stockorders.services.unit_of_work import transaction


def cancel_order(
    session_factory: sessionmaker,
    order_id: int,
    *,
    lock_timeout_ms: int | None = None,
) -> Order:
    """
    Annule une commande et restitue son stock, tout ou rien.

    - verrou FOR UPDATE sur la commande : deux annulations concurrentes
      se sérialisent, la seconde voit CANCELLED -> AlreadyCancelled
    - verrous produits en ordre de SKU croissant (même règle que create_order)
    - produit supprimé depuis : la ligne est ignorée, l'annulation aboutit
    """
    try:
        with transaction(session_factory, lock_timeout_ms=lock_timeout_ms) as db:
            order = lock_order(db, order_id)
            if order is None:
                raise OrderNotFound(order_id)
            if order.status == OrderStatus.cancelled:
                raise AlreadyCancelled(order_id)
            if order.status not in CANCELLABLE_STATUSES:
                raise InvalidState(order_id, order.status.value)

            linked = [item for item in order.items if item.product_id is not None]
            products = lock_products(db, (item.sku for item in linked))

            restored: list[Product] = []
            for item in order.items:
                product = products.get(item.sku) if item.product_id is not None else None
                if product is None or product.id != item.product_id:
                    logger.warning(
                        "order {}: product {} no longer exists, {} unit(s) not restored",
                        order.order_number,
                        item.sku,
                        item.quantity,
                    )
                    continue
                product.stock_qty += item.quantity
                restored.append(product)
            save_products(db, restored)

            order.status = OrderStatus.cancelled
            save_order(db, order)
            order_number = order.order_number
    except OrderServiceError as exc:
        logger.info("cancel_order rejected: {} ({})", exc.message, exc.code)
        raise

    logger.info("order {} cancelled, stock released", order_number)
    return load_order(session_factory, order_id)
