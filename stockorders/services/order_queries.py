from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from stockorders.app.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from stockorders.app.db.models.core_types import OrderStatus
from stockorders.app.db.models.models_v1 import Order, OrderItem
from stockorders.app.errors import OrderNotFound, ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # naïf = déjà UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _with_items(stmt: Select) -> Select:
    return stmt.options(selectinload(Order.items).selectinload(OrderItem.product))


def get_order(db: Session, order_id: int) -> Order | None:
    return db.execute(_with_items(select(Order).where(Order.id == order_id))).scalar_one_or_none()


def load_order(session_factory: sessionmaker, order_id: int) -> Order:
    """Commande hydratée (items + produits), détachée de la session."""
    with session_factory() as db:
        order = get_order(db, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    return order


def list_orders(
    db: Session,
    *,
    status: OrderStatus | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> tuple[list[Order], int]:
    """
    Historique des commandes (READ ONLY).

    - plus récentes d'abord
    - si une seule borne est donnée : from = epoch, to = maintenant
    - retourne (page de commandes, total filtré)
    """
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")

    stmt = select(Order)
    count_stmt = select(func.count()).select_from(Order)

    if status is not None:
        stmt = stmt.where(Order.status == status)
        count_stmt = count_stmt.where(Order.status == status)

    if date_from is not None or date_to is not None:
        start = _as_utc(date_from) if date_from is not None else EPOCH
        end = _as_utc(date_to) if date_to is not None else datetime.now(timezone.utc)
        stmt = stmt.where(Order.created_at.between(start, end))
        count_stmt = count_stmt.where(Order.created_at.between(start, end))

    total = db.execute(count_stmt).scalar_one()
    orders = (
        db.execute(
            _with_items(stmt)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return list(orders), int(total)
