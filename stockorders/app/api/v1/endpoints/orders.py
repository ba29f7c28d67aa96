from __future__ import annotations

import math
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, sessionmaker

from stockorders.app.api.deps import get_db, get_session_factory
from stockorders.app.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from stockorders.app.db.models.core_types import OrderStatus
from stockorders.app.errors import OrderNotFound
from stockorders.app.schemas.order import OrderCreate, OrderPage, OrderRead
from stockorders.services.order_queries import get_order, list_orders
from stockorders.services.release import cancel_order
from stockorders.services.reservation import OrderLine, create_order

router = APIRouter(prefix="/orders")


@router.post("", response_model=OrderRead, status_code=201)
def place_order(
    payload: OrderCreate,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    lines = [OrderLine(sku=item.sku, qty=item.qty) for item in payload.items]
    return create_order(session_factory, lines)


@router.get("", response_model=OrderPage)
def list_order_history(
    status: OrderStatus | None = None,
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    db: Session = Depends(get_db),
):
    """
    Historique (READ ONLY)
    - plus récentes d'abord
    - filtres optionnels : status, from / to (ISO 8601)
    """
    orders, total = list_orders(
        db,
        status=status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return {
        "orders": orders,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit),
        },
    }


@router.get("/{order_id}", response_model=OrderRead)
def read_order(order_id: int, db: Session = Depends(get_db)):
    order = get_order(db, order_id)
    if not order:
        raise OrderNotFound(order_id)
    return order


@router.post("/{order_id}/cancel", response_model=OrderRead)
def cancel(
    order_id: int,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    return cancel_order(session_factory, order_id)
