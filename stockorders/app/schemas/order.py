from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from stockorders.app.db.models.core_types import OrderStatus


class OrderItemCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=100)
    qty: int = Field(ge=1)


class OrderCreate(BaseModel):
    items: list[OrderItemCreate] = Field(min_length=1)


class OrderItemProduct(BaseModel):
    id: int
    sku: str
    name: str

    class Config:
        from_attributes = True


class OrderItemRead(BaseModel):
    id: int
    product_id: int | None
    sku: str
    quantity: int
    unit_price: Decimal  # snapshot au moment de la commande
    product: OrderItemProduct | None = None

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: int
    order_number: str
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    item_count: int
    items: list[OrderItemRead]

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class OrderPage(BaseModel):
    orders: list[OrderRead]
    pagination: Pagination
