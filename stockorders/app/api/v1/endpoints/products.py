from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockorders.app.api.deps import get_db
from stockorders.app.db.models.models_v1 import Product
from stockorders.app.schemas.product import ProductRead

router = APIRouter(prefix="/products")


@router.get("", response_model=list[ProductRead])
def list_products(db: Session = Depends(get_db)):
    """Stock disponible par SKU (READ ONLY)."""
    return db.execute(select(Product).order_by(Product.sku)).scalars().all()
