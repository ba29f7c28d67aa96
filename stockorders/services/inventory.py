from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockorders.app.db.models.models_v1 import Product


def lock_product(db: Session, sku: str) -> Product | None:
    """SELECT ... FOR UPDATE sur une ligne produit (None si absente)."""
    return (
        db.execute(
            select(Product)
            .where(Product.sku == sku)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .one_or_none()
    )


def lock_products(db: Session, skus: Iterable[str]) -> dict[str, Product | None]:
    """
    Verrouille un ensemble de produits.

    Ordre d'acquisition : SKU croissant, une ligne à la fois.
    Toute transaction qui prend plusieurs verrous produit passe par ici,
    donc deux transactions ne s'attendent jamais mutuellement en cycle.
    """
    locked: dict[str, Product | None] = {}
    for sku in sorted(set(skus)):
        locked[sku] = lock_product(db, sku)
    return locked


def save_product(db: Session, product: Product) -> None:
    db.add(product)
    db.flush()


def save_products(db: Session, products: Iterable[Product]) -> None:
    db.add_all(list(products))
    db.flush()
