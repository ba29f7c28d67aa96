from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from stockorders.app.db.session import SessionLocal
from stockorders.app.db.models.models_v1 import Product
from stockorders.app.logger import logger

SAMPLE_PRODUCTS = (
    ("SKU001", "Laptop Dell XPS 13", 50, Decimal("1299.99")),
    ("SKU002", "Mouse Logitech MX Master", 100, Decimal("99.99")),
    ("SKU003", "Keyboard Mechanical RGB", 75, Decimal("149.99")),
    ("SKU004", 'Monitor 27" 4K', 30, Decimal("499.99")),
    ("SKU005", "Webcam HD 1080p", 200, Decimal("79.99")),
)


def run_seed(session_factory=SessionLocal) -> int:
    """Insère les produits d'exemple absents. Retourne le nombre créé."""
    db = session_factory()
    created = 0
    try:
        existing = set(db.scalars(select(Product.sku)).all())
        for sku, name, stock_qty, price in SAMPLE_PRODUCTS:
            if sku in existing:
                continue
            db.add(Product(sku=sku, name=name, stock_qty=stock_qty, price=price))
            created += 1
        db.commit()
    finally:
        db.close()

    logger.info("SEED OK: {} product(s) created", created)
    return created


if __name__ == "__main__":
    run_seed()
