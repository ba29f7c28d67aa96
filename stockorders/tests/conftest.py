import os
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from stockorders.app.db.base import Base
from stockorders.app.db.models.models_v1 import Product
from stockorders.app.db.session import build_engine


@pytest.fixture(scope="function")
def database_url(tmp_path) -> str:
    """
    Base isolée par test.

    TEST_DATABASE_URL (Postgres, MySQL) si fourni, sinon un fichier SQLite
    neuf dans tmp_path : les tests concurrents ont besoin de vraies
    connexions séparées, pas d'une base :memory: partagée.
    """
    return os.getenv("TEST_DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'orders.db'}")


@pytest.fixture(scope="function")
def engine(database_url):
    engine = build_engine(database_url, lock_timeout_ms=5000)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def make_product(session_factory):
    def _make(sku: str, stock_qty: int, price: str = "10.00", name: str | None = None) -> int:
        with session_factory() as db:
            product = Product(sku=sku, name=name or f"TEST-{sku}", stock_qty=stock_qty, price=Decimal(price))
            db.add(product)
            db.commit()
            return product.id

    return _make


@pytest.fixture(scope="function")
def stock_of(session_factory):
    def _stock(sku: str) -> int:
        with session_factory() as db:
            return db.execute(select(Product.stock_qty).where(Product.sku == sku)).scalar_one()

    return _stock
