from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from stockorders.app.config import DATABASE_URL, LOCK_TIMEOUT_MS, SQL_ECHO


def _configure_sqlite(engine: Engine) -> None:
    """
    SQLite n'a pas de verrou de ligne.

    Chaque transaction démarre en BEGIN IMMEDIATE : le verrou d'écriture
    est pris dès le début et sérialise les écrivains sur toute la base.
    Le timeout de connexion borne l'attente (-> "database is locked").
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # pysqlite ne doit pas émettre ses propres BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, *, lock_timeout_ms: int = LOCK_TIMEOUT_MS, echo: bool = SQL_ECHO) -> Engine:
    if make_url(url).get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": lock_timeout_ms / 1000,
            },
        )
        _configure_sqlite(engine)
        return engine

    return create_engine(url, echo=echo, pool_pre_ping=True)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
