"""
Portée transactionnelle partagée par les deux coordinateurs.

- begin à l'entrée, commit en sortie normale, rollback sur toute erreur
- borne l'attente sur verrou (LOCK_TIMEOUT_MS)
- traduit les erreurs driver en erreurs typées (LockTimeout, StoreUnavailable, CommitFailed)
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from stockorders.app.config import LOCK_TIMEOUT_MS
from stockorders.app.errors import CommitFailed, LockTimeout, StoreUnavailable
from stockorders.app.logger import logger


# lock_not_available, deadlock_detected
LOCK_SQLSTATES = {"55P03", "40P01"}
# ER_LOCK_WAIT_TIMEOUT, ER_LOCK_DEADLOCK
MYSQL_LOCK_ERRORS = {1205, 1213}


def _sqlstate(orig: object) -> str | None:
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_db_error(exc: DBAPIError) -> Exception:
    """Map a driver error onto the error taxonomy; unknown errors come back unchanged."""
    orig = exc.orig

    if _sqlstate(orig) in LOCK_SQLSTATES:
        return LockTimeout()

    args = getattr(orig, "args", ())
    if args and args[0] in MYSQL_LOCK_ERRORS:
        return LockTimeout()

    if "database is locked" in str(orig).lower():
        return LockTimeout()

    if exc.connection_invalidated or isinstance(exc, (OperationalError, InterfaceError)):
        return StoreUnavailable(f"Database unavailable: {orig}")

    return exc


def apply_lock_timeout(db: Session, lock_timeout_ms: int) -> None:
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        # is_local=true : limité à la transaction courante
        db.execute(
            text("SELECT set_config('lock_timeout', :value, true)"),
            {"value": f"{int(lock_timeout_ms)}ms"},
        )
    elif dialect in ("mysql", "mariadb"):
        # portée session, pas transaction : la valeur reste sur la connexion
        # du pool, chaque transaction() la repose avant usage
        db.execute(
            text("SET SESSION innodb_lock_wait_timeout = :value"),
            {"value": max(1, math.ceil(lock_timeout_ms / 1000))},
        )
    # sqlite : busy timeout posé à la connexion (voir db/session.py)


@contextmanager
def transaction(
    session_factory: sessionmaker,
    *,
    lock_timeout_ms: int | None = None,
) -> Iterator[Session]:
    timeout = LOCK_TIMEOUT_MS if lock_timeout_ms is None else lock_timeout_ms
    db = session_factory()
    try:
        try:
            apply_lock_timeout(db, timeout)
            yield db
            db.flush()
        except DBAPIError as exc:
            translated = translate_db_error(exc)
            if translated is exc:
                raise
            logger.warning("transaction aborted: {}", translated.message)
            raise translated from exc

        try:
            db.commit()
        except DBAPIError as exc:
            logger.error("commit failed: {}", exc.orig)
            raise CommitFailed(f"Transaction commit failed: {exc.orig}") from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
