from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from stockorders.app.db.session import SessionLocal


def get_session_factory() -> sessionmaker:
    return SessionLocal


def get_db(session_factory: sessionmaker = Depends(get_session_factory)) -> Generator:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
