from typing import Iterator

from sqlalchemy.orm import Session

from fluentify.db.base import SessionLocal


def get_db() -> Iterator[Session]:
    """One session per request; rolled back if the handler leaves a transaction open."""
    db = SessionLocal()
    try:
        yield db
    finally:
        if db.in_transaction():
            db.rollback()
        db.close()
