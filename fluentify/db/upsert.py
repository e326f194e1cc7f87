"""
Dialect-aware INSERT ... ON CONFLICT helpers.

Progress rows are keyed by natural unique tuples, so conflict handling happens
in the database instead of a read-then-write in Python.
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def dialect_insert(db: Session, model):
    backend = db.get_bind().dialect.name
    if backend == "postgresql":
        return postgresql.insert(model)
    if backend == "sqlite":
        return sqlite.insert(model)
    raise RuntimeError(f"ON CONFLICT upserts are not supported for backend '{backend}'")


def insert_ignore(db: Session, model, values: dict, conflict_columns: list[str]) -> int:
    """Insert a row unless one with the same key exists. Returns affected row count."""
    stmt = dialect_insert(db, model).values(**values).on_conflict_do_nothing(
        index_elements=conflict_columns
    )
    return db.execute(stmt).rowcount


def upsert(db: Session, model, values: dict, conflict_columns: list[str], update: dict, where=None) -> int:
    """
    Insert a row or update the existing one.

    When *where* is given the update only applies to rows matching it, and the
    returned row count is 0 if the existing row did not match.
    """
    stmt = dialect_insert(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_=update,
        where=where,
    )
    return db.execute(stmt).rowcount
