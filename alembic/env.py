"""Alembic environment for the Fluentify schema.

The database URL always comes from the application settings, never from
alembic.ini, so `alembic upgrade head` migrates the same database the API
talks to.
"""
from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from fluentify.db.base import Base, DATABASE_URL
import fluentify.auth.models  # noqa: F401
import fluentify.preferences.models  # noqa: F401
import fluentify.courses.models  # noqa: F401
import fluentify.progress.models  # noqa: F401
import fluentify.contests.models  # noqa: F401
import fluentify.chat.models  # noqa: F401

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _configure(**kwargs) -> None:
    context.configure(target_metadata=Base.metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def migrate_offline() -> None:
    print(f"[ALEMBIC] offline migration url={DATABASE_URL.split('@')[-1]}", flush=True)
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})


def migrate_online() -> None:
    engine = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        # SQLite cannot ALTER most constraints in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
