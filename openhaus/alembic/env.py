"""Alembic environment for the OpenHaus schema (users and hosted events)."""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context

from openhaus import database
from openhaus.models import Base

config = context.config

# Migrate whatever database the app is bound to; tests swap the engine out.
config.set_main_option("sqlalchemy.url", database.alembic_url(database.engine.url))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with database.engine.connect() as connection:
        # SQLite can't ALTER most columns in place; batch mode rebuilds tables.
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
