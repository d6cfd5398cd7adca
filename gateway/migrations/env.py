"""
Alembic environment for the registry schema.

Revisions are raw DDL (no SQLAlchemy models); SQLAlchemy is only used for
the migration connection. The URL comes from
gateway.persistence.database.get_database_url().
"""

from alembic import context
from sqlalchemy import create_engine, pool

from gateway.persistence.database import get_database_url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (generates SQL without a live connection)."""
    context.configure(
        url=get_database_url(),
        target_metadata=None,
        literal_binds=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against the live database."""
    engine = create_engine(get_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=None,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
