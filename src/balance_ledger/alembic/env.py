"""Online-only migration environment; balance_ledger.migrate builds the Config."""

from alembic import context
from sqlalchemy import create_engine, pool

from balance_ledger.db import Base, _normalize_database_url
from balance_ledger import models  # noqa: F401

config = context.config


def _configure_and_run(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=Base.metadata,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations() -> None:
    if context.is_offline_mode():
        raise RuntimeError("Offline SQL generation is not supported; run migrations online.")

    # A caller that already holds a connection passes it through the Config.
    connection = config.attributes.get("connection")
    if connection is not None:
        _configure_and_run(connection)
        return

    url = _normalize_database_url(config.get_main_option("sqlalchemy.url"))
    connectable = create_engine(url, poolclass=pool.NullPool)
    try:
        with connectable.connect() as connection:
            _configure_and_run(connection)
    finally:
        connectable.dispose()


run_migrations()
