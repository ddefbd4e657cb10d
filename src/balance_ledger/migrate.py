import json
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect, select
from sqlalchemy.orm import sessionmaker

from .config import settings
from .db import SessionLocal, _normalize_database_url, engine
from .logs import configure_logging
from .models import Account

logger = logging.getLogger("balance_ledger.migrate")

DEV_ACCOUNT_IDS = (1, 2, 3)


def alembic_config(database_url: str) -> Config:
    script_location = Path(__file__).resolve().parent / "alembic"
    cfg = Config()
    cfg.set_main_option("script_location", str(script_location))
    cfg.set_main_option("sqlalchemy.url", _normalize_database_url(database_url))
    return cfg


def seed_dev_accounts(
    session_factory: sessionmaker, account_ids=DEV_ACCOUNT_IDS
) -> list[int]:
    """Create zero-balance accounts that do not exist yet. Returns the new ids."""
    created = []
    with session_factory() as db:
        with db.begin():
            existing = set(
                db.scalars(select(Account.id).where(Account.id.in_(account_ids))).all()
            )
            for account_id in account_ids:
                if account_id in existing:
                    continue
                db.add(Account(id=account_id, balance=0))
                created.append(account_id)
    return created


def main():
    configure_logging(settings.log_level)
    cfg = alembic_config(settings.database_url)

    with engine.connect() as connection:
        inspector = inspect(connection)
        existing_tables = {
            name for name in ("accounts", "transactions") if inspector.has_table(name)
        }
        has_alembic_version = inspector.has_table("alembic_version")

    # Schemas created before Alembic was introduced are stamped, not recreated.
    if existing_tables and not has_alembic_version:
        command.stamp(cfg, "head")
        logger.info(json.dumps({"event": "migrations_stamped", "tables": sorted(existing_tables)}))

    command.upgrade(cfg, "head")
    logger.info(json.dumps({"event": "migrations_applied"}))

    if settings.seed_dev_accounts:
        created = seed_dev_accounts(SessionLocal)
        logger.info(json.dumps({"event": "dev_accounts_seeded", "account_ids": created}))


if __name__ == "__main__":
    main()
