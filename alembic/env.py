from __future__ import annotations

from logging.config import fileConfig
import os

from alembic import context
from sqlalchemy import engine_from_config, pool

from adminconf.db.base import Base
from adminconf.db.config import get_db_settings
from adminconf.db import models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _database_url() -> str:
    # SQLAlchemyAdminStore exports its URL through DATABASE_URL while upgrading.
    return (
        (os.environ.get("DATABASE_URL") or "").strip()
        or (config.get_main_option("sqlalchemy.url") or "").strip()
        or get_db_settings().database_url
    )


def run_migrations() -> None:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool, future=True)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=Base.metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    raise RuntimeError("offline migrations are not supported; run `alembic upgrade head` against a database")
run_migrations()
