from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy.engine import Connection, Engine
from dotenv import load_dotenv

# Ensure project root is on path and load environment variables
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from vrfraffle.db.engine import DEFAULT_SQLITE_URL, make_engine  # noqa: E402
from vrfraffle.db.utils import is_sqlite_url, resolve_sqlite_url  # noqa: E402
from vrfraffle.models import Base  # noqa: E402,F401 - import populates metadata

config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configured_database_url() -> str:
    # scripts/init_db.py --db-url passes the URL programmatically
    explicit = config.attributes.get("database_url")
    if explicit:
        return resolve_sqlite_url(explicit, ROOT_DIR)
    env_url = os.getenv("DB_URL")
    if env_url:
        return resolve_sqlite_url(env_url, ROOT_DIR)
    return DEFAULT_SQLITE_URL


DATABASE_URL = _configured_database_url()

# Percent signs need to be escaped due to ConfigParser interpolation rules.
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def run_migrations_offline() -> None:
    """Emit the raffle schema as SQL without connecting."""

    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=is_sqlite_url(DATABASE_URL),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations against the configured database."""

    connectable: Engine | Connection = make_engine(database_url=DATABASE_URL)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.engine.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
