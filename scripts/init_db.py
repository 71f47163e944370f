from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from vrfraffle.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def alembic_config(database_url: Optional[str] = None) -> Config:
    """Build the Alembic config for this project, optionally pinning the DB URL."""
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    if database_url:
        cfg.attributes["database_url"] = database_url
    return cfg


def report_raffle_tables(database_url: Optional[str] = None) -> list[str]:
    """Return the tables present in the database after the upgrade."""
    engine = make_engine(database_url)
    try:
        return sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def main() -> None:
    p = argparse.ArgumentParser(description="Create or upgrade the raffle database.")
    p.add_argument("--revision", default="head", help="Target Alembic revision.")
    p.add_argument("--db-url", default=None, help="Override DB_URL.")
    args = p.parse_args()

    command.upgrade(alembic_config(args.db_url), args.revision)
    print("Tables:", ", ".join(report_raffle_tables(args.db_url)))


if __name__ == "__main__":
    main()
