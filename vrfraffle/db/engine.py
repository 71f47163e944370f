from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from .metadata import metadata_obj  # noqa: F401

import os
from pathlib import Path
from dotenv import load_dotenv
from .utils import is_sqlite_url, resolve_sqlite_url

# Get DB url
load_dotenv()
# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)


from typing import Optional


def make_engine(database_url: Optional[str] = None, echo: bool = False):
    url = database_url or DEFAULT_SQLITE_URL
    engine = create_engine(
        url,
        echo=echo,
        future=True,
    )
    if is_sqlite_url(url):
        # ensure FK constraints are enforced on SQLite
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_sessionmaker(engine):
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # Keep raffle rows readable after the transaction closes
        future=True,
    )
