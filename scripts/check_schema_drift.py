from __future__ import annotations

import argparse
import sys
from typing import Optional

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext

from vrfraffle.db.engine import make_engine
from vrfraffle.models import Base


def _print_ops(ops, indent: int = 0) -> None:
    prefix = "  " * indent
    for op in ops:
        print(f"{prefix}- {op}")
        if getattr(op, "ops", None):
            _print_ops(op.ops, indent + 1)


def check_drift(database_url: Optional[str] = None) -> int:
    """Compare the live schema with the raffle models.

    Returns 0 when they match, 1 when they differ and 2 on errors.
    """
    engine = make_engine(database_url)
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    except Exception as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    if upgrade_ops is None:
        print(f"Schema drift check: ERROR for {url_display}: missing upgrade ops.")
        return 2
    if upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: FAILED for {url_display}. Run a migration for:")
    _print_ops(upgrade_ops.ops or [])
    return 1


def main() -> int:
    p = argparse.ArgumentParser(description="Detect differences between models and DB.")
    p.add_argument("--db-url", default=None, help="Override DB_URL.")
    return check_drift(p.parse_args().db_url)


if __name__ == "__main__":
    raise SystemExit(main())
