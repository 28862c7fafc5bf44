"""
Bring the database schema up to date without dropping data.

Creates tables declared in the models that are missing from the database and
leaves existing tables alone.

Run:
  python scripts/ensure_schema.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from sqlalchemy import inspect

# make sure the project root is importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print("[ensure] loading app...")
from fieldops import create_app  # type: ignore
from fieldops.extensions import db  # type: ignore


def _tables() -> set[str]:
    return set(inspect(db.engine).get_table_names())


def main() -> int:
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[ensure] SQLALCHEMY_DATABASE_URI = {uri}")

        before = _tables()
        print(f"[ensure] tables before: {len(before)}")

        # registers every model on the metadata
        from fieldops import models  # noqa: F401

        db.create_all()

        created = sorted(_tables() - before)
        if created:
            print(f"[ensure] created tables: {', '.join(created)}")
        else:
            print("[ensure] no new tables needed.")

        wanted = ["payout_record", "payout_adjustment", "season_config", "upsell_config"]
        missing = [t for t in wanted if t not in _tables()]
        if missing:
            print(f"[ensure] still missing: {', '.join(missing)}")
            return 1
        print("[ensure] done.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
