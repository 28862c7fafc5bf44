# -*- coding: utf-8 -*-
"""
Full reset of the SQLite database plus a demo data set, with verbose logs.

Run from the project root:
  python scripts/recreate_db.py
"""

from __future__ import annotations
import sys, traceback
from datetime import date, datetime, time
from pathlib import Path
from typing import Optional
from sqlalchemy import text

# --- project path ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print(f"[recreate] ROOT={ROOT}")
if not (ROOT / "fieldops" / "__init__.py").exists():
    raise SystemExit("[recreate] error: fieldops/__init__.py not found next to scripts/")

print("[recreate] importing app…")
from fieldops import create_app  # type: ignore
from fieldops.extensions import db  # type: ignore

print("[recreate] importing models…")
from fieldops.models import (  # type: ignore
    User, ConsoleProfile, ProfileMember, SeasonConfig, UpsellConfig, Worker, Booking,
)


def _db_path_from_uri(uri: str) -> Optional[Path]:
    if uri.startswith("sqlite:///"):
        return Path(uri.replace("sqlite:///", "")).resolve()
    return None


def _cnt(table: str) -> int:
    return int(db.session.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar() or 0)


def main() -> int:
    print("[recreate] create_app()…")
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[recreate] SQLALCHEMY_DATABASE_URI = {uri}")

        db_path = _db_path_from_uri(uri)
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            if db_path.exists():
                print(f"[recreate] removing database file: {db_path}")
                db_path.unlink()
            else:
                print(f"[recreate] database file does not exist yet: {db_path}")
        else:
            print("[recreate] not sqlite, dropping all tables instead")
            db.drop_all()

        print("[recreate] creating tables from models…")
        db.create_all()

        # --- profiles and seasons ---
        print("[recreate] adding profiles and seasons…")
        west = ConsoleProfile(title="West Console", region="West")
        central = ConsoleProfile(title="Central Console", region="Central")
        db.session.add_all([west, central])
        db.session.commit()

        aeration = SeasonConfig(profile_id=west.id, code="west-aeration", name="Aeration",
                                season_type="Individual", service_line="aeration", is_active=True)
        sealing = SeasonConfig(profile_id=central.id, code="central-sealing", name="Sealing",
                               season_type="Team", service_line="sealing", is_active=True)
        db.session.add_all([aeration, sealing])
        db.session.commit()

        db.session.add_all([
            UpsellConfig(season_id=aeration.id, code="fertilizer", name="Fertilizer",
                         eq_percentage=50, commission_percentage=10),
            UpsellConfig(season_id=sealing.id, code="crack-fill", name="Crack fill",
                         eq_percentage=0, commission_percentage=15),
        ])
        db.session.commit()
        print(f"[recreate] season_config rows={_cnt('season_config')} upsell_config rows={_cnt('upsell_config')}")

        # --- users ---
        print("[recreate] creating users…")
        boss = User(username="business", role="business", full_name="Head Office")
        boss.set_password("business")
        console = User(username="console", role="console", full_name="West Console")
        console.set_password("console")
        rm = User(username="route", role="route_manager", full_name="Route Manager")
        rm.set_password("route")
        db.session.add_all([boss, console, rm])
        db.session.commit()

        db.session.add_all([
            ProfileMember(user_id=console.id, profile_id=west.id, role="console"),
            ProfileMember(user_id=rm.id, profile_id=west.id, role="route_manager"),
        ])
        db.session.commit()
        print(f"[recreate] user rows={_cnt('user')} profile_member rows={_cnt('profile_member')}")

        # --- workers and today's bookings ---
        print("[recreate] adding workers and bookings…")
        today = date.today()
        noon = datetime.combine(today, time(12, 0))
        db.session.add_all([
            Worker(profile_id=west.id, contractor_id="W100", first_name="Sam", last_name="Reed",
                   days_worked=12, aeration_silvers=3, showed=True, showed_date=today),
            Worker(profile_id=central.id, contractor_id="C200", first_name="Ana", last_name="Cole",
                   days_worked_previous_years=60, showed=True, showed_date=today, cart_id=1),
            Worker(profile_id=central.id, contractor_id="C201", first_name="Lee", last_name="Park",
                   showed=True, showed_date=today, cart_id=1),
        ])
        db.session.add_all([
            Booking(booking_id="B-1", profile_id=west.id, contractor_number="W100", full_address="12 Elm St",
                    price=113, payment_method="Cash", completed=True, date_completed=noon, status="contract"),
            Booking(booking_id="B-2", profile_id=west.id, contractor_number="W100", full_address="14 Elm St",
                    price=80, payment_method="Credit Card", prepaid=True, is_prebooked=True,
                    completed=True, date_completed=noon, status="contract"),
            Booking(booking_id="B-2F", profile_id=west.id, contractor_number="W100", full_address="14 Elm St",
                    price=45, payment_method="Credit Card", is_contract=True, upsell_code="fertilizer",
                    completed=True, date_completed=noon, status="contract"),
            Booking(booking_id="B-3", profile_id=central.id, contractor_number="C200", full_address="3 Oak Ave",
                    price=300, payment_method="E-Transfer", completed=True, date_completed=noon,
                    status="contract"),
        ])
        db.session.commit()
        print(f"[recreate] worker rows={_cnt('worker')} booking rows={_cnt('booking')}")

        print("\n[recreate] Done.")
        print("Logins:")
        print("  business / business")
        print("  console  / console")
        print("  route    / route")
        if db_path:
            print(f"\nDatabase file: {db_path}")
        return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception:
        print("\n[recreate] ERROR:")
        traceback.print_exc()
        sys.exit(1)
