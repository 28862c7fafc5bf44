# -*- coding: utf-8 -*-
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest

from fieldops import create_app
from fieldops.config import TestConfig
from fieldops.extensions import db
from fieldops.models import (
    User, ConsoleProfile, ProfileMember, SeasonConfig, UpsellConfig, Worker, Booking,
)

DAY = date(2026, 5, 4)
NOON = datetime.combine(DAY, time(12, 0))


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


def _user(username, role, profile=None, member_role=None):
    u = User(username=username, role=role, full_name=username.title())
    u.set_password(username)
    db.session.add(u)
    db.session.flush()
    if profile is not None:
        db.session.add(ProfileMember(user_id=u.id, profile_id=profile.id, role=member_role or role))
    return u


@pytest.fixture
def seed(app):
    """
    West: Individual aeration season, one worker (W100) with three bookings on DAY.
    Central: Team sealing season, a two-worker cart (C200 alumni, C201 rookie).
    """
    with app.app_context():
        west = ConsoleProfile(title="West Console", region="West")
        central = ConsoleProfile(title="Central Console", region="Central")
        db.session.add_all([west, central])
        db.session.flush()

        aeration = SeasonConfig(profile_id=west.id, code="west-aeration", name="Aeration",
                                season_type="Individual", is_active=True)
        sealing = SeasonConfig(profile_id=central.id, code="central-sealing", name="Sealing",
                               season_type="Team", is_active=True)
        db.session.add_all([aeration, sealing])
        db.session.flush()
        db.session.add(UpsellConfig(season_id=aeration.id, code="fertilizer", name="Fertilizer",
                                    eq_percentage=50, commission_percentage=10))

        _user("boss", "business")
        _user("console", "console", west)
        _user("route", "route_manager", west)
        _user("central", "console", central)

        db.session.add_all([
            Worker(profile_id=west.id, contractor_id="W100", first_name="Sam", last_name="Reed",
                   showed=True, showed_date=DAY),
            Worker(profile_id=central.id, contractor_id="C200", first_name="Ana", last_name="Cole",
                   days_worked_previous_years=60, showed=True, showed_date=DAY, cart_id=1),
            Worker(profile_id=central.id, contractor_id="C201", first_name="Lee", last_name="Park",
                   showed=True, showed_date=DAY, cart_id=1),
        ])
        db.session.add_all([
            # 282.50 incl. 13% tax -> 250 net
            Booking(booking_id="B-1", profile_id=west.id, contractor_number="W100", price=Decimal("282.50"),
                    payment_method="Credit Card", is_prebooked=True, completed=True, date_completed=NOON),
            # 113 cash -> 100 net
            Booking(booking_id="B-2", profile_id=west.id, contractor_number="W100", price=Decimal("113.00"),
                    payment_method="Cash", completed=True, date_completed=NOON),
            # fertilizer contract: 100 net, half of it counts toward EQ, 10% of the rest is commission
            Booking(booking_id="B-3", profile_id=west.id, contractor_number="W100", price=Decimal("113.00"),
                    payment_method="Credit Card", is_contract=True, upsell_code="fertilizer",
                    completed=True, date_completed=NOON),
            # previous day, ignored
            Booking(booking_id="B-4", profile_id=west.id, contractor_number="W100", price=Decimal("500.00"),
                    payment_method="Credit Card", completed=True, date_completed=NOON - timedelta(days=1)),
            # not completed, ignored
            Booking(booking_id="B-5", profile_id=west.id, contractor_number="W100", price=Decimal("90.00"),
                    payment_method="Credit Card", completed=False),
            Booking(booking_id="B-10", profile_id=central.id, contractor_number="C200", price=Decimal("282.50"),
                    payment_method="E-Transfer", completed=True, date_completed=NOON),
        ])
        db.session.commit()
        return {"west": west.id, "central": central.id, "aeration": aeration.id, "sealing": sealing.id}


@pytest.fixture
def client_for(app):
    def _login(username, password=None):
        c = app.test_client()
        r = c.post("/login", json={"username": username, "password": password or username})
        assert r.status_code == 200, r.get_json()
        return c
    return _login
