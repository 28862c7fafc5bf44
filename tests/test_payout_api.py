# -*- coding: utf-8 -*-
from fieldops.models import PayoutRecord, SeasonConfig

from .conftest import DAY

DATE = DAY.isoformat()


def test_login_required(app, seed):
    c = app.test_client()
    r = c.get(f"/console/payout/today?date={DATE}")
    assert r.status_code == 401
    assert r.get_json()["error"] == "login_required"


def test_bad_login(app, seed):
    r = app.test_client().post("/login", json={"username": "console", "password": "wrong"})
    assert r.status_code == 401
    assert r.get_json()["ok"] is False


def test_home_and_profile_switch(seed, client_for):
    boss = client_for("boss")
    home = boss.get("/").get_json()
    assert home["active_profile_id"] == seed["west"]
    assert {p["id"] for p in home["profiles"]} == {seed["west"], seed["central"]}

    assert boss.post("/set-profile", json={"profile_id": seed["central"]}).status_code == 200
    assert boss.get("/").get_json()["active_profile_id"] == seed["central"]

    console = client_for("console")
    assert console.post("/set-profile", json={"profile_id": seed["central"]}).status_code == 403


def test_today_board(seed, client_for):
    r = client_for("route").get(f"/console/payout/today?date={DATE}")
    assert r.status_code == 200
    body = r.get_json()
    assert body["season"]["code"] == "west-aeration"
    assert body["total_equivalent"] == 16.0
    assert [w["contractor_id"] for w in body["workers"]] == ["W100"]


def test_preview(seed, client_for):
    r = client_for("console").post("/console/payout/preview", json={
        "date": DATE, "contractor_id": "W100", "verified_cash": 100, "change_returned": 10,
    })
    assert r.status_code == 200
    body = r.get_json()
    assert [b["booking_id"] for b in body["bookings"]] == ["B-1", "B-2", "B-3"]
    assert body["equivalent"] == 16.0
    assert body["reconciliation"]["cash_discrepancy"] == -3.0
    assert body["prebooked"] == 1 and body["new_sales"] == 2
    w = body["workers"]["W100"]
    assert w["commission_rate"] == 8.0
    assert w["final_payout"] == 123.0
    assert body["splits_valid"] is True


def test_preview_validation_error(seed, client_for):
    r = client_for("console").post("/console/payout/preview", json={"date": DATE})
    assert r.status_code == 400
    assert r.get_json() == {"ok": False, "error": "No contractor or cart ID provided."}


def test_finalize_history_summary(app, seed, client_for):
    c = client_for("console")
    r = c.post("/console/payout/finalize", json={
        "date": DATE, "contractor_id": "W100",
        "bonuses": {"W100": [{"label": "Top seller", "amount": 20}]},
        "deductions": {"W100": [{"label": "Late", "amount": 5}]},
        "machine_rental": {"W100": False},
    })
    assert r.status_code == 200, r.get_json()
    rec = r.get_json()["records"]["W100"]
    assert rec["commission"] == 148.0  # 128 + 5 + 20 - 5

    hist = c.get("/console/payout/history/W100").get_json()
    assert [h["date"] for h in hist["history"]] == [DATE]

    summ = c.get(f"/console/payout/summary/W100?date={DATE}").get_json()
    assert summ["total_bonuses"] == 20.0
    assert summ["total_deductions"] == 5.0
    assert summ["achievement"] is None

    assert c.get("/console/payout/summary/W100?date=2026-05-05").status_code == 404
    assert c.get("/console/payout/history/C200").status_code == 404


def test_finalize_forbidden_for_route_manager(app, seed, client_for):
    r = client_for("route").post("/console/payout/finalize", json={"date": DATE, "contractor_id": "W100"})
    assert r.status_code == 403
    with app.app_context():
        assert PayoutRecord.query.count() == 0


def test_finalize_bad_splits(app, seed, client_for):
    r = client_for("central").post("/console/payout/finalize", json={
        "date": DATE, "cart_id": 1,
        "splits": {"C200": {"equiv": 50, "upsell": 50}, "C201": {"equiv": 30, "upsell": 50}},
    })
    assert r.status_code == 400
    assert "100%" in r.get_json()["error"]
    with app.app_context():
        assert PayoutRecord.query.count() == 0


def test_payout_logic_read_and_save(app, seed, client_for):
    c = client_for("console")
    body = c.get("/console/payout-logic/").get_json()
    assert body["customized"] is False
    assert body["settings"]["tax_rate"] == 13.0

    r = c.post("/console/payout-logic/", json={
        "baseCommissionRate": 9,
        "payment_method_percentages": {"Billed": {"percentage": 40, "apply_taxes": True}},
    })
    assert r.status_code == 200, r.get_json()
    saved = c.get("/console/payout-logic/").get_json()
    assert saved["customized"] is True
    assert saved["settings"]["base_commission_rate"] == 9.0
    assert saved["settings"]["payment_method_percentages"]["Billed"]["percentage"] == 40.0
    assert saved["settings"]["payment_method_percentages"]["Prepaid"]["percentage"] == 50.0

    r = c.post("/console/payout-logic/", json={"tax_rate": "thirteen"})
    assert r.status_code == 400
    with app.app_context():
        season = SeasonConfig.query.filter_by(code="west-aeration").one()
        assert season.payout_logic.tax_rate == 13


def test_payout_logic_read_only_for_route_manager(seed, client_for):
    c = client_for("route")
    assert c.get("/console/payout-logic/").status_code == 200
    assert c.post("/console/payout-logic/", json={"tax_rate": 5}).status_code == 403


def test_logout(seed, client_for):
    c = client_for("console")
    assert c.get("/logout").status_code == 200
    assert c.get("/").status_code == 401
