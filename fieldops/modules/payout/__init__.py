# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request, jsonify, abort, current_app
from flask_login import login_required, current_user

from ...acl import get_active_profile_id, can_manage_payouts
from ...models import Worker, PayoutRecord
from ...payroll import PayoutConstants, PayoutValidationError, achievement_for, money
from ...settlement import (
    parse_day,
    day_board,
    load_context,
    calculate,
    finalize_payout,
)

bp = Blueprint("payout", __name__, url_prefix="/console/payout")


# ------------ helpers ---------------------------------------------------------
def _constants() -> PayoutConstants:
    return PayoutConstants.from_config(current_app.config)


def _active_profile() -> int:
    pid = get_active_profile_id(current_user)
    if not pid:
        abort(403)
    return pid


def _bad(e: Exception):
    return jsonify({"ok": False, "error": str(e)}), 400


def _context(pid: int, payload: dict):
    day = parse_day(payload.get("date"))
    cart = payload.get("cart_id")
    if cart not in (None, ""):
        try:
            cart = int(cart)
        except (TypeError, ValueError):
            raise PayoutValidationError("cart_id: not a number")
    else:
        cart = None
    return load_context(pid, day, payload.get("contractor_id"), cart)


def _worker_or_404(pid: int, contractor_id: str) -> Worker:
    w = Worker.query.filter_by(contractor_id=contractor_id, profile_id=pid).first()
    if not w:
        abort(404)
    return w


# ------------ day board -------------------------------------------------------
@bp.get("/today")
@login_required
def today():
    pid = _active_profile()
    try:
        board = day_board(pid, parse_day(request.args.get("date")), _constants())
    except PayoutValidationError as e:
        return _bad(e)
    return jsonify({"ok": True, **board})


# ------------ preview (recomputed on every edit) ------------------------------
@bp.post("/preview")
@login_required
def preview():
    pid = _active_profile()
    payload = request.get_json(silent=True) or {}
    try:
        ctx = _context(pid, payload)
        breakdown, _ = calculate(ctx, payload, _constants())
    except PayoutValidationError as e:
        return _bad(e)

    return jsonify({
        "ok": True,
        "date": ctx.day.isoformat(),
        "season": {"code": ctx.season.code, "name": ctx.season.name, "type": ctx.season.season_type},
        "team": [{"contractor_id": w.contractor_id, "name": w.name} for w in ctx.team],
        "bookings": [
            {
                "booking_id": b.booking_id,
                "address": b.full_address,
                "price": float(money(b.price)),
                "payment_method": b.payment_method,
                "prepaid": bool(b.prepaid),
                "is_contract": bool(b.is_contract),
                "is_prebooked": bool(b.is_prebooked),
            }
            for b in ctx.bookings
        ],
        **breakdown.as_dict(),
    })


# ------------ finalize --------------------------------------------------------
@bp.post("/finalize")
@login_required
def finalize():
    pid = _active_profile()
    if not can_manage_payouts(current_user, pid):
        abort(403)
    payload = request.get_json(silent=True) or {}
    constants = _constants()
    try:
        ctx = _context(pid, payload)
        breakdown, payees = calculate(ctx, payload, constants)
        records = finalize_payout(ctx, breakdown, payees, constants)
    except PayoutValidationError as e:
        return _bad(e)

    return jsonify({
        "ok": True,
        "date": ctx.day.isoformat(),
        "records": {w.contractor_id: r.as_dict() for w, r in zip(ctx.team, records)},
    })


# ------------ history ---------------------------------------------------------
@bp.get("/history/<contractor_id>")
@login_required
def history(contractor_id: str):
    w = _worker_or_404(_active_profile(), contractor_id)
    return jsonify({
        "ok": True,
        "contractor_id": w.contractor_id,
        "name": w.name,
        "history": [r.as_dict() for r in w.payout_history],
    })


@bp.get("/summary/<contractor_id>")
@login_required
def summary(contractor_id: str):
    w = _worker_or_404(_active_profile(), contractor_id)
    try:
        day = parse_day(request.args.get("date"))
    except PayoutValidationError as e:
        return _bad(e)
    rec = PayoutRecord.query.filter_by(worker_id=w.id, payout_date=day).first()
    if not rec:
        abort(404)
    return jsonify({
        "ok": True,
        "contractor_id": w.contractor_id,
        "name": w.name,
        **rec.as_dict(),
        "total_bonuses": float(money(rec.total_bonuses)),
        "total_deductions": float(money(rec.total_deductions)),
        "achievement": achievement_for(rec.equivalent),
    })
