# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, abort
from flask_login import login_required, current_user

from ...extensions import db
from ...acl import get_active_profile_id, can_manage_payouts
from ...payout_logic import PayoutLogicSettings
from ...payroll import PayoutValidationError
from ...settlement import active_season

logger = logging.getLogger(__name__)

bp = Blueprint("payout_logic", __name__, url_prefix="/console/payout-logic")


@bp.get("/")
@login_required
def index():
    pid = get_active_profile_id(current_user)
    if not pid:
        abort(403)
    try:
        season = active_season(pid)
    except PayoutValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    return jsonify({
        "ok": True,
        "season": season.code,
        "settings": season.payout_logic.to_dict(),
        "customized": bool(season.payout_logic_json),
    })


@bp.post("/")
@login_required
def save():
    pid = get_active_profile_id(current_user)
    if not pid or not can_manage_payouts(current_user, pid):
        abort(403)
    try:
        season = active_season(pid)
    except PayoutValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    payload = request.get_json(silent=True) or {}
    # partial updates land on top of what the season already has
    merged = {**season.payout_logic.to_dict(), **payload}
    if isinstance(payload.get("payment_method_percentages"), dict):
        merged["payment_method_percentages"] = {
            **season.payout_logic.to_dict()["payment_method_percentages"],
            **payload["payment_method_percentages"],
        }
    try:
        settings = PayoutLogicSettings.from_dict(merged)
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    season.payout_logic = settings
    db.session.commit()
    logger.info("payout logic saved for season %s (profile %s)", season.code, pid)
    return jsonify({"ok": True, "settings": settings.to_dict()})
