# -*- coding: utf-8 -*-
"""Business panel: console profiles, seasons, upsells, users and memberships."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from flask import Blueprint, request, jsonify, abort
from sqlalchemy import text

from .extensions import db
from .security import roles_required
from .models import User, ConsoleProfile, ProfileMember, SeasonConfig, UpsellConfig
from .models.profile import REGIONS, SEASON_TYPES, SERVICE_LINES, service_line_for
from .models.user import ROLES

bp = Blueprint("business", __name__, url_prefix="/business")


# ---------- helpers ----------
def _payload() -> dict:
    return request.get_json(silent=True) or {}

def _ok(**kw):
    return jsonify({"ok": True, **kw})

def _err(msg: str, code: int = 400):
    return jsonify({"ok": False, "error": msg}), code

def _int(v: Any) -> int:
    try:
        return int(v or 0)
    except (TypeError, ValueError):
        return 0

def _pct(v: Any, default: str) -> Decimal | None:
    """0..100, or None when unparseable."""
    if v in (None, ""):
        return Decimal(default)
    try:
        d = Decimal(str(v))
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() and 0 <= d <= 100 else None

def _profile_row(p: ConsoleProfile) -> dict:
    return {"id": p.id, "title": p.title, "region": p.region, "is_active": bool(p.is_active)}

def _season_row(s: SeasonConfig) -> dict:
    return {
        "id": s.id, "profile_id": s.profile_id, "code": s.code, "name": s.name,
        "season_type": s.season_type, "service_line": s.line,
        "enabled": bool(s.enabled), "is_active": bool(s.is_active),
        "customized_payout_logic": bool(s.payout_logic_json),
    }

def _upsell_row(u: UpsellConfig) -> dict:
    return {
        "id": u.id, "season_id": u.season_id, "code": u.code, "name": u.name,
        "eq_percentage": float(u.eq_percentage or 0),
        "commission_percentage": float(u.commission_percentage or 0),
        "is_active": bool(u.is_active),
    }


# ---------- profiles ----------
@bp.route("/profiles", methods=["GET", "POST"])
@roles_required("business")
def profiles():
    if request.method == "POST":
        f = _payload()
        op = f.get("op")
        if op == "create":
            title = (f.get("title") or "").strip()
            region = (f.get("region") or "West").strip()
            if not title:
                return _err("Title is required")
            if region not in REGIONS:
                return _err(f"Unknown region: {region}")
            if ConsoleProfile.query.filter_by(title=title).first():
                return _err("A profile with this title already exists")
            p = ConsoleProfile(title=title, region=region, is_active=f.get("is_active", True) is not False)
            db.session.add(p); db.session.commit()
            return _ok(profile=_profile_row(p))
        if op == "update":
            p = db.session.get(ConsoleProfile, _int(f.get("id")))
            if not p:
                abort(404)
            title = (f.get("title") or "").strip()
            if title and title != p.title:
                if ConsoleProfile.query.filter_by(title=title).first():
                    return _err("A profile with this title already exists")
                p.title = title
            if f.get("region"):
                if f["region"] not in REGIONS:
                    return _err(f"Unknown region: {f['region']}")
                p.region = f["region"]
            if "is_active" in f:
                p.is_active = bool(f["is_active"])
            db.session.commit()
            return _ok(profile=_profile_row(p))
        if op == "delete":
            pid = _int(f.get("id"))
            has_workers = db.session.execute(
                text('SELECT 1 FROM "worker" WHERE profile_id=:p LIMIT 1'), {"p": pid}
            ).first()
            if has_workers:
                return _err("Profile has workers. Deactivate it instead of deleting.")
            p = db.session.get(ConsoleProfile, pid)
            if not p:
                abort(404)
            ProfileMember.query.filter_by(profile_id=pid).delete()
            db.session.delete(p); db.session.commit()
            return _ok()
        return _err(f"Unknown op: {op}")

    rows = ConsoleProfile.query.order_by(ConsoleProfile.title.asc()).all()
    return _ok(profiles=[_profile_row(p) for p in rows])


# ---------- seasons ----------
@bp.route("/seasons", methods=["GET", "POST"])
@roles_required("business")
def seasons():
    if request.method == "POST":
        f = _payload()
        op = f.get("op")
        if op == "create":
            pid = _int(f.get("profile_id"))
            if not db.session.get(ConsoleProfile, pid):
                return _err("Unknown profile")
            code = (f.get("code") or "").strip().lower()
            name = (f.get("name") or code).strip()
            stype = f.get("season_type") or "Individual"
            line = f.get("service_line") or service_line_for(code)
            if not code:
                return _err("Code is required")
            if stype not in SEASON_TYPES:
                return _err(f"Unknown season type: {stype}")
            if line is not None and line not in SERVICE_LINES:
                return _err(f"Unknown service line: {line}")
            if SeasonConfig.query.filter_by(profile_id=pid, code=code).first():
                return _err("Season already configured for this profile")
            s = SeasonConfig(profile_id=pid, code=code, name=name, season_type=stype,
                             service_line=line, enabled=f.get("enabled", True) is not False)
            db.session.add(s); db.session.commit()
            return _ok(season=_season_row(s))
        if op in ("update", "activate"):
            s = db.session.get(SeasonConfig, _int(f.get("id")))
            if not s:
                abort(404)
            if op == "activate":
                if not s.enabled:
                    return _err("Season is disabled")
                # one active season per profile
                SeasonConfig.query.filter(
                    SeasonConfig.profile_id == s.profile_id, SeasonConfig.id != s.id
                ).update({"is_active": False})
                s.is_active = True
            else:
                if f.get("name"):
                    s.name = f["name"].strip()
                if f.get("season_type"):
                    if f["season_type"] not in SEASON_TYPES:
                        return _err(f"Unknown season type: {f['season_type']}")
                    s.season_type = f["season_type"]
                if "enabled" in f:
                    s.enabled = bool(f["enabled"])
                    if not s.enabled:
                        s.is_active = False
                if f.get("reset_payout_logic"):
                    s.payout_logic_json = None
            db.session.commit()
            return _ok(season=_season_row(s))
        if op == "delete":
            s = db.session.get(SeasonConfig, _int(f.get("id")))
            if not s:
                abort(404)
            db.session.delete(s); db.session.commit()
            return _ok()
        return _err(f"Unknown op: {op}")

    q = SeasonConfig.query
    if request.args.get("profile_id"):
        q = q.filter_by(profile_id=_int(request.args.get("profile_id")))
    return _ok(seasons=[_season_row(s) for s in q.order_by(SeasonConfig.profile_id, SeasonConfig.code).all()])


# ---------- upsells ----------
@bp.route("/upsells", methods=["GET", "POST"])
@roles_required("business")
def upsells():
    if request.method == "POST":
        f = _payload()
        op = f.get("op")
        if op in ("create", "update"):
            eq = _pct(f.get("eq_percentage"), "0")
            comm = _pct(f.get("commission_percentage"), "10")
            if eq is None or comm is None:
                return _err("Percentages must be numbers between 0 and 100")
            if op == "create":
                sid = _int(f.get("season_id"))
                code = (f.get("code") or "").strip().lower()
                if not db.session.get(SeasonConfig, sid):
                    return _err("Unknown season")
                if not code:
                    return _err("Code is required")
                if UpsellConfig.query.filter_by(season_id=sid, code=code).first():
                    return _err("Upsell already exists for this season")
                u = UpsellConfig(season_id=sid, code=code, name=(f.get("name") or code).strip())
                db.session.add(u)
            else:
                u = db.session.get(UpsellConfig, _int(f.get("id")))
                if not u:
                    abort(404)
                if f.get("name"):
                    u.name = f["name"].strip()
                if "is_active" in f:
                    u.is_active = bool(f["is_active"])
            if op == "create" or "eq_percentage" in f:
                u.eq_percentage = eq
            if op == "create" or "commission_percentage" in f:
                u.commission_percentage = comm
            db.session.commit()
            return _ok(upsell=_upsell_row(u))
        if op == "delete":
            u = db.session.get(UpsellConfig, _int(f.get("id")))
            if not u:
                abort(404)
            db.session.delete(u); db.session.commit()
            return _ok()
        return _err(f"Unknown op: {op}")

    q = UpsellConfig.query
    if request.args.get("season_id"):
        q = q.filter_by(season_id=_int(request.args.get("season_id")))
    return _ok(upsells=[_upsell_row(u) for u in q.order_by(UpsellConfig.code).all()])


# ---------- users ----------
@bp.route("/users", methods=["GET", "POST"])
@roles_required("business")
def users():
    if request.method == "POST":
        f = _payload()
        op = f.get("op")

        if op == "create":
            username = (f.get("username") or "").strip()
            password = f.get("password") or ""
            role = (f.get("role") or "console").strip()
            if not username or not password:
                return _err("Username and password are required")
            if role not in ROLES:
                return _err(f"Unknown role: {role}")
            if User.query.filter_by(username=username).first():
                return _err("Username is taken")
            u = User(username=username, role=role, full_name=(f.get("full_name") or "").strip())
            u.set_password(password)
            db.session.add(u); db.session.commit()
            pid = _int(f.get("profile_id"))
            if pid and role != "business":
                db.session.add(ProfileMember(user_id=u.id, profile_id=pid, role=role))
                db.session.commit()
            return _ok(user={"id": u.id, "username": u.username, "role": u.role})

        if op == "update_user":
            u = db.session.get(User, _int(f.get("user_id")))
            if not u:
                return _err("User not found", 404)
            username = (f.get("username") or "").strip()
            if username and username != u.username:
                if User.query.filter_by(username=username).first():
                    return _err("Username is taken")
                u.username = username
            if "full_name" in f:
                u.full_name = (f.get("full_name") or "").strip()
            if f.get("new_password"):
                u.set_password(f["new_password"])
            if "is_active" in f:
                u.is_active = bool(f["is_active"])
            db.session.commit()
            return _ok(user={"id": u.id, "username": u.username, "role": u.role})

        if op == "delete_user":
            uid = _int(f.get("user_id"))
            u = db.session.get(User, uid)
            if not u:
                return _err("User not found", 404)
            ProfileMember.query.filter_by(user_id=uid).delete()
            db.session.delete(u); db.session.commit()
            return _ok()

        return _err(f"Unknown op: {op}")

    rows = db.session.execute(text("""
        SELECT u.id, u.username, u.role, COALESCE(u.full_name,'') AS full_name,
               m.profile_id, m.role AS member_role
        FROM "user" u
        LEFT JOIN "profile_member" m ON m.user_id = u.id
        ORDER BY u.id, m.profile_id
    """)).mappings().all()
    per_user: dict[int, dict] = {}
    for r in rows:
        d = per_user.setdefault(r["id"], {
            "id": r["id"], "username": r["username"], "role": r["role"],
            "full_name": r["full_name"], "profiles": [],
        })
        if r["profile_id"] is not None:
            d["profiles"].append({"profile_id": r["profile_id"], "role": r["member_role"]})
    return _ok(users=list(per_user.values()))


# ---------- memberships ----------
@bp.route("/memberships", methods=["POST"])
@roles_required("business")
def memberships():
    f = _payload()
    op = f.get("op")
    if op == "add":
        uid, pid = _int(f.get("user_id")), _int(f.get("profile_id"))
        role = f.get("role") or "console"
        u = db.session.get(User, uid)
        if not u or not db.session.get(ConsoleProfile, pid):
            return _err("Specify an existing user and profile")
        if u.role == "business":
            return _err("Business users are not attached to profiles")
        if role not in ("console", "route_manager"):
            return _err(f"Unknown role: {role}")
        if ProfileMember.query.filter_by(user_id=uid, profile_id=pid).first():
            return _err("User already has access to this profile")
        db.session.add(ProfileMember(user_id=uid, profile_id=pid, role=role))
        db.session.commit()
        return _ok()
    if op == "remove":
        ProfileMember.query.filter_by(user_id=_int(f.get("user_id")), profile_id=_int(f.get("profile_id"))).delete()
        db.session.commit()
        return _ok()
    return _err(f"Unknown op: {op}")
