# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import List, Dict, Any, Set
from flask import session
from sqlalchemy import text
from .extensions import db

# — profile lookups —
def _all_active_profiles() -> List[Dict[str, Any]]:
    sql = 'SELECT id, title, region FROM "console_profile" WHERE is_active ORDER BY title'
    return [dict(r) for r in db.session.execute(text(sql)).mappings().all()]

def _user_memberships(user_id: int) -> List[Dict[str, Any]]:
    sql = """
      SELECT p.id AS id, p.title AS title, p.region AS region, m.role AS role
      FROM "profile_member" m
      JOIN "console_profile" p ON p.id = m.profile_id
      WHERE m.user_id = :uid AND p.is_active
      ORDER BY p.title
    """
    return [dict(r) for r in db.session.execute(text(sql), {"uid": user_id}).mappings().all()]

def is_business(user) -> bool:
    return getattr(user, "role", "") == "business"

def profiles_for_toolbar(user) -> List[Dict[str, Any]]:
    if is_business(user):
        return _all_active_profiles()
    return _user_memberships(getattr(user, "id", 0))

def allowed_profile_ids(user) -> Set[int]:
    return {row["id"] for row in profiles_for_toolbar(user)}

def membership_role(user, profile_id: int) -> str | None:
    row = db.session.execute(
        text('SELECT role FROM "profile_member" WHERE user_id=:u AND profile_id=:p'),
        {"u": getattr(user, "id", 0), "p": profile_id},
    ).first()
    return row[0] if row else None

# — active profile in the session —
_SESSION_KEY = "profile_id"

def get_active_profile_id(user) -> int | None:
    ids = list(allowed_profile_ids(user))
    if not ids:
        return None
    try:
        cur = int(session.get(_SESSION_KEY) or 0)
    except (TypeError, ValueError):
        cur = 0
    if cur in ids:
        return cur
    cur = sorted(ids)[0]
    session[_SESSION_KEY] = cur
    return cur

def set_active_profile_id(user, profile_id: int) -> bool:
    if profile_id in allowed_profile_ids(user):
        session[_SESSION_KEY] = int(profile_id)
        return True
    return False

# — write rights: finalizing payouts, editing payout logic —
def can_manage_payouts(user, profile_id: int) -> bool:
    if is_business(user):
        return True
    if profile_id not in allowed_profile_ids(user):
        return False
    return membership_role(user, profile_id) == "console"
