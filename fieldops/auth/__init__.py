# -*- coding: utf-8 -*-

from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required
from ..models.user import User

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    username = (data.get("username") or "").strip()
    password = (data.get("password") or "").strip()
    u = User.query.filter_by(username=username).first()
    if not u or not u.is_active or not u.check_password(password):
        return jsonify({"ok": False, "error": "Invalid username or password"}), 401
    login_user(u, remember=True)
    return jsonify({"ok": True, "user": {"id": u.id, "username": u.username, "role": u.role}})

@auth_bp.route("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})
