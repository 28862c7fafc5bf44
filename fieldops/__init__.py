# -*- coding: utf-8 -*-
import logging
from flask import Flask, request, jsonify
from flask_login import login_required, current_user
from werkzeug.exceptions import HTTPException

from .config import Config, ensure_instance
from .extensions import db, migrate, login_manager

# blueprints
from .auth import auth_bp
from .modules.payout import bp as payout_bp
from .modules.payout_logic import bp as payout_logic_bp
from .business_panel import bp as business_bp

# ACL
from .acl import profiles_for_toolbar, get_active_profile_id, set_active_profile_id


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("fieldops").setLevel(level)


def create_app(config=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config or Config)
    ensure_instance(app)
    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # --- JSON errors for abort() ---
    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({"ok": False, "error": e.name}), e.code

    # --- active profile selection ---
    @app.post("/set-profile")
    @login_required
    def set_profile():
        data = request.get_json(silent=True) or request.form
        try:
            pid = int(data.get("profile_id", 0))
        except (TypeError, ValueError):
            pid = 0
        if not set_active_profile_id(current_user, pid):
            return jsonify({"ok": False, "error": "Profile not available"}), 403
        return jsonify({"ok": True, "profile_id": pid})

    # --- blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(payout_bp)
    app.register_blueprint(payout_logic_bp)
    app.register_blueprint(business_bp)

    # --- home ---
    @app.route("/")
    @login_required
    def home():
        return jsonify({
            "ok": True,
            "user": {"id": current_user.id, "username": current_user.username, "role": current_user.role},
            "profiles": profiles_for_toolbar(current_user),
            "active_profile_id": get_active_profile_id(current_user),
        })

    return app
