from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
login_manager.login_view = "auth.login"


@login_manager.unauthorized_handler
def _unauthorized():
    # API-only app: no login page to redirect to
    return jsonify({"ok": False, "error": "login_required"}), 401
