from __future__ import annotations

import json

from ..extensions import db
from ..payout_logic import PayoutLogicSettings

REGIONS = ("West", "Central", "East")
SEASON_TYPES = ("Individual", "Team", "Service")
SERVICE_LINES = ("aeration", "rejuv", "sealing", "cleaning")


def service_line_for(code: str) -> str | None:
    """'west-aeration' -> 'aeration'; None when the code names no known line."""
    code = (code or "").lower()
    for line in SERVICE_LINES:
        if line in code:
            return line
    return None


class ConsoleProfile(db.Model):
    __tablename__ = "console_profile"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False, unique=True)
    region = db.Column(db.String(16), nullable=False, default="West")  # West|Central|East
    is_active = db.Column(db.Boolean, default=True)

    seasons = db.relationship("SeasonConfig", backref="profile", lazy=True, cascade="all, delete-orphan")


class ProfileMember(db.Model):
    __tablename__ = "profile_member"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("console_profile.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False, default="console")  # console|route_manager
    __table_args__ = (db.UniqueConstraint("user_id", "profile_id", name="uq_profile_member"),)


class SeasonConfig(db.Model):
    __tablename__ = "season_config"

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("console_profile.id"), nullable=False, index=True)
    code = db.Column(db.String(64), nullable=False)  # e.g. west-aeration
    name = db.Column(db.String(120), nullable=False)
    season_type = db.Column(db.String(16), nullable=False, default="Individual")  # Individual|Team|Service
    service_line = db.Column(db.String(16))
    enabled = db.Column(db.Boolean, default=True)
    is_active = db.Column(db.Boolean, default=False)
    payout_logic_json = db.Column(db.Text)

    upsells = db.relationship("UpsellConfig", backref="season", lazy=True, cascade="all, delete-orphan")

    __table_args__ = (db.UniqueConstraint("profile_id", "code", name="uq_season_code"),)

    @property
    def is_team(self) -> bool:
        return self.season_type == "Team"

    @property
    def line(self) -> str | None:
        return self.service_line or service_line_for(self.code)

    @property
    def payout_logic(self) -> PayoutLogicSettings:
        """Season override merged over the defaults."""
        if not self.payout_logic_json:
            return PayoutLogicSettings()
        return PayoutLogicSettings.from_dict(json.loads(self.payout_logic_json))

    @payout_logic.setter
    def payout_logic(self, settings: PayoutLogicSettings) -> None:
        self.payout_logic_json = json.dumps(settings.to_dict())


class UpsellConfig(db.Model):
    __tablename__ = "upsell_config"

    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey("season_config.id"), nullable=False, index=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    eq_percentage = db.Column(db.Numeric(6, 2), default=0)
    commission_percentage = db.Column(db.Numeric(6, 2), default=10)
    is_active = db.Column(db.Boolean, default=True)

    __table_args__ = (db.UniqueConstraint("season_id", "code", name="uq_upsell_code"),)
