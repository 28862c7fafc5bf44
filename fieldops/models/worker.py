from __future__ import annotations

from ..extensions import db


class Worker(db.Model):
    __tablename__ = "worker"

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("console_profile.id"), nullable=False, index=True)
    contractor_id = db.Column(db.String(32), nullable=False, unique=True, index=True)
    first_name = db.Column(db.String(64), default="")
    last_name = db.Column(db.String(64), default="")
    status = db.Column(db.String(16), default="Rookie")  # Rookie|Alumni

    # tenure
    days_worked = db.Column(db.Integer, default=0)
    days_worked_previous_years = db.Column(db.Integer, default=0)
    aeration_silvers = db.Column(db.Integer, default=0)
    rejuv_silvers = db.Column(db.Integer, default=0)
    sealing_silvers = db.Column(db.Integer, default=0)
    cleaning_silvers = db.Column(db.Integer, default=0)

    # attendance
    showed = db.Column(db.Boolean, default=False)
    showed_date = db.Column(db.Date, index=True)
    cart_id = db.Column(db.Integer, nullable=True)

    # today's payout snapshot
    payout_completed = db.Column(db.Boolean, default=False)
    commission = db.Column(db.Numeric(12, 2), default=0)
    gross_sales = db.Column(db.Numeric(12, 2), default=0)
    equivalent = db.Column(db.Numeric(12, 2), default=0)

    payout_history = db.relationship(
        "PayoutRecord",
        backref="worker",
        lazy=True,
        order_by="PayoutRecord.payout_date.desc()",
        cascade="all, delete-orphan",
    )

    @property
    def name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or self.contractor_id

    @property
    def lifetime_days(self) -> int:
        return int(self.days_worked_previous_years or 0) + int(self.days_worked or 0)

    def silvers_for(self, service_line: str | None) -> int:
        if not service_line:
            return 0
        return int(getattr(self, f"{service_line}_silvers", 0) or 0)
