# -*- coding: utf-8 -*-
from __future__ import annotations

from decimal import Decimal
from sqlalchemy import func

from ..extensions import db


D = lambda v: Decimal(str(v)) if v is not None else Decimal("0")


class PayoutRecord(db.Model):
    __tablename__ = "payout_record"

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("worker.id"), nullable=False, index=True)
    payout_date = db.Column(db.Date, nullable=False, index=True)

    gross_sales = db.Column(db.Numeric(12, 2), default=0)
    equivalent = db.Column(db.Numeric(12, 2), default=0)
    commission = db.Column(db.Numeric(12, 2), default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now())

    adjustments = db.relationship(
        "PayoutAdjustment", backref="record", lazy="joined", cascade="all, delete-orphan"
    )

    __table_args__ = (db.UniqueConstraint("worker_id", "payout_date", name="uq_payout_day"),)

    @property
    def bonuses(self) -> list["PayoutAdjustment"]:
        return [a for a in self.adjustments if a.kind == "bonus"]

    @property
    def deductions(self) -> list["PayoutAdjustment"]:
        return [a for a in self.adjustments if a.kind == "deduction"]

    @property
    def total_bonuses(self) -> Decimal:
        return sum((D(a.amount) for a in self.bonuses), Decimal("0"))

    @property
    def total_deductions(self) -> Decimal:
        return sum((D(a.amount) for a in self.deductions), Decimal("0"))

    def as_dict(self) -> dict:
        return {
            "date": self.payout_date.isoformat(),
            "gross_sales": float(D(self.gross_sales)),
            "equivalent": float(D(self.equivalent)),
            "commission": float(D(self.commission)),
            "bonuses": [{"label": a.label, "amount": float(D(a.amount))} for a in self.bonuses],
            "deductions": [{"label": a.label, "amount": float(D(a.amount))} for a in self.deductions],
        }


class PayoutAdjustment(db.Model):
    __tablename__ = "payout_adjustment"

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey("payout_record.id"), nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False)  # bonus|deduction
    label = db.Column(db.String(120), default="")
    amount = db.Column(db.Numeric(12, 2), default=0)
