# -*- coding: utf-8 -*-
"""
Loading payout inputs from the database and committing finalized payouts.

The arithmetic lives in ``payroll``; this module only turns rows into engine
inputs and the resulting breakdown back into ``PayoutRecord`` rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import Booking, PayoutAdjustment, PayoutRecord, SeasonConfig, Worker
from .payout_logic import PayoutLogicSettings, parse_flag
from .payroll import (
    Adjustment,
    CashCount,
    Payee,
    PayoutBreakdown,
    PayoutConstants,
    PayoutValidationError,
    Sale,
    UpsellRule,
    compute_payouts,
    equivalent_units,
    money,
    net_sales,
    upsell_totals,
    validate_splits,
)

logger = logging.getLogger(__name__)


# ------------ helpers ---------------------------------------------------------
def parse_day(value: Any) -> date:
    if value in (None, ""):
        return date.today()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise PayoutValidationError(f"Bad date: {value!r}")


def _amount(value: Any, name: str) -> Decimal:
    if value in (None, ""):
        return Decimal("0")
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise PayoutValidationError(f"{name}: not a number")
    if not d.is_finite():
        raise PayoutValidationError(f"{name}: not a number")
    return d


def _flag(value: Any, name: str) -> bool:
    try:
        return parse_flag(value, name)
    except ValueError as e:
        raise PayoutValidationError(str(e))


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


# ------------ loading ---------------------------------------------------------
def active_season(profile_id: int) -> SeasonConfig:
    season = SeasonConfig.query.filter_by(profile_id=profile_id, is_active=True, enabled=True).first()
    if not season:
        raise PayoutValidationError("No active/enabled season found for profile")
    return season


def load_team(profile_id: int, day: date, contractor_id: str | None = None, cart_id: int | None = None) -> list[Worker]:
    """Workers that showed on ``day``: one contractor, or everyone on a cart."""
    q = Worker.query.filter(
        Worker.profile_id == profile_id,
        Worker.showed.is_(True),
        Worker.showed_date == day,
    )
    if cart_id is not None:
        q = q.filter(Worker.cart_id == int(cart_id))
    elif contractor_id:
        q = q.filter(Worker.contractor_id == str(contractor_id))
    else:
        raise PayoutValidationError("No contractor or cart ID provided.")
    team = q.order_by(Worker.contractor_id.asc()).all()
    if not team:
        raise PayoutValidationError("No workers found for this payout.")
    return team


def completed_bookings(workers: list[Worker], day: date) -> list[Booking]:
    ids = [w.contractor_id for w in workers]
    if not ids:
        return []
    start, end = _day_bounds(day)
    return (
        Booking.query.filter(
            Booking.contractor_number.in_(ids),
            Booking.completed.is_(True),
            Booking.date_completed >= start,
            Booking.date_completed < end,
        )
        .order_by(Booking.date_completed.asc(), Booking.id.asc())
        .all()
    )


def to_sale(b: Booking) -> Sale:
    return Sale(
        price=b.price,
        payment_method=b.payment_method or "",
        prepaid=bool(b.prepaid),
        is_contract=bool(b.is_contract),
        is_prebooked=bool(b.is_prebooked),
        upsell_code=b.upsell_code,
    )


def upsell_rules(season: SeasonConfig) -> dict[str, UpsellRule]:
    return {
        u.code: UpsellRule(u.eq_percentage or 0, u.commission_percentage if u.commission_percentage is not None else 10)
        for u in season.upsells
        if u.is_active
    }


@dataclass
class PayoutContext:
    profile_id: int
    day: date
    season: SeasonConfig
    settings: PayoutLogicSettings
    team: list[Worker]
    bookings: list[Booking]

    @property
    def sales(self) -> list[Sale]:
        return [to_sale(b) for b in self.bookings]


def load_context(profile_id: int, day: date, contractor_id: str | None = None, cart_id: int | None = None) -> PayoutContext:
    season = active_season(profile_id)
    team = load_team(profile_id, day, contractor_id, cart_id)
    return PayoutContext(
        profile_id=profile_id,
        day=day,
        season=season,
        settings=season.payout_logic,
        team=team,
        bookings=completed_bookings(team, day),
    )


# ------------ request payload -> engine inputs --------------------------------
def cash_count(payload: Mapping) -> CashCount:
    return CashCount(
        cash=_amount(payload.get("verified_cash"), "verified_cash"),
        cheque=_amount(payload.get("verified_cheque"), "verified_cheque"),
        change=_amount(payload.get("change_returned"), "change_returned"),
    )


def _adjustments(rows: Any, name: str) -> list[Adjustment]:
    out: list[Adjustment] = []
    for r in rows or []:
        if not isinstance(r, Mapping):
            raise PayoutValidationError(f"{name}: each entry needs a label and an amount, got {r!r}")
        label = str(r.get("label") or r.get("name") or r.get("type") or "").strip()
        out.append(Adjustment(label, _amount(r.get("amount"), name)))
    return out


def build_payees(ctx: PayoutContext, payload: Mapping) -> list[Payee]:
    """
    payload:
      splits:         {contractor_id: {"equiv": %, "upsell": %}}
      bonuses:        {contractor_id: [{"label": str, "amount": n}, ...]}
      deductions:     {contractor_id: [...]}
      machine_rental: {contractor_id: bool}   (default True)
    """
    splits = payload.get("splits") or {}
    bonuses = payload.get("bonuses") or {}
    deductions = payload.get("deductions") or {}
    rental = payload.get("machine_rental") or {}
    line = ctx.season.line

    payees: list[Payee] = []
    for w in ctx.team:
        cid = w.contractor_id
        sp = splits.get(cid) or {}
        eq = sp.get("equiv")
        up = sp.get("upsell")
        payees.append(
            Payee(
                contractor_id=cid,
                silvers=w.silvers_for(line),
                lifetime_days=w.lifetime_days,
                equiv_split=None if eq in (None, "") else _amount(eq, f"{cid}.equiv"),
                upsell_split=None if up in (None, "") else _amount(up, f"{cid}.upsell"),
                bonuses=_adjustments(bonuses.get(cid), f"{cid}.bonus"),
                deductions=_adjustments(deductions.get(cid), f"{cid}.deduction"),
                machine_rental=_flag(rental.get(cid, True), f"{cid}.machine_rental"),
            )
        )
    return payees


def calculate(ctx: PayoutContext, payload: Mapping, constants: PayoutConstants) -> tuple[PayoutBreakdown, list[Payee]]:
    payees = build_payees(ctx, payload)
    breakdown = compute_payouts(
        ctx.sales,
        payees,
        ctx.settings,
        ctx.season.season_type,
        upsell_rules(ctx.season),
        cash_count(payload),
        constants,
    )
    return breakdown, payees


# ------------ finalize --------------------------------------------------------
def finalize_payout(
    ctx: PayoutContext,
    breakdown: PayoutBreakdown,
    payees: list[Payee],
    constants: PayoutConstants,
) -> list[PayoutRecord]:
    """Write one record per worker for ``ctx.day``, replacing any existing one. All or nothing."""
    validate_splits(payees, constants.split_tolerance)
    by_id = {p.contractor_id: p for p in payees}

    records: list[PayoutRecord] = []
    try:
        for w in ctx.team:
            wp = breakdown.workers[w.contractor_id]
            p = by_id[w.contractor_id]
            rec = PayoutRecord.query.filter_by(worker_id=w.id, payout_date=ctx.day).first()
            if rec is None:
                rec = PayoutRecord(worker_id=w.id, payout_date=ctx.day)
                db.session.add(rec)
            rec.gross_sales = money(wp.gross_sales)
            rec.equivalent = money(wp.equivalent)
            rec.commission = money(wp.final_payout)
            rec.adjustments = [
                PayoutAdjustment(kind="bonus", label=b.label, amount=money(b.amount)) for b in p.bonuses
            ] + [
                PayoutAdjustment(kind="deduction", label=d.label, amount=money(d.amount)) for d in p.deductions
            ]

            w.payout_completed = True
            w.commission = rec.commission
            w.gross_sales = rec.gross_sales
            w.equivalent = rec.equivalent
            records.append(rec)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("payout finalization failed for profile %s on %s", ctx.profile_id, ctx.day)
        raise

    logger.info(
        "payout finalized: profile=%s day=%s workers=%s",
        ctx.profile_id, ctx.day.isoformat(), ",".join(w.contractor_id for w in ctx.team),
    )
    return records


# ------------ day board -------------------------------------------------------
def day_board(profile_id: int, day: date, constants: PayoutConstants) -> dict:
    """Everyone who showed on ``day`` with team totals (gross, EQ, average EQ)."""
    season = active_season(profile_id)
    settings = season.payout_logic
    workers = (
        Worker.query.filter(
            Worker.profile_id == profile_id,
            Worker.showed.is_(True),
            Worker.showed_date == day,
        )
        .order_by(Worker.cart_id.asc(), Worker.contractor_id.asc())
        .all()
    )
    sales = [to_sale(b) for b in completed_bookings(workers, day)]

    gross = sum((s.price for s in sales), Decimal("0"))
    ups = upsell_totals(sales, upsell_rules(season), settings.tax_rate)
    net = net_sales(sales, settings, ups.eq_contribution, season.is_team)
    total_eq = equivalent_units(net, constants.eq_divisor)
    avg_eq = total_eq / len(workers) if workers else Decimal("0")

    # the worker flag is "completed for today"; the record decides for other days
    done = {
        r.worker_id: r
        for r in PayoutRecord.query.filter(
            PayoutRecord.payout_date == day,
            PayoutRecord.worker_id.in_([w.id for w in workers] or [0]),
        ).all()
    }

    return {
        "date": day.isoformat(),
        "season": {"code": season.code, "name": season.name, "type": season.season_type},
        "total_gross_sales": float(money(gross)),
        "total_equivalent": float(money(total_eq)),
        "average_equivalent": float(money(avg_eq)),
        "workers": [
            {
                "contractor_id": w.contractor_id,
                "name": w.name,
                "cart_id": w.cart_id,
                "payout_completed": w.id in done,
                "commission": float(money(done[w.id].commission)) if w.id in done else None,
            }
            for w in workers
        ],
    }
