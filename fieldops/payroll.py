# -*- coding: utf-8 -*-
"""
Payout engine.

Pure arithmetic over records already loaded into memory:

    (team, completed sales, settings) -> PayoutBreakdown

Nothing here touches the database; ``settlement`` loads the inputs and
persists the result. Money is kept as ``Decimal`` at full precision and only
rounded to cents on output.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Sequence

from .payout_logic import PayoutLogicSettings, method_key

logger = logging.getLogger(__name__)


D = lambda v: Decimal(str(v)) if v not in (None, "") else Decimal("0")

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# cash and cheques are counted by hand, IOS is never collected on site
UNCOLLECTED_METHODS = ("cash", "cheque", "ios")

# (min silvers, share of the full silver bonus)
SILVER_STEPS = (
    (8, Decimal("1")),
    (6, Decimal("0.75")),
    (4, Decimal("0.5")),
    (2, Decimal("0.25")),
)
# (min lifetime days, raise per EQ)
ALUMNI_STEPS = (
    (200, Decimal("0.50")),
    (50, Decimal("0.25")),
)
# (name, min EQ) checked top-down
ACHIEVEMENTS = (
    ("silver_hat", Decimal("50")),
    ("gold_jersey", Decimal("40")),
    ("green_jacket", Decimal("30")),
)


def money(v) -> Decimal:
    return D(v).quantize(CENT, rounding=ROUND_HALF_UP)


def _out(v) -> float:
    return float(money(v))


class PayoutValidationError(ValueError):
    """User-correctable problem with a payout (bad splits, no team, ...)."""


# ------------ inputs ----------------------------------------------------------
@dataclass(frozen=True)
class PayoutConstants:
    eq_divisor: Decimal = Decimal("25")
    machine_rental_fee: Decimal = Decimal("10")
    split_tolerance: Decimal = Decimal("0.1")
    silver_full_bonus: Decimal = Decimal("1.00")

    @classmethod
    def from_config(cls, config: Mapping) -> "PayoutConstants":
        c = cls(
            eq_divisor=D(config.get("PAYOUT_EQ_DIVISOR", cls.eq_divisor)),
            machine_rental_fee=D(config.get("PAYOUT_MACHINE_RENTAL_FEE", cls.machine_rental_fee)),
            split_tolerance=D(config.get("PAYOUT_SPLIT_TOLERANCE", cls.split_tolerance)),
            silver_full_bonus=D(config.get("PAYOUT_SILVER_FULL_BONUS", cls.silver_full_bonus)),
        )
        if c.eq_divisor <= 0:
            raise ValueError("PAYOUT_EQ_DIVISOR must be positive")
        return c


@dataclass
class Sale:
    price: Decimal
    payment_method: str = ""
    prepaid: bool = False
    is_contract: bool = False
    is_prebooked: bool = False
    upsell_code: str | None = None

    def __post_init__(self):
        self.price = D(self.price)

    @property
    def method(self) -> str:
        return (self.payment_method or "").lower()


@dataclass
class UpsellRule:
    eq_percentage: Decimal = ZERO
    commission_percentage: Decimal = Decimal("10")

    def __post_init__(self):
        self.eq_percentage = D(self.eq_percentage)
        self.commission_percentage = D(self.commission_percentage)


@dataclass
class CashCount:
    """What the office actually counted from the worker."""
    cash: Decimal = ZERO
    cheque: Decimal = ZERO
    change: Decimal = ZERO

    def __post_init__(self):
        self.cash, self.cheque, self.change = D(self.cash), D(self.cheque), D(self.change)


@dataclass
class Adjustment:
    label: str
    amount: Decimal

    def __post_init__(self):
        self.amount = D(self.amount)


@dataclass
class Payee:
    contractor_id: str
    silvers: int = 0  # silvers for the active season's service line
    lifetime_days: int = 0
    equiv_split: Decimal | None = None  # % of team EQ; None -> even share
    upsell_split: Decimal | None = None  # % of team upsell commission; None -> even share
    bonuses: list[Adjustment] = field(default_factory=list)
    deductions: list[Adjustment] = field(default_factory=list)
    machine_rental: bool = True


# ------------ gross sales & reconciliation -----------------------------------
def actual_gross_sales(sales: Iterable[Sale], count: CashCount) -> Decimal:
    """Verified cash + change + verified cheques + everything not paid cash/cheque/IOS."""
    other = sum((s.price for s in sales if s.method not in UNCOLLECTED_METHODS), ZERO)
    return count.cash + count.change + count.cheque + other


@dataclass
class Reconciliation:
    expected_cash: Decimal
    expected_cheque: Decimal
    cash_discrepancy: Decimal
    cheque_discrepancy: Decimal

    @property
    def balanced(self) -> bool:
        return abs(self.cash_discrepancy) < CENT and abs(self.cheque_discrepancy) < CENT

    def as_dict(self) -> dict:
        return {
            "expected_cash": _out(self.expected_cash),
            "expected_cheque": _out(self.expected_cheque),
            "cash_discrepancy": _out(self.cash_discrepancy),
            "cheque_discrepancy": _out(self.cheque_discrepancy),
            "balanced": self.balanced,
        }


def reconcile(sales: Iterable[Sale], count: CashCount) -> Reconciliation:
    """Δ cash = counted cash + change − expected; Δ cheque = counted − expected. Never blocks."""
    sales = list(sales)
    exp_cash = sum((s.price for s in sales if s.method == "cash"), ZERO)
    exp_cheque = sum((s.price for s in sales if s.method == "cheque"), ZERO)
    return Reconciliation(
        expected_cash=exp_cash,
        expected_cheque=exp_cheque,
        cash_discrepancy=count.cash + count.change - exp_cash,
        cheque_discrepancy=count.cheque - exp_cheque,
    )


# ------------ net sales & EQ --------------------------------------------------
def _less_tax(value: Decimal, tax_rate: Decimal) -> Decimal:
    return value / (1 + tax_rate / HUNDRED)


@dataclass
class UpsellTotals:
    commission: Decimal = ZERO
    eq_contribution: Decimal = ZERO
    skipped: list[str] = field(default_factory=list)


def upsell_totals(sales: Iterable[Sale], rules: Mapping[str, UpsellRule], tax_rate) -> UpsellTotals:
    """Split contract sales into equipment contribution (counts toward EQ) and upsell commission."""
    tax_rate = D(tax_rate)
    out = UpsellTotals()
    for s in sales:
        if not s.is_contract:
            continue
        rule = rules.get(s.upsell_code or "")
        if rule is None:
            logger.warning("no upsell configuration for %r, contract skipped", s.upsell_code)
            out.skipped.append(s.upsell_code or "")
            continue
        net = _less_tax(s.price, tax_rate)
        if rule.eq_percentage > 0:
            eq_part = net * rule.eq_percentage / HUNDRED
            out.eq_contribution += eq_part
            out.commission += (net - eq_part) * rule.commission_percentage / HUNDRED
        else:
            out.commission += net * rule.commission_percentage / HUNDRED
    return out


def weighted_net(sale: Sale, settings: PayoutLogicSettings, warnings: list[str] | None = None) -> Decimal:
    key = method_key(sale.payment_method, sale.prepaid)
    mw = settings.method(key)
    if mw is None:
        # unknown method: count all of it, tax removed
        logger.warning("payout settings not found for method %s, using 100%% taxable", key)
        if warnings is not None and f"method:{key}" not in warnings:
            warnings.append(f"method:{key}")
        return _less_tax(sale.price, settings.tax_rate)
    value = sale.price * mw.percentage / HUNDRED
    if mw.apply_taxes:
        value = _less_tax(value, settings.tax_rate)
    return value


def net_sales(
    sales: Iterable[Sale],
    settings: PayoutLogicSettings,
    eq_contribution=ZERO,
    is_team: bool = False,
    warnings: list[str] | None = None,
) -> Decimal:
    net = D(eq_contribution)
    for s in sales:
        if not s.is_contract:
            net += weighted_net(s, settings, warnings)
    if is_team:
        net *= 1 - settings.product_cost / HUNDRED
    return net


def equivalent_units(net, divisor=Decimal("25")) -> Decimal:
    net, divisor = D(net), D(divisor)
    if divisor <= 0:
        raise ValueError("EQ divisor must be positive")
    return net / divisor if net > 0 else ZERO


# ------------ rates -----------------------------------------------------------
def silver_raise(silvers: int, full_bonus=Decimal("1.00")) -> Decimal:
    for threshold, share in SILVER_STEPS:
        if int(silvers or 0) >= threshold:
            return D(full_bonus) * share
    return ZERO


def alumni_raise(lifetime_days: int) -> Decimal:
    for threshold, bonus in ALUMNI_STEPS:
        if int(lifetime_days or 0) >= threshold:
            return bonus
    return ZERO


@dataclass
class Rate:
    base: Decimal
    silver: Decimal = ZERO
    alumni: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.base + self.silver + self.alumni


def commission_rate(
    settings: PayoutLogicSettings,
    season_type: str,
    team_size: int,
    silvers: int = 0,
    lifetime_days: int = 0,
    silver_full_bonus=Decimal("1.00"),
) -> Rate:
    return Rate(
        base=settings.base_rate(season_type, team_size),
        silver=silver_raise(silvers, silver_full_bonus) if settings.apply_silver_raises else ZERO,
        alumni=alumni_raise(lifetime_days) if settings.apply_alumni_raises else ZERO,
    )


# ------------ splits ----------------------------------------------------------
def even_split(team_size: int) -> Decimal:
    if team_size <= 0:
        raise PayoutValidationError("No workers found for this payout.")
    return HUNDRED / team_size


def resolved_splits(payees: Sequence[Payee]) -> dict[str, tuple[Decimal, Decimal]]:
    """contractor_id -> (equiv %, upsell %), missing values filled with an even share."""
    share = even_split(len(payees))
    return {
        p.contractor_id: (
            share if p.equiv_split is None else D(p.equiv_split),
            share if p.upsell_split is None else D(p.upsell_split),
        )
        for p in payees
    }


def split_totals(payees: Sequence[Payee]) -> tuple[Decimal, Decimal]:
    splits = resolved_splits(payees).values()
    return sum((e for e, _ in splits), ZERO), sum((u for _, u in splits), ZERO)


def validate_splits(payees: Sequence[Payee], tolerance=Decimal("0.1")) -> None:
    for cid, (eq, up) in resolved_splits(payees).items():
        if not (ZERO <= eq <= HUNDRED and ZERO <= up <= HUNDRED):
            raise PayoutValidationError(f"{cid}: splits must be between 0% and 100%.")
    eq_total, up_total = split_totals(payees)
    tolerance = D(tolerance)
    if abs(eq_total - HUNDRED) > tolerance or abs(up_total - HUNDRED) > tolerance:
        raise PayoutValidationError("EQ splits and upsell splits must each total 100%.")


# ------------ stats -----------------------------------------------------------
@dataclass
class JobStats:
    steps: int = 0
    prebooked: int = 0
    new_sales: int = 0

    @property
    def ratio(self) -> Decimal:
        """prebooked : new sales; 0 when nothing was done."""
        if not self.steps:
            return ZERO
        return Decimal(self.prebooked) / Decimal(self.new_sales or 1)


def job_stats(sales: Iterable[Sale]) -> JobStats:
    st = JobStats()
    for s in sales:
        st.steps += 1
        if s.is_prebooked:
            st.prebooked += 1
        else:
            st.new_sales += 1
    return st


def achievement_for(equivalent) -> str | None:
    eq = D(equivalent)
    for name, threshold in ACHIEVEMENTS:
        if eq >= threshold:
            return name
    return None


# ------------ result ----------------------------------------------------------
@dataclass
class WorkerPayout:
    contractor_id: str
    rate: Rate
    equiv_split: Decimal
    upsell_split: Decimal
    equivalent: Decimal
    base_commission: Decimal
    upsell_commission: Decimal
    total_bonuses: Decimal
    total_deductions: Decimal
    machine_rental_fee: Decimal
    gross_sales: Decimal

    @property
    def final_payout(self) -> Decimal:
        return (
            self.base_commission
            + self.upsell_commission
            + self.total_bonuses
            - self.total_deductions
            - self.machine_rental_fee
        )

    def as_dict(self) -> dict:
        return {
            "contractor_id": self.contractor_id,
            "commission_rate": _out(self.rate.total),
            "base_rate": _out(self.rate.base),
            "silver_raise": _out(self.rate.silver),
            "alumni_raise": _out(self.rate.alumni),
            "equiv_split": float(self.equiv_split),
            "upsell_split": float(self.upsell_split),
            "equivalent": _out(self.equivalent),
            "base_commission": _out(self.base_commission),
            "upsell_commission": _out(self.upsell_commission),
            "total_bonuses": _out(self.total_bonuses),
            "total_deductions": _out(self.total_deductions),
            "machine_rental_fee": _out(self.machine_rental_fee),
            "gross_sales": _out(self.gross_sales),
            "final_payout": _out(self.final_payout),
            "achievement": achievement_for(self.equivalent),
        }


@dataclass
class PayoutBreakdown:
    gross_sales: Decimal
    upsell_commission: Decimal
    eq_contribution: Decimal
    net_sales: Decimal
    equivalent: Decimal
    workers: dict[str, WorkerPayout]
    reconciliation: Reconciliation
    stats: JobStats
    eq_split_total: Decimal
    upsell_split_total: Decimal
    splits_valid: bool
    warnings: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "gross_sales": _out(self.gross_sales),
            "upsell_commission": _out(self.upsell_commission),
            "eq_contribution": _out(self.eq_contribution),
            "net_sales": _out(self.net_sales),
            "equivalent": _out(self.equivalent),
            "workers": {k: w.as_dict() for k, w in self.workers.items()},
            "reconciliation": self.reconciliation.as_dict(),
            "steps": self.stats.steps,
            "prebooked": self.stats.prebooked,
            "new_sales": self.stats.new_sales,
            "prebook_ratio": _out(self.stats.ratio),
            "eq_split_total": float(self.eq_split_total),
            "upsell_split_total": float(self.upsell_split_total),
            "splits_valid": self.splits_valid,
            "warnings": list(self.warnings),
        }


def compute_payouts(
    sales: Sequence[Sale],
    payees: Sequence[Payee],
    settings: PayoutLogicSettings,
    season_type: str,
    upsell_rules: Mapping[str, UpsellRule] | None = None,
    count: CashCount | None = None,
    constants: PayoutConstants | None = None,
) -> PayoutBreakdown:
    """Full recomputation for one team and one day. Splits are reported, not enforced."""
    if not payees:
        raise PayoutValidationError("No workers found for this payout.")
    constants = constants or PayoutConstants()
    count = count or CashCount()
    warnings: list[str] = []

    gross = actual_gross_sales(sales, count)
    ups = upsell_totals(sales, upsell_rules or {}, settings.tax_rate)
    warnings.extend(f"upsell:{code}" for code in ups.skipped)
    net = net_sales(sales, settings, ups.eq_contribution, season_type == "Team", warnings)
    team_eq = equivalent_units(net, constants.eq_divisor)

    splits = resolved_splits(payees)
    team_size = len(payees)
    workers: dict[str, WorkerPayout] = {}
    for p in payees:
        eq_pct, up_pct = splits[p.contractor_id]
        rate = commission_rate(
            settings, season_type, team_size, p.silvers, p.lifetime_days, constants.silver_full_bonus
        )
        eq = team_eq * eq_pct / HUNDRED
        workers[p.contractor_id] = WorkerPayout(
            contractor_id=p.contractor_id,
            rate=rate,
            equiv_split=eq_pct,
            upsell_split=up_pct,
            equivalent=eq,
            base_commission=eq * rate.total,
            upsell_commission=ups.commission * up_pct / HUNDRED,
            total_bonuses=sum((b.amount for b in p.bonuses), ZERO),
            total_deductions=sum((d.amount for d in p.deductions), ZERO),
            machine_rental_fee=constants.machine_rental_fee if p.machine_rental else ZERO,
            gross_sales=gross / team_size,
        )

    eq_total, up_total = split_totals(payees)
    try:
        validate_splits(payees, constants.split_tolerance)
        splits_valid = True
    except PayoutValidationError:
        splits_valid = False
    return PayoutBreakdown(
        gross_sales=gross,
        upsell_commission=ups.commission,
        eq_contribution=ups.eq_contribution,
        net_sales=net,
        equivalent=team_eq,
        workers=workers,
        reconciliation=reconcile(sales, count),
        stats=job_stats(sales),
        eq_split_total=eq_total,
        upsell_split_total=up_total,
        splits_valid=splits_valid,
        warnings=warnings,
    )
