# -*- coding: utf-8 -*-
import logging
from decimal import Decimal

import pytest

from fieldops.payout_logic import PayoutLogicSettings
from fieldops.payroll import (
    Adjustment, CashCount, Payee, PayoutConstants, PayoutValidationError, Sale, UpsellRule,
    achievement_for, actual_gross_sales, alumni_raise, commission_rate, compute_payouts,
    equivalent_units, job_stats, money, net_sales, reconcile, silver_raise, upsell_totals,
    validate_splits,
)

D = Decimal


def _one(**kw):
    kw.setdefault("machine_rental", False)
    return Payee("W1", **kw)


# ---------- worked example ----------
def test_250_net_is_10_eq_and_80_at_base_8():
    sales = [Sale("282.50", "Credit Card")]  # 250 + 13% tax
    b = compute_payouts(sales, [_one()], PayoutLogicSettings(), "Individual")
    assert b.net_sales == D("250")
    assert b.equivalent == D("10")
    w = b.workers["W1"]
    assert w.base_commission == D("80")
    assert money(w.final_payout) == D("80.00")


def test_rental_fee_bonuses_and_deductions():
    p = Payee("W1", bonuses=[Adjustment("Rain", "15")], deductions=[Adjustment("Damage", "5.50")])
    b = compute_payouts([Sale("282.50", "Credit Card")], [p], PayoutLogicSettings(), "Individual")
    w = b.workers["W1"]
    assert w.machine_rental_fee == D("10")
    assert money(w.final_payout) == D("79.50")  # 80 + 15 - 5.50 - 10


def test_rental_fee_is_configurable():
    b = compute_payouts(
        [Sale("282.50", "Credit Card")], [Payee("W1")], PayoutLogicSettings(), "Individual",
        constants=PayoutConstants(machine_rental_fee=D("12")),
    )
    assert money(b.workers["W1"].final_payout) == D("68.00")


# ---------- gross sales ----------
def test_gross_sales_uses_counted_cash_and_cheques():
    sales = [Sale("100", "Cash"), Sale("50", "Cheque"), Sale("80", "Credit Card"), Sale("40", "IOS")]
    count = CashCount(cash="95", cheque="50", change="5")
    assert actual_gross_sales(sales, count) == D("230")


def test_payment_method_compared_exactly():
    # trailing space: not counted by hand, so it is taken from the booking
    sales = [Sale("100", "Cash ")]
    assert actual_gross_sales(sales, CashCount()) == D("100")
    assert reconcile(sales, CashCount()).expected_cash == 0


def test_gross_sales_is_additive():
    a = [Sale("80", "Credit Card"), Sale("20.25", "E-Transfer")]
    b = [Sale("33.10", "Billed"), Sale("12", "Cash")]
    none = CashCount()
    assert actual_gross_sales(a + b, none) == actual_gross_sales(a, none) + actual_gross_sales(b, none)


def test_reconciliation_reports_discrepancy_without_blocking():
    sales = [Sale("100", "Cash"), Sale("50", "Cheque")]
    r = reconcile(sales, CashCount(cash="90", cheque="50", change="5"))
    assert r.expected_cash == D("100")
    assert r.cash_discrepancy == D("-5")
    assert r.cheque_discrepancy == D("0")
    assert not r.balanced

    b = compute_payouts(sales, [_one()], PayoutLogicSettings(), "Individual",
                        count=CashCount(cash="95", cheque="50", change="5"))
    assert b.reconciliation.balanced


# ---------- net sales ----------
def test_prepaid_counts_half_after_tax():
    s = PayoutLogicSettings()
    assert net_sales([Sale("226", "Credit Card", prepaid=True)], s) == D("100")


def test_method_without_tax_removal():
    s = PayoutLogicSettings.from_dict({"payment_method_percentages": {"Billed": {"percentage": 100, "apply_taxes": False}}})
    assert net_sales([Sale("250", "Billed")], s) == D("250")


def test_missing_method_counts_in_full_and_warns(caplog):
    warnings = []
    with caplog.at_level(logging.WARNING, logger="fieldops.payroll"):
        net = net_sales([Sale("113", "Visa: $50, Amex: $63")], PayoutLogicSettings(), warnings=warnings)
    assert net == D("100")
    assert warnings == ["method:Custom"]
    assert "Custom" in caplog.text


def test_team_season_removes_product_cost():
    s = PayoutLogicSettings()
    sales = [Sale("282.50", "E-Transfer")]
    assert net_sales(sales, s, is_team=True) == D("200")
    assert net_sales(sales, s, is_team=False) == D("250")


def test_net_sales_order_independent():
    sales = [Sale("113", "Cash"), Sale("79.99", "Credit Card", prepaid=True),
             Sale("45.10", "Billed"), Sale("17", "E-Transfer")]
    s = PayoutLogicSettings()
    assert money(net_sales(sales, s)) == money(net_sales(list(reversed(sales)), s))


def test_negative_net_gives_zero_eq():
    assert equivalent_units(D("-40")) == 0
    with pytest.raises(ValueError):
        equivalent_units(D("100"), 0)


# ---------- upsells ----------
def test_upsell_equipment_split():
    rules = {"fertilizer": UpsellRule(50, 10), "overseed": UpsellRule(0, 15)}
    sales = [
        Sale("113", "Credit Card", is_contract=True, upsell_code="fertilizer"),
        Sale("113", "Credit Card", is_contract=True, upsell_code="overseed"),
    ]
    ups = upsell_totals(sales, rules, 13)
    assert ups.eq_contribution == D("50")
    assert ups.commission == D("20")  # 50 * 10% + 100 * 15%


def test_contracts_count_only_through_eq_contribution():
    rules = {"fertilizer": UpsellRule(50, 10)}
    sales = [Sale("282.50", "Credit Card"), Sale("113", "Credit Card", is_contract=True, upsell_code="fertilizer")]
    b = compute_payouts(sales, [_one()], PayoutLogicSettings(), "Individual", rules)
    assert b.net_sales == D("300")
    assert b.equivalent == D("12")
    assert b.workers["W1"].upsell_commission == D("5")


def test_unknown_upsell_is_skipped_with_warning():
    sales = [Sale("113", "Cash", is_contract=True, upsell_code="mystery")]
    b = compute_payouts(sales, [_one()], PayoutLogicSettings(), "Individual", {})
    assert b.upsell_commission == 0
    assert b.net_sales == 0
    assert b.warnings == ["upsell:mystery"]


# ---------- rates ----------
@pytest.mark.parametrize("silvers, expected", [
    (0, "0"), (1, "0"), (2, "0.25"), (3, "0.25"), (4, "0.5"), (6, "0.75"), (7, "0.75"), (8, "1"), (20, "1"),
])
def test_silver_steps(silvers, expected):
    assert silver_raise(silvers) == D(expected)


def test_raises_are_monotonic():
    silver = [silver_raise(n) for n in range(0, 15)]
    alumni = [alumni_raise(n) for n in range(0, 300, 5)]
    assert silver == sorted(silver)
    assert alumni == sorted(alumni)
    assert alumni_raise(49) == 0 and alumni_raise(50) == D("0.25") and alumni_raise(200) == D("0.5")


def test_raises_can_be_switched_off():
    s = PayoutLogicSettings(apply_silver_raises=False, apply_alumni_raises=False)
    r = commission_rate(s, "Individual", 1, silvers=8, lifetime_days=300)
    assert r.total == D("8")


@pytest.mark.parametrize("season_type, team, expected", [
    ("Individual", 1, "8"), ("Individual", 3, "8"), ("Team", 1, "6"), ("Team", 2, "8"), ("Service", 1, "0"),
])
def test_base_rate_by_season(season_type, team, expected):
    assert commission_rate(PayoutLogicSettings(), season_type, team).base == D(expected)


def test_base_commission_scales_with_base_rate():
    sales = [Sale("282.50", "Credit Card")]
    low = compute_payouts(sales, [_one()], PayoutLogicSettings(base_commission_rate=D("8")), "Individual")
    high = compute_payouts(sales, [_one()], PayoutLogicSettings(base_commission_rate=D("16")), "Individual")
    assert high.workers["W1"].base_commission == 2 * low.workers["W1"].base_commission


def test_silver_full_bonus_is_configurable():
    b = compute_payouts([Sale("282.50", "Credit Card")], [_one(silvers=6)], PayoutLogicSettings(), "Individual",
                        constants=PayoutConstants(silver_full_bonus=D("2")))
    assert b.workers["W1"].rate.silver == D("1.5")


# ---------- splits ----------
def test_even_split_by_default():
    payees = [Payee("A", machine_rental=False), Payee("B", machine_rental=False)]
    b = compute_payouts([Sale("282.50", "E-Transfer")], payees, PayoutLogicSettings(), "Team")
    assert b.equivalent == D("8")
    assert b.workers["A"].equivalent == D("4")
    assert b.workers["A"].base_commission == D("32")
    assert b.workers["A"].gross_sales == D("141.25")
    assert b.splits_valid


def test_three_way_even_split_passes_validation():
    validate_splits([Payee("A"), Payee("B"), Payee("C")])


@pytest.mark.parametrize("eq_b, ok", [("40", True), ("40.1", True), ("39.9", True), ("40.2", False), ("39.8", False)])
def test_split_tolerance(eq_b, ok):
    payees = [Payee("A", equiv_split=D("60")), Payee("B", equiv_split=D(eq_b))]
    if ok:
        validate_splits(payees)
    else:
        with pytest.raises(PayoutValidationError, match="must each total 100%"):
            validate_splits(payees)


@pytest.mark.parametrize("a, b", [
    ({"equiv_split": D("150")}, {"equiv_split": D("-50")}),
    ({"upsell_split": D("120")}, {"upsell_split": D("-20")}),
])
def test_splits_outside_0_100_are_rejected(a, b):
    payees = [Payee("A", **a), Payee("B", **b)]
    with pytest.raises(PayoutValidationError, match="between 0% and 100%"):
        validate_splits(payees)
    breakdown = compute_payouts([Sale("282.50", "E-Transfer")], payees, PayoutLogicSettings(), "Team")
    assert not breakdown.splits_valid


def test_single_worker_may_take_the_full_split():
    validate_splits([Payee("A", equiv_split=D("100"), upsell_split=D("100"))])


def test_bad_splits_are_reported_not_raised_by_compute():
    payees = [Payee("A", upsell_split=D("70")), Payee("B", upsell_split=D("10"))]
    b = compute_payouts([], payees, PayoutLogicSettings(), "Team")
    assert not b.splits_valid
    assert b.upsell_split_total == D("80")


def test_no_payees():
    with pytest.raises(PayoutValidationError):
        compute_payouts([], [], PayoutLogicSettings(), "Individual")


# ---------- stats & constants ----------
def test_job_stats_ratio():
    st = job_stats([Sale("1", is_prebooked=True)] * 3 + [Sale("1")])
    assert (st.steps, st.prebooked, st.new_sales) == (4, 3, 1)
    assert st.ratio == 3
    assert job_stats([]).ratio == 0


@pytest.mark.parametrize("eq, name", [("29.99", None), ("30", "green_jacket"), ("45", "gold_jersey"), ("50", "silver_hat")])
def test_achievements(eq, name):
    assert achievement_for(D(eq)) == name


def test_constants_from_config():
    c = PayoutConstants.from_config({"PAYOUT_EQ_DIVISOR": "20", "PAYOUT_MACHINE_RENTAL_FEE": "0"})
    assert c.eq_divisor == D("20")
    assert c.machine_rental_fee == 0
    assert c.split_tolerance == D("0.1")
    with pytest.raises(ValueError):
        PayoutConstants.from_config({"PAYOUT_EQ_DIVISOR": "0"})
