# -*- coding: utf-8 -*-
from decimal import Decimal

import pytest

from fieldops.payout_logic import MethodWeight, PayoutLogicSettings, method_key


def test_defaults():
    s = PayoutLogicSettings.from_dict(None)
    assert s.tax_rate == 13
    assert s.product_cost == 20
    assert s.method("Prepaid") == MethodWeight(Decimal("50"), True)
    assert s.method("Custom") is None
    assert s.to_dict()["payment_method_percentages"]["Cash"] == {"percentage": 100.0, "apply_taxes": True}


def test_camel_case_keys_are_accepted():
    s = PayoutLogicSettings.from_dict({"taxRate": 5, "soloBaseCommissionRate": "7.5", "applySilverRaises": False})
    assert s.tax_rate == 5
    assert s.solo_base_commission_rate == Decimal("7.5")
    assert s.apply_silver_raises is False
    assert s.apply_alumni_raises is True


def test_legacy_bare_method_percentages_are_upgraded():
    s = PayoutLogicSettings.from_dict({"paymentMethodPercentages": {"Cash": 80, "IOS": "0"}})
    assert s.method("Cash") == MethodWeight(Decimal("80"), True)
    assert s.method("IOS") == MethodWeight(Decimal("0"), True)
    # untouched methods keep their defaults
    assert s.method("Billed").percentage == 50


def test_partial_method_entry_keeps_previous_values():
    s = PayoutLogicSettings.from_dict({"payment_method_percentages": {"Prepaid": {"applyTaxes": False}}})
    assert s.method("Prepaid") == MethodWeight(Decimal("50"), False)


def test_string_flags_are_parsed():
    s = PayoutLogicSettings.from_dict({
        "apply_silver_raises": "false",
        "applyAlumniRaises": 0,
        "payment_method_percentages": {"Billed": {"apply_taxes": "no"}},
    })
    assert s.apply_silver_raises is False
    assert s.apply_alumni_raises is False
    assert s.method("Billed").apply_taxes is False
    assert PayoutLogicSettings.from_dict({"apply_silver_raises": "True"}).apply_silver_raises is True


@pytest.mark.parametrize("raw", [
    {"tax_rate": "abc"},
    {"tax_rate": "NaN"},
    {"base_commission_rate": -1},
    {"product_cost": 150},
    {"payment_method_percentages": {"Cash": {"percentage": "x"}}},
    {"payment_method_percentages": {"Cash": -10}},
    {"apply_silver_raises": "maybe"},
    {"applyAlumniRaises": None},
    {"payment_method_percentages": {"Cash": {"apply_taxes": "sometimes"}}},
])
def test_invalid_values_are_rejected(raw):
    with pytest.raises(ValueError):
        PayoutLogicSettings.from_dict(raw)


@pytest.mark.parametrize("method, prepaid, key", [
    ("Cash", False, "Cash"),
    ("Cash", True, "Prepaid"),
    ("cheque", False, "Cheque"),
    ("E-Transfer", False, "E-Transfer"),
    ("Credit Card", False, "Credit Card"),
    ("Billed", False, "Billed"),
    ("IOS", False, "IOS"),
    ("Visa: $20, Amex: $40", False, "Custom"),
    ("", False, "Custom"),
    (None, False, "Custom"),
])
def test_method_key(method, prepaid, key):
    assert method_key(method, prepaid) == key
