# -*- coding: utf-8 -*-
"""
Payout logic settings: the per-season tunables of the payout engine.

Stored as JSON on the season (``SeasonConfig.payout_logic_json``); anything
missing is filled from the defaults below. Older saves kept a bare number per
payment method (``{"Cash": 100}``); those are upgraded on read to
``{"percentage": 100, "apply_taxes": True}``.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)


DEFAULT_METHOD_PERCENTAGES: dict[str, dict[str, Any]] = {
    "Cash": {"percentage": 100, "apply_taxes": True},
    "Cheque": {"percentage": 100, "apply_taxes": True},
    "E-Transfer": {"percentage": 100, "apply_taxes": True},
    "Credit Card": {"percentage": 100, "apply_taxes": True},
    "Prepaid": {"percentage": 50, "apply_taxes": True},
    "Billed": {"percentage": 50, "apply_taxes": True},
}

# camelCase keys as saved by the old console
_ALIASES = {
    "taxRate": "tax_rate",
    "productCost": "product_cost",
    "baseCommissionRate": "base_commission_rate",
    "soloBaseCommissionRate": "solo_base_commission_rate",
    "teamBaseCommissionRate": "team_base_commission_rate",
    "applySilverRaises": "apply_silver_raises",
    "applyAlumniRaises": "apply_alumni_raises",
    "paymentMethodPercentages": "payment_method_percentages",
    "applyTaxes": "apply_taxes",
}

_NUMERIC = (
    "tax_rate",
    "product_cost",
    "base_commission_rate",
    "solo_base_commission_rate",
    "team_base_commission_rate",
)


_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def parse_flag(value: Any, name: str) -> bool:
    """JSON booleans, 0/1 or their usual string spellings. Raises ValueError otherwise."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
    raise ValueError(f"{name}: not a boolean ({value!r})")


def _num(value: Any, name: str) -> Decimal:
    if value in (None, ""):
        return Decimal("0")
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{name}: not a number ({value!r})")
    if not d.is_finite():
        raise ValueError(f"{name}: not a number ({value!r})")
    return d


@dataclass
class MethodWeight:
    percentage: Decimal = Decimal("100")  # share of the price that counts toward net sales
    apply_taxes: bool = True  # remove tax before weighting

    def to_dict(self) -> dict:
        return {"percentage": float(self.percentage), "apply_taxes": self.apply_taxes}


def _default_methods() -> dict[str, MethodWeight]:
    return {
        k: MethodWeight(Decimal(str(v["percentage"])), bool(v["apply_taxes"]))
        for k, v in DEFAULT_METHOD_PERCENTAGES.items()
    }


@dataclass
class PayoutLogicSettings:
    tax_rate: Decimal = Decimal("13")
    product_cost: Decimal = Decimal("20")  # Team seasons only
    base_commission_rate: Decimal = Decimal("8.00")  # Individual seasons
    solo_base_commission_rate: Decimal = Decimal("6.00")  # Team season, one worker
    team_base_commission_rate: Decimal = Decimal("8.00")  # Team season, 2+ workers
    apply_silver_raises: bool = True
    apply_alumni_raises: bool = True
    payment_method_percentages: dict[str, MethodWeight] = field(default_factory=_default_methods)

    def method(self, key: str) -> MethodWeight | None:
        return self.payment_method_percentages.get(key)

    def base_rate(self, season_type: str, team_size: int) -> Decimal:
        if season_type == "Individual":
            return self.base_commission_rate
        if season_type == "Team":
            return self.team_base_commission_rate if team_size > 1 else self.solo_base_commission_rate
        return Decimal("0")

    # --- (de)serialisation ---
    def to_dict(self) -> dict:
        out: dict[str, Any] = {k: float(getattr(self, k)) for k in _NUMERIC}
        out["apply_silver_raises"] = self.apply_silver_raises
        out["apply_alumni_raises"] = self.apply_alumni_raises
        out["payment_method_percentages"] = {
            k: v.to_dict() for k, v in self.payment_method_percentages.items()
        }
        return out

    @classmethod
    def from_dict(cls, raw: dict | None) -> "PayoutLogicSettings":
        """Merge ``raw`` over the defaults. Raises ValueError on bad numbers."""
        raw = {_ALIASES.get(k, k): v for k, v in (raw or {}).items()}
        s = cls()
        for name in _NUMERIC:
            if name in raw:
                setattr(s, name, _num(raw[name], name))
        for name in ("apply_silver_raises", "apply_alumni_raises"):
            if name in raw:
                setattr(s, name, parse_flag(raw[name], name))

        methods = raw.get("payment_method_percentages")
        if isinstance(methods, dict):
            merged = copy.deepcopy(s.payment_method_percentages)
            for key, val in methods.items():
                if isinstance(val, dict):
                    val = {_ALIASES.get(k, k): v for k, v in val.items()}
                    prev = merged.get(key, MethodWeight())
                    merged[key] = MethodWeight(
                        _num(val.get("percentage", prev.percentage), f"{key}.percentage"),
                        parse_flag(val.get("apply_taxes", prev.apply_taxes), f"{key}.apply_taxes"),
                    )
                else:
                    # legacy layout: bare percentage
                    logger.debug("upgrading legacy method weight %s=%r", key, val)
                    merged[key] = MethodWeight(_num(val, f"{key}.percentage"), True)
            s.payment_method_percentages = merged
        s.validate()
        return s

    def validate(self) -> None:
        for name in _NUMERIC:
            if getattr(self, name) < 0:
                raise ValueError(f"{name}: must not be negative")
        if self.product_cost > 100:
            raise ValueError("product_cost: must be at most 100")
        for key, mw in self.payment_method_percentages.items():
            if mw.percentage < 0:
                raise ValueError(f"{key}.percentage: must not be negative")


def method_key(payment_method: str | None, prepaid: bool = False) -> str:
    """Map a booking's payment method onto a ``payment_method_percentages`` key."""
    if prepaid:
        return "Prepaid"
    m = (payment_method or "").lower()
    if "cash" in m:
        return "Cash"
    if "cheque" in m:
        return "Cheque"
    if "transfer" in m:
        return "E-Transfer"
    if "credit" in m:
        return "Credit Card"
    if "billed" in m:
        return "Billed"
    if "ios" in m:
        return "IOS"
    # custom splits ("Visa: $20, Amex: $40") and anything unrecognised
    return "Custom"
