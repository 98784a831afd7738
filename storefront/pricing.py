"""
Tiered quantity pricing – picks the promotion tier for an order quantity
and prices a cart line from it.
"""

import json
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from storefront.models import PromotionRule

D = Decimal
Money = Union[int, float, str, Decimal]
RuleInput = Union[PromotionRule, dict]

_NAN = D("NaN")
_INF = D("Infinity")
_CENT = D("0.01")


# ── Normalisation ────────────────────────────────────────────────────

def to_decimal(value: Money) -> Decimal:
    """Normalise a price to Decimal; unparseable input becomes NaN."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return _NAN
    if isinstance(value, float):
        value = str(value)
    try:
        return D(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return _NAN


def parse_promotion_rules(raw) -> List[PromotionRule]:
    """Accept a JSON string, a list of dicts/rules, or None."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, list):
        raise ValueError("promotion rules must be a list")
    return [r if isinstance(r, PromotionRule) else PromotionRule.from_dict(r) for r in raw]


def _tier_order(rules: Iterable[RuleInput]) -> List[PromotionRule]:
    # Highest threshold first; on equal thresholds the cheaper tier wins.
    def key(rule: PromotionRule):
        price = to_decimal(rule.price_per_unit)
        return (-rule.min_quantity, _INF if price.is_nan() else price)

    return sorted(parse_promotion_rules(list(rules)), key=key)


# ── Tier selection ───────────────────────────────────────────────────

def applicable_rule(quantity: int, rules: Optional[Iterable[RuleInput]]) -> Optional[PromotionRule]:
    """Return the largest tier whose minimum the quantity reaches, if any."""
    if not rules:
        return None
    for rule in _tier_order(rules):
        if quantity >= rule.min_quantity:
            return rule
    return None


def unit_price_for(quantity: int, base_price: Money,
                   rules: Optional[Iterable[RuleInput]] = None) -> Decimal:
    """Per-unit price at *quantity*: the matching tier's price or the base price."""
    rule = applicable_rule(quantity, rules)
    if rule is not None:
        return to_decimal(rule.price_per_unit)
    return to_decimal(base_price)


def compute_line_total(quantity: int, base_price: Money,
                       rules: Optional[Iterable[RuleInput]] = None) -> Decimal:
    """Extended price for *quantity* units."""
    return unit_price_for(quantity, base_price, rules) * quantity


# ── Display helpers ──────────────────────────────────────────────────

def format_money(value: Money, symbol: str = "€") -> str:
    """Round to cents for display; NaN renders as a dash."""
    amount = to_decimal(value)
    if amount.is_nan():
        return "—"
    return f"{symbol}{amount.quantize(_CENT, rounding=ROUND_HALF_UP)}"


def describe_tiers(base_price: Money, rules: Optional[Iterable[RuleInput]]) -> List[dict]:
    """Tier table for a product page, lowest threshold first."""
    table = [{"minQuantity": 1, "pricePerUnit": str(to_decimal(base_price)), "isBase": True}]
    for rule in reversed(_tier_order(rules or [])):
        table.append({"minQuantity": rule.min_quantity,
                      "pricePerUnit": rule.price_per_unit,
                      "isBase": False})
    return table
