"""
Guest cart kept in a cookie, priced through the tier engine.
"""

import json
from decimal import Decimal
from typing import Dict, Mapping

from storefront.config import MAX_CART_QUANTITY
from storefront.models import Product
from storefront.pricing import applicable_rule, compute_line_total, unit_price_for


class GuestCart:
    """Ordered product_id -> quantity mapping."""

    def __init__(self, items: Dict[str, int] = None):
        self.items: Dict[str, int] = dict(items or {})

    # ── mutation ─────────────────────────────────────────────────────

    def add_item(self, product_id: str, quantity: int = 1) -> None:
        quantity = _check_quantity(quantity)
        if quantity == 0:
            raise ValueError("quantity must be at least 1")
        total = self.items.get(product_id, 0) + quantity
        self.items[product_id] = min(total, MAX_CART_QUANTITY)

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set the quantity; zero or less removes the line."""
        if int(quantity) <= 0:
            self.items.pop(product_id, None)
            return
        if product_id in self.items:
            self.items[product_id] = _check_quantity(quantity)

    def remove_item(self, product_id: str) -> None:
        self.items.pop(product_id, None)

    def clear(self) -> None:
        self.items.clear()

    @property
    def item_count(self) -> int:
        return sum(self.items.values())

    # ── persistence ──────────────────────────────────────────────────

    def to_json(self) -> str:
        return json.dumps([{"productId": pid, "quantity": q} for pid, q in self.items.items()])

    @classmethod
    def from_json(cls, raw) -> "GuestCart":
        """Parse the cookie payload; anything unreadable yields an empty cart."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
            items = {}
            for entry in data:
                qty = int(entry["quantity"])
                if qty > 0:
                    items[str(entry["productId"])] = min(qty, MAX_CART_QUANTITY)
            return cls(items)
        except (ValueError, TypeError, KeyError, OverflowError):
            return cls()


def _check_quantity(quantity) -> int:
    try:
        q = int(quantity)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"Invalid quantity: {quantity!r}")
    if q < 0:
        raise ValueError(f"Invalid quantity: {quantity!r}")
    if q > MAX_CART_QUANTITY:
        raise ValueError(f"Quantity above limit of {MAX_CART_QUANTITY}")
    return q


def summarize_cart(cart: GuestCart, products: Mapping[str, Product]) -> dict:
    """Price every line; products that are missing or archived are skipped."""
    lines = []
    skipped = []
    subtotal = Decimal("0")
    for product_id, quantity in cart.items.items():
        product = products.get(product_id)
        if product is None or not product.is_active:
            skipped.append(product_id)
            continue
        rule = applicable_rule(quantity, product.promotion_rules)
        line_total = compute_line_total(quantity, product.price, product.promotion_rules)
        subtotal += line_total
        lines.append({
            "productId": product.id,
            "name": product.name,
            "slug": product.slug,
            "quantity": quantity,
            "unitPrice": str(unit_price_for(quantity, product.price, product.promotion_rules)),
            "lineTotal": str(line_total),
            "appliedRule": rule.to_dict() if rule else None,
            "inStock": product.in_stock,
        })
    return {
        "lines": lines,
        "skipped": skipped,
        "itemCount": sum(line["quantity"] for line in lines),
        "subtotal": subtotal,
    }
