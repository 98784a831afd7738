"""
Interactive tier-price calculator.
Enter a base price and the promotion tiers, then ask for quantities.
"""

import json
import os
import sys

from storefront.pricing import (
    applicable_rule,
    compute_line_total,
    describe_tiers,
    format_money,
    parse_promotion_rules,
    to_decimal,
    unit_price_for,
)


def load_rules(source: str):
    """Rules from a JSON file path or an inline JSON list."""
    source = source.strip()
    if not source:
        return []
    if os.path.isfile(source):
        with open(source, encoding="utf-8") as fh:
            return parse_promotion_rules(json.load(fh))
    return parse_promotion_rules(source)


def main():
    print("=== Cara: tier price calculator ===\n")

    # ── Setup ────────────────────────────────────────────────────────
    try:
        base_raw = input("Base unit price (or 'quit'): ").strip()
        if not base_raw or base_raw.lower() in {"quit", "exit"}:
            print("Goodbye.")
            return
        rules_raw = input("Promotion tiers – JSON list or file path (blank for none): ")
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    base_price = to_decimal(base_raw)
    if base_price.is_nan():
        print(f"\n[ERROR] '{base_raw}' is not a price.", file=sys.stderr)
        return

    try:
        rules = load_rules(rules_raw)
    except (ValueError, OSError) as e:
        print("\n[ERROR] Could not read promotion tiers.", file=sys.stderr)
        print("Details:", e, file=sys.stderr)
        return

    print("\n[tiers]")
    for tier in describe_tiers(base_price, rules):
        label = "base" if tier["isBase"] else "promo"
        print(f"  {tier['minQuantity']:>5}+  {format_money(tier['pricePerUnit'])}  ({label})")

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            q = input("\nQuantity (or 'quit'): ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not q:
            continue
        if q.lower() in {"quit", "exit"}:
            print("Goodbye.")
            break
        if not q.isdigit() or int(q) < 1:
            print("[WARN] Quantity must be a positive whole number.")
            continue

        quantity = int(q)
        rule = applicable_rule(quantity, rules)
        if rule:
            print(f"[tier] {rule.min_quantity}+ units")
        else:
            print("[tier] base price")
        print(f"[unit] {format_money(unit_price_for(quantity, base_price, rules))}")
        print(f"[total] {format_money(compute_line_total(quantity, base_price, rules))}")


if __name__ == "__main__":
    main()
