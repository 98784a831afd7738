"""
Database engine initialisation, schema bootstrap and catalog reads/writes.
"""

import json
import re
import sys
import uuid
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import create_engine, text

from storefront.config import PRODUCT_CATEGORIES, get_env
from storefront.models import Product
from storefront.pricing import parse_promotion_rules, to_decimal

SCHEMA_DDL = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id VARCHAR(64) PRIMARY KEY,
        email VARCHAR(255) UNIQUE NOT NULL,
        password_hash VARCHAR(255) NOT NULL,
        first_name VARCHAR(255) NOT NULL DEFAULT '',
        last_name VARCHAR(255) NOT NULL DEFAULT '',
        status VARCHAR(16) NOT NULL DEFAULT 'pending',
        role VARCHAR(16) NOT NULL DEFAULT 'customer',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        slug VARCHAR(255) UNIQUE NOT NULL,
        category VARCHAR(32),
        short_description TEXT,
        price NUMERIC(10, 2) NOT NULL,
        promotion_rules TEXT,
        in_stock BOOLEAN DEFAULT TRUE,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(64) NOT NULL REFERENCES users(id),
        status VARCHAR(16) NOT NULL DEFAULT 'pending',
        total NUMERIC(10, 2) NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
)

_PRODUCT_COLUMNS = (
    "id, name, slug, category, short_description, price, promotion_rules, in_stock, is_active"
)

# API field -> column, for admin writes
_PRODUCT_FIELDS = {
    "name": "name",
    "slug": "slug",
    "category": "category",
    "shortDescription": "short_description",
    "price": "price",
    "promotionRules": "promotion_rules",
    "inStock": "in_stock",
    "isActive": "is_active",
}
_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_MAX_PRICE = Decimal("100000000")


def init_engine():
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def init_schema(engine) -> None:
    """Create the storefront tables if they do not exist yet."""
    with engine.begin() as conn:
        for ddl in SCHEMA_DDL:
            conn.execute(text(ddl))


def _row_to_product(row) -> Product:
    rules = row["promotion_rules"]
    if isinstance(rules, (bytes, bytearray)):
        rules = rules.decode("utf-8")
    try:
        promotion_rules = parse_promotion_rules(rules)
    except ValueError as e:
        # priced at base until the tiers are fixed in the back office
        print(f"[WARN] Ignoring malformed promotion rules on product {row['id']}: {e}",
              file=sys.stderr)
        promotion_rules = []
    return Product(
        id=str(row["id"]),
        name=str(row["name"]),
        slug=str(row["slug"]),
        price=str(row["price"]),
        promotion_rules=promotion_rules,
        category=row["category"],
        short_description=row["short_description"],
        in_stock=bool(row["in_stock"]) if row["in_stock"] is not None else True,
        is_active=bool(row["is_active"]),
    )


def list_active_products(engine) -> List[Product]:
    sql = text(f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE is_active = :active ORDER BY name")
    with engine.connect() as conn:
        rows = conn.execute(sql, {"active": True}).mappings().all()
    return [_row_to_product(r) for r in rows]


def get_product_by_slug(engine, slug: str) -> Optional[Product]:
    sql = text(
        f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE slug = :slug AND is_active = :active"
    )
    with engine.connect() as conn:
        row = conn.execute(sql, {"slug": slug, "active": True}).mappings().first()
    return _row_to_product(row) if row else None


def get_products_by_ids(engine, product_ids) -> Dict[str, Product]:
    ids = list(product_ids)
    if not ids:
        return {}
    placeholders = ", ".join(f":id{i}" for i in range(len(ids)))
    params = {f"id{i}": pid for i, pid in enumerate(ids)}
    sql = text(f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id IN ({placeholders})")
    with engine.connect() as conn:
        rows = conn.execute(sql, params).mappings().all()
    return {str(r["id"]): _row_to_product(r) for r in rows}


def list_products(engine, archived: Optional[bool] = None) -> List[Product]:
    """Back-office listing: everything, or only archived / only active rows."""
    sql = f"SELECT {_PRODUCT_COLUMNS} FROM products"
    params = {}
    if archived is not None:
        sql += " WHERE is_active = :active"
        params["active"] = not archived
    sql += " ORDER BY name"
    with engine.connect() as conn:
        rows = conn.execute(text(sql), params).mappings().all()
    return [_row_to_product(r) for r in rows]


def get_product_by_id(engine, product_id: str) -> Optional[Product]:
    sql = text(f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = :id")
    with engine.connect() as conn:
        row = conn.execute(sql, {"id": product_id}).mappings().first()
    return _row_to_product(row) if row else None


def rules_to_json(rules) -> Optional[str]:
    """Validated column value for promotion tiers; None when there are none."""
    parsed = parse_promotion_rules(rules)
    if not parsed:
        return None
    return json.dumps([r.to_dict() for r in parsed])


# ── Catalog writes (admin) ───────────────────────────────────────────

def product_values(data, partial: bool = False) -> dict:
    """
    Validate admin product input (camelCase keys, as the API sends them)
    into column values. Raises ValueError on anything the catalog would
    not be able to price or display.
    """
    if not isinstance(data, dict):
        raise ValueError("Product data must be an object")
    unknown = set(data) - set(_PRODUCT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown product fields: {sorted(unknown)}")
    if not partial:
        missing = [k for k in ("name", "slug", "price") if data.get(k) in (None, "")]
        if missing:
            raise ValueError(f"Missing product fields: {missing}")

    values = {}
    for key, value in data.items():
        if key in ("name", "slug"):
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{key} must be a non-empty string")
            value = value.strip()
            if key == "slug" and not _SLUG_RE.match(value):
                raise ValueError(f"Invalid slug: {value!r}")
        elif key == "category":
            if value is not None and value not in PRODUCT_CATEGORIES:
                raise ValueError(f"category must be one of {sorted(PRODUCT_CATEGORIES)}")
        elif key == "shortDescription":
            if value is not None and not isinstance(value, str):
                raise ValueError("shortDescription must be a string")
        elif key == "price":
            amount = to_decimal(value)
            if not amount.is_finite() or amount < 0 or amount >= _MAX_PRICE:
                raise ValueError(f"Invalid price: {value!r}")
            value = str(amount.quantize(Decimal("0.01")))
        elif key == "promotionRules":
            value = rules_to_json(value)
        elif not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false")
        values[_PRODUCT_FIELDS[key]] = value
    return values


def create_product(engine, data) -> Product:
    values = product_values(data)
    values.setdefault("in_stock", True)
    values.setdefault("is_active", True)
    values["id"] = str(uuid.uuid4())
    columns = ", ".join(values)
    placeholders = ", ".join(f":{c}" for c in values)
    with engine.begin() as conn:
        conn.execute(text(f"INSERT INTO products ({columns}) VALUES ({placeholders})"), values)
    return get_product_by_id(engine, values["id"])


def update_product(engine, product_id: str, data) -> Optional[Product]:
    """Apply a partial update; None when the product does not exist."""
    values = product_values(data, partial=True)
    if not values:
        raise ValueError("No product fields to update")
    assignments = ", ".join(f"{c} = :{c}" for c in values)
    with engine.begin() as conn:
        result = conn.execute(
            text(f"UPDATE products SET {assignments} WHERE id = :product_id"),
            dict(values, product_id=product_id),
        )
        if result.rowcount == 0:
            return None
    return get_product_by_id(engine, product_id)


def set_product_active(engine, product_id: str, active: bool) -> Optional[Product]:
    """Archive (hide from the storefront) or restore a product."""
    with engine.begin() as conn:
        result = conn.execute(
            text("UPDATE products SET is_active = :active WHERE id = :id"),
            {"active": active, "id": product_id},
        )
        if result.rowcount == 0:
            return None
    return get_product_by_id(engine, product_id)


def delete_product(engine, product_id: str) -> bool:
    with engine.begin() as conn:
        result = conn.execute(text("DELETE FROM products WHERE id = :id"), {"id": product_id})
    return result.rowcount > 0
