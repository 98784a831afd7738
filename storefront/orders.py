"""
Order headers for the back office: listing and status changes.
"""

from typing import List, Optional

from sqlalchemy import text

from storefront.config import ORDER_STATUSES
from storefront.models import Order

_ORDER_SELECT = (
    "SELECT o.id, o.user_id, o.status, o.total, o.created_at, u.email AS customer_email "
    "FROM orders o LEFT JOIN users u ON u.id = o.user_id"
)


def _row_to_order(row) -> Order:
    return Order(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        status=str(row["status"]).lower(),
        total=str(row["total"]),
        created_at=str(row["created_at"]) if row["created_at"] is not None else None,
        customer_email=row["customer_email"],
    )


def list_orders(engine, status: Optional[str] = None) -> List[Order]:
    """Newest first, optionally filtered by status."""
    if status is not None and status not in ORDER_STATUSES:
        raise ValueError(f"Invalid order status: {status}")
    sql = _ORDER_SELECT
    params = {}
    if status:
        sql += " WHERE o.status = :status"
        params["status"] = status
    sql += " ORDER BY o.created_at DESC"
    with engine.connect() as conn:
        rows = conn.execute(text(sql), params).mappings().all()
    return [_row_to_order(r) for r in rows]


def get_order(engine, order_id: str) -> Optional[Order]:
    with engine.connect() as conn:
        row = conn.execute(text(_ORDER_SELECT + " WHERE o.id = :id"), {"id": order_id}).mappings().first()
    return _row_to_order(row) if row else None


def update_order_status(engine, order_id: str, status: str) -> Optional[Order]:
    if status not in ORDER_STATUSES:
        raise ValueError(f"Invalid order status: {status}")
    with engine.begin() as conn:
        result = conn.execute(
            text("UPDATE orders SET status = :status WHERE id = :id"),
            {"status": status, "id": order_id},
        )
        if result.rowcount == 0:
            return None
    return get_order(engine, order_id)
