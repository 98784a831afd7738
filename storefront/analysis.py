"""
Back-office dashboard figures computed from the users and orders tables.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

import pandas as pd
from sqlalchemy import text


def load_dashboard_frames(engine) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Read the columns the dashboard needs into DataFrames."""
    with engine.connect() as conn:
        users_df = pd.read_sql_query(text("SELECT id, status, role FROM users"), conn)
        orders_df = pd.read_sql_query(
            text("SELECT id, status, total, created_at FROM orders"), conn
        )
    return users_df, orders_df


def compute_dashboard_stats(
    users_df: pd.DataFrame,
    orders_df: pd.DataFrame,
    now: Optional[datetime] = None,
) -> dict:
    """
    Headline numbers for the admin landing page: pending approvals,
    pending orders, approved customers and this month's revenue.
    """
    now = now or datetime.utcnow()

    pending_approvals = 0
    approved_customers = 0
    if not users_df.empty:
        status = users_df["status"].astype(str).str.lower()
        pending_approvals = int((status == "pending").sum())
        approved_customers = int((status == "approved").sum())

    pending_orders = 0
    month_revenue = Decimal("0.00")
    month_orders = 0
    if not orders_df.empty:
        pending_orders = int((orders_df["status"].astype(str).str.lower() == "pending").sum())

        created = pd.to_datetime(orders_df["created_at"], errors="coerce")
        in_month = (created.dt.year == now.year) & (created.dt.month == now.month)
        month = orders_df[in_month.fillna(False)]
        month_orders = len(month)
        if month_orders:
            totals = pd.to_numeric(month["total"], errors="coerce").fillna(0)
            month_revenue = Decimal(str(round(float(totals.sum()), 2))).quantize(Decimal("0.01"))

    return {
        "pendingApprovals": pending_approvals,
        "pendingOrders": pending_orders,
        "approvedCustomers": approved_customers,
        "monthOrders": month_orders,
        "monthRevenue": str(month_revenue),
    }
