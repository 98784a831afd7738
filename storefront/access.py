"""
Account lookups and AccessContext assembly for the access gate.
"""

from typing import List, Optional

from sqlalchemy import text

from storefront.config import USER_ROLES, USER_STATUSES
from storefront.location import LocationPreference
from storefront.models import AccessContext, AuthUser

_USER_COLUMNS = "id, email, first_name, last_name, status, role"


def _row_to_user(row) -> AuthUser:
    status = str(row["status"]).strip().lower()
    role = str(row["role"]).strip().lower()
    if status not in USER_STATUSES:
        raise ValueError(f"Unsupported status '{row['status']}' for user {row['id']}.")
    if role not in USER_ROLES:
        raise ValueError(f"Unsupported role '{row['role']}' for user {row['id']}.")
    return AuthUser(
        user_id=str(row["id"]),
        email=str(row["email"]),
        first_name=str(row["first_name"] or ""),
        last_name=str(row["last_name"] or ""),
        status=status,
        role=role,
    )


def load_auth_user(engine, user_id: str) -> Optional[AuthUser]:
    """Look up a user by id; None when there is no such account."""
    sql = text(f"SELECT {_USER_COLUMNS} FROM users WHERE id = :id")
    with engine.connect() as conn:
        row = conn.execute(sql, {"id": user_id}).mappings().first()
    if not row:
        return None
    return _row_to_user(row)


def load_login_row(engine, email: str):
    """Return the user row including password_hash, or None."""
    sql = text(f"SELECT {_USER_COLUMNS}, password_hash FROM users WHERE lower(email) = :email")
    with engine.connect() as conn:
        return conn.execute(sql, {"email": email.strip().lower()}).mappings().first()


def list_users(engine, status: Optional[str] = None) -> List[AuthUser]:
    if status is not None and status not in USER_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    sql = f"SELECT {_USER_COLUMNS} FROM users"
    params = {}
    if status:
        sql += " WHERE status = :status"
        params["status"] = status
    sql += " ORDER BY created_at DESC"
    with engine.connect() as conn:
        rows = conn.execute(text(sql), params).mappings().all()
    return [_row_to_user(r) for r in rows]


def update_user_status(engine, user_id: str, status: str) -> Optional[AuthUser]:
    """Approve, reject or reset a professional account."""
    if status not in USER_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    with engine.begin() as conn:
        result = conn.execute(
            text("UPDATE users SET status = :status WHERE id = :id"),
            {"status": status, "id": user_id},
        )
        if result.rowcount == 0:
            return None
    return load_auth_user(engine, user_id)


def build_access_context(
    preference: LocationPreference,
    auth_user: Optional[AuthUser],
    auth_resolved: bool = True,
) -> AccessContext:
    """Combine the location preference and auth lookup into gate input."""
    if not auth_resolved:
        return AccessContext(location=preference.location)
    if auth_user is None:
        return AccessContext(location=preference.location, authenticated=False)
    return AccessContext(
        location=preference.location,
        authenticated=True,
        approval_status=auth_user.status,
        is_admin=auth_user.is_admin,
    )
