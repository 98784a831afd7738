"""
Session tokens, password checks and request guards for the Flask API.
"""

import sys
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Dict, Optional

import bcrypt
import jwt
from flask import current_app, jsonify, request

from storefront.access import load_auth_user
from storefront.config import SECRET_KEY, SESSION_COOKIE, TOKEN_EXPIRY_HOURS
from storefront.models import AuthUser


def generate_token(user: AuthUser, expires_in: Optional[timedelta] = None) -> str:
    """Generate a JWT session token for a signed-in user."""
    now = datetime.utcnow()
    payload = {
        "user_id": user.user_id,
        "role": user.role,
        "iat": now,
        "exp": now + (expires_in or timedelta(hours=TOKEN_EXPIRY_HOURS)),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def request_token() -> Optional[str]:
    """Session token from the Authorization header or the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip() or None
    return request.cookies.get(SESSION_COOKIE)


def fetch_auth_status(engine, token: Optional[str]) -> Optional[AuthUser]:
    """
    Resolve the signed-in user for *token*.

    A missing or invalid token, an unknown user and a failed lookup all
    come back as None: the caller treats every one of them as signed out.
    """
    if not token or engine is None:
        return None
    payload = verify_token(token)
    if not payload or "user_id" not in payload:
        return None
    try:
        return load_auth_user(engine, str(payload["user_id"]))
    except Exception as e:
        print(f"[WARN] Auth status lookup failed, treating as signed out: {e}", file=sys.stderr)
        return None


def current_user() -> Optional[AuthUser]:
    """Auth status for the current request, cached on the request object."""
    if not hasattr(request, "auth_user"):
        engine = current_app.config.get("ENGINE")
        request.auth_user = fetch_auth_status(engine, request_token())
    return request.auth_user


def token_required(f):
    """Decorator that protects endpoints with a valid session."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if current_user() is None:
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated


def admin_required(f):
    """Signed in with the admin role."""
    @wraps(f)
    @token_required
    def decorated(*args, **kwargs):
        if not current_user().is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated
