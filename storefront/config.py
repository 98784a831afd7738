"""
Centralised configuration constants and environment helpers.
"""

import os
import sys
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

# ── Regions / approval ───────────────────────────────────────────────
LOCATION_PORTUGAL = "portugal"
LOCATION_INTERNATIONAL = "international"
LOCATIONS = {LOCATION_PORTUGAL, LOCATION_INTERNATIONAL}

USER_STATUSES = {"pending", "approved", "rejected"}
USER_ROLES = {"customer", "admin"}

# ── Catalog / orders ─────────────────────────────────────────────────
PRODUCT_CATEGORIES = {"soft", "mild", "hard", "ultra"}
ORDER_STATUSES = {"pending", "confirmed", "shipped", "delivered", "cancelled"}

# ── Persisted client preferences (cookie names) ──────────────────────
LOCATION_COOKIE = "cara_user_location"
COUNTRY_CODE_COOKIE = "cara_user_country_code"
MEDICAL_CONFIRMED_COOKIE = "cara_medical_professional_confirmed"
GUEST_CART_COOKIE = "cara_guest_cart"
SESSION_COOKIE = "cara_session"
PREFERENCE_MAX_AGE = 365 * 24 * 3600

# ── Geolocation ──────────────────────────────────────────────────────
GEOIP_URL = "https://ipapi.co/{ip}/json/"
GEOIP_TIMEOUT_SECONDS = 3
GEOIP_LOOKUP = os.getenv("GEOIP_LOOKUP", "0") == "1"
DEFAULT_COUNTRY_CODE = "US"

# ── Gate ─────────────────────────────────────────────────────────────
LOGIN_PATH = "/login"
SUPPORT_EMAIL = "geral@cara.com.pt"
SUPPORT_PHONE = "+351910060560"
LOADING_REFRESH_SECONDS = 2

# ── Shipping ─────────────────────────────────────────────────────────
FREE_SHIPPING_THRESHOLD = Decimal("500")
EU_COUNTRIES = {
    "AT", "BE", "BG", "HR", "CY", "CZ", "DK", "EE", "FI", "FR", "DE",
    "GR", "HU", "IE", "IT", "LV", "LT", "LU", "MT", "NL", "PL", "PT",
    "RO", "SK", "SI", "ES", "SE",
}

# ── Cart ─────────────────────────────────────────────────────────────
MAX_CART_QUANTITY = 10000

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 7 * 24
REMEMBER_ME_DAYS = 30
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
DEBUG = os.getenv("FLASK_ENV") == "development"


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
