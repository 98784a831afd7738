"""
Flask application factory and server entry-point.
"""

import sys
import traceback

from flask import Flask
from flask_cors import CORS

from storefront.config import (
    API_HOST,
    API_PORT,
    CORS_ORIGINS,
    DEBUG,
    GEOIP_LOOKUP,
    REMEMBER_ME_DAYS,
    TOKEN_EXPIRY_HOURS,
)
from storefront.database import init_engine
from storefront.location import detect_location
from storefront.api.routes import register_routes


def create_app(engine=None, location_detector=None):
    """Build and return a fully configured Flask application.

    *engine* and *location_detector* may be injected (tests, scripts);
    otherwise the engine comes from ``DB_URI`` and IP detection is used
    only when ``GEOIP_LOOKUP=1``.
    """
    app = Flask(__name__)
    CORS(app, supports_credentials=True, origins=CORS_ORIGINS or "*")

    # ── Initialise shared resources ──────────────────────────────────
    if engine is None:
        try:
            print("[init] Initializing database connection...")
            engine = init_engine()
            print("[init] ✓ Storefront ready")
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    if location_detector is None and GEOIP_LOOKUP:
        print("[init] IP geolocation enabled for first-time visitors")
        location_detector = detect_location

    app.config["ENGINE"] = engine
    app.config["LOCATION_DETECTOR"] = location_detector

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine)

    return app


def main():
    """Run the development server."""
    app = create_app()
    base = f"http://{API_HOST}:{API_PORT}"

    print("=" * 60)
    print("Cara Storefront – Web Server")
    print("=" * 60)
    print(f"\n[server] Listening on {base} (debug={DEBUG})")
    print(f"[server] Sessions last {TOKEN_EXPIRY_HOURS} hours, {REMEMBER_ME_DAYS} days with 'remember me'")

    print("\n[server] Pages by protection level:")
    for rule in sorted(app.url_map.iter_rules(), key=lambda r: r.rule):
        view = app.view_functions.get(rule.endpoint)
        level = getattr(view, "protection", None)
        if level:
            print(f"  {level:<28} {rule.rule}")
    print("=" * 60)

    app.run(host=API_HOST, port=API_PORT, debug=DEBUG, threaded=True)


if __name__ == "__main__":
    main()
