#!/usr/bin/env python3
"""
Write a starter .env for the storefront with a fresh session-token secret.
"""

import argparse
import os
import secrets
import sys


def render_env(db_uri, secret_key, geoip=False, cors_origins=""):
    lines = [
        f"DB_URI={db_uri}",
        f"JWT_SECRET_KEY={secret_key}",
        f"GEOIP_LOOKUP={'1' if geoip else '0'}",
        f"CORS_ORIGINS={cors_origins}",
        "API_HOST=0.0.0.0",
        "API_PORT=8000",
    ]
    return "\n".join(lines) + "\n"


def main():
    parser = argparse.ArgumentParser(description="Create a .env file for cara-storefront")
    parser.add_argument("--db-uri", default="sqlite:///cara.db")
    parser.add_argument("--output", default=".env")
    parser.add_argument("--geoip", action="store_true", help="enable IP geolocation for new visitors")
    parser.add_argument("--cors-origins", default="")
    parser.add_argument("--force", action="store_true", help="overwrite an existing file")
    args = parser.parse_args()

    if os.path.exists(args.output) and not args.force:
        print(f"ERROR: {args.output} already exists (use --force to overwrite)", file=sys.stderr)
        sys.exit(1)

    content = render_env(args.db_uri, secrets.token_hex(32), args.geoip, args.cors_origins)
    with open(args.output, "w", encoding="utf-8") as fh:
        fh.write(content)

    print("=" * 60)
    print(f"[init] Wrote {args.output}")
    print("=" * 60)


if __name__ == "__main__":
    main()
