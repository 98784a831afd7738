#!/usr/bin/env python3
"""
Create a back-office account.
Hashes a password with bcrypt and prints the INSERT for the users table,
or runs it directly when --apply is given and DB_URI is set.
"""

import argparse
import getpass
import uuid

from sqlalchemy import text

from storefront.api.auth import hash_password


def build_insert(email, first_name, last_name, password_hash, user_id=None):
    user_id = user_id or str(uuid.uuid4())
    params = {
        "id": user_id,
        "email": email.strip().lower(),
        "password_hash": password_hash,
        "first_name": first_name,
        "last_name": last_name,
    }
    sql = (
        "INSERT INTO users (id, email, password_hash, first_name, last_name, status, role) "
        "VALUES (:id, :email, :password_hash, :first_name, :last_name, 'approved', 'admin')"
    )
    return sql, params


def main():
    parser = argparse.ArgumentParser(description="Create a storefront admin account")
    parser.add_argument("email")
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="")
    parser.add_argument("--apply", action="store_true", help="insert into DB_URI directly")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if len(password) < 6:
        parser.error("password must have at least 6 characters")

    sql, params = build_insert(args.email, args.first_name, args.last_name, hash_password(password))

    if args.apply:
        from storefront.database import init_engine, init_schema

        engine = init_engine()
        init_schema(engine)
        with engine.begin() as conn:
            conn.execute(text(sql), params)
        print(f"[init] Admin {params['email']} created (id={params['id']})")
        return

    print("=" * 70)
    print("SQL Insert:")
    print("=" * 70)
    print(sql)
    for key, value in params.items():
        print(f"  :{key} = {value}")


if __name__ == "__main__":
    main()
