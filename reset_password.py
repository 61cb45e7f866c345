#!/usr/bin/env python3
"""
Reset a customer or staff password in the Research Store SQLite database.

This script DOES NOT read or reveal any existing passwords.  It stores a
new PBKDF2 hash (same format the API writes) for the given e-mail.

Usage:
    python reset_password.py --kind manager --email admin@example.com --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
--db defaults to the database the API is configured with (DATABASE_URL).
"""

import argparse
import getpass
import os
import sqlite3
import sys
from typing import List, Optional

from research_store_api.app.core.db import get_database_path, now_timestamp
from research_store_api.app.core.security import hash_password

TABLES = {"customer": "user_auth", "manager": "manager_auth"}


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Reset a Research Store password (SQLite).")
    ap.add_argument("--db", help="Path to SQLite DB file. Defaults to the configured DATABASE_URL.")
    ap.add_argument("--kind", choices=sorted(TABLES), default="customer", help="Account type")
    ap.add_argument("--email", required=True, help="Account e-mail to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args(argv)

    db_path = args.db or get_database_path()
    if not os.path.exists(db_path):
        print(f"[!] DB not found: {db_path}", file=sys.stderr)
        return 1

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < 6:
        print("[!] Password must be at least 6 characters.", file=sys.stderr)
        return 1

    email = args.email.strip().lower()
    table = TABLES[args.kind]
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        cur.execute(f"SELECT id FROM {table} WHERE email = ?", (email,))
        if not cur.fetchone():
            print(f"[!] No {args.kind} found with email: {email}", file=sys.stderr)
            return 2
        cur.execute(
            f"UPDATE {table} SET password = ?, updated_at = ? WHERE email = ?",
            (hash_password(new_password), now_timestamp(), email),
        )
        conn.commit()
        print(f"[+] Password updated for {args.kind}: {email}")
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
