#!/usr/bin/env python3
"""
Generate the ADMIN_PASSWORD_HASH value for the dashboard.

Usage: python scripts/generate_password_hash.py
"""

import getpass
import os
import sys

# Add the src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from services.auth_service import hash_password  # noqa: E402


def main():
    password = getpass.getpass("Dashboard password: ")
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1
    if getpass.getpass("Repeat password: ") != password:
        print("Passwords do not match", file=sys.stderr)
        return 1

    print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
