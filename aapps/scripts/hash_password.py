#!/usr/bin/env python3
"""Print a bcrypt digest for a roster entry's ``password_hash``.

Usage:
  python -m aapps.scripts.hash_password
  python -m aapps.scripts.hash_password 'correct horse battery staple'
"""
from __future__ import annotations

import argparse
import getpass
import sys

from aapps.auth.credentials import hash_password


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Hash a password for config.yaml.")
    parser.add_argument("password", nargs="?", default=None, help="Password to hash (prompted if omitted)")
    args = parser.parse_args(argv)

    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Confirm: "):
            print("Passwords do not match", file=sys.stderr)
            return 1
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1

    print(hash_password(password))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
