"""Create a PitchFlow reviewer account.

Usage:
    python -m pitchflow.scripts.create_user --username admin --password <password> --admin
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy import select

from pitchflow.db.session import SessionLocal
from pitchflow.models.user import User
from pitchflow.services.auth import create_user


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a PitchFlow user")
    parser.add_argument("--username", required=True, help="Username for the new user")
    parser.add_argument("--password", required=True, help="Password for the new user")
    parser.add_argument("--email", help="Address used as submitter email for uploads")
    parser.add_argument("--admin", action="store_true", help="Allow reruns and deletions")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        existing = db.scalar(select(User).where(User.username == args.username))
        if existing:
            print(f"User '{args.username}' already exists.")
            sys.exit(1)

        user = create_user(db, args.username, args.password, email=args.email, is_admin=args.admin)
        role = "admin" if user.is_admin else "reviewer"
        print(f"User '{user.username}' created successfully (id={user.id}, role={role}).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
