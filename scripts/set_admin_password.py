"""Utility to set an admin account password for local development."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the project root is on sys.path so ``travelhub`` can be imported when the script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from travelhub import create_app
from travelhub.extensions import db
from travelhub.models import User


def set_password(email: str, password: str, name: str | None = None) -> None:
    app = create_app()

    with app.app_context():
        user = User.query.filter_by(email=email.strip().lower()).first()
        if user is None:
            user = User(name=name or "Admin User", email=email.strip().lower(), role="admin")
            db.session.add(user)
            print(f"Created new admin user: {email}")
        elif not user.is_active:
            print(f"Reactivating admin user: {email}")
            user.is_active = True

        user.set_password(password)
        db.session.commit()

        print(f"Password for admin '{email}' has been set successfully.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Set an admin password for local testing.")
    parser.add_argument("email", help="Admin email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument("--name", help="Display name when the account is created")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    set_password(args.email, args.password, args.name)


if __name__ == "__main__":
    main()
