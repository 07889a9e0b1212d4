"""Bootstrap the protected super admin account."""
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


def create_super_admin(name: str, email: str, password: str) -> None:
    app = create_app()
    email = email.strip().lower()

    with app.app_context():
        db.create_all()

        current = User.query.filter_by(is_super_admin=True).first()
        if current is not None and current.email != email:
            print(f"Error: a super admin already exists ({current.email}).")
            return

        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(name=name, email=email, role="admin")
            db.session.add(user)
            print(f"Created super admin: {email}")
        else:
            print(f"Promoting existing account to super admin: {email}")

        user.is_super_admin = True
        user.is_active = True
        user.set_password(password)
        db.session.commit()

        print(f"Super admin '{email}' is ready.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create (or promote) the super admin account.")
    parser.add_argument("email", help="Super admin email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument("--name", default="Super Admin", help="Display name (default: Super Admin)")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if len(args.password) < 6:
        print("Error: password must be at least 6 characters long")
        sys.exit(1)
    create_super_admin(args.name, args.email, args.password)


if __name__ == "__main__":
    main()
