"""Create an admin account, or promote an existing account to admin.

Self-registration never grants the admin role, so this is how the first
administrator is provisioned.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from salonbook import create_app
from salonbook.extensions import db
from salonbook.models import AuthAccount, User
from salonbook.validators import validate_email


def create_admin(email: str, password: str, first_name: str, last_name: str) -> None:
    app = create_app()

    try:
        email = validate_email(email)
    except ValueError as exc:
        print(f"Error: {exc}")
        return
    if len(password) < 6:
        print("Error: password must be at least 6 characters")
        return

    with app.app_context():
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(email=email, first_name=first_name, last_name=last_name, role="admin")
            db.session.add(user)
            db.session.flush()
            print(f"Created admin user: {email}")
        elif user.role != "admin":
            print(f"Promoting {email} from '{user.role}' to 'admin'")
            user.role = "admin"
        user.is_active = True

        account = db.session.get(AuthAccount, user.id)
        if account is None:
            account = AuthAccount(user_id=user.id)
            db.session.add(account)

        account.password_hash = generate_password_hash(password)
        db.session.commit()

        print(f"Admin account '{email}' is ready.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote a SalonBook admin account.")
    parser.add_argument("email", help="Admin email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument("--first-name", default="Platform", help="First name for a new account")
    parser.add_argument("--last-name", default="Admin", help="Last name for a new account")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    create_admin(args.email, args.password, args.first_name, args.last_name)


if __name__ == "__main__":
    main()
