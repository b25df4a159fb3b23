#!/usr/bin/env python3
"""
CivicReport Supervisor (admin2) Account Setup Script

Supervisors cannot self-register, and zone admins are created by a
supervisor through the API, so the first admin2 account comes from here.

Usage (interactive):
    python apps/civic_api/scripts/create_supervisor.py

Usage (non-interactive):
    python apps/civic_api/scripts/create_supervisor.py --name "Dana Lee" \
        --email dana@example.com --password secret123
"""
import os
import sys
import getpass
import argparse

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from dotenv import load_dotenv
load_dotenv()


def _prompt(label: str) -> str:
    try:
        return input(label).strip()
    except EOFError:
        print(f"{label.strip(': ')} is required. Use command-line flags for non-interactive mode.")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description='Create a CivicReport supervisor (admin2) account')
    parser.add_argument('--name', '-n', help='Display name')
    parser.add_argument('--email', '-e', help='Supervisor email address')
    parser.add_argument('--password', '-p', help='Supervisor password (min 6 chars)')
    args = parser.parse_args()

    print("\n" + "=" * 50)
    print("  CivicReport Supervisor Account Setup")
    print("=" * 50 + "\n")

    from apps.civic_api.app import create_app
    from apps.civic_api import db
    from apps.civic_api.models.user import User
    from apps.civic_api.utils.auth import hash_password
    from apps.civic_api.utils.constants import ROLE_SUPERVISOR
    from apps.civic_api.utils.security import ValidationError
    from apps.civic_api.utils.validators import validate_email, validate_name, validate_password

    app = create_app()

    with app.app_context():
        try:
            name = validate_name(args.name or _prompt("Name: "))
            email = validate_email(args.email or _prompt("Email: "))
            password = args.password
            if not password:
                password = getpass.getpass("Password (min 6 characters): ")
                if password != getpass.getpass("Confirm password: "):
                    print("  Passwords do not match.")
                    sys.exit(1)
            password = validate_password(password)
        except ValidationError as e:
            print(f"  {e.message}")
            sys.exit(1)

        if User.query.filter_by(email=email).first():
            print("  This email is already registered.")
            sys.exit(1)

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=ROLE_SUPERVISOR,
            is_active=True,
        )
        db.session.add(user)
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            print(f"\nError creating account: {e}")
            sys.exit(1)

        print("\n" + "=" * 50)
        print("  SUCCESS!")
        print("=" * 50)
        print(f"\n  Email: {email}")
        print(f"  Role: {ROLE_SUPERVISOR}")
        print("\n" + "=" * 50 + "\n")


if __name__ == '__main__':
    main()
