#!/usr/bin/env python3
"""
Catalog Auth -- admin command line.

Self-registration through the API always creates role "user". Use this tool
to bootstrap the first admin or change a role without going through HTTP.

Usage:
  python main.py create-admin --email admin@example.com --name Admin --password secret123
  python main.py set-role --email someone@example.com --role admin

Environment variables:
  ACCESS_TOKEN_SECRET, ACCESS_TOKEN_EXPIRES_IN,
  REFRESH_TOKEN_SECRET, REFRESH_TOKEN_EXPIRES_IN   Required (see core/config.py).
  DATABASE_URL                                     Optional; defaults to catalog_auth.db.
"""

import argparse
import sys
from typing import Optional

from auth.errors import AuthError, DuplicateCredential
from auth.models import Role
from auth.passwords import PASSWORD_MAX_BYTES, password_fits
from auth.service import AuthService
from auth.sessions import SessionRegistry
from auth.store import PrincipalStore
from auth.tokens import TokenService
from core.config import get_settings


def build_service(db_url: Optional[str] = None) -> AuthService:
    settings = get_settings()
    url = db_url or settings.database_url
    return AuthService(PrincipalStore(url), SessionRegistry(url), TokenService(settings.token_config()))


def create_admin(service: AuthService, email: str, name: str, password: str) -> str:
    """Register an admin, or promote the existing account with that email.

    Returns "created", "promoted" or "already_admin".
    """
    try:
        service.register(email=email, password=password, name=name, role=Role.admin)
        return "created"
    except DuplicateCredential:
        pass
    existing = service.principals.get_by_email(email)
    if existing.role == Role.admin.value:
        return "already_admin"
    service.change_role(existing.id, Role.admin)
    return "promoted"


def set_role(service: AuthService, email: str, role: Role) -> None:
    principal = service.principals.get_by_email(email)
    if principal is None:
        raise SystemExit(f"  [!] No account with email '{email}'.")
    service.change_role(principal.id, role)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Catalog Auth admin tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--db", metavar="URL", help="Database URL (overrides DATABASE_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    admin = sub.add_parser("create-admin", help="Create or promote an admin account")
    admin.add_argument("--email", required=True)
    admin.add_argument("--name", default="Admin")
    admin.add_argument("--password", required=True)

    role = sub.add_parser("set-role", help="Change an account's role")
    role.add_argument("--email", required=True)
    role.add_argument("--role", required=True, choices=[r.value for r in Role])
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _parser().parse_args(argv)
    service = build_service(args.db)
    try:
        if args.command == "create-admin":
            if len(args.password) < 6:
                print("  [!] Password must be at least 6 characters.")
                return 1
            if not password_fits(args.password):
                print(f"  [!] Password must be at most {PASSWORD_MAX_BYTES} bytes (UTF-8).")
                return 1
            status = create_admin(service, args.email, args.name, args.password)
            print(f"  [+] {args.email}: {status}")
        else:
            set_role(service, args.email, Role(args.role))
            print(f"  [+] {args.email}: role set to {args.role}")
    except AuthError as e:
        print(f"  [!] {e.message}")
        return 1
    finally:
        service.sessions.close()
        service.principals.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
