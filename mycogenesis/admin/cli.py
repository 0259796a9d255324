"""mycogenesis-admin CLI

    mycogenesis-admin --email me@example.com set-admin
    mycogenesis-admin --email me@example.com set-admin-by-email other@example.com
    mycogenesis-admin --email me@example.com check-role
"""

import argparse
import asyncio
import getpass
import json
import os
import sys
from typing import Any, Optional, Sequence

from mycogenesis.clients.http_client import shutdown_shared_http_client
from mycogenesis.core.exceptions import MycoException
from mycogenesis.core.logging import logger

from .user_admin import UserAdmin

PASSWORD_ENV = "MYCO_ADMIN_PASSWORD"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mycogenesis-admin", description="MYCOgenesis user administration")
    parser.add_argument("--email", required=True, help="sign-in email")
    parser.add_argument("--password", help=f"sign-in password (default: ${PASSWORD_ENV} or prompt)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("set-admin", help="grant admin role to the signed-in user")
    by_email = sub.add_parser("set-admin-by-email", help="grant admin role to another user")
    by_email.add_argument("target_email")
    sub.add_parser("check-role", help="show role of the signed-in user")
    sub.add_parser("migrate-profile", help="create the default profile if missing")
    sub.add_parser("create-missing-profile", help="create the default profile if missing")
    sub.add_parser("check-profile", help="check profile fields")
    check_user = sub.add_parser("check-user", help="profile report and recent users")
    check_user.add_argument("--limit", type=int, default=10)
    delete = sub.add_parser("delete-account", help="delete profile and auth account")
    delete.add_argument("--yes", action="store_true", help="skip confirmation")
    return parser


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


async def run_command(admin: UserAdmin, args: argparse.Namespace) -> Any:
    command = args.command
    if command == "set-admin":
        return await admin.set_current_user_as_admin()
    if command == "set-admin-by-email":
        return await admin.set_user_as_admin_by_email(args.target_email)
    if command == "check-role":
        return await admin.check_current_user_role()
    if command == "migrate-profile":
        return await admin.migrate_profile()
    if command == "create-missing-profile":
        return await admin.create_missing_profile()
    if command == "check-profile":
        return await admin.check_profile()
    if command == "check-user":
        return await admin.check_user(limit=args.limit)
    if command == "delete-account":
        return await admin.delete_current_user_account()
    raise ValueError(f"Unknown command: {command}")


async def _main(args: argparse.Namespace, password: str, admin: Optional[UserAdmin] = None) -> int:
    admin = admin or UserAdmin()
    try:
        await admin.sign_in(args.email, password)
        result = await run_command(admin, args)
    except MycoException as e:
        logger.error(f"[ADMIN] {args.command} failed: {e}")
        return 1
    finally:
        await shutdown_shared_http_client()

    if isinstance(result, bool):
        return 0 if result else 1
    if result is None:
        return 1
    _print(result)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "delete-account" and not args.yes:
        answer = input(f"Delete account {args.email}? This cannot be undone [y/N]: ")
        if answer.strip().lower() != "y":
            print("Aborted")
            return 1
    password = args.password or os.environ.get(PASSWORD_ENV) or getpass.getpass("Password: ")
    return asyncio.run(_main(args, password))


if __name__ == "__main__":
    sys.exit(main())
