"""User and token management for the PlayPartner API."""
from __future__ import annotations

import os
import sys

from sqlalchemy import select

from playpartner.auth import create_user, get_user_by_email, rotate_token
from playpartner.db import init_db, session_scope
from playpartner.models import ROLES, User

# ---------------------------------------------------------------------------
# Terminal formatting
# ---------------------------------------------------------------------------

_USE_COLOR = sys.stdout.isatty() and not os.environ.get("NO_COLOR")


def _green(t: str) -> str: return f"\033[32m{t}\033[0m" if _USE_COLOR else t
def _red(t: str) -> str: return f"\033[31m{t}\033[0m" if _USE_COLOR else t
def _bold(t: str) -> str: return f"\033[1m{t}\033[0m" if _USE_COLOR else t


OK = _green("OK")
FAIL = _red("FAIL")

USAGE = """\
Usage: playpartner-admin <command> [options]

Commands:
  create-user EMAIL [--role admin|viewer] [--first-name NAME] [--last-name NAME]
                   Create a user and print its API token (shown once)
  rotate-token EMAIL
                   Issue a new token; the previous one stops working
  list-users       Show all users and their roles
  --help           Show this help message

Environment variables:
  PLAYPARTNER_DATABASE_URL   Database to operate on (default: bundled SQLite file)
"""


def _option(args: list[str], name: str, default: str = "") -> str:
    if name in args:
        idx = args.index(name)
        if idx + 1 < len(args):
            return args[idx + 1]
    return default


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_create_user(args: list[str]) -> int:
    if not args or args[0].startswith("--"):
        print(f"{FAIL} create-user needs an EMAIL")
        return 1
    email = args[0]
    role = _option(args, "--role", "viewer")
    if role not in ROLES:
        print(f"{FAIL} Unknown role: {role} (expected one of {', '.join(ROLES)})")
        return 1
    with session_scope() as session:
        if get_user_by_email(session, email):
            print(f"{FAIL} User {email} already exists; use rotate-token")
            return 1
        user, token = create_user(
            session, email, role=role,
            first_name=_option(args, "--first-name"), last_name=_option(args, "--last-name"),
        )
        session.commit()
        print(f"  {OK} Created {user.email} ({user.role})")
    print(f"  Token: {_bold(token)}")
    return 0


def cmd_rotate_token(args: list[str]) -> int:
    if not args:
        print(f"{FAIL} rotate-token needs an EMAIL")
        return 1
    with session_scope() as session:
        user = get_user_by_email(session, args[0])
        if user is None:
            print(f"{FAIL} No user {args[0]}")
            return 1
        token = rotate_token(user)
        session.commit()
        print(f"  {OK} Rotated token for {user.email}")
    print(f"  Token: {_bold(token)}")
    return 0


def cmd_list_users(args: list[str]) -> int:
    with session_scope() as session:
        users = session.execute(select(User).order_by(User.email)).scalars().all()
        for user in users:
            name = f"{user.first_name} {user.last_name}".strip()
            print(f"  {user.email:<40} {user.role:<8} {name}")
        if not users:
            print("  (no users)")
    return 0


COMMANDS = {
    "create-user": cmd_create_user,
    "rotate-token": cmd_rotate_token,
    "list-users": cmd_list_users,
}


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv

    if not args or "--help" in args or "-h" in args:
        print(USAGE)
        sys.exit(0)

    command = COMMANDS.get(args[0])
    if command is None:
        print(f"{FAIL} Unknown command: {args[0]}")
        print(f"  Available: {', '.join(COMMANDS)}")
        sys.exit(1)

    init_db()
    sys.exit(command(args[1:]))


if __name__ == "__main__":
    main()
