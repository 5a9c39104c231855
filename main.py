#!/usr/bin/env python3
"""
AuthKeeper -- session administration from the command line.

Works directly on DATABASE_URL, so it can lift a revoked session even when
the API is down or no admin can log in.

Usage:
  python main.py sessions list
  python main.py sessions show alice@example.com
  python main.py sessions revoke alice@example.com
  python main.py sessions clear alice@example.com

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the account database.
  SECRET_KEY    Required unless DEBUG=true (shared settings validation).
"""

import argparse
import sys
from typing import Optional

from auth.service import normalize_email
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings


def _format_session(email: str, session) -> str:
    state = "valid" if session.is_valid else "REVOKED"
    return f"  {email:<40} {state:<8} ip={session.ip or '-'}  since {session.created_at or '-'}"


def _cmd_list(users: UserStore, sessions: SessionStore) -> int:
    records = sessions.list_sessions()
    if not records:
        print("  No sessions.")
        return 0
    for session in records:
        user = users.get_by_id(session.user_id)
        print(_format_session(user.email if user else f"<user {session.user_id}>", session))
    return 0


def _cmd_for_user(action: str, users: UserStore, sessions: SessionStore, email: str) -> int:
    user = users.get_by_email(normalize_email(email))
    if user is None:
        print(f"  [!] No user with email '{email}'.")
        return 1

    if action == "show":
        session = sessions.find_by_user(user.id)
        if session is None:
            print(f"  {user.email}: no session")
        else:
            print(_format_session(user.email, session))
        return 0

    done = sessions.mark_invalid(user.id) if action == "revoke" else sessions.delete_by_user(user.id)
    if not done:
        print(f"  [!] {user.email} has no session.")
        return 1
    print(f"  Session {'revoked' if action == 'revoke' else 'cleared'} for {user.email}.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="AuthKeeper -- session administration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    groups = parser.add_subparsers(dest="group", required=True)
    sessions_parser = groups.add_parser("sessions", help="Inspect or change session records")
    actions = sessions_parser.add_subparsers(dest="action", required=True)
    actions.add_parser("list", help="List every session record")
    for name, text in (
        ("show", "Show one user's session"),
        ("revoke", "Mark a user's session invalid (blocks login)"),
        ("clear", "Delete a user's session record (lifts a revocation)"),
    ):
        sub = actions.add_parser(name, help=text)
        sub.add_argument("email", help="Account email address")

    args = parser.parse_args(argv)

    settings = get_settings()
    if settings.session_mode != "stateful":
        print("  [!] SESSION_MODE is stateless -- there are no session records.")
        return 1

    users = UserStore(settings.database_url)
    sessions = SessionStore(users.engine)
    try:
        if args.action == "list":
            return _cmd_list(users, sessions)
        return _cmd_for_user(args.action, users, sessions, args.email)
    finally:
        users.close()


if __name__ == "__main__":
    sys.exit(main())
