"""Maintenance commands for ERMS.

    erms create-tables
    erms create-admin --email admin@school.edu
    erms purge-archived
    erms serve --port 8000
"""
import argparse
import getpass
import logging
import sys
from typing import Optional

from fastapi import HTTPException

from .auth.service import is_valid_email, validate_new_password
from .config import LOG_LEVEL
from .database import create_tables, get_db_session
from .models import User, UserRole

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """A command failed in a way the operator can fix."""


def cmd_create_tables(args) -> None:
    create_tables()
    print("Tables created")


def cmd_create_admin(args) -> None:
    email = args.email.strip().lower()
    if not is_valid_email(email):
        raise CommandError("Please enter a valid email address")

    password = args.password or getpass.getpass("Password: ")
    try:
        validate_new_password(password)
    except HTTPException as e:
        raise CommandError(e.detail)

    with get_db_session() as db:
        if db.query(User).filter(User.email == email).first():
            raise CommandError(f"A user with email {email} already exists")
        admin = User(email=email, full_name=args.full_name, role=UserRole.admin, is_active=True)
        admin.set_password(password)
        db.add(admin)
    logger.info(f"Created admin account {email}")
    print(f"Admin {email} created")


def cmd_purge_archived(args) -> None:
    from .classes.service import purge_archived_classes

    with get_db_session() as db:
        purged = purge_archived_classes(db)
    print(f"Purged {purged} archived class(es)")


def cmd_serve(args) -> None:
    import uvicorn

    uvicorn.run(
        "erms.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=LOG_LEVEL.lower(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="erms", description="ERMS administration commands")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    tables = commands.add_parser("create-tables", help="Create every table that does not exist yet")
    tables.set_defaults(func=cmd_create_tables)

    admin = commands.add_parser("create-admin", help="Create an administrator account")
    admin.add_argument("--email", type=str, required=True, help="Login email")
    admin.add_argument("--password", type=str, default=None, help="Prompted for when omitted")
    admin.add_argument("--full-name", type=str, default="Administrator", help="Display name")
    admin.set_defaults(func=cmd_create_admin)

    purge = commands.add_parser("purge-archived", help="Delete archived classes past their retention period")
    purge.set_defaults(func=cmd_purge_archived)

    serve = commands.add_parser("serve", help="Run the API with uvicorn")
    serve.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    serve.add_argument("--port", type=int, default=8000, help="Port to listen on")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else LOG_LEVEL)
    try:
        args.func(args)
    except CommandError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
