#!/usr/bin/env python3
"""
Create the first administrator, or promote an existing account.

Run from the project root:
  python create_admin.py "Ada Lovelace" ada@example.com 'S3cure!pass'
  python create_admin.py --promote ada@example.com
"""

import argparse
import asyncio
import sys

from accounts.models import Role
from accounts.store import CredentialStore
from library.database import MongoDBManager
from utilities.config import config
from utilities.errors import ApiError
from utilities.logger import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or promote an e-libro administrator.")
    parser.add_argument("fullname", nargs="?", help="Full name (at least 3 characters)")
    parser.add_argument("email", nargs="?", help="Email address")
    parser.add_argument("password", nargs="?", help="Password matching the password policy")
    parser.add_argument("--promote", metavar="EMAIL", help="Grant the admin role to an existing account")
    return parser


async def run(args: argparse.Namespace, store: CredentialStore) -> int:
    """Apply the requested change through the credential store."""
    if args.promote:
        user = await store.find_by_email(args.promote)
        if user is None:
            print(f"No account registered for '{args.promote}'.", file=sys.stderr)
            return 1
        if user.role is Role.ADMIN:
            print(f"'{args.promote}' is already an admin.")
            return 0
        await store.update_profile(user.id, role=Role.ADMIN)
        print(f"Promoted '{args.promote}' to admin.")
        return 0

    try:
        user = await store.create({
            "fullname": args.fullname,
            "email": args.email,
            "password": args.password,
            "role": Role.ADMIN,
        })
    except ApiError as e:
        print(f"Could not create admin: {e.message}", file=sys.stderr)
        if e.details:
            print(f"  {e.details}", file=sys.stderr)
        return 1

    print(f"Created admin '{user.email}' ({user.id}).")
    return 0


async def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.promote and not (args.fullname and args.email and args.password):
        parser.error("fullname, email and password are required unless --promote is given")

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger = get_logger(__name__)

    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        users_collection=config.users_collection,
        books_collection=config.books_collection,
    )
    await db_manager.connect()
    try:
        store = CredentialStore(db_manager.users, config.security())
        await store.ensure_indexes()
        return await run(args, store)
    except Exception as e:
        logger.error("Admin bootstrap failed", error=str(e))
        raise
    finally:
        await db_manager.disconnect()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
