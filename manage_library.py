#!/usr/bin/env python3
"""
Library Management Utility

This script provides utilities to manage the library store:
- Create the schema
- Create an administrator account
- List librarian accounts
- Show store statistics
"""

import asyncio
import sys

from accounts.registration import RegistrationService
from accounts.security import PasswordHasher
from storage.database import LibraryStore
from utilities.config import config
from utilities.errors import LibraryError
from utilities.logger import setup_logging


async def connect_store() -> LibraryStore:
    store = LibraryStore(config.database_url, echo=config.database_echo)
    await store.connect()
    return store


async def init_db():
    """Create missing tables."""
    store = await connect_store()
    try:
        print("✅ Schema is up to date")
    finally:
        await store.disconnect()


async def create_admin(handle: str, contact: str, password: str):
    """Create an administrator account if none exists."""
    store = await connect_store()
    try:
        registration = RegistrationService(store, PasswordHasher(rounds=config.bcrypt_rounds))
        admin = await registration.ensure_bootstrap_admin(handle, contact, password)
        if admin is None:
            print("ℹ️  An administrator already exists, nothing created")
        else:
            print(f"✅ Administrator {admin.handle} created (id {admin.id})")
    except LibraryError as e:
        print(f"❌ Error creating administrator: {e.message}")
        sys.exit(1)
    finally:
        await store.disconnect()


async def list_librarians():
    """List librarian accounts."""
    store = await connect_store()
    try:
        registration = RegistrationService(store, PasswordHasher(rounds=config.bcrypt_rounds))
        librarians = await registration.list_librarians()

        if not librarians:
            print("❌ No librarians found")
            return

        print(f"✅ Found {len(librarians)} librarians:")
        for i, librarian in enumerate(librarians, 1):
            print(f"{i:3d}. {librarian.handle} <{librarian.contact}>")
    finally:
        await store.disconnect()


async def show_statistics():
    """Show row counts per table."""
    store = await connect_store()
    try:
        stats = await store.health_check()
        print("\n" + "=" * 60)
        print("📊 STORE STATISTICS")
        print("=" * 60)
        for key, value in stats.items():
            print(f"{key:>14}: {value}")
    finally:
        await store.disconnect()


def print_usage():
    print("Usage: python manage_library.py [init-db|create-admin|librarians|stats] [args]")
    print()
    print("Commands:")
    print("  init-db                                  - Create missing tables")
    print("  create-admin <handle> <email> <password> - Create the first administrator")
    print("  librarians                               - List librarian accounts")
    print("  stats                                    - Show store statistics")


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    command = sys.argv[1].lower()

    # Setup logging
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    if command == "init-db":
        await init_db()
    elif command == "create-admin":
        if len(sys.argv) < 5:
            print("❌ Error: handle, e-mail and password required")
            print("Usage: python manage_library.py create-admin <handle> <email> <password>")
            sys.exit(1)
        await create_admin(sys.argv[2], sys.argv[3], sys.argv[4])
    elif command == "librarians":
        await list_librarians()
    elif command == "stats":
        await show_statistics()
    else:
        print(f"❌ Unknown command: {command}")
        print("Available commands: init-db, create-admin, librarians, stats")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
