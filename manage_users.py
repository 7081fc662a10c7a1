#!/usr/bin/env python3
"""
User Management Utility

Accounts always register with the standard role; this script is the only
way to grant or revoke administrator rights:
- List users and their roles
- Promote a user to administrator
- Demote an administrator back to standard
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import structlog
from utilities.logger import setup_logging
from utilities.config import config
from catalog.database import USERS, MongoDBManager
from catalog.models import Role
from catalog.repository import Repository

logger = structlog.get_logger(__name__)


def create_db_manager() -> MongoDBManager:
    return MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        username=config.mongodb_username,
        password=config.mongodb_password
    )


async def list_users(users: Repository):
    """List all users, newest first."""
    print("\n" + "=" * 80)
    print("👥 ALL USERS")
    print("=" * 80)

    documents = await users.find(sort=[("createdAt", -1)])
    if not documents:
        print("❌ No users found in database")
        return

    print(f"✅ Found {len(documents)} users:")
    print()
    for i, user in enumerate(documents, 1):
        print(f"{i:3d}. {user.get('email')} ({user.get('username')})")
        print(f"     ID: {user['_id']}")
        print(f"     Role: {user.get('role', Role.STANDARD.value)}")
        print(f"     Created: {user.get('createdAt')}")
        print()


async def set_role(users: Repository, email: str, role: Role) -> bool:
    """
    Set the role of the user with ``email``.

    Returns:
        True when the user exists and was updated
    """
    user = await users.find_one({"email": email.strip().lower()})
    if user is None:
        print(f"❌ No user found with email {email}")
        return False

    if user.get("role") == role.value:
        print(f"ℹ️  {user['email']} already has role {role.value}")
        return True

    await users.update_by_id(user["_id"], {"role": role.value})
    logger.info("Changed user role", user_id=user["_id"], role=role.value)
    print(f"✅ {user['email']} is now {role.value}")
    return True


async def run(command: str, args: list) -> int:
    """Execute one command against the database and return an exit code."""
    db_manager = create_db_manager()
    try:
        await db_manager.connect()
        users = db_manager.repository(USERS)

        if command == "list":
            await list_users(users)
            return 0
        if command in ("promote", "demote"):
            if not args:
                print(f"❌ Error: email required for {command} command")
                print(f"Usage: python manage_users.py {command} <email>")
                return 1
            role = Role.ADMINISTRATOR if command == "promote" else Role.STANDARD
            return 0 if await set_role(users, args[0], role) else 1

        print(f"❌ Unknown command: {command}")
        print("Available commands: list, promote, demote")
        return 1

    except Exception as e:
        print(f"❌ Error running {command}: {e}")
        return 1
    finally:
        await db_manager.disconnect()


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print("Usage: python manage_users.py [list|promote|demote] [email]")
        print()
        print("Commands:")
        print("  list     - List all users and their roles")
        print("  promote  - Grant the administrator role")
        print("  demote   - Revoke the administrator role")
        print()
        print("Examples:")
        print("  python manage_users.py list")
        print("  python manage_users.py promote admin@example.com")
        sys.exit(1)

    # Setup logging
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    exit_code = await run(sys.argv[1].lower(), sys.argv[2:])
    sys.exit(exit_code)


if __name__ == "__main__":
    asyncio.run(main())
