"""
db/create_admin.py
------------------
Create an administrator account from the command line.

    python -m db.create_admin <username> <password>

The schema is initialized first, so this also works on an empty database.
"""

import sys

from db.connection import ConnectionManager, DatabaseConfig
from db.errors import ConfigurationMissingError, ConstraintViolationError
from db.executor import RetryExecutor
from db.init_db import SchemaInitializer
from repositories.user_repo import UserRepository


def create_admin(executor: RetryExecutor, username: str, password: str) -> dict:
    return UserRepository(executor).create(username, password, is_admin=True)


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print("Usage: python -m db.create_admin <username> <password>")
        return 2
    username, password = argv

    manager = ConnectionManager(DatabaseConfig.from_env())
    executor = RetryExecutor(manager)
    try:
        SchemaInitializer.from_config(executor).run()
        user = create_admin(executor, username, password)
    except ConfigurationMissingError as e:
        print(str(e))
        return 1
    except ConstraintViolationError:
        print(f"User '{username}' already exists. Choose another username.")
        return 1
    finally:
        manager.close()

    print(f"Admin created: #{user['id']} {user['username']}")
    print("Change the password after the first login.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
