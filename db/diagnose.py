"""
db/diagnose.py
--------------
Print the resolved database configuration and try to connect.

    python -m db.diagnose
"""

import sys
from urllib.parse import urlparse

import psycopg2

from db.connection import ConnectionManager, DatabaseConfig
from db.errors import TransientConnectivityError
from db.executor import RetryExecutor
from db.ssl_policy import is_managed_host, normalize_database_url


def describe_config(db_config: DatabaseConfig) -> list[str]:
    """Configuration report lines, with the password masked."""
    lines = [f"DATABASE_URL configured: {'yes' if db_config.url else 'no'}"]
    if db_config.url:
        parsed = urlparse(db_config.url)
        lines += [
            f"   Host: {parsed.hostname}",
            f"   Port: {parsed.port or 5432}",
            f"   Database: {parsed.path.lstrip('/')}",
            f"   User: {parsed.username or 'not set'}",
        ]
        normalized = normalize_database_url(db_config.url)
        if normalized != db_config.url:
            lines.append("   sslmode=require will be appended (managed host)")
    manual = all((db_config.host, db_config.database, db_config.user, db_config.password))
    lines.append(f"Discrete fields configured: {'yes' if manual else 'no'}")
    if manual:
        lines += [
            f"   Host: {db_config.host}",
            f"   Port: {db_config.port}",
            f"   Database: {db_config.database}",
            f"   User: {db_config.user}",
            "   Password: ***",
        ]
        if is_managed_host(db_config.host):
            lines.append("   Managed host detected")
    lines.append(f"Environment: {db_config.environment}")
    lines.append(f"SSL: {'enabled' if db_config.ssl_enabled else 'disabled'}")
    return lines


def main() -> int:
    db_config = DatabaseConfig.from_env()
    for line in describe_config(db_config):
        print(line)

    if not db_config.is_configured():
        print("\nNo configuration found. Set DATABASE_URL, or DB_HOST, DB_PORT, DB_NAME, DB_USER and DB_PASSWORD.")
        return 1

    print("\nConnecting...")
    manager = ConnectionManager(db_config)
    try:
        row = RetryExecutor(manager).check_connectivity(attempts=1)
        print(f"Connected. Server time: {row['server_time']}")
        print(f"Version: {row['version']}")
        return 0
    except TransientConnectivityError as e:
        print(f"Connection failed ({e.kind}): {e}")
        return 1
    except psycopg2.Error as e:
        print(f"Connection failed: {str(e).strip()} (code {e.pgcode})")
        return 1
    finally:
        manager.close()


if __name__ == "__main__":
    sys.exit(main())
