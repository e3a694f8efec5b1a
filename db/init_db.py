"""
db/init_db.py
-------------
Brings the database to the expected shape. Safe to run on every start:
tables and indexes are only created when absent, missing columns are
added, and seed rows are inserted once.

Run this module directly to initialize a database:
    python -m db.init_db
"""

from typing import Optional

from psycopg2 import sql

import config
from db.executor import RetryExecutor
from models.tag import REQUEST_TAG_COLOR, REQUEST_TAG_NAME
from security.passwords import hash_password
from utils.logger import get_logger

logger = get_logger(__name__)

# Parent tables come before the tables referencing them.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id              SERIAL PRIMARY KEY,
    username        VARCHAR(255) UNIQUE NOT NULL,
    password        VARCHAR(255) NOT NULL,
    is_admin        BOOLEAN DEFAULT FALSE,
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS cards (
    id              SERIAL PRIMARY KEY,
    title           VARCHAR(255) NOT NULL,
    description     TEXT,
    icon            VARCHAR(255),
    color           VARCHAR(50),
    thumbnail_url   TEXT,
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS links (
    id              SERIAL PRIMARY KEY,
    card_id         INTEGER NOT NULL REFERENCES cards(id) ON DELETE CASCADE,
    title           VARCHAR(255),
    url             TEXT NOT NULL,
    order_index     INTEGER DEFAULT 0,
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS tags (
    id              SERIAL PRIMARY KEY,
    name            VARCHAR(255) UNIQUE NOT NULL,
    color           VARCHAR(50),
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS card_tags (
    card_id         INTEGER NOT NULL REFERENCES cards(id) ON DELETE CASCADE,
    tag_id          INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    PRIMARY KEY (card_id, tag_id)
);

CREATE TABLE IF NOT EXISTS card_user_access (
    card_id         INTEGER NOT NULL REFERENCES cards(id) ON DELETE CASCADE,
    user_id         INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (card_id, user_id)
);

CREATE TABLE IF NOT EXISTS card_requests (
    id              SERIAL PRIMARY KEY,
    title           VARCHAR(255) NOT NULL,
    description     TEXT,
    icon            VARCHAR(255),
    thumbnail_url   TEXT,
    requested_by    INTEGER REFERENCES users(id) ON DELETE SET NULL,
    card_id         INTEGER REFERENCES cards(id) ON DELETE SET NULL,
    status          VARCHAR(50) DEFAULT 'pending',
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# (table, column, type + constraints) added to databases created by older releases.
COLUMN_MIGRATIONS: tuple[tuple[str, str, str], ...] = (
    ("cards", "thumbnail_url", "TEXT"),
    ("cards", "updated_at", "TIMESTAMP DEFAULT CURRENT_TIMESTAMP"),
    ("card_requests", "thumbnail_url", "TEXT"),
    ("card_requests", "card_id", "INTEGER REFERENCES cards(id) ON DELETE SET NULL"),
)

INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_links_card_id ON links(card_id);
CREATE INDEX IF NOT EXISTS idx_card_tags_card_id ON card_tags(card_id);
CREATE INDEX IF NOT EXISTS idx_card_tags_tag_id ON card_tags(tag_id);
CREATE INDEX IF NOT EXISTS idx_cards_title ON cards(title);
CREATE INDEX IF NOT EXISTS idx_users_username ON users(username);
CREATE INDEX IF NOT EXISTS idx_card_user_access_card_id ON card_user_access(card_id);
CREATE INDEX IF NOT EXISTS idx_card_user_access_user_id ON card_user_access(user_id);
CREATE INDEX IF NOT EXISTS idx_card_requests_status ON card_requests(status);
CREATE INDEX IF NOT EXISTS idx_card_requests_requested_by ON card_requests(requested_by);
"""


class SchemaInitializer:
    """
    Idempotent schema setup.

    Steps, in order: connectivity check, tables, column migrations,
    reserved `request` tag, indexes, default administrator.
    """

    def __init__(
        self,
        executor: RetryExecutor,
        admin_username: Optional[str] = None,
        admin_password: Optional[str] = None,
        create_default_admin: bool = True,
    ):
        self.executor = executor
        self.admin_username = admin_username
        self.admin_password = admin_password
        self.create_default_admin = create_default_admin

    @classmethod
    def from_config(cls, executor: RetryExecutor) -> "SchemaInitializer":
        return cls(
            executor,
            admin_username=config.ADMIN_USERNAME,
            admin_password=config.ADMIN_PASSWORD,
            create_default_admin=config.CREATE_DEFAULT_ADMIN,
        )

    def run(self) -> None:
        """
        Initialize the schema. Marks the connection manager initialized on success.

        Raises:
            Whatever the executor raises; the manager is left uninitialized.
        """
        manager = self.executor.manager
        manager.mark_initialized(False)
        self.executor.check_connectivity()

        logger.info("Creating database tables...")
        self.create_tables()
        self.apply_migrations()
        self.seed_request_tag()
        logger.info("Creating indexes...")
        self.create_indexes()
        if self.create_default_admin:
            self.bootstrap_admin()

        manager.mark_initialized(True)
        logger.info("Database schema initialized successfully.")

    def create_tables(self) -> None:
        self.executor.execute(SCHEMA_SQL, fetch=None)

    def apply_migrations(self) -> list[str]:
        """
        Add any column listed in COLUMN_MIGRATIONS that the catalog lacks.

        Returns:
            The 'table.column' names that were added.
        """
        def work(cur) -> list[str]:
            added = []
            for table, column, definition in COLUMN_MIGRATIONS:
                cur.execute(
                    """
                    SELECT 1 FROM information_schema.columns
                    WHERE table_schema = current_schema()
                      AND table_name = %s AND column_name = %s;
                    """,
                    (table, column),
                )
                if cur.fetchone() is not None:
                    continue
                statement = sql.SQL("ALTER TABLE {} ADD COLUMN {} ").format(
                    sql.Identifier(table), sql.Identifier(column)
                ) + sql.SQL(definition)
                cur.execute(statement)
                added.append(f"{table}.{column}")
            return added

        added = self.executor.run(work)
        for name in added:
            logger.info(f"Added missing column {name}")
        return added

    def seed_request_tag(self) -> bool:
        """
        Create the reserved `request` tag if it does not exist yet.

        Returns:
            True if the tag was inserted by this call.
        """
        def work(cur) -> bool:
            cur.execute("SELECT id FROM tags WHERE name = %s;", (REQUEST_TAG_NAME,))
            if cur.fetchone() is not None:
                return False
            cur.execute(
                "INSERT INTO tags (name, color) VALUES (%s, %s) ON CONFLICT (name) DO NOTHING;",
                (REQUEST_TAG_NAME, REQUEST_TAG_COLOR),
            )
            return cur.rowcount > 0

        created = self.executor.run(work)
        if created:
            logger.info(f"Reserved tag '{REQUEST_TAG_NAME}' created.")
        return created

    def create_indexes(self) -> None:
        self.executor.execute(INDEXES_SQL, fetch=None)

    def bootstrap_admin(self) -> bool:
        """
        Create the default administrator when no admin account exists.

        Returns:
            True if an account was created.
        """
        if not self.admin_username or not self.admin_password:
            logger.warning("Default admin credentials not configured; skipping bootstrap.")
            return False

        password_hash = hash_password(self.admin_password)

        def work(cur) -> bool:
            cur.execute("SELECT COUNT(*) AS count FROM users WHERE is_admin = TRUE;")
            if cur.fetchone()["count"] > 0:
                return False
            cur.execute(
                """
                INSERT INTO users (username, password, is_admin) VALUES (%s, %s, TRUE)
                ON CONFLICT (username) DO NOTHING;
                """,
                (self.admin_username, password_hash),
            )
            return cur.rowcount > 0

        created = self.executor.run(work)
        if created:
            logger.info(f"Default admin user created: {self.admin_username}")
        return created


def describe_init_failure(error: Exception, db_config) -> str:
    """Operator guidance for a failed initialization, keyed on the failure kind."""
    kind = getattr(error, "kind", None)
    target = db_config.describe()
    if kind == "connection_refused":
        return (
            f"Could not connect to PostgreSQL at {target}. Check that the server is "
            "running, the credentials and DATABASE_URL are correct, and the firewall "
            "allows the connection."
        )
    if kind == "connect_timeout":
        return (
            f"Timed out connecting to PostgreSQL at {target}. The server may be "
            "waking up or overloaded; try again in a moment."
        )
    if kind == "host_not_found":
        return f"Host not found for {target}. Check DB_HOST / DATABASE_URL."
    code = getattr(error, "pgcode", None)
    suffix = f" (code {code})" if code else ""
    return f"Failed to initialize the database: {error}{suffix}"


if __name__ == "__main__":
    from db.connection import ConnectionManager, DatabaseConfig

    db_config = DatabaseConfig.from_env()
    manager = ConnectionManager(db_config)
    try:
        SchemaInitializer.from_config(RetryExecutor(manager)).run()
        print("Database schema created successfully.")
    except Exception as e:
        print(describe_init_failure(e, db_config))
        raise SystemExit(1)
    finally:
        manager.close()
