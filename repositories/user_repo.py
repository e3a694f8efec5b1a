"""
repositories/user_repo.py
--------------------------
Data access layer for user accounts.

Users are returned as plain dicts. Only ``get_by_username`` includes the
``password`` (hash) key; every other read leaves it out entirely.
"""

from typing import Optional

from db.executor import RetryExecutor
from security.passwords import hash_password, verify_password
from utils.logger import get_logger

logger = get_logger(__name__)

_PUBLIC_COLUMNS = "id, username, is_admin, created_at"


class UserRepository:
    """Repository for CRUD operations on the users table."""

    def __init__(self, executor: RetryExecutor):
        self.db = executor

    # ── READ ──────────────────────────────────────────────

    def get_all(self) -> list[dict]:
        """All users, ordered by username, without password hashes."""
        rows = self.db.execute(f"SELECT {_PUBLIC_COLUMNS} FROM users ORDER BY username ASC;")
        return [dict(r) for r in rows]

    def get_by_id(self, user_id: int) -> Optional[dict]:
        row = self.db.execute(
            f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE id = %s;", (user_id,), fetch="one"
        )
        return dict(row) if row else None

    def get_by_username(self, username: str) -> Optional[dict]:
        """
        Fetch a user including the stored password hash (for credential checks).

        Returns:
            Dict with 'id', 'username', 'password', 'is_admin', 'created_at', or None.
        """
        row = self.db.execute(
            "SELECT id, username, password, is_admin, created_at FROM users WHERE username = %s;",
            (username,),
            fetch="one",
        )
        return dict(row) if row else None

    def count_admins(self) -> int:
        row = self.db.execute(
            "SELECT COUNT(*) AS count FROM users WHERE is_admin = TRUE;", fetch="one"
        )
        return int(row["count"])

    def verify_credentials(self, username: str, password: str) -> Optional[dict]:
        """
        Check a username/password pair.

        Returns:
            The user dict (without the hash) when the password matches, else None.
        """
        user = self.get_by_username(username)
        if user is None or not verify_password(user.pop("password"), password):
            return None
        return user

    # ── WRITE ─────────────────────────────────────────────

    def create(self, username: str, password: str, is_admin: bool = False) -> dict:
        """
        Insert a new user. The password is hashed before it is stored.

        Raises:
            ConstraintViolationError: If the username is taken.
        """
        row = self.db.execute(
            f"""
            INSERT INTO users (username, password, is_admin) VALUES (%s, %s, %s)
            RETURNING {_PUBLIC_COLUMNS};
            """,
            (username, hash_password(password), bool(is_admin)),
            fetch="one",
        )
        logger.info(f"Created user #{row['id']} ({username}, admin={bool(is_admin)})")
        return dict(row)

    def update(
        self,
        user_id: int,
        username: str,
        password: Optional[str] = None,
        is_admin: bool = False,
    ) -> Optional[dict]:
        """
        Update a user. Without a new password the stored hash is left untouched.

        Returns:
            The refreshed user dict, or None if no such user exists.
        """
        if password:
            sql = f"""
                UPDATE users SET username = %s, password = %s, is_admin = %s
                WHERE id = %s RETURNING {_PUBLIC_COLUMNS};
            """
            params = (username, hash_password(password), bool(is_admin), user_id)
        else:
            sql = f"""
                UPDATE users SET username = %s, is_admin = %s
                WHERE id = %s RETURNING {_PUBLIC_COLUMNS};
            """
            params = (username, bool(is_admin), user_id)
        row = self.db.execute(sql, params, fetch="one")
        if row:
            logger.info(f"Updated user #{user_id}")
        return dict(row) if row else None

    def delete(self, user_id: int) -> bool:
        """
        Delete a user. Their grants go with them; their requests keep a null requester.

        Returns:
            True if a row was deleted.
        """
        deleted = self.db.execute("DELETE FROM users WHERE id = %s;", (user_id,), fetch=None) > 0
        if deleted:
            logger.info(f"Deleted user #{user_id}")
        return deleted
