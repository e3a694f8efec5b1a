"""
repositories/access_repo.py
----------------------------
Data access layer for explicit card grants (card_user_access).
A row means the user may see the card's links.
"""

from db.executor import RetryExecutor
from utils.logger import get_logger

logger = get_logger(__name__)


class AccessRepository:
    """Repository for the card_user_access join table."""

    def __init__(self, executor: RetryExecutor):
        self.db = executor

    def exists(self, card_id: int, user_id: int) -> bool:
        row = self.db.execute(
            "SELECT COUNT(*) AS count FROM card_user_access WHERE user_id = %s AND card_id = %s;",
            (user_id, card_id),
            fetch="one",
        )
        return int(row["count"]) > 0

    def grant(self, card_id: int, user_id: int) -> bool:
        """
        Grant access. Repeating a grant is a no-op.

        Returns:
            True if a new grant row was inserted.

        Raises:
            ForeignKeyViolationError: If the card or the user does not exist.
        """
        def work(cur) -> bool:
            cur.execute(
                "SELECT 1 FROM card_user_access WHERE card_id = %s AND user_id = %s;",
                (card_id, user_id),
            )
            if cur.fetchone() is not None:
                return False
            cur.execute(
                """
                INSERT INTO card_user_access (card_id, user_id) VALUES (%s, %s)
                ON CONFLICT (card_id, user_id) DO NOTHING;
                """,
                (card_id, user_id),
            )
            return cur.rowcount > 0

        created = self.db.run(work)
        if created:
            logger.info(f"Granted user #{user_id} access to card #{card_id}")
        return created

    def revoke(self, card_id: int, user_id: int) -> bool:
        """Remove a grant. Returns False (not an error) when there was none."""
        removed = self.db.execute(
            "DELETE FROM card_user_access WHERE card_id = %s AND user_id = %s;",
            (card_id, user_id),
            fetch=None,
        ) > 0
        if removed:
            logger.info(f"Revoked user #{user_id} access to card #{card_id}")
        return removed

    def users_for_card(self, card_id: int) -> list[dict]:
        """Users holding a grant on the card, by username, with the grant time."""
        rows = self.db.execute(
            """
            SELECT u.id, u.username, u.is_admin, cua.created_at
            FROM card_user_access cua
            JOIN users u ON cua.user_id = u.id
            WHERE cua.card_id = %s
            ORDER BY u.username ASC;
            """,
            (card_id,),
        )
        return [dict(r) for r in rows]

    def cards_for_user(self, user_id: int) -> list[int]:
        rows = self.db.execute(
            "SELECT card_id FROM card_user_access WHERE user_id = %s ORDER BY card_id ASC;",
            (user_id,),
        )
        return [r["card_id"] for r in rows]
