"""
repositories/link_repo.py
--------------------------
Data access layer for card links.
"""

from typing import Optional

from db.executor import RetryExecutor
from models.card import Link
from utils.logger import get_logger

logger = get_logger(__name__)

_ORDERED_FOR_CARD = "SELECT * FROM links WHERE card_id = %s ORDER BY order_index ASC, id ASC;"


class LinkRepository:
    """Repository for CRUD operations on the links table."""

    def __init__(self, executor: RetryExecutor):
        self.db = executor

    def list_for_card(self, card_id: int) -> list[Link]:
        """Links of a card, by order_index then id."""
        return [self._row_to_link(r) for r in self.db.execute(_ORDERED_FOR_CARD, (card_id,))]

    def get_by_id(self, link_id: int) -> Optional[Link]:
        row = self.db.execute("SELECT * FROM links WHERE id = %s;", (link_id,), fetch="one")
        return self._row_to_link(row) if row else None

    def create(self, link: Link) -> Link:
        """
        Insert a link.

        Raises:
            ForeignKeyViolationError: If the card does not exist.
        """
        row = self.db.execute(
            """
            INSERT INTO links (card_id, title, url, order_index)
            VALUES (%s, %s, %s, %s)
            RETURNING *;
            """,
            (link.card_id, link.title or None, link.url, link.order_index or 0),
            fetch="one",
        )
        logger.info(f"Added link #{row['id']} to card #{link.card_id}")
        return self._row_to_link(row)

    def update(self, link_id: int, link: Link) -> Optional[Link]:
        row = self.db.execute(
            """
            UPDATE links SET title = %s, url = %s, order_index = %s
            WHERE id = %s
            RETURNING *;
            """,
            (link.title or None, link.url, link.order_index or 0, link_id),
            fetch="one",
        )
        return self._row_to_link(row) if row else None

    def delete(self, link_id: int) -> Optional[list[Link]]:
        """
        Delete a link and return what is left on its card.

        Returns:
            The remaining links of the parent card, in order, or None if
            the link did not exist.
        """
        def work(cur) -> Optional[list[dict]]:
            cur.execute("DELETE FROM links WHERE id = %s RETURNING card_id;", (link_id,))
            row = cur.fetchone()
            if row is None:
                return None
            cur.execute(_ORDERED_FOR_CARD, (row["card_id"],))
            return cur.fetchall()

        remaining = self.db.run(work)
        if remaining is None:
            return None
        logger.info(f"Deleted link #{link_id}")
        return [self._row_to_link(r) for r in remaining]

    @staticmethod
    def _row_to_link(row: dict) -> Link:
        return Link(
            id=row["id"],
            card_id=row["card_id"],
            title=row["title"],
            url=row["url"],
            order_index=row["order_index"] or 0,
            created_at=row["created_at"],
        )
