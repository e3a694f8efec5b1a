"""
repositories/card_repo.py
--------------------------
Data access layer for cards and their tag associations (card_tags).
"""

from typing import Iterable, Optional

from db.executor import RetryExecutor
from models.card import Card
from utils.logger import get_logger

logger = get_logger(__name__)

_SELECT_WITH_TAGS = """
    SELECT c.*,
           COALESCE(
               ARRAY_AGG(ct.tag_id ORDER BY ct.tag_id) FILTER (WHERE ct.tag_id IS NOT NULL),
               '{}'
           ) AS tag_ids
    FROM cards c
    LEFT JOIN card_tags ct ON ct.card_id = c.id
"""


def _like_pattern(text: str) -> str:
    """Case-insensitive substring pattern with LIKE wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _unique(ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(int(i) for i in ids))


class CardRepository:
    """Repository for CRUD operations on the cards table."""

    def __init__(self, executor: RetryExecutor):
        self.db = executor

    # ── READ ──────────────────────────────────────────────

    def get_all(self, search: str = "", tag_ids: Optional[Iterable[int]] = None) -> list[Card]:
        """
        List cards, optionally filtered.

        Args:
            search: Case-insensitive substring matched against title or description.
            tag_ids: Keep cards carrying at least one of these tags.

        Returns:
            Cards ordered by id, each with the full list of its tag ids.
        """
        sql = _SELECT_WITH_TAGS
        conditions: list[str] = []
        params: list = []
        if search:
            conditions.append("(c.title ILIKE %s OR c.description ILIKE %s)")
            pattern = _like_pattern(search)
            params.extend([pattern, pattern])
        tag_ids = _unique(tag_ids or [])
        if tag_ids:
            conditions.append(
                "EXISTS (SELECT 1 FROM card_tags f WHERE f.card_id = c.id AND f.tag_id = ANY(%s))"
            )
            params.append(tag_ids)
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " GROUP BY c.id ORDER BY c.id ASC;"
        return [self._row_to_card(r) for r in self.db.execute(sql, params)]

    def get_by_id(self, card_id: int) -> Optional[Card]:
        row = self.db.execute(
            _SELECT_WITH_TAGS + " WHERE c.id = %s GROUP BY c.id;", (card_id,), fetch="one"
        )
        return self._row_to_card(row) if row else None

    # ── CREATE ────────────────────────────────────────────

    def create(self, card: Card) -> Card:
        """
        Insert a card and its tag associations in one transaction.

        Raises:
            ForeignKeyViolationError: If a tag id does not exist.
        """
        created = self.db.run(lambda cur: self.insert(cur, card))
        logger.info(f"Created card #{created.id} ({created.title})")
        return created

    @classmethod
    def insert(cls, cur, card: Card) -> Card:
        """Insert using an open cursor, so callers can compose it into a larger transaction."""
        cur.execute(
            """
            INSERT INTO cards (title, description, icon, color, thumbnail_url)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *;
            """,
            (card.title, card.description or None, card.icon or None,
             card.color or None, card.thumbnail_url or None),
        )
        row = dict(cur.fetchone())
        row["tag_ids"] = cls._attach_tags(cur, row["id"], card.tag_ids)
        return cls._row_to_card(row)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, card_id: int, card: Card) -> Optional[Card]:
        """
        Update a card and replace its tags with ``card.tag_ids``.

        The row update, the removal of the old associations and the insertion
        of the new ones are one transaction.

        Returns:
            The updated Card, or None if it does not exist.
        """
        def work(cur) -> Optional[Card]:
            cur.execute(
                """
                UPDATE cards
                SET title = %s, description = %s, icon = %s, color = %s,
                    thumbnail_url = %s, updated_at = CURRENT_TIMESTAMP
                WHERE id = %s
                RETURNING *;
                """,
                (card.title, card.description or None, card.icon or None,
                 card.color or None, card.thumbnail_url or None, card_id),
            )
            row = cur.fetchone()
            if row is None:
                return None
            row = dict(row)
            cur.execute("DELETE FROM card_tags WHERE card_id = %s;", (card_id,))
            row["tag_ids"] = self._attach_tags(cur, card_id, card.tag_ids)
            return self._row_to_card(row)

        updated = self.db.run(work)
        if updated:
            logger.info(f"Updated card #{card_id} (tags={updated.tag_ids})")
        return updated

    # ── DELETE ────────────────────────────────────────────

    def delete(self, card_id: int) -> bool:
        """
        Delete a card. Links, tag associations and grants cascade; requests
        pointing at it keep a null card_id.
        """
        deleted = self.db.execute("DELETE FROM cards WHERE id = %s;", (card_id,), fetch=None) > 0
        if deleted:
            logger.info(f"Deleted card #{card_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _attach_tags(cur, card_id: int, tag_ids: Iterable[int]) -> list[int]:
        """Associate tags with a card; repeated ids are ignored."""
        ids = _unique(tag_ids or [])
        for tag_id in ids:
            cur.execute(
                "INSERT INTO card_tags (card_id, tag_id) VALUES (%s, %s) ON CONFLICT DO NOTHING;",
                (card_id, tag_id),
            )
        return sorted(ids)

    @staticmethod
    def _row_to_card(row: dict) -> Card:
        """Convert a database row to a Card domain object."""
        return Card(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            icon=row["icon"],
            color=row["color"],
            thumbnail_url=row["thumbnail_url"],
            tag_ids=list(row.get("tag_ids") or []),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
