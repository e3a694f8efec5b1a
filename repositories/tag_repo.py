"""
repositories/tag_repo.py
-------------------------
Data access layer for tags.
"""

from typing import Optional

from db.executor import RetryExecutor
from models.tag import REQUEST_TAG_NAME, Tag
from utils.logger import get_logger

logger = get_logger(__name__)


class ReservedTagError(ValueError):
    """The reserved `request` tag cannot be renamed or deleted."""


class TagRepository:
    """Repository for CRUD operations on the tags table."""

    def __init__(self, executor: RetryExecutor):
        self.db = executor

    def get_all(self) -> list[Tag]:
        rows = self.db.execute("SELECT * FROM tags ORDER BY name ASC;")
        return [self._row_to_tag(r) for r in rows]

    def get_by_id(self, tag_id: int) -> Optional[Tag]:
        row = self.db.execute("SELECT * FROM tags WHERE id = %s;", (tag_id,), fetch="one")
        return self._row_to_tag(row) if row else None

    def get_by_name(self, name: str) -> Optional[Tag]:
        row = self.db.execute("SELECT * FROM tags WHERE name = %s;", (name,), fetch="one")
        return self._row_to_tag(row) if row else None

    def create(self, tag: Tag) -> Tag:
        """
        Insert a tag.

        Raises:
            ConstraintViolationError: If a tag with that name exists.
        """
        row = self.db.execute(
            "INSERT INTO tags (name, color) VALUES (%s, %s) RETURNING *;",
            (tag.name, tag.color or None),
            fetch="one",
        )
        logger.info(f"Created tag #{row['id']} ({tag.name})")
        return self._row_to_tag(row)

    def update(self, tag_id: int, tag: Tag) -> Optional[Tag]:
        """
        Rename / recolor a tag.

        Returns:
            The updated Tag, or None if it does not exist.

        Raises:
            ReservedTagError: When renaming the reserved `request` tag.
        """
        def work(cur) -> Optional[dict]:
            cur.execute("SELECT name FROM tags WHERE id = %s FOR UPDATE;", (tag_id,))
            current = cur.fetchone()
            if current is None:
                return None
            if current["name"] == REQUEST_TAG_NAME and tag.name != REQUEST_TAG_NAME:
                raise ReservedTagError(f"The '{REQUEST_TAG_NAME}' tag cannot be renamed.")
            cur.execute(
                "UPDATE tags SET name = %s, color = %s WHERE id = %s RETURNING *;",
                (tag.name, tag.color or None, tag_id),
            )
            return cur.fetchone()

        row = self.db.run(work)
        return self._row_to_tag(row) if row else None

    def delete(self, tag_id: int) -> bool:
        """
        Delete a tag. Its card associations are removed; the cards are kept.

        Raises:
            ReservedTagError: For the reserved `request` tag.
        """
        def work(cur) -> bool:
            cur.execute("SELECT name FROM tags WHERE id = %s;", (tag_id,))
            current = cur.fetchone()
            if current is None:
                return False
            if current["name"] == REQUEST_TAG_NAME:
                raise ReservedTagError(f"The '{REQUEST_TAG_NAME}' tag cannot be deleted.")
            cur.execute("DELETE FROM tags WHERE id = %s;", (tag_id,))
            return True

        deleted = self.db.run(work)
        if deleted:
            logger.info(f"Deleted tag #{tag_id}")
        return deleted

    @staticmethod
    def _row_to_tag(row: dict) -> Tag:
        return Tag(id=row["id"], name=row["name"], color=row["color"], created_at=row["created_at"])
