"""
services/request_service.py
----------------------------
Request promotion workflow.

A user request is materialized immediately as a real card, carrying only
the reserved `request` tag and a title prefix marking it as pending, so it
shows up in listings and can be filtered before anyone moderates it.

Moderation only records the status: approving or rejecting a request does
not touch its card. Turning the card into a regular one is a manual edit.
"""

from typing import Optional

from db.executor import RetryExecutor
from models.card import Card
from models.card_request import (
    PENDING,
    PENDING_TITLE_PREFIX,
    CardRequest,
    validate_status,
)
from models.tag import REQUEST_TAG_NAME
from repositories.card_repo import CardRepository
from repositories.card_request_repo import CardRequestRepository
from utils.logger import get_logger

logger = get_logger(__name__)


class RequestService:
    """
    Handles the lifecycle of card requests.

    Responsibilities:
        - Create a request together with its pending card, atomically.
        - Record moderation decisions (pending / approved / rejected).
        - List, fetch and delete requests.
    """

    def __init__(self, executor: RetryExecutor, request_repo: CardRequestRepository):
        self.db = executor
        self.repo = request_repo

    def create_request(
        self,
        title: str,
        requesting_user_id: Optional[int],
        description: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> CardRequest:
        """
        Insert a pending request and the card that represents it.

        The request row, the card, its `request` tag association and the
        back-filled card_id are written in one transaction.

        Returns:
            The stored request, with ``card_id`` set.
        """
        if not title or not title.strip():
            raise ValueError("A request needs a title.")
        request = CardRequest(
            title=title.strip(),
            description=description,
            icon=icon,
            thumbnail_url=thumbnail_url,
            requested_by=requesting_user_id,
            status=PENDING,
        )

        def work(cur) -> CardRequest:
            request_id = CardRequestRepository.insert(cur, request)

            cur.execute("SELECT id FROM tags WHERE name = %s;", (REQUEST_TAG_NAME,))
            tag = cur.fetchone()
            if tag is None:
                logger.warning(f"Reserved tag '{REQUEST_TAG_NAME}' missing; card left untagged.")
            card = CardRepository.insert(cur, Card(
                title=f"{PENDING_TITLE_PREFIX} {request.title}",
                description=request.description,
                thumbnail_url=request.thumbnail_url,
                tag_ids=[tag["id"]] if tag else [],
            ))

            CardRequestRepository.attach_card(cur, request_id, card.id)
            return CardRequestRepository.fetch(cur, request_id)

        created = self.db.run(work)
        logger.info(
            f"Card request #{created.id} by user #{requesting_user_id} created as card #{created.card_id}"
        )
        return created

    def update_status(self, request_id: int, status: str) -> Optional[CardRequest]:
        """
        Record a moderation decision. The request's card is not modified.

        Raises:
            InvalidStatusError: If ``status`` is not pending/approved/rejected.
        """
        status = validate_status(status)
        updated = self.repo.update_status(request_id, status)
        if updated:
            logger.info(f"Card request #{request_id} marked {status}")
        return updated

    def list_requests(self, status: Optional[str] = None) -> list[CardRequest]:
        if status:
            status = validate_status(status)
        return self.repo.get_all(status)

    def get_request(self, request_id: int) -> Optional[CardRequest]:
        return self.repo.get_by_id(request_id)

    def delete_request(self, request_id: int) -> bool:
        deleted = self.repo.delete(request_id)
        if deleted:
            logger.info(f"Deleted card request #{request_id}")
        return deleted
