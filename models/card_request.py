"""
models/card_request.py
----------------------
Domain model for user-submitted card requests.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

REQUEST_STATUSES: tuple[str, ...] = (PENDING, APPROVED, REJECTED)

# Prepended to the title of the card materialized from a pending request.
PENDING_TITLE_PREFIX = "[REQUEST]"


class InvalidStatusError(ValueError):
    """Raised for a request status outside REQUEST_STATUSES."""


def validate_status(status: str) -> str:
    """
    Normalize and check a moderation status.

    Raises:
        InvalidStatusError: If the status is not pending/approved/rejected.
    """
    normalized = (status or "").strip().lower()
    if normalized not in REQUEST_STATUSES:
        raise InvalidStatusError(
            f"Invalid status {status!r}; expected one of: {', '.join(REQUEST_STATUSES)}"
        )
    return normalized


@dataclass
class CardRequest:
    """
    A proposal for a new card, materialized immediately as a pending card.

    Attributes:
        id: Database primary key (None for new records).
        title: Requested card title.
        description: Optional description.
        icon: Optional icon.
        thumbnail_url: Optional image URL.
        requested_by: User id of the requester (None once that user is deleted).
        card_id: Card created for the request (None once that card is deleted).
        status: 'pending' | 'approved' | 'rejected'.
        requested_by_username: Joined from users when listing.
        created_at: Timestamp when the request was submitted.
    """
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    thumbnail_url: Optional[str] = None
    requested_by: Optional[int] = None
    card_id: Optional[int] = None
    status: str = PENDING
    requested_by_username: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def is_pending(self) -> bool:
        return self.status == PENDING

    def __str__(self) -> str:
        who = self.requested_by_username or "unknown"
        return f"#{self.id} [{self.status}] {self.title} (by {who})"
