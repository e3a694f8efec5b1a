"""
services/access_service.py
---------------------------
Decides who may see a card's links.

Admins see everything without a lookup. For everyone else the grant table
is authoritative: no grant row, no access.
"""

from repositories.access_repo import AccessRepository
from utils.logger import get_logger

logger = get_logger(__name__)


class AccessService:
    """Card-level access control: explicit per-user grants plus admin bypass."""

    def __init__(self, access_repo: AccessRepository):
        self.repo = access_repo

    def has_access(self, user_id: int, card_id: int, is_admin: bool) -> bool:
        if is_admin:
            return True
        return self.repo.exists(card_id, user_id)

    def grant_access(self, card_id: int, user_id: int) -> bool:
        """Idempotent grant. Returns True when a new grant was recorded."""
        return self.repo.grant(card_id, user_id)

    def revoke_access(self, card_id: int, user_id: int) -> bool:
        """Revoke a grant; revoking a missing grant is not an error."""
        return self.repo.revoke(card_id, user_id)

    def users_with_access(self, card_id: int) -> list[dict]:
        return self.repo.users_for_card(card_id)

    def accessible_card_ids(self, user_id: int) -> list[int]:
        return self.repo.cards_for_user(user_id)
