"""
utils/formatting.py
-------------------
Plain-text rendering of records for chat replies, and translation of
errors into messages a user can act on.
"""

from typing import Iterable, Optional

import config
from db.errors import (
    ConfigurationMissingError,
    ConstraintViolationError,
    ForeignKeyViolationError,
    TransientConnectivityError,
)
from models.card import Card, Link
from models.card_request import CardRequest, InvalidStatusError
from models.tag import Tag
from repositories.tag_repo import ReservedTagError


def format_card(card: Card, tags_by_id: Optional[dict[int, Tag]] = None) -> str:
    lines = [str(card)]
    if card.description:
        lines.append(f"   {card.description}")
    if card.tag_ids:
        names = [
            tags_by_id[t].name if tags_by_id and t in tags_by_id else f"#{t}"
            for t in card.tag_ids
        ]
        lines.append(f"   🏷️ {', '.join(names)}")
    return "\n".join(lines)


def format_cards(cards: Iterable[Card], tags: Iterable[Tag] = ()) -> str:
    tags_by_id = {t.id: t for t in tags}
    cards = list(cards)
    if not cards:
        return "📭 No cards found."
    return "\n\n".join(format_card(c, tags_by_id) for c in cards)


def format_links(links: Iterable[Link]) -> str:
    links = list(links)
    if not links:
        return "📭 This card has no links."
    return "\n".join(f"🔗 #{link.id} {link}" for link in links)


def format_tags(tags: Iterable[Tag]) -> str:
    tags = list(tags)
    if not tags:
        return "📭 No tags yet."
    return "\n".join(f"🏷️ {tag}" for tag in tags)


def format_request(request: CardRequest) -> str:
    line = f"📝 {request}"
    if request.card_id:
        line += f" → card #{request.card_id}"
    return line


def format_requests(requests: Iterable[CardRequest]) -> str:
    requests = list(requests)
    if not requests:
        return "📭 No requests."
    return "\n".join(format_request(r) for r in requests)


def format_users(users: Iterable[dict]) -> str:
    users = list(users)
    if not users:
        return "📭 No users."
    return "\n".join(
        f"👤 #{u['id']} {u['username']}{' (admin)' if u['is_admin'] else ''}" for u in users
    )


def format_health(health: dict) -> str:
    if health["status"] == "healthy":
        return (
            "💚 Database healthy\n"
            f"  Pool size: {health['pool_size']}\n"
            f"  Idle: {health['idle_connections']}\n"
            f"  Waiting: {health['waiting_clients']}"
        )
    code = f" (code {health['code']})" if health.get("code") else ""
    return f"❤️ Database unhealthy: {health['error']}{code}"


def describe_error(error: BaseException) -> str:
    """
    Map an exception to a user-facing message.

    Conflicts and missing references get specific messages; everything else
    is a generic failure, with the detail shown only in development.
    """
    if isinstance(error, ConstraintViolationError):
        return "⚠️ That already exists."
    if isinstance(error, ForeignKeyViolationError):
        return "⚠️ Not found: the referenced card, tag or user does not exist."
    if isinstance(error, ConfigurationMissingError):
        return "⚠️ The database is not configured."
    if isinstance(error, TransientConnectivityError):
        return "⚠️ The database is unreachable right now. Please try again shortly."
    if isinstance(error, (InvalidStatusError, ReservedTagError)):
        return f"⚠️ {error}"
    message = "❌ Something went wrong."
    if config.APP_ENV == "development":
        message += f"\n{type(error).__name__}: {error}"
    return message
