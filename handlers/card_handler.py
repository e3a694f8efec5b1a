"""
handlers/card_handler.py
-------------------------
Browsing commands: /cards, /card, /links, /tags.
Listing is open to everyone; opening a card's links is checked against
the card's access list.
"""

import asyncio
from typing import Iterable

from telegram import Update
from telegram.ext import ContextTypes

from models.tag import Tag
from security.auth import current_user, login_required
from security.rate_limiter import rate_limited
from utils.formatting import format_card, format_cards, format_links, format_tags
from utils.logger import get_logger
from utils.parsing import parse_int, split_search

logger = get_logger(__name__)


def resolve_tag_ids(tags: Iterable[Tag], refs: Iterable[str]) -> tuple[list[int], list[str]]:
    """
    Turn tag references (names or numeric ids) into tag ids.

    Returns:
        (known tag ids, references that matched no tag)
    """
    by_name = {t.name.lower(): t.id for t in tags}
    known_ids = {t.id for t in tags}
    ids, unknown = [], []
    for ref in refs:
        tag_id = parse_int(ref)
        if tag_id is not None and tag_id in known_ids:
            ids.append(tag_id)
        elif ref.lower() in by_name:
            ids.append(by_name[ref.lower()])
        else:
            unknown.append(ref)
    return ids, unknown


@rate_limited
async def cards_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /cards [words] [#tag ...].

    Examples:
        /cards               → every card
        /cards python        → title/description contains 'python'
        /cards #request      → cards tagged 'request'
        /cards docs #3 #web  → both filters combined
    """
    services = context.bot_data["services"]
    search, tag_refs = split_search(context.args)
    tags = await asyncio.to_thread(services.tags.get_all)
    tag_ids, unknown = resolve_tag_ids(tags, tag_refs)
    if unknown:
        await update.message.reply_text(f"⚠️ Unknown tag(s): {', '.join(unknown)}")
        return

    cards = await asyncio.to_thread(services.cards.get_all, search, tag_ids)
    await update.message.reply_text(format_cards(cards, tags))


@rate_limited
async def card_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /card <id>."""
    services = context.bot_data["services"]
    card_id = parse_int(context.args[0]) if context.args else None
    if card_id is None:
        await update.message.reply_text("⚠️ Usage: /card <id>")
        return

    card = await asyncio.to_thread(services.cards.get_by_id, card_id)
    if card is None:
        await update.message.reply_text("⚠️ Card not found.")
        return
    tags = await asyncio.to_thread(services.tags.get_all)
    tags_by_id = {t.id: t for t in tags}
    await update.message.reply_text(format_card(card, tags_by_id))


@rate_limited
@login_required
async def links_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /links <card id> - only for users holding a grant, or admins."""
    services = context.bot_data["services"]
    account = current_user(context)
    card_id = parse_int(context.args[0]) if context.args else None
    if card_id is None:
        await update.message.reply_text("⚠️ Usage: /links <card id>")
        return

    allowed = await asyncio.to_thread(
        services.access.has_access, account["id"], card_id, account["is_admin"]
    )
    if not allowed:
        logger.info(f"User #{account['id']} denied links of card #{card_id}")
        await update.message.reply_text("⛔ You do not have permission to view this card's links.")
        return

    links = await asyncio.to_thread(services.links.list_for_card, card_id)
    await update.message.reply_text(
        format_links(links),
        disable_web_page_preview=True,
    )


@rate_limited
async def tags_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = context.bot_data["services"]
    await update.message.reply_text(format_tags(await asyncio.to_thread(services.tags.get_all)))
