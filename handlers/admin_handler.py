"""
handlers/admin_handler.py
--------------------------
Administrator commands: cards, links, tags, users, grants and health.
"""

import asyncio

from telegram import Update
from telegram.ext import ContextTypes

from handlers.card_handler import resolve_tag_ids
from models.card import Card, Link
from models.tag import Tag
from security.auth import admin_required, current_user
from security.rate_limiter import rate_limited
from utils.formatting import format_card, format_health, format_links, format_users
from utils.logger import get_logger
from utils.parsing import parse_int, parse_tag_list, split_fields

logger = get_logger(__name__)


# ── Cards ─────────────────────────────────────────────────

async def _card_from_args(update: Update, services, args) -> Card | None:
    title, description, tags_text = split_fields(args, 3)
    if not title:
        return None
    tags = await asyncio.to_thread(services.tags.get_all)
    tag_ids, unknown = resolve_tag_ids(tags, parse_tag_list(tags_text))
    if unknown:
        await update.message.reply_text(f"⚠️ Unknown tag(s): {', '.join(unknown)}")
        return None
    return Card(title=title, description=description or None, tag_ids=tag_ids)


@rate_limited
@admin_required
async def add_card_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addcard <title> | <description> | <tag, tag>."""
    services = context.bot_data["services"]
    if not context.args:
        await update.message.reply_text("⚠️ Usage: /addcard <title> | <description> | <tag, tag>")
        return
    card = await _card_from_args(update, services, context.args)
    if card is None:
        return
    created = await asyncio.to_thread(services.cards.create, card)
    await update.message.reply_text(f"✅ Card created:\n{format_card(created)}")


@rate_limited
@admin_required
async def edit_card_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /editcard <id> <title> | <description> | <tag, tag>.
    The tag list replaces the card's current tags.
    """
    services = context.bot_data["services"]
    card_id = parse_int(context.args[0]) if context.args else None
    if card_id is None or len(context.args) < 2:
        await update.message.reply_text("⚠️ Usage: /editcard <id> <title> | <description> | <tag, tag>")
        return

    existing = await asyncio.to_thread(services.cards.get_by_id, card_id)
    if existing is None:
        await update.message.reply_text("⚠️ Card not found.")
        return
    card = await _card_from_args(update, services, context.args[1:])
    if card is None:
        return
    card.icon, card.color, card.thumbnail_url = existing.icon, existing.color, existing.thumbnail_url

    updated = await asyncio.to_thread(services.cards.update, card_id, card)
    await update.message.reply_text(f"✏️ Card updated:\n{format_card(updated)}")


@rate_limited
@admin_required
async def delete_card_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = context.bot_data["services"]
    card_id = parse_int(context.args[0]) if context.args else None
    if card_id is None:
        await update.message.reply_text("⚠️ Usage: /delcard <id>")
        return
    if await asyncio.to_thread(services.cards.delete, card_id):
        await update.message.reply_text(f"🗑️ Card #{card_id} deleted.")
    else:
        await update.message.reply_text("⚠️ Card not found.")


# ── Links ─────────────────────────────────────────────────

@rate_limited
@admin_required
async def add_link_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addlink <card id> <url> [title]. New links go to the end of the list."""
    services = context.bot_data["services"]
    card_id = parse_int(context.args[0]) if context.args else None
    if card_id is None or len(context.args) < 2:
        await update.message.reply_text("⚠️ Usage: /addlink <card id> <url> [title]")
        return

    url, title = context.args[1], " ".join(context.args[2:]) or None
    position = len(await asyncio.to_thread(services.links.list_for_card, card_id))
    link = await asyncio.to_thread(
        services.links.create, Link(card_id=card_id, url=url, title=title, order_index=position)
    )
    await update.message.reply_text(f"✅ Link #{link.id} added to card #{card_id}.")


@rate_limited
@admin_required
async def delete_link_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /dellink <link id> - replies with the links left on the card."""
    services = context.bot_data["services"]
    link_id = parse_int(context.args[0]) if context.args else None
    if link_id is None:
        await update.message.reply_text("⚠️ Usage: /dellink <link id>")
        return

    remaining = await asyncio.to_thread(services.links.delete, link_id)
    if remaining is None:
        await update.message.reply_text("⚠️ Link not found.")
        return
    await update.message.reply_text(
        f"🗑️ Link #{link_id} deleted. Remaining:\n{format_links(remaining)}",
        disable_web_page_preview=True,
    )


# ── Tags ──────────────────────────────────────────────────

@rate_limited
@admin_required
async def add_tag_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addtag <name> [color]."""
    services = context.bot_data["services"]
    if not context.args:
        await update.message.reply_text("⚠️ Usage: /addtag <name> [color]")
        return
    color = context.args[1] if len(context.args) > 1 else None
    tag = await asyncio.to_thread(services.tags.create, Tag(name=context.args[0], color=color))
    await update.message.reply_text(f"✅ Tag created: {tag}")


@rate_limited
@admin_required
async def delete_tag_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = context.bot_data["services"]
    tag_id = parse_int(context.args[0]) if context.args else None
    if tag_id is None:
        await update.message.reply_text("⚠️ Usage: /deltag <id>")
        return
    if await asyncio.to_thread(services.tags.delete, tag_id):
        await update.message.reply_text(f"🗑️ Tag #{tag_id} deleted.")
    else:
        await update.message.reply_text("⚠️ Tag not found.")


# ── Users ─────────────────────────────────────────────────

@rate_limited
@admin_required
async def users_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = context.bot_data["services"]
    users = await asyncio.to_thread(services.users.get_all)
    await update.message.reply_text(format_users(users))


@rate_limited
@admin_required
async def add_user_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /adduser <username> <password> [admin]."""
    services = context.bot_data["services"]
    if len(context.args) < 2:
        await update.message.reply_text("⚠️ Usage: /adduser <username> <password> [admin]")
        return
    is_admin = len(context.args) > 2 and context.args[2].lower() == "admin"
    user = await asyncio.to_thread(
        services.users.create, context.args[0], context.args[1], is_admin=is_admin
    )
    await update.message.reply_text(f"✅ User #{user['id']} {user['username']} created.")


@rate_limited
@admin_required
async def delete_user_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deluser <id>. Administrators cannot delete themselves."""
    services = context.bot_data["services"]
    user_id = parse_int(context.args[0]) if context.args else None
    if user_id is None:
        await update.message.reply_text("⚠️ Usage: /deluser <id>")
        return
    if user_id == current_user(context)["id"]:
        await update.message.reply_text("⚠️ You cannot delete your own account.")
        return
    if await asyncio.to_thread(services.users.delete, user_id):
        services.sessions.drop_user(user_id)
        await update.message.reply_text(f"🗑️ User #{user_id} deleted.")
    else:
        await update.message.reply_text("⚠️ User not found.")


# ── Access grants ─────────────────────────────────────────

def _card_and_user(args) -> tuple[int | None, int | None]:
    if len(args) < 2:
        return None, None
    return parse_int(args[0]), parse_int(args[1])


@rate_limited
@admin_required
async def grant_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /grant <card id> <user id>."""
    services = context.bot_data["services"]
    card_id, user_id = _card_and_user(context.args)
    if card_id is None or user_id is None:
        await update.message.reply_text("⚠️ Usage: /grant <card id> <user id>")
        return
    if await asyncio.to_thread(services.cards.get_by_id, card_id) is None:
        await update.message.reply_text("⚠️ Card not found.")
        return
    if await asyncio.to_thread(services.users.get_by_id, user_id) is None:
        await update.message.reply_text("⚠️ User not found.")
        return

    await asyncio.to_thread(services.access.grant_access, card_id, user_id)
    await update.message.reply_text(f"🔓 User #{user_id} can now open card #{card_id}.")


@rate_limited
@admin_required
async def revoke_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /revoke <card id> <user id>."""
    services = context.bot_data["services"]
    card_id, user_id = _card_and_user(context.args)
    if card_id is None or user_id is None:
        await update.message.reply_text("⚠️ Usage: /revoke <card id> <user id>")
        return
    await asyncio.to_thread(services.access.revoke_access, card_id, user_id)
    await update.message.reply_text(f"🔒 User #{user_id} no longer has access to card #{card_id}.")


@rate_limited
@admin_required
async def access_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /access <card id> - list users holding a grant."""
    services = context.bot_data["services"]
    card_id = parse_int(context.args[0]) if context.args else None
    if card_id is None:
        await update.message.reply_text("⚠️ Usage: /access <card id>")
        return
    users = await asyncio.to_thread(services.access.users_with_access, card_id)
    if not users:
        await update.message.reply_text(f"🔒 No user holds a grant on card #{card_id} (admins always can).")
        return
    await update.message.reply_text(format_users(users))


# ── Health ────────────────────────────────────────────────

@rate_limited
@admin_required
async def health_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = context.bot_data["services"]
    health = await asyncio.to_thread(services.manager.health_check)
    await update.message.reply_text(format_health(health))
