"""
handlers/request_handler.py
----------------------------
Card requests: submission by users, moderation by administrators.
"""

import asyncio

from telegram import Update
from telegram.ext import ContextTypes

from models.card_request import APPROVED, REJECTED
from security.auth import admin_required, current_user, login_required
from security.rate_limiter import rate_limited
from utils.formatting import format_request, format_requests
from utils.logger import get_logger
from utils.parsing import parse_int, split_fields

logger = get_logger(__name__)


@rate_limited
@login_required
async def request_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /request <title> | <description> | <image url>.
    The request shows up at once as a card tagged 'request'.
    """
    services = context.bot_data["services"]
    account = current_user(context)
    title, description, thumbnail_url = split_fields(context.args, 3)
    if not title:
        await update.message.reply_text("⚠️ Usage: /request <title> | <description> | <image url>")
        return

    request = await asyncio.to_thread(
        services.requests.create_request,
        title,
        account["id"],
        description=description or None,
        thumbnail_url=thumbnail_url or None,
    )
    await update.message.reply_text(
        f"✅ Request #{request.id} submitted. It is visible as card #{request.card_id} "
        "until an administrator reviews it."
    )


@rate_limited
@admin_required
async def requests_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /requests [pending|approved|rejected]."""
    services = context.bot_data["services"]
    status = context.args[0] if context.args else None
    requests = await asyncio.to_thread(services.requests.list_requests, status)
    await update.message.reply_text(format_requests(requests))


async def _moderate(update: Update, context: ContextTypes.DEFAULT_TYPE, status: str) -> None:
    services = context.bot_data["services"]
    request_id = parse_int(context.args[0]) if context.args else None
    if request_id is None:
        await update.message.reply_text(f"⚠️ Usage: /{'approve' if status == APPROVED else 'reject'} <request id>")
        return

    request = await asyncio.to_thread(services.requests.update_status, request_id, status)
    if request is None:
        await update.message.reply_text("⚠️ Request not found.")
        return
    await update.message.reply_text(format_request(request))


@rate_limited
@admin_required
async def approve_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _moderate(update, context, APPROVED)


@rate_limited
@admin_required
async def reject_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _moderate(update, context, REJECTED)


@rate_limited
@admin_required
async def delete_request_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delrequest <id>. The card created for the request is kept."""
    services = context.bot_data["services"]
    request_id = parse_int(context.args[0]) if context.args else None
    if request_id is None:
        await update.message.reply_text("⚠️ Usage: /delrequest <request id>")
        return

    if await asyncio.to_thread(services.requests.delete_request, request_id):
        await update.message.reply_text(f"🗑️ Request #{request_id} deleted.")
    else:
        await update.message.reply_text("⚠️ Request not found.")
