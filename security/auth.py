"""
security/auth.py
-----------------
Authentication decorators for the Telegram handlers.

The caller's session is looked up on every update and the account is
re-read from the database, so deleted or demoted users lose their rights
immediately. The resolved account is stored in
``context.user_data["current_user"]`` for the wrapped handler.
"""

import asyncio
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from utils.logger import get_logger

logger = get_logger(__name__)

CURRENT_USER_KEY = "current_user"


def current_user(context: ContextTypes.DEFAULT_TYPE) -> Optional[dict]:
    """The account resolved by login_required / admin_required, if any."""
    return context.user_data.get(CURRENT_USER_KEY)


async def _resolve_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Optional[dict]:
    services = context.bot_data["services"]
    tg_user = update.effective_user
    session = services.sessions.get(tg_user.id)
    if session is None:
        context.user_data.pop(CURRENT_USER_KEY, None)
        await update.message.reply_text("🔒 You are not logged in. Use /login <username> <password>.")
        return None
    account = await asyncio.to_thread(services.users.get_by_id, session.user_id)
    if account is None:
        services.sessions.logout(tg_user.id)
        context.user_data.pop(CURRENT_USER_KEY, None)
        await update.message.reply_text("🔒 Your account no longer exists. Please log in again.")
        return None
    context.user_data[CURRENT_USER_KEY] = account
    return account


def login_required(func: Callable):
    """
    Decorator that restricts a handler to logged-in users.

    Usage:
        @login_required
        async def my_handler(update, context):
            user = current_user(context)
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        if not update.effective_user or not update.message:
            return
        if await _resolve_user(update, context) is None:
            return
        return await func(update, context, *args, **kwargs)

    return wrapper


def admin_required(func: Callable):
    """Decorator that restricts a handler to logged-in administrators."""
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        if not update.effective_user or not update.message:
            return
        account = await _resolve_user(update, context)
        if account is None:
            return
        if not account["is_admin"]:
            logger.warning(
                f"🚫 Admin command refused: user #{account['id']} ({account['username']}), "
                f"telegram_id={update.effective_user.id}"
            )
            await update.message.reply_text("⛔ Access denied. Administrator rights required.")
            return
        return await func(update, context, *args, **kwargs)

    return wrapper
