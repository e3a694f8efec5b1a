"""
handlers/auth_handler.py
-------------------------
Handles /login, /logout and /whoami.
"""

import asyncio

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from security.auth import CURRENT_USER_KEY, current_user, login_required
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)


@rate_limited
async def login_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /login <username> <password>.
    The message holding the password is deleted once read.
    """
    services = context.bot_data["services"]
    tg_user = update.effective_user

    if len(context.args) != 2:
        await update.message.reply_text("⚠️ Usage: /login <username> <password>")
        return

    username, password = context.args
    try:
        await update.message.delete()
    except TelegramError as e:
        logger.debug(f"Could not delete login message: {e}")

    account = await asyncio.to_thread(services.users.verify_credentials, username, password)
    if account is None:
        logger.warning(f"Failed login for '{username}' from telegram user {tg_user.id}")
        await update.effective_chat.send_message("❌ Invalid credentials.")
        return

    services.sessions.login(tg_user.id, account)
    context.user_data[CURRENT_USER_KEY] = account
    role = "administrator" if account["is_admin"] else "user"
    await update.effective_chat.send_message(f"✅ Logged in as {account['username']} ({role}).")


@rate_limited
async def logout_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = context.bot_data["services"]
    services.sessions.logout(update.effective_user.id)
    context.user_data.pop(CURRENT_USER_KEY, None)
    await update.message.reply_text("👋 Logged out.")


@rate_limited
@login_required
async def whoami_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    account = current_user(context)
    role = "administrator" if account["is_admin"] else "user"
    await update.message.reply_text(f"👤 #{account['id']} {account['username']} ({role})")
