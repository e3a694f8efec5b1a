"""
handlers/start_handler.py
--------------------------
Handles /start and /help commands.
"""

from telegram import Update
from telegram.ext import ContextTypes

from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)

HELP_TEXT = """
📚 LinkBoard - tagged cards of useful links

Everyone:
/login <username> <password> - log in
/logout - log out
/whoami - show the logged-in account
/cards [words] [#tag ...] - list and search cards
/card <id> - show one card
/links <card id> - show a card's links (needs access)
/tags - list tags
/request <title> | <description> | <image url> - suggest a new card

Administrators:
/requests [pending|approved|rejected] - list card requests
/approve <request id>, /reject <request id>
/grant <card id> <user id>, /revoke <card id> <user id>, /access <card id>
/addcard <title> | <description> | <tag, tag>
/editcard <id> <title> | <description> | <tag, tag>
/delcard <id>
/addlink <card id> <url> [title]
/dellink <link id>
/addtag <name> [color], /deltag <id>
/users, /adduser <username> <password> [admin], /deluser <id>
/delrequest <id>
/health - database status
"""


@rate_limited
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - show welcome message."""
    user = update.effective_user
    logger.info(f"Telegram user {user.id} ({user.first_name}) started the bot.")
    await update.message.reply_text(
        f"Hello {user.first_name}! 👋\n"
        "Browse cards with /cards, and log in with /login to open their links.\n\n"
        "Send /help to see every command."
    )


@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.message.reply_text(HELP_TEXT)
