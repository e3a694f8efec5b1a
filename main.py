"""
main.py
-------
Entry point for the LinkBoard Telegram bot.

Responsibilities:
    - Build the connection manager, repositories and services.
    - Check the database connection and initialize the schema.
    - Configure and start the Telegram bot with all handlers.
    - Shut down gracefully: stop polling, drain the pool, remove the PID file.
"""

import os
import sys
import threading
from pathlib import Path

from telegram import BotCommand
from telegram.ext import Application, CommandHandler

import config
from db.connection import ConnectionManager, DatabaseConfig
from db.errors import ConfigurationMissingError
from db.init_db import describe_init_failure
from handlers.admin_handler import (
    access_command,
    add_card_command,
    add_link_command,
    add_tag_command,
    add_user_command,
    delete_card_command,
    delete_link_command,
    delete_tag_command,
    delete_user_command,
    edit_card_command,
    grant_command,
    health_command,
    revoke_command,
    users_command,
)
from handlers.auth_handler import login_command, logout_command, whoami_command
from handlers.card_handler import card_command, cards_command, links_command, tags_command
from handlers.error_handler import error_handler
from handlers.request_handler import (
    approve_command,
    delete_request_command,
    reject_command,
    request_command,
    requests_command,
)
from handlers.start_handler import help_command, start_command
from services.container import Services, build_services
from utils.logger import get_logger

logger = get_logger(__name__)

COMMANDS = {
    "start": start_command,
    "help": help_command,
    "login": login_command,
    "logout": logout_command,
    "whoami": whoami_command,
    "cards": cards_command,
    "card": card_command,
    "links": links_command,
    "tags": tags_command,
    "request": request_command,
    "requests": requests_command,
    "approve": approve_command,
    "reject": reject_command,
    "delrequest": delete_request_command,
    "addcard": add_card_command,
    "editcard": edit_card_command,
    "delcard": delete_card_command,
    "addlink": add_link_command,
    "dellink": delete_link_command,
    "addtag": add_tag_command,
    "deltag": delete_tag_command,
    "users": users_command,
    "adduser": add_user_command,
    "deluser": delete_user_command,
    "grant": grant_command,
    "revoke": revoke_command,
    "access": access_command,
    "health": health_command,
}

MENU = [
    BotCommand("cards", "📚 Browse and search cards"),
    BotCommand("links", "🔗 Open a card's links"),
    BotCommand("tags", "🏷️ List tags"),
    BotCommand("request", "📝 Suggest a new card"),
    BotCommand("login", "🔑 Log in"),
    BotCommand("logout", "👋 Log out"),
    BotCommand("help", "📖 Show help"),
]


async def set_bot_commands(application: Application) -> None:
    """Register bot commands menu in Telegram on startup."""
    await application.bot.set_my_commands(MENU)
    logger.info("Bot commands menu registered successfully.")


async def purge_sessions(context) -> None:
    """Scheduled job: drop expired login sessions."""
    purged = context.bot_data["services"].sessions.purge_expired()
    if purged:
        logger.info(f"Purged {purged} expired session(s).")


def initialize_database(services: Services) -> bool:
    """
    Check the database connection and bring the schema up to date.

    A failure is logged with guidance but does not stop the bot: commands
    touching the database will report the problem until it is fixed.
    """
    logger.info("Initializing database...")
    try:
        services.schema.run()
        return True
    except ConfigurationMissingError as e:
        logger.error(str(e))
    except Exception as e:
        logger.error(describe_init_failure(e, services.manager.config))
    logger.warning("The bot is running, but database features may not work.")
    return False


def write_pid_file() -> Path:
    path = Path(config.PID_FILE)
    path.write_text(str(os.getpid()), encoding="utf-8")
    return path


def shutdown(services: Services, pid_file: Path) -> None:
    """Drain the pool within SHUTDOWN_TIMEOUT_SECONDS, then remove the PID file."""
    closer = threading.Thread(target=services.manager.close, name="pool-close", daemon=True)
    closer.start()
    closer.join(config.SHUTDOWN_TIMEOUT_SECONDS)
    if pid_file.exists():
        pid_file.unlink()
    if closer.is_alive():
        logger.error("Closing the database pool stalled; forcing exit.")
        os._exit(1)
    logger.info("Shutdown complete.")


def build_application(services: Services) -> Application:
    """Create the Telegram application and register every handler."""
    app = Application.builder().token(config.TELEGRAM_BOT_TOKEN).post_init(set_bot_commands).build()
    app.bot_data["services"] = services

    for name, handler in COMMANDS.items():
        app.add_handler(CommandHandler(name, handler))
    app.add_error_handler(error_handler)

    if app.job_queue:
        app.job_queue.run_repeating(purge_sessions, interval=3600, first=3600, name="purge_sessions")
    return app


def main() -> None:
    """Initialize and run the bot."""
    if not config.TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN is not set.")
        sys.exit(1)

    # ── 1. Database ───────────────────────────────────────
    manager = ConnectionManager(DatabaseConfig.from_env())
    services = build_services(manager)
    initialize_database(services)

    # ── 2. Telegram application ───────────────────────────
    app = build_application(services)
    pid_file = write_pid_file()

    # ── 3. Poll until SIGINT / SIGTERM ────────────────────
    logger.info("🚀 LinkBoard is running! Press Ctrl+C to stop.")
    try:
        app.run_polling(drop_pending_updates=True, allowed_updates=["message"])
    finally:
        # ── 4. Cleanup on shutdown ────────────────────────
        shutdown(services, pid_file)


if __name__ == "__main__":
    main()
