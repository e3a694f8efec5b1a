"""
handlers/error_handler.py
--------------------------
Last-resort handler for exceptions raised inside command handlers.
Logs the failure and tells the user what went wrong.
"""

from telegram import Update
from telegram.ext import ContextTypes

from db.errors import ConstraintViolationError, ForeignKeyViolationError
from models.card_request import InvalidStatusError
from repositories.tag_repo import ReservedTagError
from utils.formatting import describe_error
from utils.logger import get_logger

logger = get_logger(__name__)

# Caused by user input; no traceback needed.
_EXPECTED = (ConstraintViolationError, ForeignKeyViolationError, InvalidStatusError, ReservedTagError)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    error = context.error
    if isinstance(error, _EXPECTED):
        logger.warning(f"{type(error).__name__}: {error}")
    else:
        code = getattr(error, "pgcode", None)
        logger.error(
            f"Unhandled error in handler: {type(error).__name__}: {error}"
            + (f" (code {code})" if code else ""),
            exc_info=error,
        )
    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(describe_error(error))
