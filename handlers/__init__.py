"""
handlers/ - Presentation Layer
================================
Telegram bot handlers. Each handler parses the command arguments, calls
the repositories and services found in ``context.bot_data["services"]``,
and replies with the result. No business logic lives here.
"""
