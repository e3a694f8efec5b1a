"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.

Nothing here connects to anything: the database layer reads these values
lazily, on first use.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ── Environment class ─────────────────────────────────────
APP_ENV: str = os.getenv("APP_ENV", "development").strip().lower()

# ── PostgreSQL ────────────────────────────────────────────
# Either a full URI ...
DATABASE_URL: str = os.getenv("DATABASE_URL", "")

# ... or discrete fields.
DB_HOST: str = os.getenv("DB_HOST", "")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "")
DB_USER: str = os.getenv("DB_USER", "")
DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")

# ── Default administrator bootstrap ───────────────────────
CREATE_DEFAULT_ADMIN: bool = _flag("CREATE_DEFAULT_ADMIN", "true")
ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin123")

# ── Telegram ──────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

# ── Sessions ──────────────────────────────────────────────
SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", str(12 * 60 * 60)))

# ── Rate Limiting ─────────────────────────────────────────
RATE_LIMIT_MESSAGES: int = int(os.getenv("RATE_LIMIT_MESSAGES", "30"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# ── Process ───────────────────────────────────────────────
PID_FILE: str = os.getenv("PID_FILE", ".linkboard.pid")
SHUTDOWN_TIMEOUT_SECONDS: int = 10
