"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development except the bot
token, which must be provided in any real deployment.
"""

import os
from dataclasses import dataclass

from brief_engine.constants import SESSION_TTL_SECONDS


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging
    log_level: str = "INFO"

    # Telegram Bot API
    bot_token: str | None = None
    telegram_api_base: str = "https://api.telegram.org"
    telegram_timeout_seconds: float = 10.0

    # Where completed briefs are posted (None = delivery disabled)
    report_chat_id: str | None = None

    # Chat commands that open / abandon a brief
    start_command: str = "/qamalladin"
    cancel_command: str = "/cancel"

    # Questionnaire YAML (None → the packaged Korner brief)
    catalog_path: str | None = None

    # Session expiry applied on every write
    session_ttl_seconds: int = SESSION_TTL_SECONDS


def load_settings() -> ServerSettings:
    """Build settings from environment variables."""
    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        bot_token=os.getenv("TEAM_TELEGRAM_BOT_TOKEN") or None,
        telegram_api_base=os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/"),
        telegram_timeout_seconds=float(os.getenv("TELEGRAM_TIMEOUT_SECONDS", "10")),
        report_chat_id=os.getenv("BRIEF_TELEGRAM_CHAT_ID") or None,
        start_command=os.getenv("BRIEF_START_COMMAND", "/qamalladin"),
        cancel_command=os.getenv("BRIEF_CANCEL_COMMAND", "/cancel"),
        catalog_path=os.getenv("BRIEF_CATALOG_PATH") or None,
        session_ttl_seconds=SESSION_TTL_SECONDS,
    )
