"""brief_server — FastAPI webhook service for the brief bot.

Receives Telegram updates, decodes them into brief events and dispatches
them to a ``BriefEngine`` backed by PostgreSQL and the Telegram Bot API.
"""
