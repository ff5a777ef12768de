"""Telegram update models and their decoding into brief events.

Only the fields the brief needs are modelled; everything else in the update
is ignored.  Decoding is the single place where raw chat input is turned
into typed engine events:

    callback_query with brief_ data  → ControlInteraction
    "/start-command ..."             → StartCommand
    "/cancel-command"                → CancelCommand
    any other non-empty text         → TextMessage
    everything else                  → None (not for the brief)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from brief_engine.models.events import (
    CancelCommand,
    ControlInteraction,
    InboundEvent,
    MessageRef,
    StartCommand,
    TextMessage,
)

from brief_server.telegram import decode_callback_data

DEFAULT_DISPLAY_NAME = "Пользователь"


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str | None = None
    username: str | None = None


class TelegramChat(BaseModel):
    id: int


class TelegramMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    chat: TelegramChat
    from_: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None


class TelegramCallbackQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_: TelegramUser = Field(alias="from")
    message: TelegramMessage | None = None
    data: str | None = None


class TelegramUpdate(BaseModel):
    update_id: int
    message: TelegramMessage | None = None
    callback_query: TelegramCallbackQuery | None = None


def _is_command(text: str, command: str) -> bool:
    """True for ``/cmd``, ``/cmd args`` and ``/cmd@botname``."""
    head = text.split(maxsplit=1)[0]
    return head.split("@", 1)[0] == command


def decode_update(
    update: TelegramUpdate,
    *,
    start_command: str,
    cancel_command: str,
) -> InboundEvent | None:
    """Turn a webhook update into an engine event, or ``None``.

    Raises:
        InvalidOptionError: malformed ``brief_`` callback data.
    """
    event_id = str(update.update_id)
    query = update.callback_query
    if query is not None:
        if query.data is None or query.message is None:
            return None
        action = decode_callback_data(query.data)
        if action is None:
            return None
        chat_id = str(query.message.chat.id)
        return ControlInteraction(
            user_id=str(query.from_.id),
            channel_id=chat_id,
            message_ref=MessageRef(
                channel_id=chat_id,
                message_id=str(query.message.message_id),
            ),
            interaction_id=query.id,
            action=action,
            event_id=event_id,
        )

    message = update.message
    if message is None or message.text is None or message.from_ is None:
        return None
    text = message.text.strip()
    if not text:
        return None

    user = message.from_
    user_id = str(user.id)
    chat_id = str(message.chat.id)

    if _is_command(text, start_command):
        return StartCommand(
            user_id=user_id,
            display_name=user.first_name or user.username or DEFAULT_DISPLAY_NAME,
            channel_id=chat_id,
            event_id=event_id,
        )
    if _is_command(text, cancel_command):
        return CancelCommand(user_id=user_id, channel_id=chat_id, event_id=event_id)
    return TextMessage(user_id=user_id, channel_id=chat_id, text=text, event_id=event_id)
