"""Telegram Bot API adapter — ``MessagingChannel`` over httpx.

Also owns the callback-data codec: control actions travel through Telegram
as short strings attached to inline buttons (64-byte limit) and come back
in callback queries.  The wire format is kept compatible with keyboards
already sent by earlier deployments:

    brief_check_{step}_{i}  ↔ ToggleOption
    brief_other_{step}      ↔ ToggleOther
    brief_done_{step}       ↔ Confirm
    brief_radio_{step}_{i}  ↔ ChooseSingle
    brief_cancel            ↔ Cancel
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from brief_engine.errors import CollaboratorUnavailableError, InvalidOptionError
from brief_engine.interfaces import MessagingChannel
from brief_engine.models.control import Control
from brief_engine.models.events import (
    Cancel,
    ChooseSingle,
    Confirm,
    ControlAction,
    MessageRef,
    ToggleOption,
    ToggleOther,
)

logger = logging.getLogger(__name__)

CALLBACK_PREFIX = "brief_"
_CANCEL_DATA = "brief_cancel"
_CALLBACK_RE = re.compile(r"^brief_(check|other|done|radio)_(\d+)(?:_(\d+))?$")

# Editing a keyboard to an identical one is rejected by Telegram with this
# description; the desired state is already on screen.
_NOT_MODIFIED = "message is not modified"


# ------------------------------------------------------------------
# Callback-data codec
# ------------------------------------------------------------------

def encode_action(action: ControlAction) -> str:
    """Serialize a control action into Telegram callback data."""
    if isinstance(action, Cancel):
        return _CANCEL_DATA
    if action.step is None:
        raise ValueError(f"{action.action} needs a step to be encoded")
    if isinstance(action, ToggleOption):
        return f"brief_check_{action.step}_{action.index}"
    if isinstance(action, ToggleOther):
        return f"brief_other_{action.step}"
    if isinstance(action, Confirm):
        return f"brief_done_{action.step}"
    if isinstance(action, ChooseSingle):
        return f"brief_radio_{action.step}_{action.index}"
    raise TypeError(f"Unsupported action: {type(action).__name__}")


def decode_callback_data(data: str) -> ControlAction | None:
    """Parse callback data; ``None`` if it does not belong to the brief.

    Raises:
        InvalidOptionError: ``brief_`` data that does not match the format.
    """
    if not data.startswith(CALLBACK_PREFIX):
        return None
    if data == _CANCEL_DATA:
        return Cancel()

    match = _CALLBACK_RE.match(data)
    if match is None:
        raise InvalidOptionError(f"malformed callback data: {data!r}")
    kind, step_raw, index_raw = match.groups()
    step = int(step_raw)

    if kind in ("check", "radio"):
        if index_raw is None:
            raise InvalidOptionError(f"callback data without option index: {data!r}")
        index = int(index_raw)
        if kind == "check":
            return ToggleOption(step=step, index=index)
        return ChooseSingle(step=step, index=index)

    if index_raw is not None:
        raise InvalidOptionError(f"unexpected option index in callback data: {data!r}")
    if kind == "other":
        return ToggleOther(step=step)
    return Confirm(step=step)


def inline_keyboard(control: Control) -> dict[str, Any]:
    """Telegram ``reply_markup`` for a control."""
    return {
        "inline_keyboard": [
            [
                {"text": button.label, "callback_data": encode_action(button.action)}
                for button in row
            ]
            for row in control.rows
        ]
    }


# ------------------------------------------------------------------
# Channel
# ------------------------------------------------------------------

class TelegramChannel(MessagingChannel):
    """Sends messages through one bot.

    Args:
        client: shared ``httpx.AsyncClient`` (owned by the caller)
        token: bot token
        api_base: Bot API root, overridable for a local Bot API server
        parse_mode: Telegram parse mode for every outgoing text
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        token: str,
        api_base: str = "https://api.telegram.org",
        parse_mode: str = "HTML",
    ) -> None:
        self._client = client
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._parse_mode = parse_mode

    async def send_text(self, channel_id: str, text: str) -> None:
        await self._call("sendMessage", {
            "chat_id": channel_id,
            "text": text,
            "parse_mode": self._parse_mode,
        })

    async def send_with_control(
        self, channel_id: str, text: str, control: Control
    ) -> MessageRef:
        result = await self._call("sendMessage", {
            "chat_id": channel_id,
            "text": text,
            "parse_mode": self._parse_mode,
            "reply_markup": inline_keyboard(control),
        })
        return MessageRef(
            channel_id=str(result["chat"]["id"]),
            message_id=str(result["message_id"]),
        )

    async def edit_control(self, message_ref: MessageRef, control: Control) -> None:
        try:
            await self._call("editMessageReplyMarkup", {
                "chat_id": message_ref.channel_id,
                "message_id": int(message_ref.message_id),
                "reply_markup": inline_keyboard(control),
            })
        except CollaboratorUnavailableError as exc:
            if _NOT_MODIFIED in str(exc):
                logger.debug("Keyboard of message %s already up to date", message_ref.message_id)
                return
            raise

    async def acknowledge_interaction(self, interaction_id: str) -> None:
        await self._call("answerCallbackQuery", {"callback_query_id": interaction_id})

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        # The URL embeds the bot token, so it never goes into messages or logs.
        url = f"{self._api_base}/bot{self._token}/{method}"
        try:
            response = await self._client.post(url, json=payload)
            body = response.json()
        except httpx.HTTPError as exc:
            raise CollaboratorUnavailableError(
                f"Telegram {method} failed: {type(exc).__name__}"
            ) from None
        except ValueError:
            raise CollaboratorUnavailableError(
                f"Telegram {method} returned a non-JSON response (HTTP {response.status_code})"
            ) from None

        if not body.get("ok"):
            description = body.get("description", f"HTTP {response.status_code}")
            raise CollaboratorUnavailableError(f"Telegram {method} rejected: {description}")
        return body.get("result")
