"""Abstract interfaces for the collaborators the engine depends on.

The engine ships no storage or chat client of its own.  Concrete
implementations live in ``brief_db`` (PostgreSQL store) and
``brief_server.telegram`` (Telegram Bot API channel); tests use in-memory
fakes.

Typical wiring::

    store: SessionStore = SqlSessionStore()
    channel: MessagingChannel = TelegramChannel(client, token=...)
    engine = BriefEngine(catalog, store, channel, report_channel_id="-100...")

    await engine.dispatch(event)
"""

from abc import ABC, abstractmethod

from brief_engine.models.control import Control
from brief_engine.models.events import MessageRef
from brief_engine.models.session import BriefSession


class SessionStore(ABC):
    """Key-value persistence for session records, keyed by user identity.

    Records expire on their own ``ttl_seconds`` after the last write; an
    expired record reads as absent.  Implementations wrap backend failures
    in :class:`~brief_engine.errors.CollaboratorUnavailableError`.
    """

    @abstractmethod
    async def get(self, user_id: str) -> BriefSession | None:
        """Return the live session for *user_id*, or ``None``.

        The returned session carries the stored version stamp.
        """
        ...

    @abstractmethod
    async def set(
        self,
        user_id: str,
        session: BriefSession,
        ttl_seconds: int,
        *,
        expected_version: int | None = None,
    ) -> int:
        """Write *session* and return its new version stamp.

        Parameters
        ----------
        expected_version:
            ``None`` writes unconditionally (creating or replacing the
            record).  Otherwise the write only succeeds if the stored
            record still carries this version; if not, raises
            :class:`~brief_engine.errors.StaleSessionError`.
        """
        ...

    @abstractmethod
    async def delete(self, user_id: str) -> None:
        """Remove the record for *user_id*; absent records are fine."""
        ...


class MessagingChannel(ABC):
    """Outbound calls to the chat platform.

    Implementations wrap transport failures in
    :class:`~brief_engine.errors.CollaboratorUnavailableError`.
    """

    @abstractmethod
    async def send_text(self, channel_id: str, text: str) -> None:
        """Send a plain message."""
        ...

    @abstractmethod
    async def send_with_control(
        self, channel_id: str, text: str, control: Control
    ) -> MessageRef:
        """Send a message with a selectable control attached."""
        ...

    @abstractmethod
    async def edit_control(self, message_ref: MessageRef, control: Control) -> None:
        """Replace the control of a previously sent message in place."""
        ...

    @abstractmethod
    async def acknowledge_interaction(self, interaction_id: str) -> None:
        """Acknowledge a control interaction (clears the client spinner)."""
        ...
