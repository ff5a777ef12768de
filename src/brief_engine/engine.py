"""BriefEngine — the state machine behind the conversational brief.

Stateless engine pattern: each call loads the user's session from the
store, applies one event, persists or deletes the record, and sends the
resulting messages.  No session state is kept in memory between calls.

States (per user):
    no_session           — no record in the store; every event is a no-op
                           except the start command
    awaiting_answer      — question ``step`` is waiting for its answer
                           (typed text or a control tap, depending on kind)
    awaiting_other_text  — a multi-select "other" row is on and the typed
                           value is pending

Completion is not a stored state: answering the last question deletes the
record, delivers the report and thanks the user in one transition.

Concurrency: every public operation runs under a per-user lock, and every
write after a load is a compare-and-swap on the session's version stamp,
so rapid taps from one user can neither interleave in this process nor
silently overwrite each other across processes.

Redelivery: the transport answers a failed event with a retry of the same
update.  Every write records the event id in the session, in the same
compare-and-swap as the state change, so a retry of an already applied
event is not applied again; it only re-sends what the current state should
show (the question, the redrawn keyboard or the "other" prompt).
"""

from __future__ import annotations

import logging

from brief_engine.catalog import QuestionCatalog
from brief_engine.constants import OTHER_SENTINEL, SESSION_TTL_SECONDS
from brief_engine.errors import CollaboratorUnavailableError, InvalidOptionError
from brief_engine.formatter import BriefFormatter
from brief_engine.interfaces import MessagingChannel, SessionStore
from brief_engine.locking import KeyedLock
from brief_engine.models.events import (
    Cancel,
    CancelCommand,
    ChooseSingle,
    Confirm,
    ControlAction,
    ControlInteraction,
    InboundEvent,
    MessageRef,
    StartCommand,
    TextMessage,
    ToggleOption,
    ToggleOther,
)
from brief_engine.models.question import (
    FreeTextQuestion,
    MultiSelectQuestion,
    Question,
    SingleSelectQuestion,
)
from brief_engine.models.session import BriefSession, SessionState
from brief_engine.presenter import QuestionPresenter

logger = logging.getLogger(__name__)


class BriefEngine:
    """Drives the questionnaire for every user.

    Args:
        catalog: the loaded :class:`QuestionCatalog`
        store: session persistence
        channel: outbound chat calls
        report_channel_id: destination of completed reports; ``None``
            disables delivery (logged as an error on every completion)
        ttl_seconds: expiry the store applies to every write
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        store: SessionStore,
        channel: MessagingChannel,
        *,
        report_channel_id: str | None,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        presenter: QuestionPresenter | None = None,
        formatter: BriefFormatter | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._channel = channel
        self._report_channel_id = report_channel_id
        self._ttl = ttl_seconds
        self._presenter = presenter or QuestionPresenter(catalog, channel)
        self._formatter = formatter or BriefFormatter(catalog)
        self._locks = KeyedLock()

    @property
    def catalog(self) -> QuestionCatalog:
        return self._catalog

    # ==================================================================
    # Event dispatch
    # ==================================================================

    async def dispatch(self, event: InboundEvent) -> None:
        """Route a normalized inbound event to its handler."""
        if isinstance(event, StartCommand):
            await self.start(
                event.user_id, event.display_name, event.channel_id, event_id=event.event_id,
            )
        elif isinstance(event, TextMessage):
            await self.handle_free_text(
                event.user_id, event.channel_id, event.text, event_id=event.event_id,
            )
        elif isinstance(event, ControlInteraction):
            await self.handle_control_event(
                event.user_id,
                event.channel_id,
                event.message_ref,
                event.interaction_id,
                event.action,
                event_id=event.event_id,
            )
        elif isinstance(event, CancelCommand):
            await self.cancel(event.user_id, event.channel_id)
        else:
            raise TypeError(f"Unsupported event: {type(event).__name__}")

    # ==================================================================
    # Session lifecycle
    # ==================================================================

    async def start(
        self,
        user_id: str,
        display_name: str,
        channel_id: str,
        *,
        event_id: str | None = None,
    ) -> None:
        """Begin a new brief, replacing any unfinished one for this user."""
        async with self._locks.acquire(user_id):
            existing = await self._load(user_id)
            if existing is not None and self._is_replay(existing, event_id):
                logger.info("Start for user %s already applied (event %s)", user_id, event_id)
                await self._channel.send_text(channel_id, self._presenter.render_welcome())
                await self._replay(existing)
                return

            session = BriefSession(
                display_name=display_name, channel_id=channel_id, last_event_id=event_id,
            )
            await self._persist(user_id, session, overwrite=True)
            logger.info("Brief started for user %s", user_id)

            await self._channel.send_text(channel_id, self._presenter.render_welcome())
            await self._presenter.present(channel_id, session.step)

    async def cancel(self, user_id: str, channel_id: str) -> None:
        """Abandon the user's brief.  No-op without an active session."""
        async with self._locks.acquire(user_id):
            session = await self._load(user_id)
            if session is None:
                return
            await self._cancel(user_id, channel_id)

    # ==================================================================
    # Typed answers
    # ==================================================================

    async def handle_free_text(
        self,
        user_id: str,
        channel_id: str,
        text: str,
        *,
        event_id: str | None = None,
    ) -> None:
        """Apply a typed message to the current question.

        Text answers a free-text question, or supplies the pending "other"
        value of a multi-select.  Anything else is ignored.
        """
        async with self._locks.acquire(user_id):
            session = await self._load(user_id)
            if session is None:
                return
            if self._is_replay(session, event_id):
                logger.info("Text for user %s already applied (event %s)", user_id, event_id)
                await self._replay(session)
                return
            session.last_event_id = event_id

            if session.state is SessionState.AWAITING_OTHER_TEXT:
                session.selected_options.append(text)
                session.awaiting_other_text = False
                session.set_answer(session.selection_answer())
                await self._advance(user_id, session)
                return

            question = self._catalog[session.step]
            if isinstance(question, FreeTextQuestion):
                session.set_answer(text)
                await self._advance(user_id, session)
                return

            logger.debug(
                "Ignoring text from user %s: question %d expects a %s control",
                user_id, question.id, question.kind,
            )

    # ==================================================================
    # Control interactions
    # ==================================================================

    async def handle_control_event(
        self,
        user_id: str,
        channel_id: str,
        message_ref: MessageRef,
        interaction_id: str,
        action: ControlAction,
        *,
        event_id: str | None = None,
    ) -> None:
        """Apply a button tap.

        The interaction is acknowledged first, whatever happens next.

        Raises:
            InvalidOptionError: the action does not fit the current question
                (wrong kind, index out of range, "other" not allowed).
        """
        await self._acknowledge(interaction_id)

        async with self._locks.acquire(user_id):
            session = await self._load(user_id)
            if session is None:
                return
            if self._is_replay(session, event_id):
                logger.info(
                    "%s for user %s already applied (event %s)",
                    action.action, user_id, event_id,
                )
                await self._replay(session, message_ref, getattr(action, "step", None))
                return
            session.last_event_id = event_id

            if isinstance(action, Cancel):
                await self._cancel(user_id, channel_id)
                return

            # A tap on the keyboard of an already answered question
            if action.step is not None and action.step != session.step:
                logger.debug(
                    "Ignoring stale %s from user %s: control step %d, session step %d",
                    action.action, user_id, action.step, session.step,
                )
                return

            question = self._catalog[session.step]

            if isinstance(action, ChooseSingle):
                await self._choose_single(user_id, session, question, action.index)
            elif isinstance(action, ToggleOption):
                await self._toggle_option(user_id, session, question, message_ref, action.index)
            elif isinstance(action, ToggleOther):
                await self._toggle_other(user_id, channel_id, session, question, message_ref)
            elif isinstance(action, Confirm):
                await self._confirm(user_id, channel_id, session, question)
            else:
                raise TypeError(f"Unsupported action: {type(action).__name__}")

    async def _choose_single(
        self, user_id: str, session: BriefSession, question: Question, index: int
    ) -> None:
        if not isinstance(question, SingleSelectQuestion):
            raise InvalidOptionError(
                f"choose_single is not valid for {question.kind} question {question.id}"
            )
        session.set_answer(self._option(question, index))
        await self._advance(user_id, session)

    async def _toggle_option(
        self,
        user_id: str,
        session: BriefSession,
        question: Question,
        message_ref: MessageRef,
        index: int,
    ) -> None:
        if not isinstance(question, MultiSelectQuestion):
            raise InvalidOptionError(
                f"toggle_option is not valid for {question.kind} question {question.id}"
            )
        session.toggle(self._option(question, index))
        await self._persist(user_id, session)
        await self._redraw(message_ref, session, question)

    async def _toggle_other(
        self,
        user_id: str,
        channel_id: str,
        session: BriefSession,
        question: Question,
        message_ref: MessageRef,
    ) -> None:
        if not (isinstance(question, MultiSelectQuestion) and question.allows_other):
            raise InvalidOptionError(
                f"toggle_other is not valid for question {question.id}"
            )
        if session.has_other:
            session.selected_options.remove(OTHER_SENTINEL)
            session.awaiting_other_text = False
            await self._persist(user_id, session)
            await self._redraw(message_ref, session, question)
            return

        session.selected_options.append(OTHER_SENTINEL)
        session.awaiting_other_text = True
        await self._persist(user_id, session)
        await self._channel.send_text(channel_id, self._catalog.messages.other_prompt)

    async def _confirm(
        self,
        user_id: str,
        channel_id: str,
        session: BriefSession,
        question: Question,
    ) -> None:
        if not isinstance(question, MultiSelectQuestion):
            raise InvalidOptionError(
                f"confirm is not valid for {question.kind} question {question.id}"
            )
        answer = session.selection_answer()
        if not answer:
            await self._channel.send_text(channel_id, self._catalog.messages.empty_selection)
            return
        session.set_answer(answer)
        await self._advance(user_id, session)

    # ==================================================================
    # Transitions
    # ==================================================================

    async def _advance(self, user_id: str, session: BriefSession) -> None:
        """Move past the answered question; finish the brief after the last."""
        session.step += 1
        session.selected_options = []
        session.awaiting_other_text = False

        if session.step >= len(self._catalog):
            await self._store.delete(user_id)
            await self._deliver_report(session)
            await self._channel.send_text(session.channel_id, self._catalog.messages.completed)
            logger.info("Brief completed for user %s", user_id)
            return

        await self._persist(user_id, session)
        await self._presenter.present(session.channel_id, session.step)

    async def _cancel(self, user_id: str, channel_id: str) -> None:
        await self._store.delete(user_id)
        await self._channel.send_text(channel_id, self._catalog.messages.cancelled)
        logger.info("Brief cancelled for user %s", user_id)

    # ==================================================================
    # Helpers
    # ==================================================================

    async def _load(self, user_id: str) -> BriefSession | None:
        session = await self._store.get(user_id)
        if session is None:
            logger.debug("No active brief for user %s", user_id)
            return None
        if session.step >= len(self._catalog):
            # Written against a longer catalog than the one loaded now
            logger.warning(
                "Discarding brief for user %s: step %d outside a %d-question catalog",
                user_id, session.step, len(self._catalog),
            )
            await self._store.delete(user_id)
            return None
        return session

    async def _persist(
        self, user_id: str, session: BriefSession, *, overwrite: bool = False
    ) -> None:
        expected = None if overwrite else session.version
        session.version = await self._store.set(
            user_id, session, self._ttl, expected_version=expected,
        )

    async def _redraw(
        self, message_ref: MessageRef, session: BriefSession, question: Question
    ) -> None:
        control = self._presenter.keyboard.render(
            session.step, question, session.selected_options,
        )
        await self._channel.edit_control(message_ref, control)

    @staticmethod
    def _is_replay(session: BriefSession, event_id: str | None) -> bool:
        return event_id is not None and session.last_event_id == event_id

    async def _replay(
        self,
        session: BriefSession,
        message_ref: MessageRef | None = None,
        action_step: int | None = None,
    ) -> None:
        """Re-send the output of the already applied event.

        A retry only arrives when the first attempt failed, typically on an
        outbound call after the state was saved, so the user may not have
        seen the result yet.
        """
        question = self._catalog[session.step]
        if session.awaiting_other_text:
            await self._channel.send_text(session.channel_id, self._catalog.messages.other_prompt)
        elif (
            message_ref is not None
            and action_step == session.step
            and isinstance(question, MultiSelectQuestion)
        ):
            # The tap was a toggle on the keyboard that is still current
            await self._redraw(message_ref, session, question)
        else:
            await self._presenter.present(
                session.channel_id, session.step, session.selected_options,
            )

    async def _acknowledge(self, interaction_id: str) -> None:
        try:
            await self._channel.acknowledge_interaction(interaction_id)
        except CollaboratorUnavailableError as exc:
            logger.warning("Failed to acknowledge interaction %s: %s", interaction_id, exc)

    async def _deliver_report(self, session: BriefSession) -> None:
        if not self._report_channel_id:
            logger.error(
                "Report channel is not configured; brief from %r was not delivered",
                session.display_name,
            )
            return
        await self._channel.send_text(self._report_channel_id, self._formatter.format(session))

    @staticmethod
    def _option(question: MultiSelectQuestion | SingleSelectQuestion, index: int) -> str:
        if index >= len(question.options):
            raise InvalidOptionError(
                f"option index {index} out of range for question {question.id} "
                f"({len(question.options)} options)"
            )
        return question.options[index]
