"""BriefEngine tests with in-memory collaborators.

Uses InMemorySessionStore (dict-backed SessionStore with version stamps)
and RecordingChannel (records every outbound call) from helpers.fakes, so
the whole state machine runs without a database or Telegram.

Catalog used throughout (see conftest.make_catalog):
  step 0 — free_text      "Your name"
  step 1 — multi_select   A / B / C + other
  step 2 — single_select  Yes / No
"""

import logging

import pytest

from brief_engine.constants import OTHER_SENTINEL
from brief_engine.engine import BriefEngine
from brief_engine.errors import CollaboratorUnavailableError, InvalidOptionError
from brief_engine.models.events import (
    Cancel,
    CancelCommand,
    ChooseSingle,
    Confirm,
    ControlInteraction,
    MessageRef,
    StartCommand,
    TextMessage,
    ToggleOption,
    ToggleOther,
)
from brief_engine.models.session import BriefSession, SessionState

from helpers.fakes import CHAT, REPORT_CHAT, USER, FailingAckChannel, FlakyChannel

# Keyboard of a message sent before the one under test
OLD_REF = MessageRef(channel_id=CHAT, message_id="0")


async def tap(engine, channel, action, interaction_id="cb-1"):
    """Send a control action as if tapped on the latest keyboard."""
    await engine.handle_control_event(
        USER, CHAT, channel.last_control_ref(), interaction_id, action,
    )


async def start_at_multi(engine):
    """Start a brief and answer the free-text question."""
    await engine.start(USER, "Anna", CHAT)
    await engine.handle_free_text(USER, CHAT, "Anna")


# =====================================================================
# Start
# =====================================================================


class TestStart:
    @pytest.mark.asyncio
    async def test_start_creates_session(self, engine, store):
        """start() persists a fresh session at step 0."""
        await engine.start(USER, "Anna", CHAT)

        session = store.records[USER]
        assert session.step == 0
        assert session.answers == []
        assert session.selected_options == []
        assert session.display_name == "Anna"
        assert session.channel_id == CHAT
        assert session.version == 1

    @pytest.mark.asyncio
    async def test_start_sends_welcome_then_first_question(self, engine, channel):
        await engine.start(USER, "Anna", CHAT)

        assert len(channel.sent) == 2, f"Expected welcome + question, got {channel.sent}"
        welcome, question = channel.sent
        assert "3 questions in total" in welcome.text
        assert "Question 1 of 3" in question.text
        assert "Your name" in question.text
        # Free-text questions carry no keyboard
        assert question.control is None

    @pytest.mark.asyncio
    async def test_start_applies_ttl(self, engine, store):
        await engine.start(USER, "Anna", CHAT)
        assert store.ttls[USER] == 600

    @pytest.mark.asyncio
    async def test_restart_discards_progress(self, engine, store, channel):
        """A second start replaces the unfinished brief."""
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=0))
        assert store.records[USER].step == 1

        await engine.start(USER, "Anna", CHAT)

        session = store.records[USER]
        assert session.step == 0
        assert session.answers == []
        assert session.selected_options == []


# =====================================================================
# Free text
# =====================================================================


class TestFreeText:
    @pytest.mark.asyncio
    async def test_answer_advances_and_presents_next(self, engine, store, channel):
        await start_at_multi(engine)

        session = store.records[USER]
        assert session.step == 1
        assert session.answers == ["Anna"]

        last = channel.last
        assert "Question 2 of 3" in last.text
        assert last.control is not None, "multi_select question must carry a keyboard"
        labels = [b.label for b in last.control.buttons]
        assert labels == ["⬜ A", "⬜ B", "⬜ C", "⬜ Other", "✅ Done"]

    @pytest.mark.asyncio
    async def test_text_without_session_is_ignored(self, engine, store, channel):
        await engine.handle_free_text(USER, CHAT, "hello")
        assert store.records == {}
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_text_on_select_question_is_ignored(self, engine, store, channel):
        """Typing while a keyboard is expected changes nothing."""
        await start_at_multi(engine)
        before = store.records[USER].model_copy(deep=True)
        sent_before = len(channel.sent)

        await engine.handle_free_text(USER, CHAT, "B please")

        assert store.records[USER] == before
        assert len(channel.sent) == sent_before

    @pytest.mark.asyncio
    async def test_other_text_completes_selection(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=1))
        await tap(engine, channel, ToggleOther(step=1))
        assert store.records[USER].state is SessionState.AWAITING_OTHER_TEXT

        await engine.handle_free_text(USER, CHAT, "custom")

        session = store.records[USER]
        assert session.step == 2
        assert session.answers[1] == "B, custom"
        assert session.selected_options == []
        assert session.awaiting_other_text is False

    @pytest.mark.asyncio
    async def test_other_text_alone(self, engine, store, channel):
        """An "other" value with no listed option is stored alone."""
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOther(step=1))
        await engine.handle_free_text(USER, CHAT, "Z")

        assert store.records[USER].answers[1] == "Z"


# =====================================================================
# Multi-select
# =====================================================================


class TestMultiSelect:
    @pytest.mark.asyncio
    async def test_toggle_selects_and_redraws(self, engine, store, channel):
        await start_at_multi(engine)
        ref = channel.last_control_ref()

        await tap(engine, channel, ToggleOption(step=1, index=1))

        assert store.records[USER].selected_options == ["B"]
        assert len(channel.edits) == 1
        edited_ref, control = channel.edits[0]
        assert edited_ref == ref, "Keyboard must be edited in place"
        labels = [b.label for b in control.buttons]
        assert labels[:3] == ["⬜ A", "✅ B", "⬜ C"]

    @pytest.mark.asyncio
    async def test_toggle_twice_is_identity(self, engine, store, channel):
        await start_at_multi(engine)

        await tap(engine, channel, ToggleOption(step=1, index=2))
        await tap(engine, channel, ToggleOption(step=1, index=2))

        assert store.records[USER].selected_options == []
        assert channel.edits[0][1] != channel.edits[1][1]
        # Second redraw is the original keyboard
        original = channel.last.control
        assert channel.edits[1][1] == original

    @pytest.mark.asyncio
    async def test_selection_keeps_tap_order(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=2))
        await tap(engine, channel, ToggleOption(step=1, index=0))
        await tap(engine, channel, Confirm(step=1))

        assert store.records[USER].answers[1] == "C, A"

    @pytest.mark.asyncio
    async def test_toggle_other_on_prompts(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOther(step=1))

        session = store.records[USER]
        assert session.selected_options == [OTHER_SENTINEL]
        assert session.awaiting_other_text is True
        assert channel.last.text == "Type your option:"
        assert channel.edits == [], "Turning 'other' on sends a prompt, not a redraw"

    @pytest.mark.asyncio
    async def test_toggle_other_off_redraws(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOther(step=1))
        await tap(engine, channel, ToggleOther(step=1))

        session = store.records[USER]
        assert session.selected_options == []
        assert session.state is SessionState.AWAITING_ANSWER
        labels = [b.label for b in channel.edits[-1][1].buttons]
        assert "⬜ Other" in labels

    @pytest.mark.asyncio
    async def test_confirm_with_empty_selection(self, engine, store, channel):
        await start_at_multi(engine)
        before = store.records[USER].model_copy(deep=True)

        await tap(engine, channel, Confirm(step=1))

        assert store.records[USER] == before
        assert channel.last.text == "Choose at least one option"

    @pytest.mark.asyncio
    async def test_confirm_with_only_pending_other_is_empty(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOther(step=1))

        await tap(engine, channel, Confirm(step=1))

        session = store.records[USER]
        assert session.step == 1
        assert session.awaiting_other_text is True
        assert channel.last.text == "Choose at least one option"

    @pytest.mark.asyncio
    async def test_confirm_advances(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=0))
        await tap(engine, channel, ToggleOption(step=1, index=1))
        await tap(engine, channel, Confirm(step=1))

        session = store.records[USER]
        assert session.step == 2
        assert session.answers == ["Anna", "A, B"]
        assert session.selected_options == []
        labels = [b.label for b in channel.last.control.buttons]
        assert labels == ["Yes", "No"]

    @pytest.mark.asyncio
    async def test_stepless_action_targets_current_question(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(index=0))
        assert store.records[USER].selected_options == ["A"]


# =====================================================================
# Invalid and stale actions
# =====================================================================


class TestInvalidActions:
    @pytest.mark.asyncio
    async def test_choose_single_on_multi_question(self, engine, channel):
        await start_at_multi(engine)
        with pytest.raises(InvalidOptionError):
            await tap(engine, channel, ChooseSingle(step=1, index=0))

    @pytest.mark.asyncio
    async def test_toggle_on_free_text_question(self, engine, channel):
        await engine.start(USER, "Anna", CHAT)
        with pytest.raises(InvalidOptionError):
            await engine.handle_control_event(
                USER, CHAT, OLD_REF, "cb", ToggleOption(step=0, index=0),
            )

    @pytest.mark.asyncio
    async def test_option_index_out_of_range(self, engine, store, channel):
        await start_at_multi(engine)
        with pytest.raises(InvalidOptionError):
            await tap(engine, channel, ToggleOption(step=1, index=3))
        assert store.records[USER].selected_options == []

    @pytest.mark.asyncio
    async def test_stale_step_is_ignored(self, engine, store, channel):
        """A tap on the keyboard of an earlier question changes nothing."""
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=0))
        await tap(engine, channel, Confirm(step=1))
        before = store.records[USER].model_copy(deep=True)
        sent_before = len(channel.sent)

        await tap(engine, channel, ToggleOption(step=1, index=1))
        await tap(engine, channel, Confirm(step=1))

        assert store.records[USER] == before
        assert len(channel.sent) == sent_before

    @pytest.mark.asyncio
    async def test_tap_without_session_is_acknowledged_only(self, engine, store, channel):
        await engine.handle_control_event(
            USER, CHAT, OLD_REF, "cb-9", ToggleOption(step=1, index=0),
        )
        assert channel.acks == ["cb-9"]
        assert channel.sent == []
        assert store.records == {}


# =====================================================================
# Acknowledgement
# =====================================================================


class TestAcknowledge:
    @pytest.mark.asyncio
    async def test_every_tap_is_acknowledged(self, engine, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=0), interaction_id="a")
        await tap(engine, channel, Confirm(step=0), interaction_id="b")  # stale
        await tap(engine, channel, Confirm(step=1), interaction_id="c")
        assert channel.acks == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_ack_failure_does_not_block_the_action(
        self, catalog, store, caplog,
    ):
        channel = FailingAckChannel()
        engine = BriefEngine(catalog, store, channel, report_channel_id=REPORT_CHAT)
        await start_at_multi(engine)

        with caplog.at_level(logging.WARNING, logger="brief_engine.engine"):
            await tap(engine, channel, ToggleOption(step=1, index=0))

        assert store.records[USER].selected_options == ["A"]
        assert "Failed to acknowledge" in caplog.text


# =====================================================================
# Completion
# =====================================================================


class TestCompletion:
    @pytest.mark.asyncio
    async def test_full_walkthrough(self, engine, store, channel):
        """start → name → B + other "custom" → Yes delivers one report."""
        await engine.start(USER, "Anna", CHAT)
        await engine.handle_free_text(USER, CHAT, "Anna")
        await tap(engine, channel, ToggleOption(step=1, index=1))
        await tap(engine, channel, ToggleOther(step=1))
        await engine.handle_free_text(USER, CHAT, "custom")
        # Confirm from the multi-select keyboard arrives after the text
        # already answered the question
        await engine.handle_control_event(
            USER, CHAT, OLD_REF, "late", Confirm(step=1),
        )
        assert store.records[USER].answers == ["Anna", "B, custom"]

        await tap(engine, channel, ChooseSingle(step=2, index=0))

        assert USER not in store.records, "Completed sessions must be deleted"

        reports = channel.texts_to(REPORT_CHAT)
        assert len(reports) == 1, f"Expected exactly one report, got {len(reports)}"
        report = reports[0]
        assert "<b>From:</b> Anna" in report
        assert "<b>1. Your name</b>\nAnna" in report
        assert "<b>2. Pick letters</b>\nB, custom" in report
        assert "<b>3. Ready?</b>\nYes" in report

        assert channel.texts_to(CHAT)[-1] == "Thank you! Your brief has been sent to the team."

    @pytest.mark.asyncio
    async def test_events_after_completion_are_noops(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=0))
        await tap(engine, channel, Confirm(step=1))
        await tap(engine, channel, ChooseSingle(step=2, index=1))
        sent_before = len(channel.sent)

        await tap(engine, channel, ChooseSingle(step=2, index=0))
        await engine.handle_free_text(USER, CHAT, "more")

        assert len(channel.sent) == sent_before
        assert len(channel.texts_to(REPORT_CHAT)) == 1

    @pytest.mark.asyncio
    async def test_report_escapes_user_input(self, engine, channel):
        await engine.start(USER, "<Anna>", CHAT)
        await engine.handle_free_text(USER, CHAT, "<script>x</script>")
        await tap(engine, channel, ToggleOther(step=1))
        await engine.handle_free_text(USER, CHAT, "a & b")
        await tap(engine, channel, ChooseSingle(step=2, index=1))

        report = channel.texts_to(REPORT_CHAT)[0]
        assert "&lt;script&gt;x&lt;/script&gt;" in report
        assert "&lt;Anna&gt;" in report
        assert "a &amp; b" in report
        assert "<script>" not in report

    @pytest.mark.asyncio
    async def test_missing_report_channel_is_logged(self, catalog, store, channel, caplog):
        engine = BriefEngine(catalog, store, channel, report_channel_id=None)
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=0))
        await tap(engine, channel, Confirm(step=1))

        with caplog.at_level(logging.ERROR, logger="brief_engine.engine"):
            await tap(engine, channel, ChooseSingle(step=2, index=0))

        assert "Report channel is not configured" in caplog.text
        assert USER not in store.records
        assert all(m.channel_id == CHAT for m in channel.sent)
        assert channel.last.text.startswith("Thank you!")


# =====================================================================
# Cancel
# =====================================================================


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_control_deletes_session(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, Cancel())

        assert USER not in store.records
        assert channel.last.text == "The brief has been cancelled."

    @pytest.mark.asyncio
    async def test_cancel_command(self, engine, store, channel):
        await engine.start(USER, "Anna", CHAT)
        await engine.cancel(USER, CHAT)
        assert USER not in store.records
        assert channel.last.text == "The brief has been cancelled."

    @pytest.mark.asyncio
    async def test_cancel_without_session_is_silent(self, engine, channel):
        await engine.cancel(USER, CHAT)
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_events_after_cancel_are_noops(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, Cancel())
        sent_before = len(channel.sent)

        await tap(engine, channel, ToggleOption(step=1, index=0))
        await engine.handle_free_text(USER, CHAT, "hello")

        assert store.records == {}
        assert len(channel.sent) == sent_before
        assert channel.texts_to(REPORT_CHAT) == []


# =====================================================================
# Dispatch and loading
# =====================================================================


class TestDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_routes_every_event_kind(self, engine, store, channel):
        await engine.dispatch(StartCommand(user_id=USER, display_name="Anna", channel_id=CHAT))
        await engine.dispatch(TextMessage(user_id=USER, channel_id=CHAT, text="Anna"))
        await engine.dispatch(ControlInteraction(
            user_id=USER,
            channel_id=CHAT,
            message_ref=channel.last_control_ref(),
            interaction_id="cb-1",
            action=ToggleOption(step=1, index=2),
        ))
        assert store.records[USER].selected_options == ["C"]

        await engine.dispatch(CancelCommand(user_id=USER, channel_id=CHAT))
        assert USER not in store.records

    @pytest.mark.asyncio
    async def test_session_beyond_catalog_is_discarded(self, engine, store, channel, caplog):
        """A record written against a longer questionnaire is dropped on load."""
        await store.set(USER, BriefSession(step=7, display_name="Anna", channel_id=CHAT), 600)

        with caplog.at_level(logging.WARNING, logger="brief_engine.engine"):
            await engine.handle_free_text(USER, CHAT, "hello")

        assert USER not in store.records
        assert channel.sent == []
        assert "Discarding brief" in caplog.text

    @pytest.mark.asyncio
    async def test_users_are_independent(self, engine, store, channel):
        await engine.start("u1", "One", "c1")
        await engine.start("u2", "Two", "c2")
        await engine.handle_free_text("u1", "c1", "One")

        assert store.records["u1"].step == 1
        assert store.records["u2"].step == 0


# =====================================================================
# Redelivery
# =====================================================================


@pytest.fixture
def flaky():
    return FlakyChannel()


@pytest.fixture
def flaky_engine(catalog, store, flaky):
    return BriefEngine(
        catalog, store, flaky, report_channel_id=REPORT_CHAT, ttl_seconds=600,
    )


def toggle_event(channel, action, event_id):
    return ControlInteraction(
        user_id=USER,
        channel_id=CHAT,
        message_ref=channel.last_control_ref(),
        interaction_id=f"cb-{event_id}",
        action=action,
        event_id=event_id,
    )


async def deliver(engine, event):
    """Deliver *event*; a collaborator failure is what makes the transport retry."""
    try:
        await engine.dispatch(event)
    except CollaboratorUnavailableError:
        return False
    return True


class TestRedelivery:
    """The same update delivered again after a failed outbound call."""

    @pytest.mark.asyncio
    async def test_free_text_is_not_recorded_twice(self, flaky_engine, store, flaky):
        await flaky_engine.dispatch(StartCommand(
            user_id=USER, display_name="Anna", channel_id=CHAT, event_id="10",
        ))
        event = TextMessage(user_id=USER, channel_id=CHAT, text="Anna", event_id="11")

        flaky.fail_next_send = True
        assert await deliver(flaky_engine, event) is False
        assert await deliver(flaky_engine, event) is True

        session = store.records[USER]
        assert session.answers == ["Anna"]
        assert session.step == 1
        assert session.last_event_id == "11"
        assert "Pick letters" in flaky.last.text, "Retry must show the next question"

    @pytest.mark.asyncio
    async def test_toggle_does_not_flip_back(self, flaky_engine, store, flaky):
        await start_at_multi(flaky_engine)
        event = toggle_event(flaky, ToggleOption(step=1, index=1), "20")

        flaky.fail_next_edit = True
        assert await deliver(flaky_engine, event) is False
        assert store.records[USER].selected_options == ["B"]

        assert await deliver(flaky_engine, event) is True

        assert store.records[USER].selected_options == ["B"]
        assert len(flaky.edits) == 1
        labels = [b.label for b in flaky.edits[0][1].buttons]
        assert labels[:3] == ["⬜ A", "✅ B", "⬜ C"]

    @pytest.mark.asyncio
    async def test_other_toggle_reprompts(self, flaky_engine, store, flaky):
        await start_at_multi(flaky_engine)
        event = toggle_event(flaky, ToggleOther(step=1), "30")

        flaky.fail_next_send = True
        await deliver(flaky_engine, event)
        await deliver(flaky_engine, event)

        session = store.records[USER]
        assert session.selected_options == [OTHER_SENTINEL]
        assert session.awaiting_other_text is True
        assert flaky.last.text == "Type your option:"

    @pytest.mark.asyncio
    async def test_confirm_retry_presents_next_question(self, flaky_engine, store, flaky):
        await start_at_multi(flaky_engine)
        await tap(flaky_engine, flaky, ToggleOption(step=1, index=0))
        event = toggle_event(flaky, Confirm(step=1), "40")

        flaky.fail_next_send = True
        await deliver(flaky_engine, event)
        await deliver(flaky_engine, event)

        session = store.records[USER]
        assert session.step == 2
        assert session.answers == ["Anna", "A"]
        assert "Ready?" in flaky.last.text

    @pytest.mark.asyncio
    async def test_start_retry_keeps_progress(self, flaky_engine, store, flaky):
        start = StartCommand(user_id=USER, display_name="Anna", channel_id=CHAT, event_id="50")
        await flaky_engine.dispatch(start)
        version = store.records[USER].version

        await flaky_engine.dispatch(start)

        assert store.records[USER].version == version
        assert "Your name" in flaky.last.text

    @pytest.mark.asyncio
    async def test_distinct_updates_are_both_applied(self, flaky_engine, store, flaky):
        await start_at_multi(flaky_engine)

        await flaky_engine.dispatch(toggle_event(flaky, ToggleOption(step=1, index=2), "60"))
        await flaky_engine.dispatch(toggle_event(flaky, ToggleOption(step=1, index=2), "61"))

        assert store.records[USER].selected_options == []

    @pytest.mark.asyncio
    async def test_failure_before_save_is_applied_on_retry(self, flaky_engine, store):
        """A write that never landed leaves nothing to recognise; the retry applies."""
        await flaky_engine.dispatch(StartCommand(
            user_id=USER, display_name="Anna", channel_id=CHAT, event_id="70",
        ))
        event = TextMessage(user_id=USER, channel_id=CHAT, text="Anna", event_id="71")

        store.fail_next_set = True
        assert await deliver(flaky_engine, event) is False
        assert store.records[USER].step == 0

        assert await deliver(flaky_engine, event) is True
        assert store.records[USER].answers == ["Anna"]

    @pytest.mark.asyncio
    async def test_events_without_id_are_always_applied(self, engine, store, channel):
        await start_at_multi(engine)
        await tap(engine, channel, ToggleOption(step=1, index=0))
        await tap(engine, channel, ToggleOption(step=1, index=0))

        assert store.records[USER].selected_options == []
