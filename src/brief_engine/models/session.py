"""Session model — the per-user progress record persisted in the store.

A stored session always has ``step < len(catalog)``: reaching the end of the
catalog deletes the record in the same transition, so "completed" is never
a stored state.  "No session" is simply the absence of a record.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field

from brief_engine.constants import ANSWER_SEPARATOR, OTHER_SENTINEL


class SessionState(str, enum.Enum):
    """Observable states of a user's questionnaire.

    Transitions:
        no_session -> awaiting_answer           (start)
        awaiting_answer -> awaiting_answer      (answer, step + 1)
        awaiting_answer -> awaiting_other_text  (toggle "other" on)
        awaiting_other_text -> awaiting_answer  (toggle "other" off, or
                                                 the text arrives, step + 1)
        any -> no_session                       (cancel, last answer)
    """

    NO_SESSION = "no_session"
    AWAITING_ANSWER = "awaiting_answer"
    AWAITING_OTHER_TEXT = "awaiting_other_text"


class BriefSession(BaseModel):
    """One in-flight questionnaire.

    ``version`` is assigned by the store on every write and is 0 for a
    session that has never been persisted.
    """

    step: int = Field(default=0, ge=0)
    answers: list[str] = Field(default_factory=list)
    selected_options: list[str] = Field(default_factory=list)
    awaiting_other_text: bool = False
    display_name: str
    channel_id: str
    version: int = 0
    # Transport id of the last event applied to this record
    last_event_id: str | None = None

    @property
    def state(self) -> SessionState:
        if self.awaiting_other_text:
            return SessionState.AWAITING_OTHER_TEXT
        return SessionState.AWAITING_ANSWER

    @property
    def has_other(self) -> bool:
        return OTHER_SENTINEL in self.selected_options

    def selection_answer(self) -> str:
        """The current selection as a stored answer, sentinel excluded."""
        return ANSWER_SEPARATOR.join(
            o for o in self.selected_options if o != OTHER_SENTINEL
        )

    def set_answer(self, value: str) -> None:
        """Write the answer slot for the current step."""
        if len(self.answers) <= self.step:
            self.answers.extend([""] * (self.step + 1 - len(self.answers)))
        self.answers[self.step] = value

    def toggle(self, option: str) -> bool:
        """Flip membership of *option*; returns True if it is now selected."""
        if option in self.selected_options:
            self.selected_options.remove(option)
            return False
        self.selected_options.append(option)
        return True
