"""Public model re-exports for brief_engine.

Consumers should import from ``brief_engine.models`` rather than reaching
into sub-modules directly.
"""

# --- Questions ---
from brief_engine.models.question import (
    BaseQuestion,
    FreeTextQuestion,
    MultiSelectQuestion,
    Question,
    SingleSelectQuestion,
)

# --- Session ---
from brief_engine.models.session import BriefSession, SessionState

# --- Events ---
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

# --- Controls ---
from brief_engine.models.control import Control, ControlButton

__all__ = [
    # Questions
    "BaseQuestion",
    "FreeTextQuestion",
    "MultiSelectQuestion",
    "Question",
    "SingleSelectQuestion",
    # Session
    "BriefSession",
    "SessionState",
    # Events
    "Cancel",
    "CancelCommand",
    "ChooseSingle",
    "Confirm",
    "ControlAction",
    "ControlInteraction",
    "InboundEvent",
    "MessageRef",
    "StartCommand",
    "TextMessage",
    "ToggleOption",
    "ToggleOther",
    # Controls
    "Control",
    "ControlButton",
]
