"""Normalized inbound events and control actions.

Transport code decodes raw webhook payloads into these models before they
reach the engine, so the engine never inspects raw strings.

Control actions (``action`` discriminator):
  - ToggleOption: flip one multi-select option
  - ToggleOther:  flip the free-text "other" escape of a multi-select
  - Confirm:      finish a multi-select question
  - ChooseSingle: answer a single-select question
  - Cancel:       abandon the questionnaire

``step`` on the step-bound actions names the question whose keyboard
produced the tap; ``None`` means "whatever question is current".

Inbound events (``kind`` discriminator): StartCommand, TextMessage,
ControlInteraction and CancelCommand.  ``event_id`` is the transport's
delivery id (Telegram ``update_id``); a redelivered update carries the
same one.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class ToggleOption(_Action):
    action: Literal["toggle_option"] = "toggle_option"
    step: Optional[int] = Field(default=None, ge=0)
    index: int = Field(ge=0)


class ToggleOther(_Action):
    action: Literal["toggle_other"] = "toggle_other"
    step: Optional[int] = Field(default=None, ge=0)


class Confirm(_Action):
    action: Literal["confirm"] = "confirm"
    step: Optional[int] = Field(default=None, ge=0)


class ChooseSingle(_Action):
    action: Literal["choose_single"] = "choose_single"
    step: Optional[int] = Field(default=None, ge=0)
    index: int = Field(ge=0)


class Cancel(_Action):
    action: Literal["cancel"] = "cancel"


ControlAction = Annotated[
    Union[ToggleOption, ToggleOther, Confirm, ChooseSingle, Cancel],
    Field(discriminator="action"),
]


class MessageRef(BaseModel):
    """Address of a previously sent control message (for in-place edits)."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    message_id: str


class StartCommand(BaseModel):
    kind: Literal["start"] = "start"
    user_id: str
    display_name: str
    channel_id: str
    event_id: Optional[str] = None


class TextMessage(BaseModel):
    kind: Literal["text"] = "text"
    user_id: str
    channel_id: str
    text: str
    event_id: Optional[str] = None


class ControlInteraction(BaseModel):
    kind: Literal["control"] = "control"
    user_id: str
    channel_id: str
    message_ref: MessageRef
    interaction_id: str
    action: ControlAction
    event_id: Optional[str] = None


class CancelCommand(BaseModel):
    kind: Literal["cancel"] = "cancel"
    user_id: str
    channel_id: str
    event_id: Optional[str] = None


InboundEvent = Annotated[
    Union[StartCommand, TextMessage, ControlInteraction, CancelCommand],
    Field(discriminator="kind"),
]
