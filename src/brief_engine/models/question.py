"""Question models for the brief questionnaire.

Each question kind maps to a specific chat control and answer path:

    - free_text:     answered by a typed message
    - multi_select:  toggle rows + an optional "other" row + a confirm row
    - single_select: one row per option; a tap answers immediately

The discriminated ``Question`` union uses ``kind`` as its discriminator so
Pydantic can deserialise YAML dicts directly into the correct type.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from brief_engine.constants import OTHER_SENTINEL


class BaseQuestion(BaseModel):
    """Fields shared by all question kinds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # 1-based ordinal position in the catalog
    id: int = Field(ge=1)
    text: str
    hint: Optional[str] = None


class FreeTextQuestion(BaseQuestion):
    """Open-ended text input."""

    kind: Literal["free_text"] = "free_text"

    @property
    def options(self) -> tuple[str, ...]:
        return ()

    @property
    def allows_other(self) -> bool:
        return False


class _SelectQuestion(BaseQuestion):
    options: tuple[str, ...]

    @field_validator("options")
    @classmethod
    def _chk_options(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("select questions need at least one option")
        if OTHER_SENTINEL in value:
            raise ValueError(f"{OTHER_SENTINEL!r} is reserved and cannot be an option")
        if len(set(value)) != len(value):
            raise ValueError("options must be unique")
        return value


class MultiSelectQuestion(_SelectQuestion):
    """Pick one or more options, optionally adding a free-text "other"."""

    kind: Literal["multi_select"] = "multi_select"
    allows_other: bool = False


class SingleSelectQuestion(_SelectQuestion):
    """Pick exactly one option; the tap is the answer."""

    kind: Literal["single_select"] = "single_select"

    @property
    def allows_other(self) -> bool:
        return False


Question = Annotated[
    Union[FreeTextQuestion, MultiSelectQuestion, SingleSelectQuestion],
    Field(discriminator="kind"),
]
