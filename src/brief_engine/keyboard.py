"""KeyboardRenderer — builds the selectable control for a question.

Rendering is a pure function of ``(step, question, selected_options)``:
calling it twice with the same inputs yields equal controls, which is what
makes in-place edits after a toggle safe.

Layouts:
    single_select: one row per option           → ChooseSingle(step, i)
    multi_select:  one row per option with mark → ToggleOption(step, i)
                   [one "other" row with mark]  → ToggleOther(step)
                   one confirm row              → Confirm(step)
"""

from __future__ import annotations

from collections.abc import Sequence

from brief_engine.constants import CHECKED_MARK, OTHER_SENTINEL, UNCHECKED_MARK
from brief_engine.models.control import Control, ControlButton
from brief_engine.models.events import ChooseSingle, Confirm, ToggleOption, ToggleOther
from brief_engine.models.question import (
    FreeTextQuestion,
    MultiSelectQuestion,
    Question,
    SingleSelectQuestion,
)


def _mark(selected: bool) -> str:
    return CHECKED_MARK if selected else UNCHECKED_MARK


class KeyboardRenderer:
    """Builds ``Control`` objects for select questions.

    Args:
        other_label: label of the free-text escape row
        confirm_label: label of the multi-select confirm row
    """

    def __init__(self, *, other_label: str = "Other", confirm_label: str = "Done") -> None:
        self._other_label = other_label
        self._confirm_label = confirm_label

    def render(
        self,
        step: int,
        question: Question,
        selected_options: Sequence[str] = (),
    ) -> Control | None:
        """Return the control for *question*, or ``None`` for free text."""
        if isinstance(question, FreeTextQuestion):
            return None
        if isinstance(question, SingleSelectQuestion):
            return self.single_select(step, question.options)
        if isinstance(question, MultiSelectQuestion):
            return self.multi_select(
                step, question.options, selected_options, allows_other=question.allows_other,
            )
        raise TypeError(f"Unsupported question type: {type(question).__name__}")

    def single_select(self, step: int, options: Sequence[str]) -> Control:
        rows = [
            (ControlButton(label=opt, action=ChooseSingle(step=step, index=i)),)
            for i, opt in enumerate(options)
        ]
        return Control(rows=tuple(rows))

    def multi_select(
        self,
        step: int,
        options: Sequence[str],
        selected_options: Sequence[str],
        *,
        allows_other: bool = False,
    ) -> Control:
        rows = [
            (
                ControlButton(
                    label=f"{_mark(opt in selected_options)} {opt}",
                    action=ToggleOption(step=step, index=i),
                ),
            )
            for i, opt in enumerate(options)
        ]
        if allows_other:
            rows.append((
                ControlButton(
                    label=f"{_mark(OTHER_SENTINEL in selected_options)} {self._other_label}",
                    action=ToggleOther(step=step),
                ),
            ))
        rows.append((
            ControlButton(
                label=f"{CHECKED_MARK} {self._confirm_label}",
                action=Confirm(step=step),
            ),
        ))
        return Control(rows=tuple(rows))
