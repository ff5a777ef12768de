"""Selectable-control models produced by the keyboard renderer.

A ``Control`` is a transport-neutral grid of buttons.  Each button carries
the typed action a tap on it should produce; the transport decides how to
encode that action on the wire.
"""

from pydantic import BaseModel, ConfigDict

from brief_engine.models.events import ControlAction


class ControlButton(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    action: ControlAction


class Control(BaseModel):
    """Rows of buttons, top to bottom."""

    model_config = ConfigDict(frozen=True)

    rows: tuple[tuple[ControlButton, ...], ...]

    @property
    def buttons(self) -> list[ControlButton]:
        """All buttons flattened in display order."""
        return [b for row in self.rows for b in row]
