"""QuestionPresenter — renders a question and sends it to the user.

Free-text questions go out as a plain message; select questions carry the
control built by :class:`~brief_engine.keyboard.KeyboardRenderer`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from brief_engine.catalog import QuestionCatalog
from brief_engine.interfaces import MessagingChannel
from brief_engine.keyboard import KeyboardRenderer
from brief_engine.models.events import MessageRef
from brief_engine.rendering import TemplateRenderer

logger = logging.getLogger(__name__)


class QuestionPresenter:
    """Sends questions from *catalog* through *channel*."""

    def __init__(
        self,
        catalog: QuestionCatalog,
        channel: MessagingChannel,
        *,
        keyboard: KeyboardRenderer | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self._catalog = catalog
        self._channel = channel
        self._keyboard = keyboard or KeyboardRenderer(
            other_label=catalog.messages.other_label,
            confirm_label=catalog.messages.confirm_label,
        )
        self._renderer = renderer or TemplateRenderer()

    @property
    def keyboard(self) -> KeyboardRenderer:
        return self._keyboard

    def render_text(self, step: int) -> str:
        """Question text: "N of M" header, prompt and optional hint."""
        question = self._catalog[step]
        header = self._catalog.messages.question_header.format(
            number=question.id, total=len(self._catalog),
        )
        return self._renderer.render("question.jinja2", header=header, question=question)

    def render_welcome(self) -> str:
        messages = self._catalog.messages
        return self._renderer.render(
            "welcome.jinja2",
            title=messages.title,
            welcome=messages.welcome,
            question_count=messages.question_count.format(total=len(self._catalog)),
        )

    async def present(
        self,
        channel_id: str,
        step: int,
        selected_options: Sequence[str] = (),
    ) -> MessageRef | None:
        """Send question *step*; returns the control message ref, if any."""
        question = self._catalog[step]
        text = self.render_text(step)
        control = self._keyboard.render(step, question, selected_options)
        logger.debug("Presenting question %d (%s)", question.id, question.kind)
        if control is None:
            await self._channel.send_text(channel_id, text)
            return None
        return await self._channel.send_with_control(channel_id, text, control)
