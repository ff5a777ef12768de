"""BriefFormatter — renders a finished session into the team report.

One block per catalog question: ``N. question`` followed by the stored
answer, or the ``—`` placeholder when the slot is missing or empty.
"""

from __future__ import annotations

from collections.abc import Sequence

from brief_engine.catalog import QuestionCatalog
from brief_engine.constants import MISSING_ANSWER_PLACEHOLDER
from brief_engine.models.session import BriefSession
from brief_engine.rendering import TemplateRenderer


class BriefFormatter:
    def __init__(
        self,
        catalog: QuestionCatalog,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self._catalog = catalog
        self._renderer = renderer or TemplateRenderer()

    def format(self, session: BriefSession) -> str:
        return self.format_answers(session.answers, display_name=session.display_name)

    def format_answers(self, answers: Sequence[str], *, display_name: str) -> str:
        """Render an answers snapshot; tolerates short or sparse lists."""
        items = []
        for step, question in enumerate(self._catalog):
            answer = answers[step] if step < len(answers) else None
            items.append({
                "id": question.id,
                "text": question.text,
                "answer": answer or MISSING_ANSWER_PLACEHOLDER,
            })
        messages = self._catalog.messages
        return self._renderer.render(
            "report.jinja2",
            title=messages.report_title,
            from_label=messages.report_from,
            display_name=display_name,
            items=items,
        )
