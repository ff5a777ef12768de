"""QuestionCatalog — the fixed, ordered questionnaire loaded from YAML.

The catalog is built once at startup and never mutated afterwards.  It
holds the question definitions and the user-facing message texts that go
with them (welcome, prompts, keyboard labels, report headings).

Usage::

    catalog = QuestionCatalog.load()          # packaged Korner brief
    catalog = QuestionCatalog.from_yaml(path) # custom questionnaire

    first = catalog[0]
    total = len(catalog)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from brief_engine.constants import DEFAULT_CATALOG_PATH
from brief_engine.models.question import Question

logger = logging.getLogger(__name__)

_QUESTIONS_ADAPTER = TypeAdapter(list[Question])


class CatalogError(ValueError):
    """The questionnaire definition is malformed."""


class CatalogMessages(BaseModel):
    """User-facing texts; ``{total}`` / ``{number}`` are filled at render time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = "Brief"
    welcome: str = "Welcome! Please fill in the brief."
    question_count: str = "{total} questions in total. Let's start!"
    question_header: str = "Question {number} of {total}"
    other_label: str = "Other"
    confirm_label: str = "Done"
    other_prompt: str = "Type your option:"
    empty_selection: str = "Choose at least one option"
    completed: str = "Thank you! Your brief has been sent to the team."
    cancelled: str = "The brief has been cancelled."
    report_title: str = "New brief"
    report_from: str = "From:"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


class QuestionCatalog(Sequence):
    """Immutable ordered list of questions.

    Indexing is by step (0-based); ``question.id`` is ``step + 1``.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        messages: CatalogMessages | None = None,
    ) -> None:
        self._questions: tuple[Question, ...] = tuple(questions)
        self.messages = messages or CatalogMessages()
        self._validate()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuestionCatalog:
        """Build a catalog from the parsed YAML document."""
        if not isinstance(data, dict):
            raise CatalogError("catalog document must be a mapping")
        try:
            questions = _QUESTIONS_ADAPTER.validate_python(data.get("questions") or [])
            messages = CatalogMessages.model_validate(data.get("messages") or {})
        except ValidationError as exc:
            raise CatalogError(f"invalid catalog: {exc}") from exc
        return cls(questions, messages)

    @classmethod
    def from_yaml(cls, path: Path | str) -> QuestionCatalog:
        catalog = cls.from_dict(load_yaml(path))
        logger.info("QuestionCatalog loaded: %d questions from %s", len(catalog), path)
        return catalog

    @classmethod
    def load(cls, path: Path | str | None = None) -> QuestionCatalog:
        """Load *path*, or the packaged questionnaire when omitted."""
        return cls.from_yaml(path or DEFAULT_CATALOG_PATH)

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------

    def __getitem__(self, step):
        return self._questions[step]

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __repr__(self) -> str:
        return f"<QuestionCatalog(questions={len(self)})>"

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        if not self._questions:
            raise CatalogError("catalog must contain at least one question")
        for step, question in enumerate(self._questions):
            if question.id != step + 1:
                raise CatalogError(
                    f"question ids must be contiguous from 1: "
                    f"position {step + 1} has id {question.id}"
                )
