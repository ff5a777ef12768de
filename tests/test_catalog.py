"""QuestionCatalog loading and validation.

Covers the packaged Korner questionnaire plus the structural rules every
catalog must satisfy (contiguous ids, valid options, kind-specific fields).
"""

import pytest

from brief_engine.catalog import CatalogError, CatalogMessages, QuestionCatalog
from brief_engine.constants import OTHER_SENTINEL
from brief_engine.models.question import (
    FreeTextQuestion,
    MultiSelectQuestion,
    SingleSelectQuestion,
)


# =====================================================================
# Packaged questionnaire
# =====================================================================


class TestKornerCatalog:
    def test_has_thirteen_questions(self, korner_catalog):
        assert len(korner_catalog) == 13

    def test_ids_follow_order(self, korner_catalog):
        assert [q.id for q in korner_catalog] == list(range(1, 14))

    def test_kinds(self, korner_catalog):
        kinds = [q.kind for q in korner_catalog]
        assert kinds[:6] == ["free_text"] * 6
        assert kinds[6:8] == ["multi_select", "multi_select"]
        assert kinds[8] == "free_text"
        assert kinds[9:12] == ["multi_select"] * 3
        assert kinds[12] == "single_select"

    def test_other_escape(self, korner_catalog):
        with_other = [q.id for q in korner_catalog if q.allows_other]
        assert with_other == [8, 12]

    def test_last_question_options(self, korner_catalog):
        last = korner_catalog[-1]
        assert isinstance(last, SingleSelectQuestion)
        assert last.options == ("Да, есть", "Нету", "В процессе запуска")

    def test_messages_are_localized(self, korner_catalog):
        messages = korner_catalog.messages
        assert messages.other_label == "Другое"
        assert messages.confirm_label == "Готово"
        assert messages.question_header.format(number=1, total=13) == "Вопрос 1 из 13"


# =====================================================================
# Construction
# =====================================================================


class TestFromDict:
    def test_minimal_document(self):
        catalog = QuestionCatalog.from_dict({
            "questions": [{"id": 1, "kind": "free_text", "text": "Name"}],
        })
        assert len(catalog) == 1
        assert isinstance(catalog[0], FreeTextQuestion)
        assert catalog.messages == CatalogMessages()

    def test_messages_override(self):
        catalog = QuestionCatalog.from_dict({
            "messages": {"confirm_label": "OK"},
            "questions": [{"id": 1, "kind": "free_text", "text": "Name"}],
        })
        assert catalog.messages.confirm_label == "OK"
        assert catalog.messages.other_label == "Other"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "brief.yaml"
        path.write_text(
            "questions:\n"
            "  - id: 1\n"
            "    kind: multi_select\n"
            "    text: Colours\n"
            "    options: [Red, Blue]\n"
            "    allows_other: true\n",
            encoding="utf-8",
        )
        catalog = QuestionCatalog.from_yaml(path)
        question = catalog[0]
        assert isinstance(question, MultiSelectQuestion)
        assert question.options == ("Red", "Blue")
        assert question.allows_other is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            QuestionCatalog.from_yaml(tmp_path / "absent.yaml")

    def test_catalog_is_a_sequence(self, catalog):
        assert [q.id for q in catalog] == [1, 2, 3]
        assert catalog[1].text == "Pick letters"
        assert "questions=3" in repr(catalog)


# =====================================================================
# Validation
# =====================================================================


class TestValidation:
    def test_empty_catalog(self):
        with pytest.raises(CatalogError):
            QuestionCatalog([])

    def test_document_must_be_mapping(self):
        with pytest.raises(CatalogError):
            QuestionCatalog.from_dict(["not", "a", "mapping"])

    def test_ids_must_be_contiguous(self):
        with pytest.raises(CatalogError, match="contiguous"):
            QuestionCatalog([
                FreeTextQuestion(id=1, text="a"),
                FreeTextQuestion(id=3, text="b"),
            ])

    def test_unknown_kind(self):
        with pytest.raises(CatalogError):
            QuestionCatalog.from_dict({
                "questions": [{"id": 1, "kind": "slider", "text": "?"}],
            })

    def test_allows_other_only_on_multi_select(self):
        with pytest.raises(CatalogError):
            QuestionCatalog.from_dict({
                "questions": [{
                    "id": 1, "kind": "single_select", "text": "?",
                    "options": ["a"], "allows_other": True,
                }],
            })

    def test_free_text_has_no_options(self):
        with pytest.raises(CatalogError):
            QuestionCatalog.from_dict({
                "questions": [{"id": 1, "kind": "free_text", "text": "?", "options": ["a"]}],
            })

    @pytest.mark.parametrize("options", [[], ["a", "a"], ["a", OTHER_SENTINEL]])
    def test_bad_options(self, options):
        with pytest.raises(CatalogError):
            QuestionCatalog.from_dict({
                "questions": [{
                    "id": 1, "kind": "multi_select", "text": "?", "options": options,
                }],
            })

    def test_unknown_message_key(self):
        with pytest.raises(CatalogError):
            QuestionCatalog.from_dict({
                "messages": {"goodbye": "bye"},
                "questions": [{"id": 1, "kind": "free_text", "text": "?"}],
            })
