import pytest

from brief_engine.catalog import QuestionCatalog
from brief_engine.engine import BriefEngine
from brief_engine.models.question import (
    FreeTextQuestion,
    MultiSelectQuestion,
    SingleSelectQuestion,
)

from helpers.fakes import REPORT_CHAT, InMemorySessionStore, RecordingChannel


def make_catalog():
    """Three questions, one of each kind."""
    return QuestionCatalog([
        FreeTextQuestion(id=1, text="Your name", hint="As you want to be addressed"),
        MultiSelectQuestion(id=2, text="Pick letters", options=("A", "B", "C"), allows_other=True),
        SingleSelectQuestion(id=3, text="Ready?", options=("Yes", "No")),
    ])


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture(scope="session")
def korner_catalog():
    """The packaged questionnaire, loaded once."""
    return QuestionCatalog.load()


@pytest.fixture
def store():
    """Fresh InMemorySessionStore for each test."""
    return InMemorySessionStore()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def engine(catalog, store, channel):
    """BriefEngine over the in-memory fakes."""
    return BriefEngine(
        catalog, store, channel, report_channel_id=REPORT_CHAT, ttl_seconds=600,
    )
