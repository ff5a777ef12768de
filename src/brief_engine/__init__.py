"""brief_engine — conversational multi-step form engine.

Public API:
    BriefEngine        — state machine: start, typed answers, button taps,
                         completion and cancellation
    QuestionCatalog    — immutable questionnaire loaded from YAML
    KeyboardRenderer   — builds select controls for a question
    QuestionPresenter  — renders and sends a question
    BriefFormatter     — renders the completed report
    KeyedLock          — per-user asyncio mutual exclusion

Collaborator interfaces:
    SessionStore       — ABC for session persistence with TTL and CAS
    MessagingChannel   — ABC for outbound chat calls

Errors:
    BriefError, InvalidOptionError, CollaboratorUnavailableError,
    StaleSessionError
"""

from brief_engine.catalog import CatalogError, CatalogMessages, QuestionCatalog
from brief_engine.engine import BriefEngine
from brief_engine.errors import (
    BriefError,
    CollaboratorUnavailableError,
    InvalidOptionError,
    StaleSessionError,
)
from brief_engine.formatter import BriefFormatter
from brief_engine.interfaces import MessagingChannel, SessionStore
from brief_engine.keyboard import KeyboardRenderer
from brief_engine.locking import KeyedLock
from brief_engine.presenter import QuestionPresenter
from brief_engine.rendering import TemplateRenderer

__all__ = [
    # Engine & catalog
    "BriefEngine",
    "CatalogError",
    "CatalogMessages",
    "QuestionCatalog",
    # Rendering
    "BriefFormatter",
    "KeyboardRenderer",
    "QuestionPresenter",
    "TemplateRenderer",
    # Concurrency
    "KeyedLock",
    # Interfaces
    "MessagingChannel",
    "SessionStore",
    # Errors
    "BriefError",
    "CollaboratorUnavailableError",
    "InvalidOptionError",
    "StaleSessionError",
]
