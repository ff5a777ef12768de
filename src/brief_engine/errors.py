"""Exception taxonomy for the brief engine.

A missing session is not an exception: every handler treats
it as a quiet no-op.  An empty selection on confirm is reported to the user
as a chat message and never raised either.

    BriefError
      ├── InvalidOptionError          — caller sent an action the current
      │                                 question cannot accept
      └── CollaboratorUnavailableError — store or channel call failed
            └── StaleSessionError     — compare-and-swap lost to a
                                        concurrent writer
"""


class BriefError(Exception):
    """Base class for all brief engine errors."""


class InvalidOptionError(BriefError, ValueError):
    """An option index or action does not fit the current question.

    Signals a contract violation at the transport-decoding layer, not a
    recoverable runtime condition.
    """


class CollaboratorUnavailableError(BriefError):
    """The session store or the messaging channel failed.

    Propagated to whoever dispatched the event; the engine never retries.
    """


class StaleSessionError(CollaboratorUnavailableError):
    """A conditional write found a different version stamp (or no record)."""
