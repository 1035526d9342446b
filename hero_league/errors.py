"""
Engine error taxonomy.

PreconditionError: caller-facing rejection, raised before any mutation.
ValidationError: caller sent bad input (draft edits, event creation).
DataIntegrityError: an invariant elsewhere in the system is broken; aborts the transaction.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for everything the engine raises on purpose."""


class PreconditionError(EngineError, ValueError):
    """Operation not allowed in the current state (e.g. league with < 2 rosters)."""


class NotFoundError(PreconditionError):
    """Entity addressed by the caller does not exist."""


class ValidationError(EngineError, ValueError):
    """Caller input is malformed."""


class DraftValidationError(ValidationError):
    """Duplicate role / pick order within a side, unknown hero, foreign player."""


class DataIntegrityError(EngineError, RuntimeError):
    """Referenced player/hero vanished, no eligible hero left, missing standing row."""
