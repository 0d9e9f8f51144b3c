"""
Draft errors and warnings.
"""
from __future__ import annotations


class DraftError(Exception):
    """Base exception for all draft errors"""
    pass


class InvalidPickIndex(DraftError, IndexError):
    """Raised when the requested card is not in the active pack"""
    pass


class DraftCompleteError(InvalidPickIndex):
    """Raised when picking after the last round has finished"""
    pass


class NoUndoAvailable(DraftError):
    """Raised when undo is requested without a retained snapshot"""
    pass


class PersistenceFailure(DraftError):
    """Raised when the draft store cannot read or write its database"""
    pass


class RoundIntegrityWarning(UserWarning):
    """Emitted when a round ends with cards still left in a pack"""
    pass


__all__ = [
    "DraftError",
    "InvalidPickIndex",
    "DraftCompleteError",
    "NoUndoAvailable",
    "PersistenceFailure",
    "RoundIntegrityWarning",
]
