# cricket_api/errors.py
from __future__ import annotations

from typing import Optional


class ScoringError(Exception):
    """
    Base for every failure the scoring core reports to its caller.

    status_code is the HTTP equivalent used by main.py.
    retryable tells the caller whether resubmitting can succeed.
    """
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(ScoringError):
    """Missing or out-of-range input. Never retried."""
    status_code = 400


class NotFoundError(ScoringError):
    """Unknown match or player."""
    status_code = 404


class ConflictError(ScoringError):
    """
    Another write holds the match, or the match no longer accepts the write.
    Safe to retry once the current writer is done.
    """
    status_code = 409
    retryable = True


class PersistenceError(ScoringError):
    """The backing store is unavailable. Nothing was recorded."""
    status_code = 503
    retryable = True
