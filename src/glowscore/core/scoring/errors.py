"""Exception types raised by the scoring engine."""

from __future__ import annotations


class ScoringError(Exception):
    """Base class for scoring engine errors."""


class InvalidInputError(ScoringError, ValueError):
    """Raised when input violates the measurement contract.

    Malformed shapes, non-finite numbers and out-of-range enums all land
    here: they indicate a bug upstream, not a bad photo.
    """


class UnmeasurableSignalError(ScoringError):
    """Raised when a single signal cannot be measured (zero denominator, missing landmark).

    Pillars catch this and degrade the signal to a neutral score with zero
    confidence; it never escapes the engine.
    """

    def __init__(self, key: str, reason: str = "unmeasurable") -> None:
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason
