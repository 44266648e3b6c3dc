from __future__ import annotations


class LedgerInputError(ValueError):
    """Base class for problems with the trade history handed to the engine."""


class MalformedRecordError(LedgerInputError):
    """
    A single offer record cannot be turned into a usable trade.

    Raised by record parsing; the sanitizer recovers by dropping the record
    and counting the reason.
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason


class FatalInputError(LedgerInputError):
    """The trade history as a whole is absent or not a record collection."""
