"""Error taxonomy for schema loading, log decoding, queries and subscriptions.

Every error raised by the package derives from `EthLogsError` so callers
(and the CLI) can catch one base class. Decode errors carry the offending
log so that skip-and-continue policies can report what was dropped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ethlogs.core.models import LogRecord


class EthLogsError(Exception):
    """Base class for all ethlogs errors."""


# ---- interface definitions ----


class SchemaParseError(EthLogsError):
    """Malformed interface description (ABI JSON or signature list)."""


# ---- decoding ----


class DecodeError(EthLogsError):
    """A log could not be decoded against the schema."""

    def __init__(self, message: str, *, log: LogRecord | None = None, event: str | None = None) -> None:
        super().__init__(message)
        self.log = log
        self.event = event


class UnknownEvent(DecodeError):
    """The log's topic0 matches no event in the schema."""


class FieldCountMismatch(DecodeError):
    """Topic count or data length disagrees with the declared event."""


class UnsupportedType(DecodeError):
    """A non-indexed parameter has a dynamic ABI type."""


# ---- node access ----


class QueryError(EthLogsError):
    """A historical log query failed as a whole."""

    def __init__(self, message: str, *, code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class RangeTooLarge(QueryError):
    """The node refused the block range or result size of a query."""


class SubscriptionTransportError(EthLogsError):
    """The live subscription channel failed; terminal for its handle."""
