from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ethlogs.core.config import BlockTag
from ethlogs.core.models import LogRecord

# A topics filter as accepted by eth_getLogs / eth_subscribe: one entry per
# slot, each None (wildcard), a single 0x-hex word, or a list of words (OR).
TopicFilter = Sequence[str | Sequence[str] | None]


# ---------------------------------------------------------------------------
# ILogsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogsProvider(Protocol):
    """
    Abstract provider for historical EVM logs.

    Domain expectations:
    - It returns LogRecord objects already mapped from the wire format.
    - It issues exactly one request per `get_logs` call (no pagination).
    - Failures surface as QueryError (RangeTooLarge for node limits).
    """

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        topics: TopicFilter | None,
        from_block: BlockTag,
        to_block: BlockTag,
    ) -> list[LogRecord]:
        """
        Return all logs matching the filter over the inclusive block range.

        Implementations:
        - RPC-based (`ethlogs.clients.rpc.RPC`)
        - In-memory provider for testing
        """
        ...

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...

    async def get_code(self, address: str, block: BlockTag = "latest") -> bytes:
        """Return the deployed bytecode at `address` (empty if none)."""
        ...


# ---------------------------------------------------------------------------
# ILogStream / ILogsSubscriber
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogStream(Protocol):
    """
    One open live log channel.

    Domain expectations:
    - `recv` blocks until the next log; no timeout.
    - A transport failure raises SubscriptionTransportError; the stream is
      unusable afterwards.
    - `close` releases the channel and is idempotent.
    """

    async def recv(self) -> LogRecord:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class ILogsSubscriber(Protocol):
    """
    Factory of live log channels.

    Implementations:
    - WebSocket `eth_subscribe("logs")` (`ethlogs.clients.ws.WSSubscriber`)
    - Scripted in-memory streams for testing
    """

    async def subscribe_logs(
        self,
        *,
        addresses: Sequence[str],
        topics: TopicFilter | None,
    ) -> ILogStream:
        ...
