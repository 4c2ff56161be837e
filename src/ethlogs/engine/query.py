"""Historical query: one bounded eth_getLogs request, every record decoded.

The engine never paginates: if the node refuses the range, the
`RangeTooLarge` error reaches the caller, who is responsible for chunking.
Decode failures either abort the whole query (default) or are collected
next to the successfully decoded events.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Literal

from ethlogs.core.config import BlockTag, QueryConfig
from ethlogs.core.errors import DecodeError, QueryError
from ethlogs.core.interfaces import ILogsProvider, TopicFilter
from ethlogs.core.models import DecodedEvent, LogRecord
from ethlogs.decoding.decoder import decode_log
from ethlogs.decoding.specs import InterfaceSchema, events_filter

log = logging.getLogger(__name__)

OnError = Literal["raise", "skip"]


@dataclass(kw_only=True)
class QueryResult:
    """Decoded events in node order plus, under the skip policy, what was dropped."""

    events: list[DecodedEvent] = field(default_factory=list)
    errors: list[tuple[LogRecord, DecodeError]] = field(default_factory=list)
    total_logs: int = 0

    def __iter__(self) -> Iterator[DecodedEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def __getitem__(self, i: int) -> DecodedEvent:
        return self.events[i]


def _check_range(from_block: BlockTag, to_block: BlockTag) -> None:
    if isinstance(from_block, int) and isinstance(to_block, int) and from_block > to_block:
        raise QueryError(f"from_block {from_block} is after to_block {to_block}")


def decode_all(
    schema: InterfaceSchema,
    logs: Sequence[LogRecord],
    *,
    on_error: OnError = "raise",
) -> QueryResult:
    """Decode `logs` in order under the given failure policy."""
    if on_error not in ("raise", "skip"):
        raise ValueError(f"Unknown on_error policy: {on_error!r}")
    result = QueryResult(total_logs=len(logs))
    for record in logs:
        try:
            result.events.append(decode_log(schema, record))
        except DecodeError as e:
            if on_error == "raise":
                raise
            log.warning(
                "skipping log %s#%s in block %s: %s",
                record.transaction_hash,
                record.log_index,
                record.block_number,
                e,
            )
            result.errors.append((record, e))
    return result


async def query_events(
    provider: ILogsProvider,
    schema: InterfaceSchema,
    *,
    addresses: Sequence[str],
    topics: TopicFilter | None = None,
    from_block: BlockTag = "earliest",
    to_block: BlockTag = "latest",
    on_error: OnError = "raise",
) -> QueryResult:
    """Retrieve and decode logs with exactly one provider request.

    Raises
    ------
    QueryError
        The retrieval failed as a whole (RangeTooLarge for node limits).
    DecodeError
        Under `on_error="raise"`, the first record that does not decode.
    """
    _check_range(from_block, to_block)
    logs = await provider.get_logs(
        addresses=list(addresses),
        topics=topics,
        from_block=from_block,
        to_block=to_block,
    )
    log.info("fetched %d logs for %s [%s..%s]", len(logs), ",".join(addresses), from_block, to_block)
    return decode_all(schema, logs, on_error=on_error)


async def run_query(provider: ILogsProvider, schema: InterfaceSchema, config: QueryConfig) -> QueryResult:
    """Run a `QueryConfig`, filtering on the configured event names (all schema events if none)."""
    topics = events_filter(schema, config.events)
    return await query_events(
        provider,
        schema,
        addresses=config.addresses,
        topics=topics,
        from_block=config.from_block,
        to_block=config.to_block,
        on_error=config.on_error,
    )
