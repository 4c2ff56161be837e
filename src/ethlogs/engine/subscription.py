"""Live subscription: a pump task feeding one queue of tagged deliveries.

Each `LogSubscription` owns one `ILogStream` and one `asyncio.Queue`. The
pump task reads raw logs, decodes them and enqueues:

- `EventDelivery(event)` for every decoded log,
- `DecodeFailure(error, log)` for a log that does not decode (isolated; the
  subscription stays ACTIVE unless `on_decode_error="fail"`),
- `Terminated(error)` exactly once, when the handle leaves ACTIVE
  (`error` is None for a caller close).

State machine::

    ACTIVE --close()----------> CLOSED
    ACTIVE --transport error--> FAILED(error)

Nothing is enqueued after a terminal state. The terminal marker is put
back after each read so that every pending and future receiver sees it.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Literal

from ethlogs.core.config import SubscribeConfig
from ethlogs.core.errors import DecodeError, EthLogsError, SubscriptionTransportError
from ethlogs.core.interfaces import ILogsSubscriber, ILogStream, TopicFilter
from ethlogs.core.models import DecodedEvent, LogRecord
from ethlogs.decoding.decoder import decode_log
from ethlogs.decoding.specs import InterfaceSchema, events_filter

log = logging.getLogger(__name__)

OnDecodeError = Literal["report", "fail"]


class SubscriptionState(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    FAILED = "failed"


# ---------- deliveries ----------


@dataclass(frozen=True, slots=True)
class EventDelivery:
    event: DecodedEvent


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    error: DecodeError
    log: LogRecord


@dataclass(frozen=True, slots=True)
class Terminated:
    error: EthLogsError | None = None  # None: closed by the caller


Delivery = EventDelivery | DecodeFailure | Terminated


# ---------- handle ----------


class LogSubscription:
    """Handle over one live log channel."""

    def __init__(
        self,
        stream: ILogStream,
        schema: InterfaceSchema,
        *,
        on_decode_error: OnDecodeError = "report",
    ) -> None:
        if on_decode_error not in ("report", "fail"):
            raise ValueError(f"Unknown on_decode_error policy: {on_decode_error!r}")
        self._stream = stream
        self._schema = schema
        self._on_decode_error = on_decode_error
        self._queue: asyncio.Queue[Delivery] = asyncio.Queue()
        self._state = SubscriptionState.ACTIVE
        self._error: EthLogsError | None = None
        self._task: asyncio.Task[None] | None = None
        self.delivered = 0
        self.failed_decodes = 0

    # ---------- lifecycle ----------

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("subscription already started")
        self._task = asyncio.create_task(self._pump(), name="ethlogs-subscription-pump")

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def error(self) -> EthLogsError | None:
        """The terminal error of a FAILED subscription."""
        return self._error

    @property
    def active(self) -> bool:
        return self._state is SubscriptionState.ACTIVE

    async def close(self) -> None:
        """Unsubscribe: ACTIVE -> CLOSED, release the channel, wake all receivers.

        Deliveries not yet consumed are discarded. Idempotent; closing a
        FAILED subscription only makes sure the channel is released.
        """
        if self._state is SubscriptionState.ACTIVE:
            self._state = SubscriptionState.CLOSED
            self._drain()
            self._queue.put_nowait(Terminated())
            log.info("subscription closed (%d events delivered)", self.delivered)
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait([self._task])
        await self._stream.close()

    async def __aenter__(self) -> LogSubscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ---------- pump ----------

    def _put(self, item: Delivery) -> None:
        if self._state is SubscriptionState.ACTIVE:
            self._queue.put_nowait(item)

    def _drain(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()

    async def _fail(self, error: EthLogsError) -> None:
        if self._state is not SubscriptionState.ACTIVE:
            return
        self._state = SubscriptionState.FAILED
        self._error = error
        self._queue.put_nowait(Terminated(error))
        log.error("subscription failed: %s", error)
        try:
            await self._stream.close()
        except (EthLogsError, OSError) as e:
            log.debug("releasing failed stream: %s", e)

    async def _pump(self) -> None:
        while self._state is SubscriptionState.ACTIVE:
            try:
                record = await self._stream.recv()
            except SubscriptionTransportError as e:
                await self._fail(e)
                return
            except Exception as e:
                # Any other stream failure is terminal as well; receivers must not hang.
                err = SubscriptionTransportError(f"{type(e).__name__}: {e}")
                err.__cause__ = e
                await self._fail(err)
                return
            if record.removed:
                log.info("log %s#%s removed by a reorg", record.transaction_hash, record.log_index)
            try:
                event = decode_log(self._schema, record)
            except DecodeError as e:
                if self._on_decode_error == "fail":
                    await self._fail(e)
                    return
                log.warning("undecodable log in block %s: %s", record.block_number, e)
                self.failed_decodes += 1
                self._put(DecodeFailure(e, record))
                continue
            self.delivered += 1
            self._put(EventDelivery(event))

    # ---------- receiving ----------

    async def _next_delivery(self) -> Delivery:
        item = await self._queue.get()
        if isinstance(item, Terminated):
            self._queue.put_nowait(item)
        return item

    async def deliveries(self) -> AsyncIterator[Delivery]:
        """Yield every delivery, ending after (and including) the terminal one."""
        while True:
            item = await self._next_delivery()
            yield item
            if isinstance(item, Terminated):
                return

    async def next_event(self) -> DecodedEvent | None:
        """Wait for the next decoded event.

        Returns None once the subscription is closed; raises the terminal
        error of a FAILED subscription. Decode failures are skipped.
        """
        while True:
            item = await self._next_delivery()
            if isinstance(item, EventDelivery):
                return item.event
            if isinstance(item, Terminated):
                if item.error is None:
                    return None
                raise item.error

    def __aiter__(self) -> AsyncIterator[DecodedEvent]:
        return self._events()

    async def _events(self) -> AsyncIterator[DecodedEvent]:
        while True:
            event = await self.next_event()
            if event is None:
                return
            yield event


# ---------- entry points ----------


async def subscribe(
    subscriber: ILogsSubscriber,
    schema: InterfaceSchema,
    *,
    addresses: Sequence[str],
    topics: TopicFilter | None = None,
    on_decode_error: OnDecodeError = "report",
) -> LogSubscription:
    """Open a live channel and start decoding; the returned handle is ACTIVE.

    Re-invoke to reconnect after a FAILED handle; nothing here retries.
    """
    if on_decode_error not in ("report", "fail"):
        raise ValueError(f"Unknown on_decode_error policy: {on_decode_error!r}")
    stream = await subscriber.subscribe_logs(addresses=list(addresses), topics=topics)
    sub = LogSubscription(stream, schema, on_decode_error=on_decode_error)
    sub.start()
    return sub


async def run_subscription(
    subscriber: ILogsSubscriber,
    schema: InterfaceSchema,
    config: SubscribeConfig,
) -> LogSubscription:
    """Open a subscription from a `SubscribeConfig`."""
    topics = events_filter(schema, config.events)
    return await subscribe(
        subscriber,
        schema,
        addresses=config.addresses,
        topics=topics,
        on_decode_error=config.on_decode_error,
    )
