"""WebSocket log subscriptions (`eth_subscribe("logs", filter)`).

This module provides:
- `WSSubscriber`: opens one WebSocket per subscription
- `WSLogStream`: the open channel; `recv()` yields `LogRecord`s

There is no reconnection here: a dropped connection raises
`SubscriptionTransportError` and the stream is done.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ethlogs.clients.rpc import log_filter
from ethlogs.core.errors import SubscriptionTransportError
from ethlogs.core.interfaces import TopicFilter
from ethlogs.core.models import LogRecord

log = logging.getLogger(__name__)

Connect = Callable[..., Awaitable[Any]]


class WSLogStream:
    """One live `logs` subscription on an open WebSocket."""

    def __init__(self, ws: Any, subscription_id: str, ids: itertools.count) -> None:
        self._ws = ws
        self.subscription_id = subscription_id
        self._ids = ids
        self._closed = False
        self._released = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def recv(self) -> LogRecord:
        """Wait for the next log notification of this subscription."""
        while True:
            if self._closed:
                raise SubscriptionTransportError("stream is closed")
            try:
                raw = await self._ws.recv()
            except ConnectionClosed as e:
                raise SubscriptionTransportError(f"connection closed: {e}") from e
            except (WebSocketException, OSError) as e:
                raise SubscriptionTransportError(f"{type(e).__name__}: {e}") from e

            try:
                message = json.loads(raw)
            except json.JSONDecodeError as e:
                log.warning("ignoring invalid JSON message: %s", e)
                continue

            if not isinstance(message, dict) or message.get("method") != "eth_subscription":
                # Responses to our own requests (e.g. unsubscribe) or unrelated traffic.
                log.debug("ignoring non-notification message: %s", message)
                continue
            params = message.get("params")
            if not isinstance(params, dict) or params.get("subscription") != self.subscription_id:
                continue
            result = params.get("result")
            if not isinstance(result, dict):
                log.warning("ignoring notification without a log object: %s", message)
                continue
            try:
                return LogRecord.from_rpc(result)
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise SubscriptionTransportError(f"malformed log in notification: {e}") from e

    async def close(self) -> None:
        """Unsubscribe (best effort) and close the socket. Idempotent.

        A close interrupted before the socket is released can be retried;
        the unsubscribe request is only attempted once.
        """
        if self._released:
            return
        if not self._closed:
            self._closed = True
            payload = {
                "jsonrpc": "2.0",
                "id": next(self._ids),
                "method": "eth_unsubscribe",
                "params": [self.subscription_id],
            }
            try:
                await self._ws.send(json.dumps(payload))
            except (WebSocketException, OSError) as e:
                log.debug("eth_unsubscribe not sent: %s", e)
        await self._ws.close()
        self._released = True


async def _confirmation(ws: Any, request_id: int) -> dict[str, Any]:
    """Wait for the response to `request_id`, skipping notifications and other traffic."""
    while True:
        response = json.loads(await ws.recv())
        if isinstance(response, dict) and response.get("id") == request_id:
            return response


class WSSubscriber:
    """Open `eth_subscribe("logs")` channels against a WebSocket endpoint.

    Parameters
    ----------
    url : str
        ws:// or wss:// endpoint.
    open_timeout : float
        Seconds allowed for the handshake and the subscription confirmation.
    max_size : int
        Maximum accepted message size in bytes.
    connect : callable, optional
        Coroutine factory returning a connection; defaults to `websockets.connect`.
    """

    def __init__(
        self,
        url: str,
        *,
        open_timeout: float = 20,
        max_size: int = 10 * 1024 * 1024,
        connect: Connect | None = None,
    ) -> None:
        self.url = url
        self.open_timeout = open_timeout
        self.max_size = max_size
        self._connect = connect or websockets.connect
        self._ids = itertools.count(1)

    async def subscribe_logs(
        self,
        *,
        addresses: Sequence[str],
        topics: TopicFilter | None = None,
    ) -> WSLogStream:
        log.info("connecting to %s", self.url)
        try:
            ws = await self._connect(self.url, open_timeout=self.open_timeout, max_size=self.max_size)
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise SubscriptionTransportError(f"cannot connect to {self.url}: {e}") from e

        request_id = next(self._ids)
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "eth_subscribe",
            "params": ["logs", log_filter(addresses, topics)],
        }
        try:
            await ws.send(json.dumps(payload))
            response = await asyncio.wait_for(_confirmation(ws, request_id), self.open_timeout)
        except asyncio.TimeoutError as e:
            await ws.close()
            raise SubscriptionTransportError(f"eth_subscribe not confirmed within {self.open_timeout}s") from e
        except (WebSocketException, OSError, json.JSONDecodeError) as e:
            await ws.close()
            raise SubscriptionTransportError(f"eth_subscribe failed: {e}") from e

        if response.get("error"):
            await ws.close()
            raise SubscriptionTransportError(f"eth_subscribe rejected: {response['error']}")
        subscription_id = response.get("result")
        log.info("subscribed to logs, subscription id %s", subscription_id)
        return WSLogStream(ws, subscription_id, self._ids)
