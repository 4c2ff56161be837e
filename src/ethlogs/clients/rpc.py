"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block numbers and filters

It returns `LogRecord` records ready for downstream decoding. Every failure
of a log query is raised as `QueryError`; node-side range/result limits as
`RangeTooLarge`.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from typing import Any

import httpx
from eth_utils import to_bytes

from ethlogs.core.config import BlockTag
from ethlogs.core.errors import QueryError, RangeTooLarge
from ethlogs.core.interfaces import TopicFilter
from ethlogs.core.models import LogRecord

log = logging.getLogger(__name__)

BLOCK_TAGS = ("earliest", "latest", "pending", "safe", "finalized")

# Error messages nodes and providers use when a getLogs request is too wide.
_RANGE_LIMIT_MARKERS = (
    "block range",
    "range is too large",
    "range too large",
    "query returned more than",
    "too many results",
    "exceed maximum block range",
    "response size exceeded",
    "limit exceeded",
)
_LIMIT_EXCEEDED_CODE = -32005


def to_hex_block(block: BlockTag) -> str:
    """Return a 0x-prefixed hex block number, or a validated block tag."""
    if isinstance(block, int):
        if block < 0:
            raise ValueError(f"Negative block number: {block}")
        return hex(block)
    tag = block.strip().lower()
    if tag in BLOCK_TAGS:
        return tag
    if tag.startswith("0x"):
        int(tag, 16)
        return tag
    if tag.isdigit():
        return hex(int(tag))
    raise ValueError(f"Invalid block tag: {block!r}")


def log_filter(
    addresses: Sequence[str],
    topics: TopicFilter | None,
    from_block: BlockTag | None = None,
    to_block: BlockTag | None = None,
) -> dict[str, Any]:
    """Build the filter object shared by eth_getLogs and eth_subscribe."""
    flt: dict[str, Any] = {}
    if addresses:
        flt["address"] = [a.lower() for a in addresses] if len(addresses) > 1 else addresses[0].lower()
    if topics:
        flt["topics"] = [
            None if t is None else (t.lower() if isinstance(t, str) else [x.lower() for x in t]) for t in topics
        ]
    if from_block is not None:
        flt["fromBlock"] = to_hex_block(from_block)
    if to_block is not None:
        flt["toBlock"] = to_hex_block(to_block)
    return flt


def is_range_limit(code: int | None, message: str) -> bool:
    msg = message.lower()
    return code == _LIMIT_EXCEEDED_CODE or any(marker in msg for marker in _RANGE_LIMIT_MARKERS)


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 8,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            transport=transport,
        )

    async def __aenter__(self) -> RPC:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def call(self, method: str, params: list[Any]) -> Any:
        """Issue one JSON-RPC request and return its `result`.

        Transport and protocol failures are raised as `QueryError`.
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        log.debug("rpc %s %s", method, params)
        try:
            r = await self.client.post(self.url, json=payload)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as e:
            raise QueryError(f"{method}: HTTP {e.response.status_code}", code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise QueryError(f"{method}: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise QueryError(f"{method}: invalid JSON response") from e

        if isinstance(data, dict) and data.get("error"):
            err = data["error"]
            code = err.get("code") if isinstance(err, dict) else None
            message = err.get("message", "") if isinstance(err, dict) else str(err)
            err_data = err.get("data") if isinstance(err, dict) else None
            cls = RangeTooLarge if method == "eth_getLogs" and is_range_limit(code, message) else QueryError
            raise cls(f"RPC error: {code} {message}", code=code, data=err_data)
        if not isinstance(data, dict) or "result" not in data:
            raise QueryError(f"{method}: response has no result")
        return data["result"]

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        return int(await self.call("eth_blockNumber", []), 16)

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        topics: TopicFilter | None = None,
        from_block: BlockTag = "earliest",
        to_block: BlockTag = "latest",
    ) -> list[LogRecord]:
        """Fetch logs for a set of addresses and a topics filter within a block range."""
        try:
            params = [log_filter(addresses, topics, from_block, to_block)]
        except ValueError as e:
            raise QueryError(str(e)) from e
        result = await self.call("eth_getLogs", params)
        if not isinstance(result, list):
            raise QueryError("eth_getLogs: result is not a list")
        try:
            out = [LogRecord.from_rpc(rl) for rl in result]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise QueryError(f"eth_getLogs: malformed log in response: {e}") from e
        log.debug("eth_getLogs %s..%s -> %d logs", from_block, to_block, len(out))
        return out

    async def get_code(self, address: str, block: BlockTag = "latest") -> bytes:
        """Return the bytecode deployed at `address` (b"" for accounts without code)."""
        try:
            params = [address, to_hex_block(block)]
        except ValueError as e:
            raise QueryError(str(e)) from e
        result = await self.call("eth_getCode", params)
        return to_bytes(hexstr=result) if result and result != "0x" else b""

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
