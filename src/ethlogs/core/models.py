"""Core data models shared by the decoder, the query engine and subscriptions.

This module defines:
- `LogRecord`: raw log as delivered by the node, minimally normalized.
- `IndexedHash`: marker for indexed values that only exist as a hash.
- `DecodedEvent`: a log resolved against an `InterfaceSchema`.

Design notes
------------
- Records are frozen; the decoder never mutates what the node produced.
- Topics are kept as lowercased 0x-hex strings (the wire form), data as bytes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from eth_utils import to_bytes


def _hex_to_bytes(value: str | bytes | None) -> bytes:
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    return to_bytes(hexstr=value) if value not in ("", "0x") else b""


def _lower(value: Any) -> str | None:
    return str(value).lower() if value else None


def _quantity(value: str | int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


# === Node record ===


@dataclass(slots=True, frozen=True)
class LogRecord:
    """Raw log as fetched from RPC or pushed by a subscription."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data: bytes
    block_number: int | None = None
    block_hash: str | None = None
    transaction_hash: str | None = None
    log_index: int | None = None
    removed: bool = False

    @classmethod
    def from_rpc(cls, raw: Mapping[str, Any]) -> LogRecord:
        """Build a record from a JSON-RPC log object (`eth_getLogs` / `eth_subscription`)."""
        topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in raw.get("topics") or [])
        return cls(
            address=str(raw.get("address") or "").lower(),
            topics=topics,
            data=_hex_to_bytes(raw.get("data")),
            block_number=_quantity(raw.get("blockNumber")),
            block_hash=_lower(raw.get("blockHash")),
            transaction_hash=_lower(raw.get("transactionHash")),
            log_index=_quantity(raw.get("logIndex")),
            removed=bool(raw.get("removed", False)),
        )

    @property
    def topic0(self) -> str | None:
        return self.topics[0] if self.topics else None


# === Decoded values ===


@dataclass(slots=True, frozen=True)
class IndexedHash:
    """Indexed parameter of a non-value type: the topic holds keccak(value).

    The original value is not recoverable from the log; only the raw
    32-byte topic is kept.
    """

    topic: bytes

    @property
    def hex(self) -> str:
        return "0x" + self.topic.hex()

    def __str__(self) -> str:
        return self.hex


@dataclass(slots=True, frozen=True)
class DecodedEvent:
    """Structured event reconstructed from one log."""

    name: str
    fields: Mapping[str, Any]
    log: LogRecord

    @property
    def block_number(self) -> int | None:
        return self.log.block_number

    @property
    def log_index(self) -> int | None:
        return self.log.log_index

    @property
    def transaction_hash(self) -> str | None:
        return self.log.transaction_hash

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]
