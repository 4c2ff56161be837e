from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

BlockTag = int | str

RPC_URL_ENV = "ETHLOGS_RPC_URL"
WS_URL_ENV = "ETHLOGS_WS_URL"


@dataclass(frozen=True)
class NodeConfig:
    """Endpoints and transport limits for the node being queried."""

    rpc_url: str = "http://127.0.0.1:8545"
    ws_url: str = "ws://127.0.0.1:8546"
    timeout_s: int = 20
    max_connections: int = 8
    max_message_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_env(cls, **overrides) -> NodeConfig:
        """Build a config from ETHLOGS_* environment variables, then explicit overrides."""
        values: dict[str, object] = {}
        if os.environ.get(RPC_URL_ENV):
            values["rpc_url"] = os.environ[RPC_URL_ENV]
        if os.environ.get(WS_URL_ENV):
            values["ws_url"] = os.environ[WS_URL_ENV]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True)
class QueryConfig:
    """One bounded historical log query."""

    addresses: list[str]
    from_block: BlockTag = "earliest"
    to_block: BlockTag = "latest"
    events: list[str] = field(default_factory=list)  # empty: every event in the schema
    on_error: Literal["raise", "skip"] = "raise"


@dataclass(frozen=True)
class SubscribeConfig:
    """One live log subscription."""

    addresses: list[str]
    events: list[str] = field(default_factory=list)
    on_decode_error: Literal["report", "fail"] = "report"
