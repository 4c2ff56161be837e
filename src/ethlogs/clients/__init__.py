"""Node access: JSON-RPC over HTTP and WebSocket log subscriptions."""

from ethlogs.clients.rpc import RPC, log_filter, to_hex_block
from ethlogs.clients.ws import WSLogStream, WSSubscriber

__all__ = [
    "RPC",
    "log_filter",
    "to_hex_block",
    "WSLogStream",
    "WSSubscriber",
]
