from __future__ import annotations

from .clients.rpc import RPC
from .clients.ws import WSSubscriber
from .core.errors import (
    DecodeError,
    EthLogsError,
    FieldCountMismatch,
    QueryError,
    RangeTooLarge,
    SchemaParseError,
    SubscriptionTransportError,
    UnknownEvent,
    UnsupportedType,
)
from .core.models import DecodedEvent, IndexedHash, LogRecord
from .decoding.abi import load_schema
from .decoding.decoder import decode_log
from .decoding.registry_builder import schema_from_signatures
from .decoding.specs import EventSpec, InterfaceSchema, ParameterSpec
from .engine.query import QueryResult, query_events
from .engine.subscription import LogSubscription, SubscriptionState, subscribe

__version__ = "0.1.0"

__all__ = [
    "RPC",
    "WSSubscriber",
    "DecodeError",
    "EthLogsError",
    "FieldCountMismatch",
    "QueryError",
    "RangeTooLarge",
    "SchemaParseError",
    "SubscriptionTransportError",
    "UnknownEvent",
    "UnsupportedType",
    "DecodedEvent",
    "IndexedHash",
    "LogRecord",
    "load_schema",
    "decode_log",
    "schema_from_signatures",
    "EventSpec",
    "InterfaceSchema",
    "ParameterSpec",
    "QueryResult",
    "query_events",
    "LogSubscription",
    "SubscriptionState",
    "subscribe",
]
