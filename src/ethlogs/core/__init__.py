"""Core data models, configuration, errors and collaborator interfaces.

This package provides:
- Data models (LogRecord, DecodedEvent, IndexedHash)
- Configuration classes (NodeConfig, QueryConfig, SubscribeConfig)
- The error taxonomy rooted at EthLogsError
"""

from ethlogs.core.config import NodeConfig, QueryConfig, SubscribeConfig
from ethlogs.core.errors import (
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
from ethlogs.core.models import DecodedEvent, IndexedHash, LogRecord

__all__ = [
    "NodeConfig",
    "QueryConfig",
    "SubscribeConfig",
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
]
