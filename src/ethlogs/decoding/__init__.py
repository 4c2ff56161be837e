"""Interface schemas and strict event decoding.

This package provides:
- Schema primitives (InterfaceSchema, EventSpec, ParameterSpec, FunctionSpec)
- Loaders from JSON ABI and from human-readable signatures
- The two-cursor log decoder and its inverse for synthetic logs
- Built-in schemas for the store contract and ERC-20 tokens
"""

from ethlogs.decoding.abi import load_schema
from ethlogs.decoding.decoder import decode_log
from ethlogs.decoding.encoder import encode_log
from ethlogs.decoding.registries import make_erc20_schema, make_store_schema
from ethlogs.decoding.registry_builder import event_spec_from_signature, schema_from_signatures
from ethlogs.decoding.specs import (
    EventSpec,
    FunctionSpec,
    InterfaceSchema,
    ParameterSpec,
    event_topic0,
    event_topics,
    events_filter,
    function_selector,
)
from ethlogs.decoding.types import AbiType, bytes32_to_text, encode_topic, parse_type

__all__ = [
    "load_schema",
    "decode_log",
    "encode_log",
    "make_erc20_schema",
    "make_store_schema",
    "event_spec_from_signature",
    "schema_from_signatures",
    "EventSpec",
    "FunctionSpec",
    "InterfaceSchema",
    "ParameterSpec",
    "event_topic0",
    "event_topics",
    "events_filter",
    "function_selector",
    "AbiType",
    "bytes32_to_text",
    "encode_topic",
    "parse_type",
]
