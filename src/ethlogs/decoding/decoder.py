"""Strict log decoder.

Translates a raw `LogRecord` into a `DecodedEvent` using an
`InterfaceSchema`. Parameters are walked in declaration order with two
cursors: one over `topics[1:]` (indexed parameters) and one over the data
payload (non-indexed parameters). Any disagreement between the log and the
schema raises a `DecodeError` subclass; nothing is silently dropped.
"""

from __future__ import annotations

from typing import Any

from ethlogs.core.errors import DecodeError, FieldCountMismatch, UnknownEvent, UnsupportedType
from ethlogs.core.models import DecodedEvent, IndexedHash, LogRecord
from ethlogs.decoding.specs import EventSpec, InterfaceSchema
from ethlogs.decoding.types import WORD

# ---------- helper functions ----------


def _resolve_spec(schema: InterfaceSchema, log: LogRecord) -> EventSpec:
    if not log.topics:
        raise UnknownEvent("log has no topics (anonymous event?)", log=log)
    spec = schema.by_topic0(log.topics[0])
    if spec is None:
        raise UnknownEvent(f"no event with topic0 {log.topics[0]}", log=log)
    return spec


def _data_width(spec: EventSpec, log: LogRecord) -> int:
    width = 0
    for p in spec.non_indexed:
        if p.abi_type.is_dynamic:
            raise UnsupportedType(
                f"{spec.name}.{p.name}: dynamic type {p.type} is not supported in the data section",
                log=log,
                event=spec.name,
            )
        width += p.abi_type.width
    return width


def _check_shape(spec: EventSpec, log: LogRecord) -> None:
    expected_topics = len(spec.indexed) + 1
    if len(log.topics) != expected_topics:
        raise FieldCountMismatch(
            f"{spec.name}: expected {expected_topics} topics, got {len(log.topics)}",
            log=log,
            event=spec.name,
        )
    expected_data = _data_width(spec, log)
    if len(log.data) != expected_data:
        raise FieldCountMismatch(
            f"{spec.name}: expected {expected_data} bytes of data, got {len(log.data)}",
            log=log,
            event=spec.name,
        )


def _topic_bytes(topic: str) -> bytes:
    raw = bytes.fromhex(topic[2:] if topic[:2].lower() == "0x" else topic)
    if len(raw) != WORD:
        raise DecodeError(f"topic {topic} is not 32 bytes")
    return raw


# ---------- main decoder ----------


def decode_log(schema: InterfaceSchema, log: LogRecord) -> DecodedEvent:
    """Decode one log into a `DecodedEvent` or raise a `DecodeError`.

    - `UnknownEvent`: no topics, or topic0 not in the schema.
    - `FieldCountMismatch`: topic count / data length disagree with the event.
    - `UnsupportedType`: a non-indexed parameter has a dynamic type.
    - `DecodeError`: a word is not a canonical encoding of its declared type.
    """
    spec = _resolve_spec(schema, log)
    _check_shape(spec, log)

    fields: dict[str, Any] = {}
    topic_cursor = 1
    data_cursor = 0
    try:
        for p in spec.parameters:
            typ = p.abi_type
            if p.indexed:
                word = _topic_bytes(log.topics[topic_cursor])
                topic_cursor += 1
                # Reference types are hashed into the topic; the value is gone.
                fields[p.name] = typ.decode(word) if typ.is_value_type else IndexedHash(word)
            else:
                fields[p.name] = typ.decode(log.data, data_cursor)
                data_cursor += typ.width
    except DecodeError as e:
        e.log = e.log or log
        e.event = e.event or spec.name
        raise
    except ValueError as e:
        raise DecodeError(f"{spec.name}: {e}", log=log, event=spec.name) from e

    return DecodedEvent(name=spec.name, fields=fields, log=log)
