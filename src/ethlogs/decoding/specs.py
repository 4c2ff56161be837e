"""Interface schema primitives.

Defines immutable dataclasses describing what a contract emits and exposes:
- `ParameterSpec`: one declared event parameter (name, type, indexed flag)
- `EventSpec`: ordered parameters + canonical signature + cached topic0
- `FunctionSpec`: canonical signature + 4-byte selector
- `InterfaceSchema`: events by name and by topic0, functions by name
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Any

from eth_utils import keccak

from ethlogs.core.errors import SchemaParseError
from ethlogs.decoding.types import AbiType, encode_topic, parse_type, topic_hex


def event_topic0(signature: str) -> str:
    """keccak-256 of a canonical event signature, as lowercased 0x-hex."""
    return "0x" + keccak(text=signature).hex()


def function_selector(signature: str) -> str:
    """First 4 bytes of keccak-256 of a canonical function signature."""
    return "0x" + keccak(text=signature)[:4].hex()


@dataclass(frozen=True)
class ParameterSpec:
    """One declared event parameter."""

    name: str
    type: str  # canonical, e.g. "address", "uint256", "(address,uint128)[2]"
    indexed: bool = False

    @cached_property
    def abi_type(self) -> AbiType:
        return parse_type(self.type)


@dataclass(frozen=True)
class EventSpec:
    """One event: parameters in declaration order and its topic0."""

    name: str
    parameters: tuple[ParameterSpec, ...]
    anonymous: bool = False
    signature: str = field(init=False)
    topic0: str = field(init=False)

    def __post_init__(self):
        signature = f"{self.name}({','.join(p.type for p in self.parameters)})"
        object.__setattr__(self, "signature", signature)
        object.__setattr__(self, "topic0", event_topic0(signature))

    @property
    def indexed(self) -> tuple[ParameterSpec, ...]:
        return tuple(p for p in self.parameters if p.indexed)

    @property
    def non_indexed(self) -> tuple[ParameterSpec, ...]:
        return tuple(p for p in self.parameters if not p.indexed)

    def topic_filter(self, **indexed_values: Any) -> list[str | None]:
        """Build an `eth_getLogs` topics filter for this event.

        Keyword arguments select indexed parameters by name; omitted ones
        (or None) are wildcards. Trailing wildcards are dropped.
        """
        by_name = {p.name: p for p in self.indexed}
        unknown = set(indexed_values) - set(by_name)
        if unknown:
            raise ValueError(f"{self.name}: not indexed parameters: {sorted(unknown)}")
        topics: list[str | None] = [self.topic0]
        for p in self.indexed:
            value = indexed_values.get(p.name)
            topics.append(None if value is None else topic_hex(encode_topic(p.abi_type, value)))
        while topics and topics[-1] is None:
            topics.pop()
        return topics


@dataclass(frozen=True)
class FunctionSpec:
    """One function: canonical signature and selector."""

    name: str
    inputs: tuple[str, ...]
    signature: str = field(init=False)
    selector: str = field(init=False)

    def __post_init__(self):
        signature = f"{self.name}({','.join(self.inputs)})"
        object.__setattr__(self, "signature", signature)
        object.__setattr__(self, "selector", function_selector(signature))


class InterfaceSchema:
    """Read-only view of a contract interface, keyed for decoding.

    Built once and shared; nothing mutates it after construction.
    """

    __slots__ = ("_events", "_by_topic0", "_functions")

    def __init__(self, events: Iterable[EventSpec] = (), functions: Iterable[FunctionSpec] = ()) -> None:
        ev: dict[str, EventSpec] = {}
        by_t0: dict[str, EventSpec] = {}
        for spec in events:
            if spec.name in ev:
                raise SchemaParseError(f"Duplicate event name: {spec.name}")
            ev[spec.name] = spec
            if not spec.anonymous:
                by_t0[spec.topic0] = spec
        fn: dict[str, FunctionSpec] = {}
        for f in functions:
            # Overloads share a name; the first declaration wins the name slot.
            fn.setdefault(f.name, f)
        self._events: Mapping[str, EventSpec] = MappingProxyType(ev)
        self._by_topic0: Mapping[str, EventSpec] = MappingProxyType(by_t0)
        self._functions: Mapping[str, FunctionSpec] = MappingProxyType(fn)

    @property
    def events(self) -> Mapping[str, EventSpec]:
        return self._events

    @property
    def functions(self) -> Mapping[str, FunctionSpec]:
        return self._functions

    def by_topic0(self, topic0: str) -> EventSpec | None:
        return self._by_topic0.get(topic0.lower())

    def event(self, name: str) -> EventSpec:
        try:
            return self._events[name]
        except KeyError:
            raise KeyError(f"No event named {name!r} in schema") from None

    def topic0s(self) -> list[str]:
        return list(self._by_topic0)

    def merge(self, other: InterfaceSchema) -> InterfaceSchema:
        """Return a new schema holding the events and functions of both."""
        return InterfaceSchema(
            [*self._events.values(), *other.events.values()],
            [*self._functions.values(), *other.functions.values()],
        )

    def __contains__(self, name: object) -> bool:
        return name in self._events

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"InterfaceSchema(events={list(self._events)}, functions={list(self._functions)})"


def event_topics(schema: InterfaceSchema, names: Iterable[str] | None = None) -> list[list[str]]:
    """Format topic0s for an `eth_getLogs` / `eth_subscribe` filter (OR on slot 0).

    Raises KeyError for a name that is not in the schema or names an
    anonymous event (those carry no topic0 to filter on).
    """
    if names is None:
        return [schema.topic0s()]
    t0s = []
    for n in names:
        spec = schema.event(n)
        if spec.anonymous:
            raise KeyError(f"Event {n!r} is anonymous and cannot be filtered by topic0")
        t0s.append(spec.topic0)
    return [t0s]


def events_filter(schema: InterfaceSchema, names: Iterable[str] = ()) -> list[list[str]] | None:
    """Topic filter for the named events (every matchable event if none); None if nothing matches by topic0."""
    topics = event_topics(schema, list(names) or None)
    return topics if topics[0] else None
