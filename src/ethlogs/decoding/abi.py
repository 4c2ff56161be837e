"""JSON ABI loading into an `InterfaceSchema`.

Entries are validated with pydantic; every structural problem (bad JSON,
missing `type`/`indexed`, duplicate event names, unknown types) is raised
as `SchemaParseError`.
"""

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from ethlogs.core.errors import SchemaParseError
from ethlogs.decoding.specs import EventSpec, FunctionSpec, InterfaceSchema, ParameterSpec
from ethlogs.decoding.types import canonical_type

log = logging.getLogger(__name__)


class AbiParam(BaseModel):
    name: str = ""
    type: str
    internalType: str | None = None
    components: Sequence["AbiParam"] | None = None


class AbiEventInput(AbiParam):
    indexed: bool


class AbiEvent(BaseModel):
    anonymous: bool = False
    inputs: Sequence[AbiEventInput]
    name: str
    type: Literal["event"]


class AbiFunction(BaseModel):
    inputs: Sequence[AbiParam] = ()
    name: str
    type: Literal["function"]


def param_type(param: AbiParam) -> str:
    """Canonical type of a parameter, expanding `tuple` components."""
    if param.type.startswith("tuple"):
        if not param.components:
            raise ValueError(f"tuple parameter {param.name!r} has no components")
        inner = ",".join(param_type(c) for c in param.components)
        return canonical_type(f"({inner}){param.type[len('tuple'):]}")
    return canonical_type(param.type)


def get_event_spec(event: AbiEvent) -> EventSpec:
    return EventSpec(
        name=event.name,
        parameters=tuple(
            ParameterSpec(event_input.name or f"arg{i}", param_type(event_input), event_input.indexed)
            for i, event_input in enumerate(event.inputs)
        ),
        anonymous=event.anonymous,
    )


def get_function_spec(function: AbiFunction) -> FunctionSpec:
    return FunctionSpec(name=function.name, inputs=tuple(param_type(p) for p in function.inputs))


AbiJson = Iterable[dict[str, Any]]
AbiSource = AbiJson | Path | str


def _load_abi(abi: AbiSource) -> list[Any]:
    if isinstance(abi, Path):
        abi = abi.read_text()
    if isinstance(abi, str):
        try:
            abi = json.loads(abi)
        except json.JSONDecodeError as e:
            raise SchemaParseError(f"Invalid ABI JSON: {e}") from e
        # Artifacts from solc/hardhat wrap the ABI in {"abi": [...]}
        if isinstance(abi, dict) and "abi" in abi:
            abi = abi["abi"]
    if isinstance(abi, (dict, str, bytes)) or not isinstance(abi, Iterable):
        raise SchemaParseError("ABI must be a JSON list of entries")
    return list(abi)


def load_schema(abi: AbiSource) -> InterfaceSchema:
    """Parse an interface description into an `InterfaceSchema`.

    `abi` is a JSON string, a path to a JSON file, or parsed entries.
    Non-event, non-function entries (constructor, fallback, errors) are ignored.
    """
    entries = _load_abi(abi)
    events: list[EventSpec] = []
    functions: list[FunctionSpec] = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise SchemaParseError(f"ABI entry #{i} is not an object")
        kind = entry.get("type", "function")
        try:
            if kind == "event":
                events.append(get_event_spec(AbiEvent.model_validate(entry)))
            elif kind == "function":
                functions.append(get_function_spec(AbiFunction.model_validate({**entry, "type": "function"})))
        except (ValidationError, ValueError) as e:
            raise SchemaParseError(f"ABI entry #{i} ({entry.get('name', '?')}): {e}") from e

    schema = InterfaceSchema(events, functions)
    log.debug("loaded schema with %d events, %d functions", len(schema.events), len(schema.functions))
    return schema
