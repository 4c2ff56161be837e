"""Schema builder utilities for creating schemas from human-readable signatures.

This module provides:
- `event_spec_from_signature()` for one Solidity event declaration
- `schema_from_signatures()` for a single signature or a list of them

Example input:
  "Transfer(address indexed from, address indexed to, uint256 value)"
"""

from __future__ import annotations

from ethlogs.core.errors import SchemaParseError
from ethlogs.decoding.specs import EventSpec, FunctionSpec, InterfaceSchema, ParameterSpec
from ethlogs.decoding.types import canonical_type, split_params


def _parse_param(p: str, fallback_name: str) -> tuple[str, str, bool]:
    """Parse one parameter fragment into (name, abi_type, indexed)."""
    s = " ".join(p.strip().split())  # normalize spaces
    indexed = False
    if " indexed " in f" {s} ":
        indexed = True
        s = f" {s} ".replace(" indexed ", " ").strip()
    # The type may itself contain spaces only inside a tuple, so split on the last one
    # that sits outside parentheses.
    depth = 0
    split_at = -1
    for i, ch in enumerate(s):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == " " and depth == 0:
            split_at = i
    if split_at == -1:
        # Unnamed parameter
        return (fallback_name, canonical_type(s), indexed)
    return (s[split_at + 1 :], canonical_type(s[:split_at]), indexed)


def _split_signature(signature: str) -> tuple[str, list[str]]:
    sig = signature.strip()
    for prefix in ("event ", "function "):
        if sig.startswith(prefix):
            sig = sig[len(prefix) :].strip()
    open_paren = sig.find("(")
    close_paren = sig.rfind(")")
    if open_paren <= 0 or close_paren == -1 or close_paren < open_paren:
        raise SchemaParseError(f"Invalid signature: {signature}")
    return sig[:open_paren].strip(), split_params(sig[open_paren + 1 : close_paren])


def event_spec_from_signature(signature: str) -> EventSpec:
    """Build an EventSpec from a Solidity event signature string.

    Parameter names and the `indexed` keyword are optional; unnamed
    parameters are called `arg<i>`.
    """
    try:
        name, parts = _split_signature(signature)
        params = [_parse_param(part, fallback_name=f"arg{i}") for i, part in enumerate(parts)]
    except ValueError as e:
        raise SchemaParseError(f"Invalid event signature {signature!r}: {e}") from e
    return EventSpec(
        name=name,
        parameters=tuple(ParameterSpec(n, t, indexed) for n, t, indexed in params),
    )


def function_spec_from_signature(signature: str) -> FunctionSpec:
    """Build a FunctionSpec from `name(type1,type2)` (names are allowed and dropped)."""
    try:
        name, parts = _split_signature(signature)
        inputs = tuple(_parse_param(part, fallback_name=f"arg{i}")[1] for i, part in enumerate(parts))
    except ValueError as e:
        raise SchemaParseError(f"Invalid function signature {signature!r}: {e}") from e
    return FunctionSpec(name=name, inputs=inputs)


def schema_from_signatures(
    events: str | list[str],
    functions: str | list[str] | None = None,
) -> InterfaceSchema:
    """Create a schema from one or multiple event (and function) signatures.

    Args:
        events: Single signature string or list of signature strings
        functions: Optional function signatures, used for selectors

    Returns:
        InterfaceSchema with one entry per signature
    """
    ev_list = [events] if isinstance(events, str) else events
    fn_list = [functions] if isinstance(functions, str) else (functions or [])
    return InterfaceSchema(
        [event_spec_from_signature(s) for s in ev_list],
        [function_spec_from_signature(s) for s in fn_list],
    )
