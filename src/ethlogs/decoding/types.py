"""ABI type grammar: parsing, static widths, word decoding and encoding.

Types are parsed from canonical strings (`uint256`, `bytes32[2]`,
`(address,uint128)`) into an immutable `AbiType` tree. Only static types
have a fixed width in the data section; dynamic types (`string`, `bytes`,
`T[]`, tuples containing them) are recognised so that the decoder can
refuse them explicitly.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from eth_utils import is_address, keccak, to_canonical_address, to_checksum_address

from ethlogs.core.errors import DecodeError
from ethlogs.core.models import IndexedHash

WORD = 32

_ALIASES = {"uint": "uint256", "int": "int256", "byte": "bytes1"}
_INT_RE = re.compile(r"^(u?int)(\d+)$")
_BYTES_RE = re.compile(r"^bytes(\d+)$")


def split_params(params_str: str) -> list[str]:
    """Split a parameter list by commas while respecting nested tuple types."""
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in params_str:
        if ch == "(":
            depth += 1
            buf.append(ch)
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"Unbalanced parentheses in {params_str!r}")
            buf.append(ch)
        elif ch == "," and depth == 0:
            items.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if depth != 0:
        raise ValueError(f"Unbalanced parentheses in {params_str!r}")
    if buf:
        items.append("".join(buf).strip())
    return [i for i in items if i]


def word_at(data: bytes, i: int) -> bytes:
    """Return the i-th 32-byte ABI word."""
    start = WORD * i
    return data[start : start + WORD]


@dataclass(frozen=True)
class AbiType:
    """One node of a parsed ABI type.

    kind is "elementary", "array" or "tuple". For elementary types `name`
    is the canonical base (`address`, `bool`, `uint`, `int`, `bytes`,
    `string`) and `size` the bit width (ints) or byte length (bytesN),
    None for `bytes`/`string`/`address`/`bool`.
    """

    kind: str
    name: str = ""
    size: int | None = None
    item: AbiType | None = None
    length: int | None = None
    components: tuple[AbiType, ...] = ()

    # ---------- shape ----------

    @property
    def canonical(self) -> str:
        if self.kind == "array":
            assert self.item is not None
            return f"{self.item.canonical}[{'' if self.length is None else self.length}]"
        if self.kind == "tuple":
            return "(" + ",".join(c.canonical for c in self.components) + ")"
        if self.name in ("uint", "int"):
            return f"{self.name}{self.size}"
        if self.name == "bytes" and self.size is not None:
            return f"bytes{self.size}"
        return self.name

    @property
    def is_dynamic(self) -> bool:
        if self.kind == "elementary":
            return self.name in ("string", "bytes") and self.size is None
        if self.kind == "array":
            assert self.item is not None
            return self.length is None or self.item.is_dynamic
        return any(c.is_dynamic for c in self.components)

    @property
    def is_value_type(self) -> bool:
        """True for types stored verbatim in a topic (everything else is hashed)."""
        return self.kind == "elementary" and not self.is_dynamic

    @property
    def width(self) -> int:
        """Encoded width in bytes of a static type."""
        if self.is_dynamic:
            raise ValueError(f"{self.canonical} has no static width")
        if self.kind == "elementary":
            return WORD
        if self.kind == "array":
            assert self.item is not None and self.length is not None
            return self.length * self.item.width
        return sum(c.width for c in self.components)

    def __str__(self) -> str:
        return self.canonical

    # ---------- decoding ----------

    def decode(self, data: bytes, offset: int = 0) -> Any:
        """Decode a static value laid out in place at `offset`."""
        if self.kind == "elementary":
            return self._decode_word(data[offset : offset + WORD])
        if self.kind == "array":
            assert self.item is not None and self.length is not None
            step = self.item.width
            return [self.item.decode(data, offset + i * step) for i in range(self.length)]
        out = []
        for c in self.components:
            out.append(c.decode(data, offset))
            offset += c.width
        return tuple(out)

    def _decode_word(self, word: bytes) -> Any:
        if len(word) != WORD:
            raise DecodeError(f"{self.canonical}: expected a 32-byte word, got {len(word)} bytes")
        v = int.from_bytes(word, "big")
        if self.name == "address":
            if v >> 160:
                raise DecodeError(f"address: dirty high bits in 0x{word.hex()}")
            return to_checksum_address("0x" + word[-20:].hex())
        if self.name == "bool":
            if v > 1:
                raise DecodeError(f"bool: invalid value {v}")
            return v == 1
        if self.name == "uint":
            assert self.size is not None
            if v >> self.size:
                raise DecodeError(f"{self.canonical}: value out of range")
            return v
        if self.name == "int":
            assert self.size is not None
            if v >= 1 << 255:
                v -= 1 << 256
            if not -(1 << (self.size - 1)) <= v < 1 << (self.size - 1):
                raise DecodeError(f"{self.canonical}: value out of range")
            return v
        if self.name == "bytes" and self.size is not None:
            if any(word[self.size :]):
                raise DecodeError(f"{self.canonical}: dirty padding in 0x{word.hex()}")
            return word[: self.size]
        raise DecodeError(f"{self.canonical} cannot be decoded from a single word")

    # ---------- encoding ----------

    def encode(self, value: Any) -> bytes:
        """Encode a static value in place (inverse of `decode`)."""
        if self.is_dynamic:
            raise ValueError(f"{self.canonical} is dynamic; only static types are encoded in place")
        if self.kind == "elementary":
            return self._encode_word(value)
        if self.kind == "array":
            assert self.item is not None
            if len(value) != self.length:
                raise ValueError(f"{self.canonical}: expected {self.length} items, got {len(value)}")
            return b"".join(self.item.encode(v) for v in value)
        if len(value) != len(self.components):
            raise ValueError(f"{self.canonical}: expected {len(self.components)} components, got {len(value)}")
        return b"".join(c.encode(v) for c, v in zip(self.components, value))

    def _encode_word(self, value: Any) -> bytes:
        if self.name == "address":
            if isinstance(value, bytes) and len(value) == 20:
                raw = value
            elif isinstance(value, str) and is_address(value):
                raw = to_canonical_address(value)
            else:
                raise ValueError(f"address: invalid value {value!r}")
            return raw.rjust(WORD, b"\x00")
        if self.name == "bool":
            return int(bool(value)).to_bytes(WORD, "big")
        if self.name in ("uint", "int"):
            assert self.size is not None
            v = int(value)
            signed = self.name == "int"
            lo = -(1 << (self.size - 1)) if signed else 0
            hi = (1 << (self.size - 1)) if signed else (1 << self.size)
            if not lo <= v < hi:
                raise ValueError(f"{self.canonical}: {v} out of range")
            return v.to_bytes(WORD, "big", signed=True) if signed else v.to_bytes(WORD, "big")
        if self.name == "bytes" and self.size is not None:
            raw = bytes(value)
            if len(raw) > self.size:
                raise ValueError(f"{self.canonical}: {len(raw)} bytes do not fit")
            return raw.ljust(WORD, b"\x00")
        raise ValueError(f"{self.canonical} cannot be encoded as a single word")


def _elementary(name: str) -> AbiType:
    name = _ALIASES.get(name, name)
    if name in ("address", "bool", "string", "bytes"):
        return AbiType(kind="elementary", name=name)
    m = _INT_RE.match(name)
    if m:
        bits = int(m.group(2))
        if bits % 8 or not 8 <= bits <= 256:
            raise ValueError(f"Invalid integer width in {name!r}")
        return AbiType(kind="elementary", name=m.group(1), size=bits)
    m = _BYTES_RE.match(name)
    if m:
        n = int(m.group(1))
        if not 1 <= n <= 32:
            raise ValueError(f"Invalid fixed bytes length in {name!r}")
        return AbiType(kind="elementary", name="bytes", size=n)
    raise ValueError(f"Unsupported ABI type {name!r}")


def parse_type(type_str: str) -> AbiType:
    """Parse a canonical (or alias-using) ABI type string.

    Raises ValueError on anything that is not a valid type.
    """
    s = type_str.strip()
    if not s:
        raise ValueError("Empty ABI type")
    if s.endswith("]"):
        open_idx = s.rfind("[")
        if open_idx <= 0:
            raise ValueError(f"Invalid array type {type_str!r}")
        inner = s[open_idx + 1 : -1].strip()
        if inner and not inner.isdigit():
            raise ValueError(f"Invalid array length in {type_str!r}")
        length = int(inner) if inner else None
        if length == 0:
            raise ValueError(f"Zero-length array in {type_str!r}")
        return AbiType(kind="array", item=parse_type(s[:open_idx]), length=length)
    if s.startswith("("):
        if not s.endswith(")"):
            raise ValueError(f"Invalid tuple type {type_str!r}")
        return AbiType(kind="tuple", components=tuple(parse_type(p) for p in split_params(s[1:-1])))
    return _elementary(s)


def canonical_type(type_str: str) -> str:
    return parse_type(type_str).canonical


def encode_topic(typ: AbiType | str, value: Any) -> bytes:
    """Encode one indexed value the way it appears in a log topic.

    Value types are padded to one word; `string`/`bytes` and other
    reference types are replaced by the keccak-256 of their encoding.
    """
    if isinstance(typ, str):
        typ = parse_type(typ)
    if isinstance(value, IndexedHash):
        return value.topic
    if typ.is_value_type:
        return typ.encode(value)
    if typ.kind == "elementary" and typ.name == "string":
        return keccak(text=value)
    if typ.kind == "elementary" and typ.name == "bytes":
        return keccak(bytes(value))
    if not typ.is_dynamic:
        return keccak(typ.encode(value))
    raise ValueError(f"Cannot build a topic for dynamic {typ.canonical}; pass an IndexedHash")


def topic_hex(word: bytes) -> str:
    return "0x" + word.hex()


def bytes32_to_text(value: bytes) -> str | None:
    """Render a bytes32 as text: trailing NULs stripped, None if not UTF-8."""
    stripped = value.rstrip(b"\x00")
    if not stripped:
        return None
    try:
        text = stripped.decode("utf-8")
    except UnicodeDecodeError:
        return None
    return text if text.isprintable() else None


def types_width(types: Sequence[AbiType]) -> int:
    return sum(t.width for t in types)
