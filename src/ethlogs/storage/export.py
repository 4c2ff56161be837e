"""Export decoded events to Parquet or JSON lines.

`EventTable` is a dynamic columnar buffer: base columns (block, tx, log
index, contract, event) are typed and always present; every decoded field
name becomes its own string column on first appearance. Values are stored
as strings to keep uint256 exact under Arrow.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from ethlogs.core.models import DecodedEvent, IndexedHash

log = logging.getLogger(__name__)

_BASE_FIELDS: list[tuple[str, pa.DataType]] = [
    ("block_number", pa.uint64()),
    ("block_hash", pa.string()),
    ("tx_hash", pa.string()),
    ("log_index", pa.uint64()),
    ("contract", pa.string()),
    ("event", pa.string()),
]


def render_value(value: Any) -> Any:
    """JSON-friendly rendering of a decoded value (bytes as 0x-hex)."""
    if isinstance(value, IndexedHash):
        return value.hex
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, (list, tuple)):
        return [render_value(v) for v in value]
    return value


def event_to_dict(event: DecodedEvent) -> dict[str, Any]:
    """Flat dict of one event: positional metadata plus rendered fields."""
    return {
        "event": event.name,
        "contract": event.log.address,
        "block_number": event.log.block_number,
        "block_hash": event.log.block_hash,
        "tx_hash": event.log.transaction_hash,
        "log_index": event.log.log_index,
        "removed": event.log.removed,
        "fields": {k: render_value(v) for k, v in event.fields.items()},
    }


def _as_cell(value: Any) -> str | None:
    if value is None:
        return None
    rendered = render_value(value)
    if isinstance(rendered, list):
        return json.dumps(rendered, default=str)
    return str(rendered)


@dataclass(slots=True)
class EventTable:
    """Append-only columnar buffer of decoded events."""

    block_number: list[int | None] = field(default_factory=list)
    block_hash: list[str | None] = field(default_factory=list)
    tx_hash: list[str | None] = field(default_factory=list)
    log_index: list[int | None] = field(default_factory=list)
    contract: list[str] = field(default_factory=list)
    event: list[str] = field(default_factory=list)

    # Dynamic columns created on-demand for any field name
    dyn: dict[str, list[str | None]] = field(default_factory=dict)
    _rows: int = 0

    @classmethod
    def from_events(cls, events: Iterable[DecodedEvent]) -> EventTable:
        table = cls()
        for ev in events:
            table.append(ev)
        return table

    def size(self) -> int:
        return self._rows

    def _ensure_dyn_col(self, name: str) -> list[str | None]:
        """Ensure a dynamic column exists and is aligned to current row count."""
        col = self.dyn.get(name)
        if col is None:
            col = [None] * self._rows
            self.dyn[name] = col
        return col

    def append(self, ev: DecodedEvent) -> None:
        """Append one decoded event (all field names become columns)."""
        self.block_number.append(ev.log.block_number)
        self.block_hash.append(ev.log.block_hash)
        self.tx_hash.append(ev.log.transaction_hash)
        self.log_index.append(ev.log.log_index)
        self.contract.append(ev.log.address)
        self.event.append(ev.name)
        self._rows += 1
        # Pad existing dynamic columns with None for the new row
        for col in self.dyn.values():
            col.append(None)
        for k, v in ev.fields.items():
            self._ensure_dyn_col(k)[-1] = _as_cell(v)

    def to_arrow_table(self) -> pa.Table:
        """Convert the buffer to an Arrow table with deterministic schema.

        Row order is kept as appended (node order).
        """
        fields = [pa.field(n, t) for n, t in _BASE_FIELDS]
        arrays: dict[str, pa.Array] = {
            "block_number": pa.array(self.block_number, type=pa.uint64()),
            "block_hash": pa.array(self.block_hash, type=pa.string()),
            "tx_hash": pa.array(self.tx_hash, type=pa.string()),
            "log_index": pa.array(self.log_index, type=pa.uint64()),
            "contract": pa.array(self.contract, type=pa.string()),
            "event": pa.array(self.event, type=pa.string()),
        }
        # Add dynamic columns in deterministic order; a field named like a base column gets a prefix
        for name in sorted(self.dyn.keys()):
            col_name = name if name not in arrays else f"field_{name}"
            fields.append(pa.field(col_name, pa.string()))
            arrays[col_name] = pa.array(self.dyn[name], type=pa.string())
        return pa.Table.from_pydict(arrays, schema=pa.schema(fields))


def write_parquet(events: Iterable[DecodedEvent], out_path: Path, *, codec: str = "zstd") -> Path | None:
    """Write events to a Parquet file atomically (tmp + replace). None if there is nothing to write."""
    table = EventTable.from_events(events).to_arrow_table()
    if len(table) == 0:
        return None
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = out_path.with_suffix(".tmp")
    pq.write_table(table, tmp, compression=codec)
    os.replace(tmp, out_path)
    log.info("wrote %s (rows=%d, cols=%d)", out_path, len(table), len(table.schema))
    return out_path


def write_jsonl(events: Iterable[DecodedEvent], out_path: Path) -> int:
    """Write one JSON object per event; returns the number of lines written."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = out_path.with_suffix(".tmp")
    n = 0
    with open(tmp, "w") as f:
        for ev in events:
            f.write(json.dumps(event_to_dict(ev), separators=(",", ":"), default=str) + "\n")
            n += 1
    os.replace(tmp, out_path)
    log.info("wrote %s (%d events)", out_path, n)
    return n
