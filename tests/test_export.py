import json
from pathlib import Path

import pyarrow.parquet as pq

from ethlogs.decoding.decoder import decode_log
from ethlogs.decoding.registry_builder import schema_from_signatures
from ethlogs.storage.export import EventTable, event_to_dict, write_jsonl, write_parquet
from tests.factories import ALICE, BOB, itemset_log, make_log, text32, transfer_log, word


def test_parquet_round_trip(tmp_path: Path, store_schema, erc20_schema) -> None:
    schema = store_schema.merge(erc20_schema)
    events = [
        decode_log(schema, itemset_log(text32("foo"), text32("bar"), block_number=3, log_index=0)),
        decode_log(schema, transfer_log(ALICE, BOB, 2**255, block_number=4, log_index=1)),
    ]
    out = tmp_path / "nested" / "events.parquet"

    assert write_parquet(events, out) == out

    table = pq.read_table(out)
    assert table.column("event").to_pylist() == ["ItemSet", "Transfer"]
    assert table.column("block_number").to_pylist() == [3, 4]
    assert table.column("key").to_pylist() == ["0x" + text32("foo").hex(), None]
    # uint256 stays exact as text
    assert table.column("value").to_pylist()[1] == str(2**255)
    assert not out.with_suffix(".tmp").exists()


def test_parquet_skips_empty(tmp_path: Path) -> None:
    out = tmp_path / "empty.parquet"
    assert write_parquet([], out) is None
    assert not out.exists()


def test_field_named_like_base_column_is_prefixed() -> None:
    schema = schema_from_signatures(["Marker(uint256 event, uint8[2] pair)"])
    spec = schema.event("Marker")
    ev = decode_log(schema, make_log([spec.topic0], word(9) + word(1) + word(2)))

    table = EventTable.from_events([ev]).to_arrow_table()

    assert table.column("event").to_pylist() == ["Marker"]
    assert table.column("field_event").to_pylist() == ["9"]
    assert json.loads(table.column("pair").to_pylist()[0]) == [1, 2]


def test_jsonl(tmp_path: Path, erc20_schema) -> None:
    ev = decode_log(erc20_schema, transfer_log(ALICE, BOB, 7))
    out = tmp_path / "events.jsonl"

    assert write_jsonl([ev, ev], out) == 2

    lines = [json.loads(line) for line in out.read_text().splitlines()]
    assert len(lines) == 2
    assert lines[0] == json.loads(json.dumps(event_to_dict(ev)))
    assert lines[0]["fields"]["value"] == 7
    assert lines[0]["event"] == "Transfer"
