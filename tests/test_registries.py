import json
from pathlib import Path

import pytest

from ethlogs.core.errors import SchemaParseError
from ethlogs.decoding.abi import load_schema
from ethlogs.decoding.registries import STORE_ABI, make_erc20_schema, make_store_schema
from ethlogs.decoding.registry_builder import (
    event_spec_from_signature,
    function_spec_from_signature,
    schema_from_signatures,
)
from ethlogs.decoding.specs import event_topic0, event_topics, events_filter, function_selector
from tests.factories import ALICE, APPROVAL_T0, ITEMSET_T0, TRANSFER_T0


# ---- known vectors (no network) ----


@pytest.mark.parametrize(
    "signature, topic0",
    [
        ("ItemSet(bytes32,bytes32)", ITEMSET_T0),
        ("Transfer(address,address,uint256)", TRANSFER_T0),
        ("Approval(address,address,uint256)", APPROVAL_T0),
    ],
)
def test_event_topic0_known_vectors(signature: str, topic0: str) -> None:
    assert event_topic0(signature) == topic0
    assert event_topic0(signature) == event_topic0(signature)


@pytest.mark.parametrize(
    "signature, selector",
    [
        ("transfer(address,uint256)", "0xa9059cbb"),
        ("balanceOf(address)", "0x70a08231"),
        ("approve(address,uint256)", "0x095ea7b3"),
        ("transferFrom(address,address,uint256)", "0x23b872dd"),
    ],
)
def test_function_selector_known_vectors(signature: str, selector: str) -> None:
    assert function_selector(signature) == selector


# ---- JSON ABI ----


def test_make_store_schema() -> None:
    schema = make_store_schema()
    spec = schema.event("ItemSet")
    assert spec.signature == "ItemSet(bytes32,bytes32)"
    assert spec.topic0 == ITEMSET_T0
    assert [(p.name, p.type, p.indexed) for p in spec.parameters] == [
        ("key", "bytes32", True),
        ("value", "bytes32", False),
    ]
    assert schema.by_topic0(ITEMSET_T0.upper().replace("0X", "0x")) is spec
    assert set(schema.functions) == {"items", "setItem", "version"}
    assert schema.functions["setItem"].signature == "setItem(bytes32,bytes32)"


def test_make_erc20_schema() -> None:
    schema = make_erc20_schema()
    assert schema.event("Transfer").topic0 == TRANSFER_T0
    assert schema.event("Approval").topic0 == APPROVAL_T0
    assert schema.functions["transfer"].selector == "0xa9059cbb"


def test_load_schema_from_path_and_artifact(tmp_path: Path) -> None:
    abi_file = tmp_path / "store.json"
    abi_file.write_text(STORE_ABI)
    assert load_schema(abi_file).event("ItemSet").topic0 == ITEMSET_T0

    artifact = tmp_path / "Store.json"
    artifact.write_text(json.dumps({"contractName": "Store", "abi": json.loads(STORE_ABI)}))
    assert "ItemSet" in load_schema(artifact)


def test_load_schema_from_entries_keeps_declaration_order() -> None:
    entries = [
        {
            "type": "event",
            "name": "Swap",
            "anonymous": False,
            "inputs": [
                {"name": "sender", "type": "address", "indexed": True},
                {"name": "amount0", "type": "int256", "indexed": False},
                {"name": "recipient", "type": "address", "indexed": True},
                {"name": "tick", "type": "int24", "indexed": False},
            ],
        }
    ]
    spec = load_schema(entries).event("Swap")
    assert [p.name for p in spec.parameters] == ["sender", "amount0", "recipient", "tick"]
    assert [p.name for p in spec.indexed] == ["sender", "recipient"]
    assert [p.name for p in spec.non_indexed] == ["amount0", "tick"]
    assert spec.signature == "Swap(address,int256,address,int24)"


def test_load_schema_expands_tuple_components() -> None:
    entries = [
        {
            "type": "event",
            "name": "Filled",
            "inputs": [
                {
                    "name": "order",
                    "type": "tuple",
                    "indexed": False,
                    "components": [
                        {"name": "maker", "type": "address"},
                        {"name": "amount", "type": "uint"},
                    ],
                },
                {
                    "name": "legs",
                    "type": "tuple[2]",
                    "indexed": False,
                    "components": [{"name": "id", "type": "uint64"}],
                },
            ],
        }
    ]
    spec = load_schema(entries).event("Filled")
    assert spec.signature == "Filled((address,uint256),(uint64)[2])"


def test_anonymous_events_are_not_matched_by_topic0() -> None:
    entries = [
        {"type": "event", "name": "Anon", "anonymous": True, "inputs": [{"name": "x", "type": "uint256", "indexed": True}]}
    ]
    schema = load_schema(entries)
    assert "Anon" in schema
    assert schema.by_topic0(schema.event("Anon").topic0) is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"type": "event"}',
        '[{"type": "event", "name": "E", "inputs": [{"name": "a", "indexed": true}]}]',
        '[{"type": "event", "name": "E", "inputs": [{"name": "a", "type": "uint256"}]}]',
        '[{"type": "event", "name": "E", "inputs": [{"name": "a", "type": "uint7", "indexed": false}]}]',
        '[{"type": "event", "name": "E", "inputs": []}, {"type": "event", "name": "E", "inputs": []}]',
        "[42]",
    ],
    ids=["bad-json", "not-a-list", "missing-type", "missing-indexed", "bad-type", "duplicate", "not-an-object"],
)
def test_load_schema_rejects_malformed(raw: str) -> None:
    with pytest.raises(SchemaParseError):
        load_schema(raw)


# ---- human-readable signatures ----


def test_event_spec_from_signature() -> None:
    spec = event_spec_from_signature("event Transfer(address indexed from, address indexed to, uint value)")
    assert spec.signature == "Transfer(address,address,uint256)"
    assert spec.topic0 == TRANSFER_T0
    assert [(p.name, p.indexed) for p in spec.parameters] == [("from", True), ("to", True), ("value", False)]


def test_event_spec_from_signature_unnamed_and_tuples() -> None:
    spec = event_spec_from_signature("Pair((address,uint256) indexed pair, bytes32)")
    assert spec.signature == "Pair((address,uint256),bytes32)"
    assert spec.parameters[0].name == "pair"
    assert spec.parameters[0].indexed
    assert spec.parameters[1].name == "arg1"


def test_function_spec_from_signature_drops_names() -> None:
    spec = function_spec_from_signature("transfer(address to, uint256 amount)")
    assert spec.signature == "transfer(address,uint256)"
    assert spec.selector == "0xa9059cbb"


@pytest.mark.parametrize("sig", ["Transfer", "(address)", "Bad(uint7 x)", "Bad((address,uint256 x)"])
def test_bad_signatures(sig: str) -> None:
    with pytest.raises(SchemaParseError):
        event_spec_from_signature(sig)


def test_schema_from_signatures_rejects_duplicates() -> None:
    with pytest.raises(SchemaParseError):
        schema_from_signatures(["E(uint256 a)", "E(address b)"])


def test_merge_and_event_topics() -> None:
    schema = make_store_schema().merge(make_erc20_schema())
    assert set(schema.events) == {"ItemSet", "Transfer", "Approval"}
    assert event_topics(schema, ["Transfer", "ItemSet"]) == [[TRANSFER_T0, ITEMSET_T0]]
    assert sorted(event_topics(schema)[0]) == sorted([TRANSFER_T0, APPROVAL_T0, ITEMSET_T0])
    with pytest.raises(KeyError):
        event_topics(schema, ["Nope"])


def test_topic_filter_for_indexed_values() -> None:
    spec = make_erc20_schema().event("Transfer")
    assert spec.topic_filter() == [TRANSFER_T0]
    assert spec.topic_filter(to=ALICE) == [TRANSFER_T0, None, "0x" + "00" * 12 + ALICE[2:]]
    assert spec.topic_filter(**{"from": ALICE}) == [TRANSFER_T0, "0x" + "00" * 12 + ALICE[2:]]
    with pytest.raises(ValueError):
        spec.topic_filter(value=1)


def test_events_filter() -> None:
    schema = make_store_schema().merge(make_erc20_schema())
    assert events_filter(schema, ["Approval"]) == [[APPROVAL_T0]]
    assert sorted(events_filter(schema)[0]) == sorted([ITEMSET_T0, TRANSFER_T0, APPROVAL_T0])
    anon = load_schema(
        [{"type": "event", "name": "Anon", "anonymous": True, "inputs": [{"name": "x", "type": "uint256", "indexed": True}]}]
    )
    assert events_filter(anon) is None


def test_anonymous_event_cannot_be_named_in_a_filter() -> None:
    schema = load_schema(
        [
            {"type": "event", "name": "Anon", "anonymous": True, "inputs": [{"name": "x", "type": "uint256", "indexed": True}]},
            {"type": "event", "name": "Named", "inputs": [{"name": "x", "type": "uint256", "indexed": True}]},
        ]
    )
    with pytest.raises(KeyError):
        event_topics(schema, ["Anon"])
    with pytest.raises(KeyError):
        events_filter(schema, ["Named", "Anon"])
    assert events_filter(schema) == [[schema.event("Named").topic0]]
