import json
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

import ethlogs.clients.rpc as rpc_module
from ethlogs.cli import cli
from ethlogs.core.errors import RangeTooLarge, SubscriptionTransportError
from tests.factories import ALICE, BOB, ITEMSET_T0, STORE_ADDR, TRANSFER_T0, itemset_log, text32, transfer_log
from tests.mocks import ScriptedStream, ScriptedSubscriber, StaticLogsProvider


class _FakeRPC:
    """Stands in for the HTTP client; yields a static provider as the context value."""

    provider = StaticLogsProvider()

    def __init__(self, url: str, **kwargs) -> None:
        self.url = url

    async def __aenter__(self) -> StaticLogsProvider:
        return self.provider

    async def __aexit__(self, *exc_info: object) -> None:
        return None


@pytest.fixture
def fake_rpc(monkeypatch):
    monkeypatch.setattr(_FakeRPC, "provider", StaticLogsProvider())
    monkeypatch.setattr("ethlogs.clients.rpc.RPC", _FakeRPC)
    return _FakeRPC


def test_signature_event() -> None:
    result = CliRunner().invoke(cli, ["signature", "event Transfer(address indexed from, address indexed to, uint256 value)"])
    assert result.exit_code == 0
    assert "Transfer(address,address,uint256)" in result.output
    assert TRANSFER_T0 in result.output


def test_signature_function() -> None:
    result = CliRunner().invoke(cli, ["signature", "--function", "transfer(address,uint256)"])
    assert result.exit_code == 0
    assert "0xa9059cbb" in result.output


def test_signature_invalid() -> None:
    result = CliRunner().invoke(cli, ["signature", "Transfer"])
    assert result.exit_code == 1
    assert "Invalid" in result.output


def test_query_events(fake_rpc, tmp_path: Path) -> None:
    fake_rpc.provider.logs = [
        itemset_log(text32("foo"), text32("bar"), block_number=5, log_index=0),
        itemset_log(text32("baz"), text32("qux"), block_number=6, log_index=0),
    ]
    out = tmp_path / "events.jsonl"

    result = CliRunner().invoke(
        cli,
        [
            "query-events",
            "--rpc", "http://node.test",
            "--address", STORE_ADDR,
            "--builtin", "store",
            "--from-block", "1",
            "--to-block", "10",
            "--jsonl-out", str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "decoded=2" in result.output
    call = fake_rpc.provider.calls[0]
    assert call["from_block"] == 1
    assert call["to_block"] == 10
    assert call["topics"] == [[ITEMSET_T0]]
    rows = [json.loads(line) for line in out.read_text().splitlines()]
    assert [r["block_number"] for r in rows] == [5, 6]


def test_query_events_with_event_filter(fake_rpc) -> None:
    result = CliRunner().invoke(
        cli,
        ["query-events", "--rpc", "http://node.test", "--address", STORE_ADDR, "--builtin", "store", "--event", "ItemSet"],
    )
    assert result.exit_code == 0, result.output
    assert fake_rpc.provider.calls[0]["topics"] == [[ITEMSET_T0]]
    assert fake_rpc.provider.calls[0]["from_block"] == "earliest"


def test_query_events_reports_node_errors(fake_rpc) -> None:
    fake_rpc.provider.error = RangeTooLarge("block range is too large")

    result = CliRunner().invoke(
        cli, ["query-events", "--rpc", "http://node.test", "--address", STORE_ADDR, "--builtin", "store"]
    )

    assert result.exit_code == 1
    assert "block range is too large" in result.output


def test_query_events_needs_a_schema(fake_rpc) -> None:
    result = CliRunner().invoke(cli, ["query-events", "--rpc", "http://node.test", "--address", STORE_ADDR])
    assert result.exit_code == 2
    assert fake_rpc.provider.calls == []


def test_rpc_url_from_environment(fake_rpc) -> None:
    result = CliRunner().invoke(
        cli,
        ["query-events", "--address", STORE_ADDR, "--signature", "ItemSet(bytes32 indexed key, bytes32 value)"],
        env={"ETHLOGS_RPC_URL": "http://env.test"},
    )
    assert result.exit_code == 0, result.output
    assert len(fake_rpc.provider.calls) == 1


def test_invalid_abi_file_is_reported(tmp_path: Path) -> None:
    abi = tmp_path / "broken.json"
    abi.write_text("{not json")

    result = CliRunner().invoke(
        cli, ["query-events", "--rpc", "http://node.test", "--address", STORE_ADDR, "--abi", str(abi)]
    )

    assert result.exit_code == 1
    assert "Invalid ABI JSON" in result.output


def test_conflicting_schema_sources_are_reported() -> None:
    result = CliRunner().invoke(
        cli,
        [
            "query-events",
            "--rpc", "http://node.test",
            "--address", STORE_ADDR,
            "--builtin", "erc20",
            "--signature", "Transfer(address indexed from, address indexed to, uint256 value)",
        ],
    )

    assert result.exit_code == 1
    assert "Duplicate event name" in result.output


# ---- watch-events ----


@pytest.fixture
def scripted_ws(monkeypatch):
    """Replace the WebSocket client with one that plays a prepared stream."""
    holder: dict = {}

    def factory(url: str, **kwargs) -> ScriptedSubscriber:
        holder["url"] = url
        return holder["subscriber"]

    def use(script) -> ScriptedSubscriber:
        holder["subscriber"] = ScriptedSubscriber(ScriptedStream(script))
        return holder["subscriber"]

    monkeypatch.setattr("ethlogs.clients.ws.WSSubscriber", factory)
    return use


def _watch(*extra: str):
    return CliRunner().invoke(
        cli, ["watch-events", "--ws", "ws://node.test", "--address", STORE_ADDR, "--builtin", "store", *extra]
    )


def test_watch_events_reports_undecodable_logs(scripted_ws) -> None:
    subscriber = scripted_ws(
        [
            transfer_log(ALICE, BOB, 1),
            itemset_log(text32("foo"), text32("bar"), log_index=1),
            itemset_log(text32("baz"), text32("qux"), log_index=2),
            SubscriptionTransportError("connection gone"),
        ]
    )

    result = _watch()

    assert result.exit_code == 1
    assert "undecodable log" in result.output
    assert "ItemSet #1" in result.output
    assert "ItemSet #2" in result.output
    assert "ItemSet #3" not in result.output
    assert "connection gone" in result.output
    assert subscriber.calls == [{"addresses": [STORE_ADDR], "topics": [[ITEMSET_T0]]}]
    assert subscriber.stream.closed


def test_watch_events_strict_stops_on_first_undecodable_log(scripted_ws) -> None:
    subscriber = scripted_ws([transfer_log(ALICE, BOB, 1), itemset_log(text32("foo"), text32("bar"), log_index=1)])

    result = _watch("--strict")

    assert result.exit_code == 1
    assert "no event with topic0" in result.output
    assert "undecodable log" not in result.output
    assert "ItemSet #" not in result.output
    assert subscriber.stream.closed


# ---- code-at ----


def test_code_at_contract(fake_rpc) -> None:
    fake_rpc.provider.code = bytes.fromhex("6080604052")

    result = CliRunner().invoke(cli, ["code-at", "--rpc", "http://node.test", STORE_ADDR, "--block", "100"])

    assert result.exit_code == 0, result.output
    assert "5 bytes of code" in result.output
    assert fake_rpc.provider.code_calls == [(STORE_ADDR, 100)]


def test_code_at_account_without_code(fake_rpc) -> None:
    result = CliRunner().invoke(cli, ["code-at", "--rpc", "http://node.test", ALICE])

    assert result.exit_code == 1
    assert "no code" in result.output
    assert fake_rpc.provider.code_calls == [(ALICE, "latest")]


def test_code_at_rejects_bad_block_tag(monkeypatch) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x"})

    real_rpc = rpc_module.RPC
    monkeypatch.setattr(
        "ethlogs.clients.rpc.RPC", lambda url, **kwargs: real_rpc(url, transport=httpx.MockTransport(handler))
    )

    result = CliRunner().invoke(cli, ["code-at", "--rpc", "http://node.test", STORE_ADDR, "--block", "foo"])

    assert result.exit_code == 1
    assert "Invalid block tag" in result.output
    assert requests == []
