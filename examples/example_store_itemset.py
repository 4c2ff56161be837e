import asyncio
import os
from pathlib import Path

import pyarrow.parquet as pq

from ethlogs.clients.rpc import RPC
from ethlogs.clients.ws import WSSubscriber
from ethlogs.core.config import NodeConfig, QueryConfig, SubscribeConfig
from ethlogs.decoding.registries import make_store_schema
from ethlogs.decoding.types import bytes32_to_text
from ethlogs.engine.query import run_query
from ethlogs.engine.subscription import run_subscription
from ethlogs.storage.export import write_parquet

EXAMPLES_ROOT = Path(__file__).parent
OUT = EXAMPLES_ROOT.parent / "data_examples" / "store_itemset.parquet"

STORE = os.environ.get("STORE_ADDRESS", "0x147b8eb97fd247d06c4006d269c90c1908fb5d54")

schema = make_store_schema()
node = NodeConfig.from_env()


async def query():
    config = QueryConfig(addresses=[STORE], from_block=2394201, to_block=2394201, events=["ItemSet"])
    async with RPC(node.rpc_url, timeout_s=node.timeout_s) as rpc:
        result = await run_query(rpc, schema, config)
    for ev in result:
        print(ev.block_number, bytes32_to_text(ev["key"]), bytes32_to_text(ev["value"]))
    return result


async def watch(n: int = 3):
    subscriber = WSSubscriber(node.ws_url)
    async with await run_subscription(subscriber, schema, SubscribeConfig(addresses=[STORE])) as sub:
        for _ in range(n):
            ev = await sub.next_event()
            if ev is None:
                break
            print("live", ev.name, ev.block_number, ev.fields)


async def main():
    result = await query()
    if write_parquet(result.events, OUT):
        table = pq.read_table(OUT)
        print(table.num_rows, table.column_names)
    await watch()


asyncio.run(main())
