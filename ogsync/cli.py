from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List

from .chainsync.compat import CompatibleResponse
from .chainsync.point import PointStruct
from .chainsync.types import NEXT_BLOCK_METHOD, ROLL_BACKWARD, ROLL_FORWARD, Tx
from .client import Client
from .config import Settings, load_config
from .errors import UnsupportedEraError
from .json_helpers import dumps
from .store import FileStore, NopStore, Store

logger = logging.getLogger("ogsync")


def _client(settings: Settings) -> Client:
    return Client(endpoint=settings.endpoint, pipeline=settings.pipeline, save_interval=settings.save_interval)


async def cmd_tip(args, settings: Settings) -> None:
    client = _client(settings)
    tip = await asyncio.to_thread(client.chain_tip)
    print(tip)


async def cmd_chainsync(args, settings: Settings) -> None:
    client = _client(settings)
    store: Store = FileStore(settings.store) if settings.store else NopStore()
    points = []
    if args.from_slot is not None and args.from_hash:
        points.append(PointStruct(id=args.from_hash, slot=args.from_slot))

    enough = asyncio.Event()
    seen = 0

    def on_frame(data: bytes) -> None:
        nonlocal seen
        try:
            response = CompatibleResponse.loads(data)
        except UnsupportedEraError as exc:
            logger.info("skipping block: %s", exc)
            return
        if response.method != NEXT_BLOCK_METHOD or response.result is None:
            print(f"intersection: {dumps(response.to_json())}")
            return
        result = response.must_next_block_result()
        if result.direction == ROLL_FORWARD and result.block is not None:
            print(result.block.point_struct())
            seen += 1
        elif result.direction == ROLL_BACKWARD:
            print(f"rollback to {result.point}")
        if args.max_blocks and seen >= args.max_blocks:
            enough.set()

    session = await client.chain_sync(
        on_frame,
        min_slot=args.min_slot if args.min_slot is not None else settings.min_slot,
        points=points,
        reconnect=settings.reconnect,
        store=store,
    )
    waiter = asyncio.ensure_future(session.wait())
    stopper = asyncio.ensure_future(enough.wait())
    try:
        await asyncio.wait({waiter, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
        err = await session.close()
    if err is not None:
        raise SystemExit(f"chainsync failed: {err}")


async def cmd_mempool(args, settings: Settings) -> None:
    client = _client(settings)
    snapshots = 0
    enough = asyncio.Event()

    def on_snapshot(txs: List[Tx], slot: int) -> None:
        nonlocal snapshots
        print(f"slot={slot} transactions={len(txs)}")
        for tx in txs:
            print(f"  {tx.id}")
        snapshots += 1
        if args.snapshots and snapshots >= args.snapshots:
            enough.set()

    session = await client.monitor_mempool(on_snapshot, reconnect=settings.reconnect)
    waiter = asyncio.ensure_future(session.wait())
    stopper = asyncio.ensure_future(enough.wait())
    try:
        await asyncio.wait({waiter, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
        err = await session.close()
    if err is not None:
        raise SystemExit(f"mempool monitoring failed: {err}")


async def cmd_utxos(args, settings: Settings) -> None:
    client = _client(settings)
    utxos = await asyncio.to_thread(client.utxos_by_address, *args.addresses)
    for u in utxos:
        print(f"{u.transaction_id}#{u.index}  {u.address}  lovelace={u.value.ada_lovelace()}")
        for coin in u.value.coins():
            if coin.asset_id.policy_id() != "ada":
                print(f"    {coin.asset_id}: {coin.amount}")


async def cmd_submit(args, settings: Settings) -> None:
    client = _client(settings)
    response = await asyncio.to_thread(client.submit_tx, args.cbor)
    if response.error is not None:
        raise SystemExit(f"submit failed ({response.error.code}): {response.error.message}")
    print(response.id)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ogsync", description="Ogmios chain-sync, mempool and ledger-state client")
    p.add_argument("--config", help="Path to YAML settings (defaults to ogsync.yaml)")
    p.add_argument("--endpoint", help="Ogmios websocket endpoint (or env OGMIOS)")
    p.add_argument("-v", "--verbose", action="store_true")

    sp = p.add_subparsers(dest="cmd", required=True)

    tip = sp.add_parser("tip", help="Print the ledger tip")
    tip.set_defaults(func=cmd_tip)

    cs = sp.add_parser("chainsync", help="Follow the chain, printing one line per block")
    cs.add_argument("--from-slot", type=int, help="Start slot (with --from-hash)")
    cs.add_argument("--from-hash", help="Start block id")
    cs.add_argument("--min-slot", type=int, help="Skip blocks before this slot")
    cs.add_argument("--max-blocks", type=int, default=0, help="Stop after this many blocks; 0 follows forever")
    cs.set_defaults(func=cmd_chainsync)

    mp = sp.add_parser("mempool", help="Print mempool snapshots")
    mp.add_argument("--snapshots", type=int, default=0, help="Stop after this many snapshots; 0 runs forever")
    mp.set_defaults(func=cmd_mempool)

    ut = sp.add_parser("utxos", help="List UTxOs held by addresses")
    ut.add_argument("addresses", nargs="+")
    ut.set_defaults(func=cmd_utxos)

    sb = sp.add_parser("submit", help="Submit a signed transaction")
    sb.add_argument("cbor", help="Transaction CBOR, hex")
    sb.set_defaults(func=cmd_submit)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    settings = load_config(args.config)
    if args.endpoint:
        settings.endpoint = args.endpoint

    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    asyncio.run(args.func(args, settings))


if __name__ == "__main__":
    main()
