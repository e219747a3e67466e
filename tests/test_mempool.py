import asyncio
import json

import pytest

from fakes import ScriptedConnection, ScriptedDialer, text
from ogsync.client import Client
from ogsync.errors import CompatibilityError, DecodeError, MempoolProtocolError
from ogsync.mempool import ACQUIRE_MEMPOOL_METHOD, NEXT_TRANSACTION_METHOD, decode_transaction
from ogsync.transport import MessageType


def _responder(acquire, transactions):
    """Answer acquireMempool once and then drain ``transactions`` followed by null."""
    pending = list(transactions) + [None]
    state = {"acquired": 0}

    def respond(request):
        method = json.loads(request)["method"]
        if method == ACQUIRE_MEMPOOL_METHOD:
            state["acquired"] += 1
            return [acquire] if state["acquired"] == 1 else []
        if method == NEXT_TRANSACTION_METHOD and pending:
            tx = pending.pop(0)
            return [text({"jsonrpc": "2.0", "method": NEXT_TRANSACTION_METHOD, "result": {"transaction": tx}, "id": None})]
        return []

    return respond


ACQUIRED = text({"jsonrpc": "2.0", "method": ACQUIRE_MEMPOOL_METHOD, "result": {"acquired": "mempool", "slot": 1234}, "id": None})


def test_snapshot_is_delivered_once(load_json):
    tx = load_json("Tx_v6.json")
    snapshots = []

    async def main():
        delivered = asyncio.Event()
        conn = ScriptedConnection(responder=_responder(ACQUIRED, [tx]))

        async def callback(txs, slot):
            snapshots.append((txs, slot))
            delivered.set()

        session = await Client(dialer=ScriptedDialer(conn)).monitor_mempool(callback)
        await asyncio.wait_for(delivered.wait(), 5)
        # the snapshot is followed by a fresh acquire
        await conn.wait_sent(4)
        return await asyncio.wait_for(session.close(), 5), conn

    err, conn = asyncio.run(main())
    assert err is None
    assert len(snapshots) == 1
    txs, slot = snapshots[0]
    assert slot == 1234
    assert [t.id for t in txs] == [tx["id"]]
    assert [m["method"] for m in conn.sent_json()] == [
        ACQUIRE_MEMPOOL_METHOD,
        NEXT_TRANSACTION_METHOD,
        NEXT_TRANSACTION_METHOD,
        ACQUIRE_MEMPOOL_METHOD,
    ]
    assert conn.sent_json()[1]["params"] == {"fields": "all"}


def test_empty_mempool():
    snapshots = []

    async def main():
        conn = ScriptedConnection(responder=_responder(ACQUIRED, []))
        session = await Client(dialer=ScriptedDialer(conn)).monitor_mempool(lambda txs, slot: snapshots.append((txs, slot)))
        await conn.wait_sent(3)
        return await asyncio.wait_for(session.close(), 5)

    assert asyncio.run(main()) is None
    assert snapshots == [([], 1234)]


@pytest.mark.parametrize(
    "reply",
    [
        {"jsonrpc": "2.0", "method": "releaseMempool", "result": {}},
        {"jsonrpc": "2.0", "method": ACQUIRE_MEMPOOL_METHOD, "error": {"code": -32601, "message": "nope"}},
    ],
)
def test_protocol_errors_end_the_session(reply):
    async def main():
        conn = ScriptedConnection(responder=_responder(text(reply), []))
        session = await Client(dialer=ScriptedDialer(conn)).monitor_mempool(lambda txs, slot: None)
        return await asyncio.wait_for(session.wait(), 5), conn

    err, conn = asyncio.run(main())
    assert isinstance(err, MempoolProtocolError)
    assert conn.closed


def test_callback_failure_ends_the_session():
    async def main():
        conn = ScriptedConnection(responder=_responder(ACQUIRED, []))

        def callback(txs, slot):
            raise ValueError("bad snapshot")

        session = await Client(dialer=ScriptedDialer(conn)).monitor_mempool(callback)
        return await asyncio.wait_for(session.wait(), 5)

    err = asyncio.run(main())
    assert "bad snapshot" in str(err)


def test_transaction_without_spends_is_collected():
    bare = {"id": "ab" * 32, "inputs": [], "outputs": []}
    snapshots = []

    async def main():
        delivered = asyncio.Event()
        conn = ScriptedConnection(responder=_responder(ACQUIRED, [bare]))

        def callback(txs, slot):
            snapshots.append((txs, slot))
            delivered.set()

        session = await Client(dialer=ScriptedDialer(conn)).monitor_mempool(callback)
        await asyncio.wait_for(delivered.wait(), 5)
        return await asyncio.wait_for(session.close(), 5)

    assert asyncio.run(main()) is None
    txs, slot = snapshots[0]
    assert slot == 1234
    assert [(t.id, t.spends, t.inputs, t.outputs) for t in txs] == [("ab" * 32, "", [], [])]


def test_decode_transaction_schemas(load_json):
    v6 = load_json("Tx_v6.json")
    assert decode_transaction(v6).id == v6["id"]

    legacy = load_json("RollForward_v5.json")["result"]["RollForward"]["block"]["babbage"]["body"][0]
    tx = decode_transaction(legacy)
    assert tx.id == legacy["id"]
    assert tx.spends == "inputs"


def test_decode_transaction_failures():
    with pytest.raises(DecodeError):
        decode_transaction({"id": "ab", "inputs": "nope"})
    with pytest.raises(CompatibilityError) as info:
        decode_transaction({"id": "ab", "raw": "AAAA", "inputs": "nope", "body": "nope"})
    assert set(info.value.errors) == {"v6", "v5"}


def test_invalid_utf8_response_ends_the_session():
    async def main():
        conn = ScriptedConnection(responder=_responder((MessageType.TEXT, b"\xff\xfe"), []))
        session = await Client(dialer=ScriptedDialer(conn)).monitor_mempool(lambda txs, slot: None)
        return await asyncio.wait_for(session.wait(), 5)

    err = asyncio.run(main())
    assert isinstance(err, MempoolProtocolError)
    assert "utf-8" in str(err)
