from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Awaitable, Callable, Dict, List, Tuple, Union

from .chainsync.types import Tx
from .chainsync.v5 import TxV5
from .errors import CompatibilityError, DecodeError, MempoolProtocolError, SessionError, UnsupportedEraError
from .json_helpers import as_int, as_object, as_str, safe_json_loads
from .session import ConnectionDuties, ErrGroup, first_or_stop, maybe_await
from .transport import Connection, MessageType

logger = logging.getLogger("ogsync.mempool")

ACQUIRE_MEMPOOL_METHOD = "acquireMempool"
NEXT_TRANSACTION_METHOD = "nextTransaction"

ACQUIRE_MEMPOOL_REQUEST = '{"jsonrpc":"2.0","method":"acquireMempool","id":{"step":"MEMPOOLINIT"}}'
NEXT_TRANSACTION_REQUEST = '{"jsonrpc":"2.0","method":"nextTransaction","params":{"fields":"all"},"id":{}}'

MempoolCallback = Callable[[List[Tx], int], Union[Awaitable[None], None]]


class MonitorState(IntEnum):
    ACQUIRE_MEMPOOL = 0
    NEXT_TRANSACTION = 1


@dataclass
class MonitorMempoolOptions:
    reconnect: bool = False


@dataclass
class MempoolLoop:
    """Duties for one mempool-monitoring connection.

    The reader decides what to ask next and hands the request to the writer,
    so exactly one request is in flight at any time.
    """

    conn: Connection
    callback: MempoolCallback
    log: logging.Logger = logger

    async def run(self, stop: asyncio.Event) -> None:
        group = ErrGroup(stop)
        duties = ConnectionDuties(self.conn, group, self.log, "mempool monitoring")
        todo: "asyncio.Queue[MonitorState]" = asyncio.Queue()

        group.go(duties.supervise())
        group.go(duties.close_on_stop())
        group.go(self._write(todo, group, duties))
        group.go(self._read(todo, group, duties))
        err = await group.wait()
        if err is not None:
            raise err

    async def _write(self, todo: "asyncio.Queue[MonitorState]", group: ErrGroup, duties: ConnectionDuties) -> None:
        while True:
            ok, state = await first_or_stop(group.stop, todo.get())
            if not ok:
                return
            if state == MonitorState.ACQUIRE_MEMPOOL:
                request, method = ACQUIRE_MEMPOOL_REQUEST, ACQUIRE_MEMPOOL_METHOD
            else:
                request, method = NEXT_TRANSACTION_REQUEST, NEXT_TRANSACTION_METHOD
            try:
                await self.conn.send_text(request)
            except Exception as exc:
                if duties.closing:
                    return
                raise SessionError(f"failed to write {method}: {exc}") from exc

    async def _read(self, todo: "asyncio.Queue[MonitorState]", group: ErrGroup, duties: ConnectionDuties) -> None:
        try:
            await self._read_frames(todo, group, duties)
        finally:
            group.stop.set()

    async def _read_frames(self, todo: "asyncio.Queue[MonitorState]", group: ErrGroup, duties: ConnectionDuties) -> None:
        todo.put_nowait(MonitorState.ACQUIRE_MEMPOOL)
        transactions: List[Tx] = []
        slot = 0
        while True:
            try:
                msg_type, data = await self.conn.recv()
            except Exception as exc:
                if duties.closing:
                    return
                raise SessionError(f"failed to read message from ogmios: {exc}") from exc

            if group.stop.is_set():
                return
            if msg_type == MessageType.BINARY:
                self.log.info("skipping unexpected binary message")
                continue
            if msg_type == MessageType.CLOSE:
                return
            if msg_type == MessageType.PING:
                try:
                    await self.conn.pong(data)
                except Exception as exc:
                    raise SessionError(f"failed to respond with pong to ogmios: {exc}") from exc
                continue
            if msg_type == MessageType.PONG:
                continue

            method, result = _parse_response(data)
            if method == ACQUIRE_MEMPOOL_METHOD:
                slot = as_int(result.get("slot"), "acquireMempool.slot")
                todo.put_nowait(MonitorState.NEXT_TRANSACTION)
            elif method == NEXT_TRANSACTION_METHOD and result.get("transaction") is None:
                self.log.debug("mempool snapshot at slot %d drained: %d transactions", slot, len(transactions))
                batch, transactions = transactions, []
                try:
                    await maybe_await(self.callback(batch, slot))
                except Exception as exc:
                    raise SessionError(f"mempool monitoring stopped: callback failed: {exc}") from exc
                todo.put_nowait(MonitorState.ACQUIRE_MEMPOOL)
            elif method == NEXT_TRANSACTION_METHOD:
                try:
                    transactions.append(decode_transaction(result["transaction"]))
                except (DecodeError, UnsupportedEraError) as exc:
                    raise MempoolProtocolError(f"couldn't parse transaction from ogmios: {exc}") from exc
                todo.put_nowait(MonitorState.NEXT_TRANSACTION)
            else:
                raise MempoolProtocolError(f"unexpected response from ogmios: method {method!r}")


def _parse_response(data: bytes) -> Tuple[str, Dict[str, Any]]:
    try:
        response = as_object(safe_json_loads(data), "mempool response")
        method = response.get("method")
        if not isinstance(method, str):
            method = ""
        if response.get("error") is not None:
            raise MempoolProtocolError(f"ogmios returned an error for {method or 'request'}: {response['error']}")
        return method, as_object(response.get("result"), "mempool result")
    except DecodeError as exc:
        raise MempoolProtocolError(f"couldn't parse response from ogmios: {exc}") from exc


def decode_transaction(obj: Any) -> Tx:
    """Decode a mempool transaction of either schema.

    Any object that decodes as a v6 transaction is accepted. The legacy
    shape is used only when the object carries ``raw`` and no ``spends``.
    """
    d = as_object(obj, "transaction")
    raw = as_str(d.get("raw"), "tx.raw")
    try:
        tx = Tx.from_json(d)
    except DecodeError as exc:
        if not raw:
            raise
        v6_err: Exception = exc
    else:
        if tx.spends or not raw:
            return tx
        v6_err = DecodeError("payload carries raw and no spends")
    try:
        return TxV5.from_json(d).convert_to_v6()
    except DecodeError as exc:
        raise CompatibilityError("Tx", {"v6": v6_err, "v5": exc}) from exc
