from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

import requests

from .chain_sync import ChainSyncCallback, ChainSyncLoop, ChainSyncOptions, get_init
from .chainsync.point import Point
from .errors import DecodeError, QueryError
from .mempool import MempoolCallback, MempoolLoop, MonitorMempoolOptions
from .session import RECONNECT_DELAY, Session, run_with_reconnect
from .state_query import StateQueryMixin
from .store import NopStore, Store
from .transport import Dialer, dial
from .tx_submission import TxSubmissionMixin

DEFAULT_ENDPOINT = "ws://127.0.0.1:1337"


def http_endpoint(endpoint: str) -> str:
    if endpoint.startswith("ws://"):
        return "http://" + endpoint[len("ws://"):]
    if endpoint.startswith("wss://"):
        return "https://" + endpoint[len("wss://"):]
    return endpoint


class Client(StateQueryMixin, TxSubmissionMixin):
    """Ogmios client: streaming chain-sync and mempool sessions over a
    websocket, plus one-shot ledger queries over HTTP."""

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        pipeline: int = 50,
        save_interval: int = 10000,
        logger: Optional[logging.Logger] = None,
        dialer: Optional[Dialer] = None,
        reconnect_delay: float = RECONNECT_DELAY,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        if pipeline < 1:
            raise ValueError("pipeline must be at least 1")
        if save_interval < 1:
            raise ValueError("save_interval must be at least 1")
        self.endpoint = endpoint
        self.pipeline = pipeline
        self.save_interval = save_interval
        self.logger = logger or logging.getLogger("ogsync")
        self.dialer: Dialer = dialer or dial
        self.reconnect_delay = reconnect_delay
        self.timeout = timeout
        self.session = session or requests.Session()

    # --- streaming -----------------------------------------------------

    async def chain_sync(
        self,
        callback: ChainSyncCallback,
        min_slot: int = 0,
        points: Iterable[Point] = (),
        reconnect: bool = False,
        store: Optional[Store] = None,
    ) -> Session:
        """Replay the chain, invoking ``callback`` with each raw response frame.

        Without a store or points the replay starts from origin. Must be
        called from a running event loop; the returned session runs until
        closed or until it fails.
        """
        options = ChainSyncOptions(min_slot=min_slot, points=list(points), reconnect=reconnect, store=store or NopStore())

        async def once(stop: asyncio.Event) -> None:
            conn = await self.dialer(self.endpoint)
            try:
                init = await get_init(options.store, *options.points)
            except Exception:
                await conn.close()
                raise
            loop = ChainSyncLoop(
                conn=conn,
                callback=callback,
                options=options,
                pipeline=self.pipeline,
                save_interval=self.save_interval,
                log=self.logger,
            )
            await loop.run(init, stop)

        return Session(lambda stop: run_with_reconnect(once, stop, options.reconnect, self.logger, self.reconnect_delay))

    async def monitor_mempool(self, callback: MempoolCallback, reconnect: bool = False) -> Session:
        """Poll mempool snapshots, invoking ``callback(txs, slot)`` once per snapshot."""
        options = MonitorMempoolOptions(reconnect=reconnect)

        async def once(stop: asyncio.Event) -> None:
            conn = await self.dialer(self.endpoint)
            await MempoolLoop(conn=conn, callback=callback, log=self.logger).run(stop)

        return Session(lambda stop: run_with_reconnect(once, stop, options.reconnect, self.logger, self.reconnect_delay))

    # --- one-shot queries ----------------------------------------------

    def query(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST one JSON-RPC request and return the decoded response envelope."""
        r = self.session.post(http_endpoint(self.endpoint), json=payload, timeout=self.timeout)
        r.raise_for_status()
        try:
            content = r.json()
        except ValueError as exc:
            raise DecodeError(f"ogmios returned invalid JSON: {exc}") from exc
        if not isinstance(content, dict):
            raise DecodeError(f"ogmios returned {type(content).__name__}, expected object")
        return content

    def query_result(self, payload: Dict[str, Any]) -> Any:
        content = self.query(payload)
        error = content.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise QueryError(str(error.get("message", "query failed")), code=int(error.get("code") or 0), data=error.get("data"))
            raise QueryError(str(error))
        # legacy jsonwsp faults
        if content.get("type") == "jsonwsp/fault":
            fault = content.get("fault") or {}
            raise QueryError(str(fault.get("string", "query failed")), data=fault)
        return content.get("result")
