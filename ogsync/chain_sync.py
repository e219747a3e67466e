from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, List, Optional, Union

from .chainsync.compat import CompatibleResponse
from .chainsync.point import ORIGIN, Point, PointStruct, sort_points
from .chainsync.types import FIND_INTERSECTION_METHOD, NEXT_BLOCK_METHOD, ROLL_BACKWARD, ROLL_FORWARD
from .errors import DecodeError, SessionError, UnsupportedEraError
from .session import ConnectionDuties, ErrGroup, first_or_stop, maybe_await
from .store import NopStore, Store
from .transport import Connection, MessageType

logger = logging.getLogger("ogsync.chainsync")

NEXT_BLOCK_REQUEST = '{"jsonrpc":"2.0","method":"nextBlock","id":{}}'

MAX_INTERSECT_POINTS = 5
PIPE_CAPACITY = 64
# recent frames kept for the shutdown checkpoint
RECENT_FRAMES = 3

ChainSyncCallback = Callable[[bytes], Union[Awaitable[None], None]]


@dataclass
class ChainSyncOptions:
    # frames before this slot are skipped without invoking the callback; 0 disables
    min_slot: int = 0
    points: List[Point] = field(default_factory=list)
    reconnect: bool = False
    store: Store = field(default_factory=NopStore)


def build_init(points: List[Point]) -> str:
    return json.dumps(
        {
            "jsonrpc": "2.0",
            "method": FIND_INTERSECTION_METHOD,
            "params": {"points": [p.to_json() for p in points]},
            "id": {"step": "INIT"},
        },
        separators=(",", ":"),
    )


async def get_init(store: Store, *points: Point) -> str:
    try:
        candidates = list(await store.load())
    except Exception as exc:
        raise SessionError(f"failed to retrieve points from store: {exc}") from exc
    if not candidates:
        candidates = list(points)
    if not candidates:
        candidates = [ORIGIN]
    return build_init(sort_points(candidates)[:MAX_INTERSECT_POINTS])


def get_point(*frames: bytes) -> Optional[Point]:
    """The point of the first frame that names one.

    A forward frame yields its block's point, a backward frame its rollback
    target. Frames that don't decode are passed over.
    """
    for data in frames:
        if not data:
            continue
        try:
            response = CompatibleResponse.loads(data)
        except (DecodeError, UnsupportedEraError):
            continue
        if response.method != NEXT_BLOCK_METHOD or response.result is None:
            continue
        result = response.must_next_block_result()
        if result.direction == ROLL_FORWARD and result.block is not None:
            return result.block.point_struct()
        if result.direction == ROLL_BACKWARD and result.point is not None:
            return result.point
    return None


@dataclass
class ChainSyncLoop:
    """Duties for one chain-sync connection."""

    conn: Connection
    callback: ChainSyncCallback
    options: ChainSyncOptions
    pipeline: int = 50
    save_interval: int = 10000
    log: logging.Logger = logger

    async def run(self, init: str, stop: asyncio.Event) -> None:
        group = ErrGroup(stop)
        duties = ConnectionDuties(self.conn, group, self.log, "chainsync")

        pipe: "asyncio.Queue[None]" = asyncio.Queue(maxsize=PIPE_CAPACITY)
        for _ in range(self.pipeline):
            try:
                pipe.put_nowait(None)
            except asyncio.QueueFull:
                break

        group.go(duties.supervise())
        group.go(duties.close_on_stop())
        group.go(self._write(init, pipe, group, duties))
        group.go(self._read(pipe, group, duties))
        err = await group.wait()
        if err is not None:
            raise err

    async def _write(self, init: str, pipe: "asyncio.Queue[None]", group: ErrGroup, duties: ConnectionDuties) -> None:
        try:
            await self.conn.send_text(init)
        except Exception as exc:
            if duties.closing:
                return
            raise SessionError(f"failed to write findIntersection: {exc}") from exc

        while True:
            ok, _ = await first_or_stop(group.stop, pipe.get())
            if not ok:
                return
            try:
                await self.conn.send_text(NEXT_BLOCK_REQUEST)
            except Exception as exc:
                if duties.closing:
                    return
                raise SessionError(f"failed to write nextBlock: {exc}") from exc

    async def _save(self, *frames: bytes) -> None:
        point = get_point(*frames)
        if point is None:
            return
        try:
            await self.options.store.save(point)
        except Exception as exc:
            raise SessionError(f"chainsync client failed: {exc}") from exc

    async def _read(self, pipe: "asyncio.Queue[None]", group: ErrGroup, duties: ConnectionDuties) -> None:
        try:
            await self._read_frames(pipe, group, duties)
        finally:
            group.stop.set()

    async def _read_frames(self, pipe: "asyncio.Queue[None]", group: ErrGroup, duties: ConnectionDuties) -> None:
        check_slot = self.options.min_slot > 0
        recent: Deque[bytes] = deque(maxlen=RECENT_FRAMES)
        n = 0
        while True:
            try:
                msg_type, data = await self.conn.recv()
            except Exception as exc:
                if duties.closing:
                    await self._save(*reversed(recent))
                    return
                raise SessionError(f"failed to read message from ogmios: {exc}") from exc
            n += 1

            if group.stop.is_set():
                await self._save(*reversed(recent))
                return

            try:
                pipe.put_nowait(None)
            except asyncio.QueueFull:
                pass

            if msg_type == MessageType.BINARY:
                self.log.info("skipping unexpected binary message")
                continue
            if msg_type == MessageType.CLOSE:
                await self._save(*reversed(recent))
                return
            if msg_type == MessageType.PING:
                try:
                    await self.conn.pong(data)
                except Exception as exc:
                    raise SessionError(f"failed to respond with pong to ogmios: {exc}") from exc
                continue
            if msg_type == MessageType.PONG:
                continue

            if check_slot:
                point = get_point(data)
                if isinstance(point, PointStruct):
                    if point.slot < self.options.min_slot:
                        continue
                    check_slot = False

            try:
                await maybe_await(self.callback(data))
            except Exception as exc:
                raise SessionError(f"chainsync stopped: callback failed: {exc}") from exc

            if n % self.save_interval == 0:
                await self._save(data, *reversed(recent))
            recent.append(data)
