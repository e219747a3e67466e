"""Plumbing shared by the streaming sessions.

A session runs one connection at a time. Per connection a small group of
duties (supervisor, closer, writer, reader) share a stop event; the first
duty to fail sets it and its error becomes the connection's error. Around
that, ``run_with_reconnect`` redials after transient failures.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from enum import IntEnum
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from .transport import Connection, is_temporary_error

RECONNECT_DELAY = 10.0


class ConnState(IntEnum):
    OPEN = 0
    CLOSING = 1
    CLOSED = 2


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ErrGroup:
    """Concurrent duties that stop together. The first failure wins."""

    def __init__(self, parent: asyncio.Event):
        self.parent = parent
        self.stop = asyncio.Event()
        self.error: Optional[BaseException] = None
        self._tasks: List["asyncio.Task[None]"] = []
        self._tasks.append(asyncio.ensure_future(self._follow_parent()))

    async def _follow_parent(self) -> None:
        await self.parent.wait()
        self.stop.set()

    def go(self, duty: Awaitable[None]) -> None:
        self._tasks.append(asyncio.ensure_future(self._run(duty)))

    async def _run(self, duty: Awaitable[None]) -> None:
        try:
            await duty
        except Exception as exc:
            if self.error is None:
                self.error = exc
            self.stop.set()

    async def wait(self) -> Optional[BaseException]:
        follower, duties = self._tasks[0], self._tasks[1:]
        try:
            await asyncio.gather(*duties)
        finally:
            follower.cancel()
        return self.error


class ConnectionDuties:
    """Supervisor and closer duties for one connection, plus the state flag
    the reader and writer consult to tell an intentional close from a failure."""

    def __init__(self, conn: Connection, group: ErrGroup, logger: logging.Logger, name: str):
        self.conn = conn
        self.group = group
        self.logger = logger
        self.name = name
        self.state = ConnState.OPEN

    @property
    def closing(self) -> bool:
        return self.state > ConnState.OPEN

    async def supervise(self) -> None:
        self.logger.info("ogsync %s started", self.name)
        try:
            await self.group.stop.wait()
        finally:
            self.logger.info("ogsync %s stopped", self.name)

    async def close_on_stop(self) -> None:
        await self.group.stop.wait()
        # only this duty moves the state forward
        self.state = ConnState.CLOSING
        await self.conn.close()
        self.state = ConnState.CLOSED


class Session:
    """Handle to a running chain-sync or mempool session."""

    def __init__(self, run: Callable[[asyncio.Event], Awaitable[None]]):
        self._stop = asyncio.Event()
        self._done = asyncio.Event()
        self._error: Optional[BaseException] = None
        self._task = asyncio.ensure_future(self._main(run))

    async def _main(self, run: Callable[[asyncio.Event], Awaitable[None]]) -> None:
        try:
            await run(self._stop)
        except Exception as exc:
            self._error = exc
        finally:
            self._done.set()

    def done(self) -> bool:
        return self._done.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    async def wait(self) -> Optional[BaseException]:
        """Wait for the session to end on its own; returns its terminal error."""
        await self._done.wait()
        return self._error

    async def close(self) -> Optional[BaseException]:
        """Stop the session and wait for it; returns the terminal error, None if clean."""
        self._stop.set()
        await self._done.wait()
        return self._error


async def run_with_reconnect(
    once: Callable[[asyncio.Event], Awaitable[None]],
    stop: asyncio.Event,
    reconnect: bool,
    logger: logging.Logger,
    delay: float = RECONNECT_DELAY,
) -> None:
    while True:
        try:
            await once(stop)
            return
        except Exception as exc:
            if not (reconnect and is_temporary_error(exc)):
                raise
            logger.info("websocket connection error: will retry delay=%.0fms err=%s", delay * 1000, exc)
        try:
            await asyncio.wait_for(stop.wait(), timeout=delay)
            return
        except asyncio.TimeoutError:
            continue


async def first_or_stop(stop: asyncio.Event, aw: Awaitable[Any]) -> Tuple[bool, Any]:
    """Await ``aw`` unless ``stop`` fires first; (False, None) when stopped."""
    task = asyncio.ensure_future(aw)
    stopper = asyncio.ensure_future(stop.wait())
    try:
        await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
    if stop.is_set() or not task.done():
        task.cancel()
        return False, None
    return True, task.result()
