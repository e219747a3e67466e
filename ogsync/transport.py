from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Awaitable, Callable, Optional, Protocol, Tuple

import websockets
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, WebSocketException

from .errors import DialError

logger = logging.getLogger("ogsync.transport")

# websocket close code for a connection that dropped without a close frame
ABNORMAL_CLOSURE = 1006


class MessageType(IntEnum):
    TEXT = 1
    BINARY = 2
    CLOSE = 8
    PING = 9
    PONG = 10


class Connection(Protocol):
    """A duplex message channel: what the session duties need from a websocket."""

    async def send_text(self, data: str) -> None: ...

    async def recv(self) -> Tuple[MessageType, bytes]: ...

    async def pong(self, data: bytes = b"") -> None: ...

    async def close(self) -> None: ...


Dialer = Callable[[str], Awaitable[Connection]]


@dataclass
class WebSocketConnection:
    uri: str
    timeout: float = 30.0

    ws: Any = None

    async def open(self) -> "WebSocketConnection":
        try:
            self.ws = await asyncio.wait_for(
                websockets.connect(self.uri, max_size=None),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise DialError(f"failed to connect to ogmios, {self.uri}: {exc}") from exc
        except WebSocketException as exc:
            raise DialError(f"ogmios rejected the websocket handshake, {self.uri}: {exc}") from exc
        logger.debug("connected to %s", self.uri)
        return self

    def _socket(self) -> Any:
        if self.ws is None:
            raise DialError(f"connection to {self.uri} not open")
        return self.ws

    async def send_text(self, data: str) -> None:
        await self._socket().send(data)

    async def recv(self) -> Tuple[MessageType, bytes]:
        """Next data frame. Control frames are answered by the websocket library itself."""
        ws = self._socket()
        try:
            msg = await ws.recv()
        except ConnectionClosedOK:
            return MessageType.CLOSE, b""
        if isinstance(msg, str):
            return MessageType.TEXT, msg.encode("utf-8")
        return MessageType.BINARY, bytes(msg)

    async def pong(self, data: bytes = b"") -> None:
        await self._socket().pong(data)

    async def close(self) -> None:
        if self.ws is not None:
            await self.ws.close()


async def dial(uri: str) -> Connection:
    return await WebSocketConnection(uri).open()


def close_code(exc: ConnectionClosedError) -> int:
    rcvd = getattr(exc, "rcvd", None)
    if rcvd is None:
        return ABNORMAL_CLOSURE
    return rcvd.code


def _chain(exc: Optional[BaseException]):
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__ or exc.__context__


def is_temporary_error(exc: BaseException) -> bool:
    """True for failures worth reconnecting over: abnormal closure, a failed
    connect, or anything flagging itself as temporary."""
    for err in _chain(exc):
        if isinstance(err, ConnectionClosedError) and close_code(err) == ABNORMAL_CLOSURE:
            return True
        if isinstance(err, DialError) and isinstance(err.__cause__, (OSError, asyncio.TimeoutError)):
            return True
        temporary = getattr(err, "temporary", None)
        if callable(temporary):
            temporary = temporary()
        if temporary:
            return True
    return False
