"""In-memory stand-ins for the websocket, the dialer, the HTTP session and the store."""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ogsync.chainsync.point import Point
from ogsync.transport import MessageType

Frame = Tuple[MessageType, bytes]


def text(obj: Any) -> Frame:
    return MessageType.TEXT, json.dumps(obj).encode("utf-8")


CLOSE: Frame = (MessageType.CLOSE, b"")


class ScriptedConnection:
    """Replays queued frames and records what the session sends.

    Build it inside the running event loop.
    """

    def __init__(self, frames: Iterable[Frame] = (), responder: Optional[Callable[[str], List[Frame]]] = None):
        self.inbox: "asyncio.Queue[Frame]" = asyncio.Queue()
        for frame in frames:
            self.inbox.put_nowait(frame)
        self.responder = responder
        self.sent: List[str] = []
        self.pongs: List[bytes] = []
        self.closed = False

    async def send_text(self, data: str) -> None:
        if self.closed:
            raise ConnectionError("connection closed")
        self.sent.append(data)
        if self.responder is not None:
            for frame in self.responder(data):
                self.inbox.put_nowait(frame)

    async def recv(self) -> Frame:
        return await self.inbox.get()

    async def pong(self, data: bytes = b"") -> None:
        self.pongs.append(data)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.inbox.put_nowait(CLOSE)

    def sent_json(self) -> List[Dict[str, Any]]:
        return [json.loads(s) for s in self.sent]

    async def wait_sent(self, n: int, timeout: float = 2.0) -> None:
        async def poll() -> None:
            while len(self.sent) < n:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(poll(), timeout)


class ScriptedDialer:
    """Hands out connections (or raises errors) in order."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.uris: List[str] = []

    async def __call__(self, uri: str) -> Any:
        self.uris.append(uri)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome()
        return outcome


class MemoryStore:
    def __init__(self, points: Iterable[Point] = ()):
        self.points = list(points)
        self.saved: List[Point] = []

    async def load(self) -> List[Point]:
        return list(self.points)

    async def save(self, point: Point) -> None:
        self.saved.append(point)


class StubResponse:
    def __init__(self, body: Any, status_code: int = 200):
        self.body = body
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def json(self) -> Any:
        return self.body


class StubSession:
    """Records POSTed payloads and answers with canned bodies."""

    def __init__(self, *bodies: Any):
        self.bodies = list(bodies)
        self.posts: List[Tuple[str, Any]] = []

    def post(self, url: str, json: Any = None, timeout: Optional[float] = None) -> StubResponse:
        self.posts.append((url, json))
        return StubResponse(self.bodies.pop(0))


def block_frame(slot: int, block_id: str, height: int) -> Frame:
    return text({
        "jsonrpc": "2.0",
        "method": "nextBlock",
        "result": {
            "direction": "forward",
            "tip": {"slot": slot + 100, "id": "ff" * 32, "height": height + 10},
            "block": {
                "type": "praos",
                "era": "babbage",
                "id": block_id,
                "ancestor": "00" * 32,
                "height": height,
                "slot": slot,
                "size": {"bytes": 512},
                "protocol": {"version": {"major": 8, "minor": 0, "patch": 0}},
                "issuer": {
                    "verificationKey": "aa" * 32,
                    "vrfVerificationKey": "bb" * 32,
                    "operationalCertificate": {"count": 1, "kes": {"period": 2, "verificationKey": "cc" * 32}},
                },
                "transactions": [],
            },
        },
        "id": None,
    })


def rollback_frame(point: Any) -> Frame:
    return text({
        "jsonrpc": "2.0",
        "method": "nextBlock",
        "result": {"direction": "backward", "point": point, "tip": {"slot": 1, "id": "ff" * 32, "height": 1}},
        "id": None,
    })


def intersection_frame(slot: int = 0, block_id: str = "") -> Frame:
    intersection: Any = "origin" if not block_id else {"slot": slot, "id": block_id}
    return text({
        "jsonrpc": "2.0",
        "method": "findIntersection",
        "result": {"intersection": intersection, "tip": {"slot": 500, "id": "ff" * 32, "height": 50}},
        "id": {"step": "INIT"},
    })
