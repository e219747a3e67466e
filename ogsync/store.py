"""Checkpoint stores for chain-sync progress."""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Protocol, Union

import cbor2

from .cbor_helpers import safe_cbor_loads
from .chainsync.point import Point, sort_points
from .errors import DecodeError

logger = logging.getLogger("ogsync.store")


class Store(Protocol):
    async def load(self) -> List[Point]: ...

    async def save(self, point: Point) -> None: ...


class NopStore:
    """Remembers nothing; chain-sync always starts from the caller's points."""

    async def load(self) -> List[Point]:
        return []

    async def save(self, point: Point) -> None:
        return None


class FileStore:
    """Keeps the most recent ``keep`` checkpoints in one CBOR file.

    The file holds a CBOR array of compact point encodings, newest first.
    Writes go through a temp file and ``os.replace`` so a crash never leaves
    a half-written checkpoint behind.
    """

    def __init__(self, path: Union[str, Path], keep: int = 5):
        self.path = Path(path)
        self.keep = keep

    def _read(self) -> List[Point]:
        if not self.path.exists():
            return []
        raw = safe_cbor_loads(self.path.read_bytes())
        if not isinstance(raw, list):
            raise DecodeError(f"{self.path}: expected CBOR array of points")
        points = []
        for item in raw:
            point = Point.from_cbor(item)
            if point is not None:
                points.append(point)
        return points

    def _write(self, points: List[Point]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_bytes(cbor2.dumps([p.to_cbor() for p in points]))
        os.replace(tmp, self.path)

    async def load(self) -> List[Point]:
        return await asyncio.to_thread(self._read)

    async def save(self, point: Point) -> None:
        def update() -> None:
            points = [p for p in self._read() if p != point]
            points = sort_points([point] + points)[: self.keep]
            self._write(points)
            logger.debug("checkpoint saved to %s: %s", self.path, point)

        await asyncio.to_thread(update)
