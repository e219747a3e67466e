from __future__ import annotations

import functools
import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Union

from ..cbor_helpers import decode_tagged, encode_tagged
from ..errors import DecodeError
from ..json_helpers import as_int, as_object, as_optional_int, as_str, compact


class PointType(IntEnum):
    STRING = 1
    STRUCT = 2


class Point:
    """A chain position: the symbolic ``PointString`` or a ``PointStruct``."""

    point_type: PointType

    def to_json(self) -> Any:
        """Implemented by PointString and PointStruct."""
        raise NotImplementedError

    def to_cbor(self) -> bytes:
        return encode_tagged(int(self.point_type), self.to_json())

    def dumps(self) -> str:
        return json.dumps(self.to_json(), separators=(",", ":"))

    @staticmethod
    def from_json(obj: Any) -> "Point":
        if isinstance(obj, str):
            return PointString(obj)
        return PointStruct.from_json(obj)

    @staticmethod
    def loads(data: Union[bytes, str]) -> "Point":
        """Decode JSON, choosing the variant from the first significant character."""
        if isinstance(data, (bytes, bytearray)):
            try:
                data = bytes(data).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError(f"point: invalid utf-8: {exc}") from exc
        text = data.lstrip()
        if not text:
            raise DecodeError("point: empty payload")
        try:
            obj = json.loads(text)
        except ValueError as exc:
            raise DecodeError(f"failed to decode point, {text}: {exc}") from exc
        if text[0] == '"':
            return PointString(obj)
        return PointStruct.from_json(obj)

    @staticmethod
    def from_cbor(data: Optional[bytes]) -> Optional["Point"]:
        tagged = decode_tagged(data)
        if tagged is None:
            return None
        tag, value = tagged
        if tag == PointType.STRING:
            return PointString(as_str(value, "point"))
        if tag == PointType.STRUCT:
            return PointStruct.from_json(value)
        raise DecodeError(f"point: unknown CBOR variant {tag}")


@dataclass(frozen=True)
class PointString(Point):
    value: str

    point_type = PointType.STRING

    def to_json(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PointStruct(Point):
    id: str = ""
    slot: int = 0
    # Not part of RollBackward points.
    height: Optional[int] = None

    point_type = PointType.STRUCT

    @classmethod
    def from_json(cls, obj: Any) -> "PointStruct":
        d = as_object(obj, "point")
        return cls(
            id=as_str(d.get("id"), "point.id"),
            slot=as_int(d.get("slot"), "point.slot"),
            height=as_optional_int(d.get("height"), "point.height"),
        )

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.height is not None:
            out["height"] = self.height
        out.update(compact({"id": self.id, "slot": self.slot}))
        return out

    def __str__(self) -> str:
        if self.height is None:
            return f"slot={self.slot} id={self.id}"
        return f"slot={self.slot} id={self.id} block={self.height}"


ORIGIN = PointString("origin")


def _compare(a: Point, b: Point) -> int:
    if isinstance(a, PointStruct) and isinstance(b, PointStruct):
        return (b.slot > a.slot) - (b.slot < a.slot)
    if isinstance(a, PointStruct):
        return -1
    if isinstance(b, PointStruct):
        return 1
    av, bv = str(a), str(b)
    return (bv > av) - (bv < av)


def sort_points(points: Iterable[Point]) -> List[Point]:
    """Structural points first by descending slot, then strings descending."""
    return sorted(points, key=functools.cmp_to_key(_compare))


def points_string(points: Iterable[Point]) -> str:
    return ", ".join(str(p) for p in points)


class TxID(str):
    """``txHash#index`` reference to a transaction output."""

    def output_index(self) -> int:
        pos = self.find("#")
        if pos > 0:
            try:
                return int(self[pos + 1:])
            except ValueError:
                pass
        return -1

    def tx_hash(self) -> str:
        pos = self.find("#")
        return self[:pos] if pos > 0 else ""


def new_tx_id(tx_hash: str, index: int) -> TxID:
    return TxID(f"{tx_hash}#{index}")
