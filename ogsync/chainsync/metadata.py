from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional

from ..errors import DecodeError
from ..json_helpers import as_object, as_str

logger = logging.getLogger("ogsync.metadata")


class MetadatumTag(IntEnum):
    UNKNOWN = 0
    INT = 1
    STRING = 2
    BYTES = 3
    LIST = 4
    MAP = 5


@dataclass
class MetadatumPair:
    k: "Metadatum"
    v: "Metadatum"


@dataclass
class Metadatum:
    """Detailed-schema metadatum: exactly one of int/string/bytes/list/map."""

    tag: MetadatumTag
    value: Any

    @classmethod
    def from_json(cls, obj: Any) -> "Metadatum":
        d = as_object(obj, "metadatum")
        # first populated key wins, in this order
        if isinstance(d.get("int"), int) and not isinstance(d.get("int"), bool):
            return cls(MetadatumTag.INT, d["int"])
        if isinstance(d.get("string"), str):
            return cls(MetadatumTag.STRING, d["string"])
        if isinstance(d.get("bytes"), str):
            try:
                return cls(MetadatumTag.BYTES, bytes.fromhex(d["bytes"]))
            except ValueError as exc:
                raise DecodeError(f"metadatum bytes: {exc}") from exc
        if isinstance(d.get("list"), list):
            return cls(MetadatumTag.LIST, [cls.from_json(item) for item in d["list"]])
        if isinstance(d.get("map"), list):
            pairs = []
            for item in d["map"]:
                entry = as_object(item, "metadatum map entry")
                pairs.append(MetadatumPair(k=cls.from_json(entry.get("k")), v=cls.from_json(entry.get("v"))))
            return cls(MetadatumTag.MAP, pairs)
        raise DecodeError(f"can't decode {obj!r} as metadatum")

    def to_json(self) -> Dict[str, Any]:
        if self.tag == MetadatumTag.INT:
            return {"int": self.value}
        if self.tag == MetadatumTag.STRING:
            return {"string": self.value}
        if self.tag == MetadatumTag.BYTES:
            return {"bytes": self.value.hex()}
        if self.tag == MetadatumTag.LIST:
            return {"list": [item.to_json() for item in self.value]}
        if self.tag == MetadatumTag.MAP:
            return {"map": [{"k": p.k.to_json(), "v": p.v.to_json()} for p in self.value]}
        raise DecodeError("metadatum has no value")


@dataclass
class MetadatumRecord:
    cbor: Optional[str] = None
    json: Optional[Metadatum] = None

    @classmethod
    def from_json(cls, obj: Any) -> "MetadatumRecord":
        d = as_object(obj, "metadata label")
        cbor = d.get("cbor")
        raw_json = d.get("json")
        return cls(
            cbor=as_str(cbor, "metadata label cbor") if cbor is not None else None,
            json=Metadatum.from_json(raw_json) if raw_json is not None else None,
        )

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.cbor is not None:
            out["cbor"] = self.cbor
        if self.json is not None:
            out["json"] = self.json.to_json()
        return out


@dataclass
class AuxiliaryData:
    hash: str
    labels: Optional[Dict[int, MetadatumRecord]] = None

    @classmethod
    def from_json(cls, obj: Any) -> "AuxiliaryData":
        d = as_object(obj, "auxiliary data")
        hash_ = as_str(d.get("hash"), "auxiliary data hash")
        if not hash_:
            raise DecodeError("auxiliary data: hash is empty")
        labels = None
        if d.get("labels") is not None:
            labels = {}
            for label, record in as_object(d["labels"], "auxiliary data labels").items():
                labels[_label(label)] = MetadatumRecord.from_json(record)
        return cls(hash=hash_, labels=labels)

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"hash": self.hash}
        if self.labels is not None:
            out["labels"] = {str(k): v.to_json() for k, v in self.labels.items()}
        return out


def _label(key: Any) -> int:
    try:
        return int(key)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"metadata label {key!r} is not an integer") from exc


def reconstruct_datums(metadatum: Metadatum) -> Dict[str, bytes]:
    """Join chunked datums stored as ``{bytes key: [bytes chunk, ...]}``.

    Entries of any other shape are skipped.
    """
    if metadatum.tag != MetadatumTag.MAP:
        logger.debug("datum metadata is not a map, ignoring (tag=%s)", metadatum.tag.name)
        return {}

    datums: Dict[str, bytes] = {}
    for pair in metadatum.value:
        if pair.k.tag != MetadatumTag.BYTES or pair.v.tag != MetadatumTag.LIST:
            continue
        chunks: List[Metadatum] = pair.v.value
        if any(chunk.tag != MetadatumTag.BYTES for chunk in chunks):
            continue
        out = bytearray()
        for chunk in chunks:
            out.extend(chunk.value)
        datums[pair.k.value.hex()] = bytes(out)
    return datums

