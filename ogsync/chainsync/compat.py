"""Adaptive decoders that accept either wire schema.

Each ``Compatible`` instance holds an ordered list of decoders. Every decoder
parses the payload with one schema, checks a discriminant on the result (a
loose parse of the wrong schema often succeeds on optional-heavy JSON) and
translates the winner into the canonical v6 model. Encoding always produces
the legacy v5 shape.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Sequence, TypeVar, Union

from ..errors import CompatibilityError, DecodeError, MetadataError
from ..json_helpers import dumps, safe_json_loads
from ..shared.value import Value
from . import v5
from .metadata import AuxiliaryData, reconstruct_datums
from .types import Response, ResultFindIntersection, ResultNextBlock, Tx, TxOut

logger = logging.getLogger("ogsync.compat")

T = TypeVar("T")


@dataclass(frozen=True)
class Decoder(Generic[T]):
    schema: str
    parse: Callable[[Any], Any]
    # (parsed, raw json) -> does the parse describe this schema?
    matches: Callable[[Any, Any], bool]
    to_canonical: Callable[[Any], T]


class Compatible(Generic[T]):
    def __init__(self, kind: str, decoders: Sequence[Decoder[T]], to_legacy: Callable[[T], Any]):
        self.kind = kind
        self.decoders = tuple(decoders)
        self.to_legacy = to_legacy

    def decode(self, obj: Any) -> T:
        errors: Dict[str, Exception] = {}
        for decoder in self.decoders:
            try:
                parsed = decoder.parse(obj)
            except DecodeError as exc:
                errors[decoder.schema] = exc
                continue
            if not decoder.matches(parsed, obj):
                errors[decoder.schema] = DecodeError(f"payload is not a {decoder.schema} {self.kind}")
                continue
            return decoder.to_canonical(parsed)
        raise CompatibilityError(self.kind, errors)

    def loads(self, data: Union[bytes, str]) -> T:
        return self.decode(safe_json_loads(data))

    def encode(self, value: T) -> Any:
        legacy = self.to_legacy(value)
        return legacy.to_json() if hasattr(legacy, "to_json") else legacy

    def dumps(self, value: T) -> str:
        return dumps(self.encode(value))


def _identity(x: Any) -> Any:
    return x


def _is_object(raw: Any) -> bool:
    return isinstance(raw, dict)


# --- values -------------------------------------------------------------

CompatibleValue: Compatible[Value] = Compatible(
    "Value",
    (
        Decoder("v6", Value.from_json, lambda v, raw: _is_object(raw) and "coins" not in raw and "assets" not in raw, _identity),
        Decoder("v5", v5.ValueV5.from_json, lambda v, raw: _is_object(raw), lambda v: v.convert_to_v6()),
    ),
    v5.ValueV5.from_v6,
)

# --- transactions -------------------------------------------------------

CompatibleTx: Compatible[Tx] = Compatible(
    "Tx",
    (
        Decoder("v6", Tx.from_json, lambda tx, raw: tx.spends != "", _identity),
        Decoder("v5", v5.TxV5.from_json, lambda tx, raw: tx.raw != "", lambda tx: tx.convert_to_v6()),
    ),
    v5.TxV5.from_v6,
)

CompatibleTxOut: Compatible[TxOut] = Compatible(
    "TxOut",
    (
        Decoder("v6", TxOut.from_json, lambda out, raw: out.address != "", _identity),
        Decoder("v5", v5.TxOutV5.from_json, lambda out, raw: out.address != "", lambda out: out.convert_to_v6()),
    ),
    v5.TxOutV5.from_v6,
)

# --- results ------------------------------------------------------------


def _find_intersection_to_legacy(r: ResultFindIntersection) -> Dict[str, Any]:
    result = v5.result_find_intersection_from_v6(r)
    if result is None:
        result = v5.IntersectionNotFoundV5(tip=v5.PointStructV5.from_v6(r.tip) if r.tip is not None else None)
    return result.to_json()


CompatibleResultFindIntersection: Compatible[ResultFindIntersection] = Compatible(
    "findIntersection result",
    (
        Decoder(
            "v6",
            ResultFindIntersection.from_json,
            lambda r, raw: r.intersection is not None or r.error is not None,
            _identity,
        ),
        Decoder("v5", v5.result_find_intersection_v5_from_json, lambda r, raw: True, lambda r: r.convert_to_v6()),
    ),
    _find_intersection_to_legacy,
)


def _next_block_to_legacy(r: ResultNextBlock) -> Dict[str, Any]:
    result = v5.result_next_block_from_v6(r)
    if result is None:
        raise DecodeError(f"nextBlock result has unknown direction {r.direction!r}")
    return result.to_json()


CompatibleResultNextBlock: Compatible[ResultNextBlock] = Compatible(
    "nextBlock result",
    (
        Decoder("v6", ResultNextBlock.from_json, lambda r, raw: r.direction != "", _identity),
        Decoder("v5", v5.result_next_block_v5_from_json, lambda r, raw: True, lambda r: r.convert_to_v6()),
    ),
    _next_block_to_legacy,
)


def compatible_result(obj: Any) -> Union[ResultFindIntersection, ResultNextBlock]:
    """Decode a bare result of either method and either schema."""
    errors: Dict[str, Exception] = {}
    for compatible in (CompatibleResultFindIntersection, CompatibleResultNextBlock):
        try:
            return compatible.decode(obj)
        except CompatibilityError as exc:
            errors[compatible.kind] = exc
    raise CompatibilityError("result", errors)


def encode_result(result: Union[ResultFindIntersection, ResultNextBlock]) -> Any:
    if isinstance(result, ResultNextBlock):
        return CompatibleResultNextBlock.encode(result)
    return CompatibleResultFindIntersection.encode(result)


CompatibleResponse: Compatible[Response] = Compatible(
    "Response",
    (
        Decoder(
            "v6",
            Response.from_json,
            lambda r, raw: _is_object(raw) and (raw.get("result") is not None or raw.get("error") is not None),
            _identity,
        ),
        Decoder("v5", v5.ResponseV5.from_json, lambda r, raw: True, lambda r: r.convert_to_v6()),
    ),
    v5.ResponseV5.from_v6,
)

# --- metadata -----------------------------------------------------------

CompatibleAuxiliaryData: Compatible[AuxiliaryData] = Compatible(
    "AuxiliaryData",
    (
        Decoder("v6", AuxiliaryData.from_json, lambda aux, raw: aux.labels is not None, _identity),
        Decoder("v5", v5.AuxiliaryDataV5.from_json, lambda aux, raw: aux.blob is not None, lambda aux: aux.convert_to_v6()),
    ),
    v5.AuxiliaryDataV5.from_v6,
)


def get_metadata_datum_map(tx_metadata: Any, label: int) -> Dict[str, bytes]:
    """Reassemble chunked datums stored under ``label`` of a transaction's metadata.

    ``tx_metadata`` may be raw JSON or an already-parsed object in either
    schema; missing metadata or a missing label yields an empty map.
    """
    if tx_metadata is None:
        return {}
    obj = safe_json_loads(tx_metadata)
    if obj is None:
        return {}
    aux = CompatibleAuxiliaryData.decode(obj)
    if not aux.labels or label not in aux.labels:
        return {}
    record = aux.labels[label]
    if record.json is None:
        raise MetadataError(
            f"transaction metadata at label {label} has no json representation "
            "(is ogmios running with --metadata-detailed-schema?)"
        )
    datums = reconstruct_datums(record.json)
    logger.debug("reconstructed %d datums from metadata label %d", len(datums), label)
    return datums


def get_metadata_datums(tx_metadata: Any, label: int) -> List[bytes]:
    return list(get_metadata_datum_map(tx_metadata, label).values())
