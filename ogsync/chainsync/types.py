from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..errors import DecodeError, MisuseError
from ..json_helpers import (
    as_int,
    as_list,
    as_object,
    as_optional_object,
    as_str,
    compact,
)
from ..shared.value import Value
from .point import Point, PointStruct, TxID, new_tx_id

FIND_INTERSECTION_METHOD = "findIntersection"
NEXT_BLOCK_METHOD = "nextBlock"
FIND_INTERSECT_METHOD = "FindIntersect"
REQUEST_NEXT_METHOD = "RequestNext"

ROLL_FORWARD = "forward"
ROLL_BACKWARD = "backward"

INTERSECTION_NOT_FOUND_CODE = 1000

_METHODS = {
    FIND_INTERSECTION_METHOD: FIND_INTERSECTION_METHOD,
    FIND_INTERSECT_METHOD: FIND_INTERSECTION_METHOD,
    NEXT_BLOCK_METHOD: NEXT_BLOCK_METHOD,
    REQUEST_NEXT_METHOD: NEXT_BLOCK_METHOD,
}


@dataclass
class Nonce:
    output: str = ""
    proof: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> "Nonce":
        d = as_object(obj, "nonce")
        return cls(output=as_str(d.get("output"), "nonce.output"), proof=as_str(d.get("proof"), "nonce.proof"))

    def to_json(self) -> Dict[str, Any]:
        return compact({"output": self.output, "proof": self.proof})


@dataclass
class LeaderValue:
    output: str = ""
    proof: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> "LeaderValue":
        d = as_object(obj, "leaderValue")
        return cls(output=as_str(d.get("output"), "leaderValue.output"), proof=as_str(d.get("proof"), "leaderValue.proof"))

    def to_json(self) -> Dict[str, Any]:
        return compact({"output": self.output, "proof": self.proof})


@dataclass
class ProtocolVersion:
    major: int = 0
    minor: int = 0
    patch: int = 0

    @classmethod
    def from_json(cls, obj: Any) -> "ProtocolVersion":
        d = as_object(obj, "protocol version")
        return cls(
            major=as_int(d.get("major"), "version.major"),
            minor=as_int(d.get("minor"), "version.minor"),
            patch=as_int(d.get("patch"), "version.patch"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({"major": self.major, "minor": self.minor, "patch": self.patch}, keep=("major", "minor"))


@dataclass
class Kes:
    period: int = 0
    verification_key: str = ""


@dataclass
class OpCert:
    count: int = 0
    kes: Kes = field(default_factory=Kes)

    @classmethod
    def from_json(cls, obj: Any) -> "OpCert":
        d = as_object(obj, "operationalCertificate")
        kes = as_object(d.get("kes"), "operationalCertificate.kes")
        return cls(
            count=as_int(d.get("count"), "operationalCertificate.count"),
            kes=Kes(
                period=as_int(kes.get("period"), "kes.period"),
                verification_key=as_str(kes.get("verificationKey"), "kes.verificationKey"),
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        kes = compact({"period": self.kes.period, "verificationKey": self.kes.verification_key})
        return compact({"count": self.count, "kes": kes})


@dataclass
class BlockIssuer:
    verification_key: str = ""
    vrf_verification_key: str = ""
    operational_certificate: OpCert = field(default_factory=OpCert)
    leader_value: Optional[LeaderValue] = None

    @classmethod
    def from_json(cls, obj: Any) -> "BlockIssuer":
        d = as_object(obj, "issuer")
        lv = as_optional_object(d.get("leaderValue"), "issuer.leaderValue")
        return cls(
            verification_key=as_str(d.get("verificationKey"), "issuer.verificationKey"),
            vrf_verification_key=as_str(d.get("vrfVerificationKey"), "issuer.vrfVerificationKey"),
            operational_certificate=OpCert.from_json(d.get("operationalCertificate")),
            leader_value=LeaderValue.from_json(lv) if lv is not None else None,
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "verificationKey": self.verification_key,
            "vrfVerificationKey": self.vrf_verification_key,
            "operationalCertificate": self.operational_certificate.to_json(),
            "leaderValue": self.leader_value.to_json() if self.leader_value else None,
        })


@dataclass
class Signature:
    key: str
    signature: str
    chain_code: str = ""
    # empty means no bootstrap address attributes
    address_attributes: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> "Signature":
        d = as_object(obj, "signatory")
        return cls(
            key=as_str(d.get("key"), "signatory.key"),
            signature=as_str(d.get("signature"), "signatory.signature"),
            chain_code=as_str(d.get("chainCode"), "signatory.chainCode"),
            address_attributes=as_str(d.get("addressAttributes"), "signatory.addressAttributes"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact(
            {
                "key": self.key,
                "signature": self.signature,
                "chainCode": self.chain_code,
                "addressAttributes": self.address_attributes,
            },
            keep=("key", "signature"),
        )

    def is_bootstrap(self) -> bool:
        return bool(self.chain_code or self.address_attributes)


@dataclass(frozen=True)
class TxIn:
    transaction_id: str
    index: int

    @classmethod
    def from_json(cls, obj: Any) -> "TxIn":
        d = as_object(obj, "input")
        tx = as_object(d.get("transaction"), "input.transaction")
        return cls(transaction_id=as_str(tx.get("id"), "input.transaction.id"), index=as_int(d.get("index"), "input.index"))

    def to_json(self) -> Dict[str, Any]:
        return {"transaction": {"id": self.transaction_id}, "index": self.index}

    def tx_id(self) -> TxID:
        return new_tx_id(self.transaction_id, self.index)

    def __str__(self) -> str:
        return f"{self.transaction_id}#{self.index}"


@dataclass
class TxOut:
    address: str = ""
    datum: str = ""
    datum_hash: str = ""
    value: Value = field(default_factory=Value)
    script: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "TxOut":
        d = as_object(obj, "output")
        return cls(
            address=as_str(d.get("address"), "output.address"),
            datum=as_str(d.get("datum"), "output.datum"),
            datum_hash=as_str(d.get("datumHash"), "output.datumHash"),
            value=Value.from_json(d.get("value")),
            script=d.get("script"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "address": self.address,
            "datum": self.datum,
            "datumHash": self.datum_hash,
            "value": self.value.to_json(),
            "script": self.script,
        })


@dataclass
class ValidityInterval:
    invalid_before: int = 0
    invalid_after: int = 0

    @classmethod
    def from_json(cls, obj: Any) -> "ValidityInterval":
        d = as_object(obj, "validityInterval")
        return cls(
            invalid_before=as_int(d.get("invalidBefore"), "validityInterval.invalidBefore"),
            invalid_after=as_int(d.get("invalidAfter"), "validityInterval.invalidAfter"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({"invalidBefore": self.invalid_before, "invalidAfter": self.invalid_after})


def decode_datums(obj: Any) -> Dict[str, str]:
    """Datum hash -> hex datum. Older nodes sent base64 values; those become hex."""
    out: Dict[str, str] = {}
    for k, v in as_object(obj, "datums").items():
        if not isinstance(v, str):
            raise DecodeError(f"datums: expecting string, got {v!r}")
        try:
            bytes.fromhex(v)
            out[k] = v
        except ValueError:
            try:
                out[k] = base64.b64decode(v, validate=True).hex()
            except (binascii.Error, ValueError) as exc:
                raise DecodeError(f"datums: unable to decode string {v}: {exc}") from exc
    return out


def _opt_value(obj: Any) -> Optional[Value]:
    return Value.from_json(obj) if obj is not None else None


@dataclass
class Tx:
    id: str = ""
    spends: str = ""
    inputs: List[TxIn] = field(default_factory=list)
    references: List[TxIn] = field(default_factory=list)
    collaterals: List[TxIn] = field(default_factory=list)
    total_collateral: Optional[Value] = None
    collateral_return: Optional[TxOut] = None
    outputs: List[TxOut] = field(default_factory=list)
    certificates: List[Any] = field(default_factory=list)
    withdrawals: Dict[str, Value] = field(default_factory=dict)
    fee: Value = field(default_factory=Value)
    validity_interval: ValidityInterval = field(default_factory=ValidityInterval)
    mint: Value = field(default_factory=Value)
    network: Any = None
    script_integrity_hash: str = ""
    required_extra_signatories: List[str] = field(default_factory=list)
    required_extra_scripts: List[str] = field(default_factory=list)
    proposals: Any = None
    votes: Any = None
    metadata: Any = None
    signatories: List[Signature] = field(default_factory=list)
    scripts: Any = None
    datums: Dict[str, str] = field(default_factory=dict)
    redeemers: Any = None
    cbor: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> "Tx":
        d = as_object(obj, "transaction")
        collateral_return = d.get("collateralReturn")
        return cls(
            id=as_str(d.get("id"), "tx.id"),
            spends=as_str(d.get("spends"), "tx.spends"),
            inputs=[TxIn.from_json(i) for i in as_list(d.get("inputs"), "tx.inputs")],
            references=[TxIn.from_json(i) for i in as_list(d.get("references"), "tx.references")],
            collaterals=[TxIn.from_json(i) for i in as_list(d.get("collaterals"), "tx.collaterals")],
            total_collateral=_opt_value(d.get("totalCollateral")),
            collateral_return=TxOut.from_json(collateral_return) if collateral_return is not None else None,
            outputs=[TxOut.from_json(o) for o in as_list(d.get("outputs"), "tx.outputs")],
            certificates=as_list(d.get("certificates"), "tx.certificates"),
            withdrawals={k: Value.from_json(v) for k, v in as_object(d.get("withdrawals"), "tx.withdrawals").items()},
            fee=Value.from_json(d.get("fee")),
            validity_interval=ValidityInterval.from_json(d.get("validityInterval")),
            mint=Value.from_json(d.get("mint")),
            network=d.get("network"),
            script_integrity_hash=as_str(d.get("scriptIntegrityHash"), "tx.scriptIntegrityHash"),
            required_extra_signatories=[as_str(s, "tx.requiredExtraSignatories") for s in as_list(d.get("requiredExtraSignatories"), "tx.requiredExtraSignatories")],
            required_extra_scripts=[as_str(s, "tx.requiredExtraScripts") for s in as_list(d.get("requiredExtraScripts"), "tx.requiredExtraScripts")],
            proposals=d.get("proposals"),
            votes=d.get("votes"),
            metadata=d.get("metadata"),
            signatories=[Signature.from_json(s) for s in as_list(d.get("signatories"), "tx.signatories")],
            scripts=d.get("scripts"),
            datums=decode_datums(d.get("datums")),
            redeemers=d.get("redeemers"),
            cbor=as_str(d.get("cbor"), "tx.cbor"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact(
            {
                "id": self.id,
                "spends": self.spends,
                "inputs": [i.to_json() for i in self.inputs],
                "references": [i.to_json() for i in self.references],
                "collaterals": [i.to_json() for i in self.collaterals],
                "totalCollateral": self.total_collateral.to_json() if self.total_collateral is not None else None,
                "collateralReturn": self.collateral_return.to_json() if self.collateral_return is not None else None,
                "outputs": [o.to_json() for o in self.outputs],
                "certificates": self.certificates,
                "withdrawals": {k: v.to_json() for k, v in self.withdrawals.items()},
                "fee": self.fee.to_json(),
                "validityInterval": self.validity_interval.to_json(),
                "mint": self.mint.to_json(),
                "network": self.network,
                "scriptIntegrityHash": self.script_integrity_hash,
                "requiredExtraSignatories": self.required_extra_signatories,
                "requiredExtraScripts": self.required_extra_scripts,
                "proposals": self.proposals,
                "votes": self.votes,
                "metadata": self.metadata,
                "signatories": [s.to_json() for s in self.signatories],
                "scripts": self.scripts,
                "datums": self.datums,
                "redeemers": self.redeemers,
                "cbor": self.cbor,
            },
            keep=("validityInterval", "datums"),
        )


@dataclass
class Block:
    """Any non-Byron block."""

    type: str = ""
    era: str = ""
    id: str = ""
    ancestor: str = ""
    nonce: Optional[Nonce] = None
    height: int = 0
    size: int = 0
    slot: int = 0
    transactions: List[Tx] = field(default_factory=list)
    protocol_version: ProtocolVersion = field(default_factory=ProtocolVersion)
    issuer: BlockIssuer = field(default_factory=BlockIssuer)

    @classmethod
    def from_json(cls, obj: Any) -> "Block":
        d = as_object(obj, "block")
        nonce = as_optional_object(d.get("nonce"), "block.nonce")
        protocol = as_object(d.get("protocol"), "block.protocol")
        return cls(
            type=as_str(d.get("type"), "block.type"),
            era=as_str(d.get("era"), "block.era"),
            id=as_str(d.get("id"), "block.id"),
            ancestor=as_str(d.get("ancestor"), "block.ancestor"),
            nonce=Nonce.from_json(nonce) if nonce is not None else None,
            height=as_int(d.get("height"), "block.height"),
            size=as_int(as_object(d.get("size"), "block.size").get("bytes"), "block.size.bytes"),
            slot=as_int(d.get("slot"), "block.slot"),
            transactions=[Tx.from_json(t) for t in as_list(d.get("transactions"), "block.transactions")],
            protocol_version=ProtocolVersion.from_json(protocol.get("version")),
            issuer=BlockIssuer.from_json(d.get("issuer")),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "type": self.type,
            "era": self.era,
            "id": self.id,
            "ancestor": self.ancestor,
            "nonce": self.nonce.to_json() if self.nonce else None,
            "height": self.height,
            "size": compact({"bytes": self.size}),
            "slot": self.slot,
            "transactions": [t.to_json() for t in self.transactions],
            "protocol": {"version": self.protocol_version.to_json()},
            "issuer": self.issuer.to_json(),
        })

    def point_struct(self) -> PointStruct:
        return PointStruct(id=self.id, slot=self.slot, height=self.height)


@dataclass
class ResultError:
    code: int = 0
    message: str = ""
    data: Any = None
    id: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "ResultError":
        d = as_object(obj, "error")
        return cls(
            code=as_int(d.get("code"), "error.code"),
            message=as_str(d.get("message"), "error.message"),
            data=d.get("data"),
            id=d.get("id"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({"code": self.code, "message": self.message, "data": self.data, "id": self.id})


def _opt_point_struct(obj: Any) -> Optional[PointStruct]:
    return PointStruct.from_json(obj) if obj is not None else None


@dataclass
class ResultFindIntersection:
    intersection: Optional[Point] = None
    tip: Optional[PointStruct] = None
    error: Optional[ResultError] = None
    id: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "ResultFindIntersection":
        d = as_object(obj, "findIntersection result")
        intersection = d.get("intersection")
        error = d.get("error")
        return cls(
            intersection=Point.from_json(intersection) if intersection is not None else None,
            tip=_opt_point_struct(d.get("tip")),
            error=ResultError.from_json(error) if error is not None else None,
            id=d.get("id"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "intersection": self.intersection.to_json() if self.intersection is not None else None,
            "tip": self.tip.to_json() if self.tip is not None else None,
            "error": self.error.to_json() if self.error is not None else None,
            "id": self.id,
        })


@dataclass
class ResultNextBlock:
    direction: str = ""
    tip: Optional[PointStruct] = None
    block: Optional[Block] = None
    point: Optional[Point] = None

    @classmethod
    def from_json(cls, obj: Any) -> "ResultNextBlock":
        d = as_object(obj, "nextBlock result")
        block = d.get("block")
        point = d.get("point")
        return cls(
            direction=as_str(d.get("direction"), "nextBlock.direction"),
            tip=_opt_point_struct(d.get("tip")),
            block=Block.from_json(block) if block is not None else None,
            point=Point.from_json(point) if point is not None else None,
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "direction": self.direction,
            "tip": self.tip.to_json() if self.tip is not None else None,
            "block": self.block.to_json() if self.block is not None else None,
            "point": self.point.to_json() if self.point is not None else None,
        })


Result = Union[ResultFindIntersection, ResultNextBlock]


@dataclass
class Response:
    jsonrpc: str = ""
    method: str = ""
    result: Optional[Result] = None
    error: Optional[ResultError] = None
    id: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "Response":
        d = as_object(obj, "response")
        method = as_str(d.get("method"), "response.method")
        response = cls(jsonrpc=as_str(d.get("jsonrpc"), "response.jsonrpc"), id=d.get("id"))

        if d.get("error") is not None:
            response.error = ResultError.from_json(d["error"])
            response.method = _METHODS.get(method, method)
            return response

        if method not in _METHODS:
            raise DecodeError(f"unknown method: '{method}'")
        response.method = _METHODS[method]
        if response.method == FIND_INTERSECTION_METHOD:
            response.result = ResultFindIntersection.from_json(d.get("result"))
        else:
            response.result = ResultNextBlock.from_json(d.get("result"))
        return response

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "result": self.result.to_json() if self.result is not None else None,
            "error": self.error.to_json() if self.error is not None else None,
            "id": self.id,
        })

    def must_find_intersection_result(self) -> ResultFindIntersection:
        if self.method != FIND_INTERSECTION_METHOD:
            raise MisuseError(FIND_INTERSECTION_METHOD, self.method)
        if self.result is None and self.error is not None:
            return ResultFindIntersection(error=self.error, id=self.id)
        if not isinstance(self.result, ResultFindIntersection):
            raise MisuseError(FIND_INTERSECTION_METHOD, self.method)
        return self.result

    def must_next_block_result(self) -> ResultNextBlock:
        if self.method != NEXT_BLOCK_METHOD or not isinstance(self.result, ResultNextBlock):
            raise MisuseError(NEXT_BLOCK_METHOD, self.method)
        return self.result
