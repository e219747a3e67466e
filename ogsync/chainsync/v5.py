"""Legacy (Ogmios v5) chain-sync shapes and their translation to and from v6.

v5 carries binary payloads as base64 where v6 uses hex, splits values into a
lovelace scalar plus a side map of ``policy.name`` assets, groups witnesses by
signature kind, and wraps every result in a variant key such as
``RollForward`` or ``IntersectionNotFound``.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..errors import DecodeError, UnsupportedEraError
from ..json_helpers import (
    as_int,
    as_list,
    as_object,
    as_optional_int,
    as_optional_object,
    as_str,
    compact,
)
from ..shared.assets import ADA_ASSET, ADA_POLICY, AssetID
from ..shared.value import Value, create_ada_value
from .metadata import AuxiliaryData, Metadatum, MetadatumRecord, reconstruct_datums
from .point import Point, PointString, PointStruct, PointType
from .types import (
    FIND_INTERSECTION_METHOD,
    INTERSECTION_NOT_FOUND_CODE,
    NEXT_BLOCK_METHOD,
    ROLL_BACKWARD,
    ROLL_FORWARD,
    Block,
    BlockIssuer,
    Kes,
    LeaderValue,
    Nonce,
    OpCert,
    ProtocolVersion,
    Response,
    ResultError,
    ResultFindIntersection,
    ResultNextBlock,
    Signature,
    Tx,
    TxIn,
    TxOut,
    ValidityInterval,
    decode_datums,
)

ERAS = ("shelley", "allegra", "mary", "alonzo", "babbage")
BYRON = "byron"

INTERSECTION_NOT_FOUND_MESSAGE = "Intersection not found"
CONVERTED_NOT_FOUND_MESSAGE = "Intersection not found - Conversion from a v5 Ogmigo call"

_V5_METHOD_NAMES = {FIND_INTERSECTION_METHOD: "FindIntersect", NEXT_BLOCK_METHOD: "RequestNext"}


def b64_to_hex(s: str) -> str:
    """Re-encode base64 as hex; values that are not base64 come back unchanged."""
    try:
        return base64.b64decode(s, validate=True).hex()
    except (binascii.Error, ValueError):
        return s


def hex_to_b64(s: str) -> str:
    try:
        return base64.b64encode(bytes.fromhex(s)).decode("ascii")
    except ValueError:
        return s


def _field(d: Dict[str, Any], name: str) -> Any:
    # v5 variant bodies were produced with both "point" and "Point" spellings
    if name in d:
        return d[name]
    return d.get(name[:1].upper() + name[1:])


# --- values -------------------------------------------------------------


@dataclass
class ValueV5:
    coins: int = 0
    assets: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_json(cls, obj: Any) -> "ValueV5":
        d = as_object(obj, "value")
        assets = {}
        for asset_id, amount in as_object(d.get("assets"), "value.assets").items():
            assets[asset_id] = as_int(amount, f"value.assets.{asset_id}")
        return cls(coins=as_int(d.get("coins"), "value.coins"), assets=assets)

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.coins:
            out["coins"] = self.coins
        out["assets"] = dict(self.assets)
        return out

    def convert_to_v6(self) -> Value:
        value = Value()
        if self.coins != 0:
            value[ADA_POLICY] = {ADA_ASSET: self.coins}
        for asset_id, amount in self.assets.items():
            parts = asset_id.split(".")
            policy_id = parts[0]
            asset_name = parts[1] if len(parts) == 2 else ""
            value.setdefault(policy_id, {})[asset_name] = amount
        return value

    @classmethod
    def from_v6(cls, value: Value) -> "ValueV5":
        out = cls()
        for policy_id, assets in value.items():
            for asset_name, amount in assets.items():
                if policy_id == ADA_POLICY and asset_name == ADA_ASSET:
                    out.coins = amount
                else:
                    out.assets[AssetID.from_separate(policy_id, asset_name)] = amount
        return out


# --- inputs and outputs -------------------------------------------------


@dataclass(frozen=True)
class TxInV5:
    tx_id: str
    index: int

    @classmethod
    def from_json(cls, obj: Any) -> "TxInV5":
        d = as_object(obj, "input")
        return cls(tx_id=as_str(d.get("txId"), "input.txId"), index=as_int(d.get("index"), "input.index"))

    def to_json(self) -> Dict[str, Any]:
        return {"txId": self.tx_id, "index": self.index}

    def convert_to_v6(self) -> TxIn:
        return TxIn(transaction_id=self.tx_id, index=self.index)

    @classmethod
    def from_v6(cls, tx_in: TxIn) -> "TxInV5":
        return cls(tx_id=tx_in.transaction_id, index=tx_in.index)

    def __str__(self) -> str:
        return f"{self.tx_id}#{self.index}"


@dataclass
class TxOutV5:
    address: str = ""
    datum: str = ""
    datum_hash: str = ""
    value: ValueV5 = field(default_factory=ValueV5)
    script: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "TxOutV5":
        d = as_object(obj, "output")
        return cls(
            address=as_str(d.get("address"), "output.address"),
            datum=as_str(d.get("datum"), "output.datum"),
            datum_hash=as_str(d.get("datumHash"), "output.datumHash"),
            value=ValueV5.from_json(d.get("value")),
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

    def convert_to_v6(self) -> TxOut:
        return TxOut(
            address=self.address,
            datum=self.datum,
            datum_hash=self.datum_hash,
            value=self.value.convert_to_v6(),
            script=self.script,
        )

    @classmethod
    def from_v6(cls, out: TxOut) -> "TxOutV5":
        return cls(
            address=out.address,
            datum=out.datum,
            datum_hash=out.datum_hash,
            value=ValueV5.from_v6(out.value),
            script=out.script,
        )


def find_by_asset_id(outputs: List[TxOutV5], asset_id: str) -> Optional[TxOutV5]:
    for out in outputs:
        if asset_id in out.value.assets:
            return out
    return None


@dataclass
class ValidityIntervalV5:
    invalid_before: int = 0
    invalid_hereafter: int = 0

    @classmethod
    def from_json(cls, obj: Any) -> "ValidityIntervalV5":
        d = as_object(obj, "validityInterval")
        return cls(
            invalid_before=as_int(d.get("invalidBefore"), "validityInterval.invalidBefore"),
            invalid_hereafter=as_int(d.get("invalidHereafter"), "validityInterval.invalidHereafter"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({"invalidBefore": self.invalid_before, "invalidHereafter": self.invalid_hereafter})

    def convert_to_v6(self) -> ValidityInterval:
        return ValidityInterval(invalid_before=self.invalid_before, invalid_after=self.invalid_hereafter)

    @classmethod
    def from_v6(cls, v: ValidityInterval) -> "ValidityIntervalV5":
        return cls(invalid_before=v.invalid_before, invalid_hereafter=v.invalid_after)


# --- transactions -------------------------------------------------------


@dataclass
class Witness:
    bootstrap: List[Dict[str, Any]] = field(default_factory=list)
    datums: Dict[str, str] = field(default_factory=dict)
    redeemers: Any = None
    scripts: Any = None
    signatures: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, obj: Any) -> "Witness":
        d = as_object(obj, "witness")
        signatures = {}
        for key, sig in as_object(d.get("signatures"), "witness.signatures").items():
            signatures[key] = as_str(sig, "witness.signatures")
        return cls(
            bootstrap=[as_object(b, "witness.bootstrap") for b in as_list(d.get("bootstrap"), "witness.bootstrap")],
            datums=decode_datums(d.get("datums")),
            redeemers=d.get("redeemers"),
            scripts=d.get("scripts"),
            signatures=signatures,
        )

    def to_json(self) -> Dict[str, Any]:
        return compact(
            {
                "bootstrap": self.bootstrap,
                "datums": self.datums,
                "redeemers": self.redeemers,
                "scripts": self.scripts,
                "signatures": self.signatures,
            },
            keep=("datums",),
        )


@dataclass
class TxBodyV5:
    certificates: List[Any] = field(default_factory=list)
    collaterals: List[TxInV5] = field(default_factory=list)
    fee: int = 0
    inputs: List[TxInV5] = field(default_factory=list)
    mint: Optional[ValueV5] = None
    network: Any = None
    outputs: List[TxOutV5] = field(default_factory=list)
    required_extra_signatures: List[str] = field(default_factory=list)
    script_integrity_hash: str = ""
    time_to_live: int = 0
    update: Any = None
    validity_interval: ValidityIntervalV5 = field(default_factory=ValidityIntervalV5)
    withdrawals: Dict[str, int] = field(default_factory=dict)
    collateral_return: Optional[TxOutV5] = None
    total_collateral: Optional[int] = None
    references: List[TxInV5] = field(default_factory=list)

    @classmethod
    def from_json(cls, obj: Any) -> "TxBodyV5":
        d = as_object(obj, "body")
        mint = d.get("mint")
        collateral_return = d.get("collateralReturn")
        return cls(
            certificates=as_list(d.get("certificates"), "body.certificates"),
            collaterals=[TxInV5.from_json(i) for i in as_list(d.get("collaterals"), "body.collaterals")],
            fee=as_int(d.get("fee"), "body.fee"),
            inputs=[TxInV5.from_json(i) for i in as_list(d.get("inputs"), "body.inputs")],
            mint=ValueV5.from_json(mint) if mint is not None else None,
            network=d.get("network"),
            outputs=[TxOutV5.from_json(o) for o in as_list(d.get("outputs"), "body.outputs")],
            required_extra_signatures=[as_str(s, "body.requiredExtraSignatures") for s in as_list(d.get("requiredExtraSignatures"), "body.requiredExtraSignatures")],
            script_integrity_hash=as_str(d.get("scriptIntegrityHash"), "body.scriptIntegrityHash"),
            time_to_live=as_int(d.get("timeToLive"), "body.timeToLive"),
            update=d.get("update"),
            validity_interval=ValidityIntervalV5.from_json(d.get("validityInterval")),
            withdrawals={k: as_int(v, "body.withdrawals") for k, v in as_object(d.get("withdrawals"), "body.withdrawals").items()},
            collateral_return=TxOutV5.from_json(collateral_return) if collateral_return is not None else None,
            total_collateral=as_optional_int(d.get("totalCollateral"), "body.totalCollateral"),
            references=[TxInV5.from_json(i) for i in as_list(d.get("references"), "body.references")],
        )

    def to_json(self) -> Dict[str, Any]:
        return compact(
            {
                "certificates": self.certificates,
                "collaterals": [i.to_json() for i in self.collaterals],
                "fee": self.fee,
                "inputs": [i.to_json() for i in self.inputs],
                "mint": self.mint.to_json() if self.mint is not None else None,
                "network": self.network,
                "outputs": [o.to_json() for o in self.outputs],
                "requiredExtraSignatures": self.required_extra_signatures,
                "scriptIntegrityHash": self.script_integrity_hash,
                "timeToLive": self.time_to_live,
                "update": self.update,
                "validityInterval": self.validity_interval.to_json(),
                "withdrawals": self.withdrawals,
                "collateralReturn": self.collateral_return.to_json() if self.collateral_return is not None else None,
                "totalCollateral": self.total_collateral,
                "references": [i.to_json() for i in self.references],
            },
            keep=("validityInterval",),
        )


@dataclass
class TxV5:
    id: str = ""
    input_source: str = ""
    body: TxBodyV5 = field(default_factory=TxBodyV5)
    witness: Witness = field(default_factory=Witness)
    metadata: Any = None
    # whole serialized transaction, base64
    raw: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> "TxV5":
        d = as_object(obj, "transaction")
        return cls(
            id=as_str(d.get("id"), "tx.id"),
            input_source=as_str(d.get("inputSource"), "tx.inputSource"),
            body=TxBodyV5.from_json(d.get("body")),
            witness=Witness.from_json(d.get("witness")),
            metadata=d.get("metadata"),
            raw=as_str(d.get("raw"), "tx.raw"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact(
            {
                "id": self.id,
                "inputSource": self.input_source,
                "body": self.body.to_json(),
                "witness": self.witness.to_json(),
                "metadata": self.metadata,
                "raw": self.raw,
            },
            keep=("body", "witness"),
        )

    def convert_to_v6(self) -> Tx:
        """Best effort: v6-only fields such as votes and requiredExtraScripts stay empty."""
        body = self.body

        signatories: List[Signature] = []
        for entry in self.witness.bootstrap:
            sig = Signature.from_json(entry)
            sig.signature = b64_to_hex(sig.signature)
            if sig.address_attributes:
                sig.address_attributes = b64_to_hex(sig.address_attributes)
            signatories.append(sig)
        for key, sig in self.witness.signatures.items():
            signatories.append(Signature(key=key, signature=b64_to_hex(sig)))
        signatories.sort(key=lambda s: s.key)

        return Tx(
            id=self.id,
            spends=self.input_source,
            inputs=[i.convert_to_v6() for i in body.inputs],
            references=[i.convert_to_v6() for i in body.references],
            collaterals=[i.convert_to_v6() for i in body.collaterals],
            total_collateral=create_ada_value(body.total_collateral) if body.total_collateral is not None else None,
            collateral_return=body.collateral_return.convert_to_v6() if body.collateral_return is not None else None,
            outputs=[o.convert_to_v6() for o in body.outputs],
            certificates=list(body.certificates),
            withdrawals={k: create_ada_value(v) for k, v in body.withdrawals.items()},
            fee=create_ada_value(body.fee),
            validity_interval=body.validity_interval.convert_to_v6(),
            mint=body.mint.convert_to_v6() if body.mint is not None else Value(),
            network=body.network,
            script_integrity_hash=body.script_integrity_hash,
            required_extra_signatories=list(body.required_extra_signatures),
            proposals=body.update,
            metadata=self.metadata,
            signatories=signatories,
            scripts=self.witness.scripts,
            datums=dict(self.witness.datums),
            redeemers=self.witness.redeemers,
            cbor=b64_to_hex(self.raw),
        )

    @classmethod
    def from_v6(cls, tx: Tx) -> "TxV5":
        witness = Witness(datums=dict(tx.datums), redeemers=tx.redeemers, scripts=tx.scripts)
        for sig in tx.signatories:
            converted = Signature(
                key=sig.key,
                signature=hex_to_b64(sig.signature),
                chain_code=sig.chain_code,
                address_attributes=hex_to_b64(sig.address_attributes) if sig.address_attributes else "",
            )
            if sig.is_bootstrap():
                witness.bootstrap.append(converted.to_json())
            else:
                witness.signatures[converted.key] = converted.signature

        body = TxBodyV5(
            certificates=list(tx.certificates),
            collaterals=[TxInV5.from_v6(i) for i in tx.collaterals],
            fee=tx.fee.ada_lovelace(),
            inputs=[TxInV5.from_v6(i) for i in tx.inputs],
            mint=ValueV5.from_v6(tx.mint),
            network=tx.network,
            outputs=[TxOutV5.from_v6(o) for o in tx.outputs],
            required_extra_signatures=list(tx.required_extra_signatories),
            script_integrity_hash=tx.script_integrity_hash,
            update=tx.proposals,
            validity_interval=ValidityIntervalV5.from_v6(tx.validity_interval),
            withdrawals={k: v.ada_lovelace() for k, v in tx.withdrawals.items()},
            collateral_return=TxOutV5.from_v6(tx.collateral_return) if tx.collateral_return is not None else None,
            total_collateral=tx.total_collateral.ada_lovelace() if tx.total_collateral is not None else None,
            references=[TxInV5.from_v6(i) for i in tx.references],
        )
        return cls(
            id=tx.id,
            input_source=tx.spends,
            body=body,
            witness=witness,
            metadata=tx.metadata,
            raw=hex_to_b64(tx.cbor),
        )


# --- points -------------------------------------------------------------


@dataclass(frozen=True)
class PointStructV5(Point):
    block_no: int = 0
    hash: str = ""
    slot: int = 0

    point_type = PointType.STRUCT

    @classmethod
    def from_json(cls, obj: Any) -> "PointStructV5":
        d = as_object(obj, "point")
        return cls(
            block_no=as_int(d.get("blockNo"), "point.blockNo"),
            hash=as_str(d.get("hash"), "point.hash"),
            slot=as_int(d.get("slot"), "point.slot"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({"blockNo": self.block_no, "hash": self.hash, "slot": self.slot})

    def convert_to_v6(self) -> PointStruct:
        return PointStruct(id=self.hash, slot=self.slot, height=self.block_no or None)

    @classmethod
    def from_v6(cls, p: PointStruct) -> "PointStructV5":
        return cls(block_no=p.height or 0, hash=p.id, slot=p.slot)

    def __str__(self) -> str:
        return f"slot={self.slot} hash={self.hash}"


PointV5 = Union[PointString, PointStructV5]


def point_v5_from_json(obj: Any) -> PointV5:
    if isinstance(obj, str):
        return PointString(obj)
    return PointStructV5.from_json(obj)


def point_v5_to_v6(p: PointV5) -> Point:
    """Rollback and intersection points never carry a height in v6."""
    if isinstance(p, PointStructV5):
        return PointStruct(id=p.hash, slot=p.slot)
    return p


def point_from_v6(p: Point) -> PointV5:
    if isinstance(p, PointStruct):
        return PointStructV5.from_v6(p)
    if isinstance(p, PointString):
        return p
    raise DecodeError(f"point: unexpected {type(p).__name__}")


def _opt_tip(obj: Any) -> Optional[PointStructV5]:
    return PointStructV5.from_json(obj) if obj is not None else None


def _tip_to_v6(tip: Optional[PointStructV5]) -> Optional[PointStruct]:
    return tip.convert_to_v6() if tip is not None else None


def _tip_from_v6(tip: Optional[PointStruct]) -> Optional[PointStructV5]:
    return PointStructV5.from_v6(tip) if tip is not None else None


# --- blocks -------------------------------------------------------------


@dataclass
class BlockHeaderV5:
    block_hash: str = ""
    block_height: int = 0
    block_size: int = 0
    issuer_vk: str = ""
    issuer_vrf: str = ""
    leader_value: Dict[str, str] = field(default_factory=dict)
    nonce: Dict[str, str] = field(default_factory=dict)
    op_cert: Dict[str, Any] = field(default_factory=dict)
    prev_hash: str = ""
    protocol_version: Dict[str, int] = field(default_factory=dict)
    signature: str = ""
    slot: int = 0

    @classmethod
    def from_json(cls, obj: Any) -> "BlockHeaderV5":
        d = as_object(obj, "header")
        return cls(
            block_hash=as_str(d.get("blockHash"), "header.blockHash"),
            block_height=as_int(d.get("blockHeight"), "header.blockHeight"),
            block_size=as_int(d.get("blockSize"), "header.blockSize"),
            issuer_vk=as_str(d.get("issuerVK"), "header.issuerVK"),
            issuer_vrf=as_str(d.get("issuerVrf"), "header.issuerVrf"),
            leader_value={k: as_str(v, "header.leaderValue") for k, v in as_object(d.get("leaderValue"), "header.leaderValue").items()},
            nonce={k: as_str(v, "header.nonce") for k, v in as_object(d.get("nonce"), "header.nonce").items()},
            op_cert=dict(as_object(d.get("opCert"), "header.opCert")),
            prev_hash=as_str(d.get("prevHash"), "header.prevHash"),
            protocol_version={k: as_int(v, "header.protocolVersion") for k, v in as_object(d.get("protocolVersion"), "header.protocolVersion").items()},
            signature=as_str(d.get("signature"), "header.signature"),
            slot=as_int(d.get("slot"), "header.slot"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "blockHash": self.block_hash,
            "blockHeight": self.block_height,
            "blockSize": self.block_size,
            "issuerVK": self.issuer_vk,
            "issuerVrf": self.issuer_vrf,
            "leaderValue": self.leader_value,
            "nonce": self.nonce,
            "opCert": self.op_cert,
            "prevHash": self.prev_hash,
            "protocolVersion": self.protocol_version,
            "signature": self.signature,
            "slot": self.slot,
        })


@dataclass
class BlockV5:
    body: List[TxV5] = field(default_factory=list)
    header: BlockHeaderV5 = field(default_factory=BlockHeaderV5)
    header_hash: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> "BlockV5":
        d = as_object(obj, "block")
        return cls(
            body=[TxV5.from_json(t) for t in as_list(d.get("body"), "block.body")],
            header=BlockHeaderV5.from_json(d.get("header")),
            header_hash=as_str(d.get("headerHash"), "block.headerHash"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "body": [t.to_json() for t in self.body],
            "header": self.header.to_json(),
            "headerHash": self.header_hash,
        })

    def point_struct(self) -> PointStructV5:
        return PointStructV5(block_no=self.header.block_height, hash=self.header_hash, slot=self.header.slot)


@dataclass
class RollForwardBlockV5:
    """A block keyed by its era. Byron blocks are carried opaquely and never converted."""

    era: str = ""
    block: Optional[BlockV5] = None
    byron: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "RollForwardBlockV5":
        d = as_object(obj, "block")
        for era in ERAS:
            if d.get(era) is not None:
                return cls(era=era, block=BlockV5.from_json(d[era]))
        if d.get(BYRON) is not None:
            return cls(era=BYRON, byron=d[BYRON])
        return cls()

    def to_json(self) -> Dict[str, Any]:
        if self.era == BYRON:
            return {BYRON: self.byron}
        if self.block is None:
            return {}
        return {self.era: self.block.to_json()}

    def convert_to_v6(self) -> Block:
        nbb = self.block
        if nbb is None or self.era not in ERAS:
            raise UnsupportedEraError(self.era or BYRON)
        header = nbb.header

        nonce = None
        if header.nonce.get("output") or header.nonce.get("proof"):
            nonce = Nonce(output=header.nonce.get("output", ""), proof=header.nonce.get("proof", ""))

        op_cert = OpCert()
        if header.op_cert:
            op_cert = OpCert(
                count=as_int(header.op_cert.get("count"), "opCert.count"),
                kes=Kes(
                    period=as_int(header.op_cert.get("kesPeriod"), "opCert.kesPeriod"),
                    verification_key=b64_to_hex(as_str(header.op_cert.get("hotVk"), "opCert.hotVk")),
                ),
            )

        leader_value = None
        if "output" in header.leader_value and "proof" in header.leader_value:
            leader_value = LeaderValue(
                output=b64_to_hex(header.leader_value["output"]),
                proof=b64_to_hex(header.leader_value["proof"]),
            )

        return Block(
            type="praos",
            era=self.era,
            id=nbb.header_hash,
            ancestor=header.prev_hash,
            nonce=nonce,
            height=header.block_height,
            size=header.block_size,
            slot=header.slot,
            transactions=[t.convert_to_v6() for t in nbb.body],
            protocol_version=ProtocolVersion(
                major=header.protocol_version.get("major", 0),
                minor=header.protocol_version.get("minor", 0),
                patch=header.protocol_version.get("patch", 0),
            ),
            issuer=BlockIssuer(
                verification_key=header.issuer_vk,
                vrf_verification_key=b64_to_hex(header.issuer_vrf),
                operational_certificate=op_cert,
                leader_value=leader_value,
            ),
        )

    @classmethod
    def from_v6(cls, block: Block) -> "RollForwardBlockV5":
        if block.era not in ERAS:
            raise UnsupportedEraError(block.era)

        issuer = block.issuer
        header = BlockHeaderV5(
            block_hash=block.id,
            block_height=block.height,
            block_size=block.size,
            issuer_vk=issuer.verification_key,
            issuer_vrf=hex_to_b64(issuer.vrf_verification_key),
            nonce={"output": block.nonce.output, "proof": block.nonce.proof} if block.nonce else {},
            op_cert={
                "hotVk": hex_to_b64(issuer.operational_certificate.kes.verification_key),
                "count": issuer.operational_certificate.count,
                "kesPeriod": issuer.operational_certificate.kes.period,
            },
            prev_hash=block.ancestor,
            protocol_version={
                "major": block.protocol_version.major,
                "minor": block.protocol_version.minor,
                "patch": block.protocol_version.patch,
            },
            slot=block.slot,
        )
        if issuer.leader_value is not None:
            header.leader_value = {
                "output": hex_to_b64(issuer.leader_value.output),
                "proof": hex_to_b64(issuer.leader_value.proof),
            }
        body = [TxV5.from_v6(t) for t in block.transactions]
        return cls(era=block.era, block=BlockV5(body=body, header=header, header_hash=block.id))


# --- results ------------------------------------------------------------


@dataclass
class IntersectionFoundV5:
    point: Optional[PointV5] = None
    tip: Optional[PointStructV5] = None

    key = "IntersectionFound"

    @classmethod
    def from_json(cls, obj: Any) -> "IntersectionFoundV5":
        d = as_object(obj, cls.key)
        point = _field(d, "point")
        return cls(point=point_v5_from_json(point) if point is not None else None, tip=_opt_tip(_field(d, "tip")))

    def to_json(self) -> Dict[str, Any]:
        return {self.key: compact({
            "point": self.point.to_json() if self.point is not None else None,
            "tip": self.tip.to_json() if self.tip is not None else None,
        })}

    def convert_to_v6(self) -> ResultFindIntersection:
        return ResultFindIntersection(
            intersection=point_v5_to_v6(self.point) if self.point is not None else None,
            tip=_tip_to_v6(self.tip),
        )


@dataclass
class IntersectionNotFoundV5:
    tip: Optional[PointStructV5] = None

    key = "IntersectionNotFound"

    @classmethod
    def from_json(cls, obj: Any) -> "IntersectionNotFoundV5":
        d = as_object(obj, cls.key)
        return cls(tip=_opt_tip(_field(d, "tip")))

    def to_json(self) -> Dict[str, Any]:
        return {self.key: compact({"tip": self.tip.to_json() if self.tip is not None else None})}

    def not_found_error(self, message: str = INTERSECTION_NOT_FOUND_MESSAGE) -> ResultError:
        tip = _tip_to_v6(self.tip)
        return ResultError(
            code=INTERSECTION_NOT_FOUND_CODE,
            message=message,
            data=tip.to_json() if tip is not None else None,
        )

    def convert_to_v6(self) -> ResultFindIntersection:
        return ResultFindIntersection(tip=_tip_to_v6(self.tip), error=self.not_found_error())


ResultFindIntersectionV5 = Union[IntersectionFoundV5, IntersectionNotFoundV5]


def tip_from_error_data(data: Any) -> Optional[PointStructV5]:
    """Recover the tip carried by a not-found error; None if it isn't one."""
    if not isinstance(data, dict):
        return None
    if isinstance(data.get("tip"), dict):
        data = data["tip"]
    try:
        if "hash" in data or "blockNo" in data:
            return PointStructV5.from_json(data)
        if "id" in data or "slot" in data or "height" in data:
            return PointStructV5.from_v6(PointStruct.from_json(data))
    except DecodeError:
        return None
    return None


def result_find_intersection_from_v6(r: ResultFindIntersection) -> Optional[ResultFindIntersectionV5]:
    if r.intersection is not None:
        return IntersectionFoundV5(point=point_from_v6(r.intersection), tip=_tip_from_v6(r.tip))
    if r.error is not None:
        return IntersectionNotFoundV5(tip=tip_from_error_data(r.error.data))
    return None


@dataclass
class RollForwardV5:
    block: RollForwardBlockV5 = field(default_factory=RollForwardBlockV5)
    tip: PointStructV5 = field(default_factory=PointStructV5)

    key = "RollForward"

    @classmethod
    def from_json(cls, obj: Any) -> "RollForwardV5":
        d = as_object(obj, cls.key)
        return cls(
            block=RollForwardBlockV5.from_json(_field(d, "block")),
            tip=PointStructV5.from_json(_field(d, "tip")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {self.key: {"block": self.block.to_json(), "tip": self.tip.to_json()}}

    def convert_to_v6(self) -> ResultNextBlock:
        return ResultNextBlock(direction=ROLL_FORWARD, tip=self.tip.convert_to_v6(), block=self.block.convert_to_v6())


@dataclass
class RollBackwardV5:
    point: PointV5 = field(default_factory=PointStructV5)
    tip: PointStructV5 = field(default_factory=PointStructV5)

    key = "RollBackward"

    @classmethod
    def from_json(cls, obj: Any) -> "RollBackwardV5":
        d = as_object(obj, cls.key)
        point = _field(d, "point")
        if point is None:
            raise DecodeError("RollBackward: missing point")
        return cls(point=point_v5_from_json(point), tip=PointStructV5.from_json(_field(d, "tip")))

    def to_json(self) -> Dict[str, Any]:
        return {self.key: {"point": self.point.to_json(), "tip": self.tip.to_json()}}

    def convert_to_v6(self) -> ResultNextBlock:
        return ResultNextBlock(direction=ROLL_BACKWARD, tip=self.tip.convert_to_v6(), point=point_v5_to_v6(self.point))


ResultNextBlockV5 = Union[RollForwardV5, RollBackwardV5]
ResultV5 = Union[IntersectionFoundV5, IntersectionNotFoundV5, RollForwardV5, RollBackwardV5]

_FIND_INTERSECTION_VARIANTS = (IntersectionFoundV5, IntersectionNotFoundV5)
_NEXT_BLOCK_VARIANTS = (RollForwardV5, RollBackwardV5)


def _variant(obj: Any, variants: tuple, what: str) -> Any:
    d = as_object(obj, what)
    for variant in variants:
        if d.get(variant.key) is not None:
            return variant.from_json(d[variant.key])
    raise DecodeError(f"{what}: none of {', '.join(v.key for v in variants)} present")


def result_find_intersection_v5_from_json(obj: Any) -> ResultFindIntersectionV5:
    return _variant(obj, _FIND_INTERSECTION_VARIANTS, "v5 findIntersection result")


def result_next_block_v5_from_json(obj: Any) -> ResultNextBlockV5:
    return _variant(obj, _NEXT_BLOCK_VARIANTS, "v5 nextBlock result")


def result_v5_from_json(obj: Any) -> ResultV5:
    return _variant(obj, _FIND_INTERSECTION_VARIANTS + _NEXT_BLOCK_VARIANTS, "v5 result")


def result_next_block_from_v6(r: ResultNextBlock) -> Optional[ResultNextBlockV5]:
    if r.direction == ROLL_FORWARD:
        if r.block is None:
            raise DecodeError("forward result without block")
        return RollForwardV5(block=RollForwardBlockV5.from_v6(r.block), tip=_tip_from_v6(r.tip) or PointStructV5())
    if r.direction == ROLL_BACKWARD:
        if r.point is None:
            raise DecodeError("backward result without point")
        return RollBackwardV5(point=point_from_v6(r.point), tip=_tip_from_v6(r.tip) or PointStructV5())
    return None


@dataclass
class ResponseV5:
    type: str = "response"
    version: str = "1.0"
    servicename: str = "ogmios"
    methodname: str = ""
    result: Optional[ResultV5] = None
    reflection: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "ResponseV5":
        d = as_object(obj, "v5 response")
        if d.get("result") is None:
            raise DecodeError("v5 response: missing result")
        return cls(
            type=as_str(d.get("type"), "type"),
            version=as_str(d.get("version"), "version"),
            servicename=as_str(d.get("servicename"), "servicename"),
            methodname=as_str(d.get("methodname"), "methodname"),
            result=result_v5_from_json(d["result"]),
            reflection=d.get("reflection"),
        )

    def to_json(self) -> Dict[str, Any]:
        return compact({
            "type": self.type,
            "version": self.version,
            "servicename": self.servicename,
            "methodname": self.methodname,
            "result": self.result.to_json() if self.result is not None else None,
            "reflection": self.reflection,
        })

    def convert_to_v6(self) -> Response:
        response = Response(jsonrpc="2.0", id=self.reflection)
        result = self.result
        if isinstance(result, IntersectionNotFoundV5):
            response.method = FIND_INTERSECTION_METHOD
            response.error = result.not_found_error(CONVERTED_NOT_FOUND_MESSAGE)
        elif isinstance(result, IntersectionFoundV5):
            response.method = FIND_INTERSECTION_METHOD
            response.result = result.convert_to_v6()
        elif isinstance(result, (RollForwardV5, RollBackwardV5)):
            response.method = NEXT_BLOCK_METHOD
            response.result = result.convert_to_v6()
        return response

    @classmethod
    def from_v6(cls, r: Response) -> "ResponseV5":
        result: Optional[ResultV5] = None
        if r.method == FIND_INTERSECTION_METHOD:
            result = result_find_intersection_from_v6(r.must_find_intersection_result())
        elif r.method == NEXT_BLOCK_METHOD:
            result = result_next_block_from_v6(r.must_next_block_result())
        return cls(methodname=_V5_METHOD_NAMES.get(r.method, r.method), result=result, reflection=r.id)


# --- metadata -----------------------------------------------------------


@dataclass
class AuxiliaryDataV5:
    hash: str = ""
    blob: Optional[Dict[int, Metadatum]] = None

    @classmethod
    def from_json(cls, obj: Any) -> "AuxiliaryDataV5":
        d = as_object(obj, "auxiliary data")
        body = as_optional_object(d.get("body"), "auxiliary data body")
        blob = None
        if body is not None:
            blob = metadata_v5_from_json(body.get("blob"))
        return cls(hash=as_str(d.get("hash"), "auxiliary data hash"), blob=blob)

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"hash": self.hash}
        if self.blob is not None:
            out["body"] = {"blob": {str(k): v.to_json() for k, v in self.blob.items()}}
        return out

    def convert_to_v6(self) -> AuxiliaryData:
        labels = {k: MetadatumRecord(json=v) for k, v in (self.blob or {}).items()}
        return AuxiliaryData(hash=self.hash, labels=labels)

    @classmethod
    def from_v6(cls, aux: AuxiliaryData) -> "AuxiliaryDataV5":
        """Only JSON metadata survives; CBOR-only labels are dropped."""
        if aux.labels is None:
            return cls(hash=aux.hash)
        blob = {k: v.json for k, v in aux.labels.items() if v.json is not None}
        return cls(hash=aux.hash, blob=blob)


def metadata_v5_from_json(obj: Any) -> Dict[int, Metadatum]:
    out: Dict[int, Metadatum] = {}
    for label, metadatum in as_object(obj, "metadata").items():
        try:
            key = int(label)
        except ValueError as exc:
            raise DecodeError(f"metadata label {label!r} is not an integer") from exc
        out[key] = Metadatum.from_json(metadatum)
    return out


def get_metadata_datum_map_v5(tx_metadata: Any, label: int) -> Dict[str, bytes]:
    if tx_metadata is None:
        return {}
    aux = AuxiliaryDataV5.from_json(tx_metadata)
    if not aux.blob or label not in aux.blob:
        return {}
    return reconstruct_datums(aux.blob[label])


def get_metadata_datums_v5(tx_metadata: Any, label: int) -> List[bytes]:
    return list(get_metadata_datum_map_v5(tx_metadata, label).values())
