"""One-shot ledger-state queries."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bech32 import bech32_decode, convertbits

from .chainsync.point import Point
from .chainsync.types import TxIn
from .chainsync.v5 import PointV5, point_v5_from_json
from .errors import DecodeError, QueryError
from .json_helpers import as_int, as_list, as_object
from .shared.utxo import Utxo
from .shared.value import Value


def make_payload(method: str, params: Optional[Dict[str, Any]] = None, id: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        payload["params"] = params
    if id is not None:
        payload["id"] = id
    return payload


def make_payload_v5(method_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "jsonwsp/request",
        "version": "1.0",
        "servicename": "ogmios",
        "methodname": method_name,
        "args": args,
    }


@dataclass
class EraBound:
    time_seconds: int = 0
    slot: int = 0
    epoch: int = 0

    @classmethod
    def from_json(cls, obj: Any) -> "EraBound":
        d = as_object(obj, "era bound")
        return cls(
            time_seconds=as_int(as_object(d.get("time"), "era bound time").get("seconds"), "time.seconds"),
            slot=as_int(d.get("slot"), "era bound slot"),
            epoch=as_int(d.get("epoch"), "era bound epoch"),
        )


# same shape, different question
EraStart = EraBound


@dataclass
class EraParameters:
    epoch_length: int = 0
    slot_length_ms: int = 0
    safe_zone: int = 0

    @classmethod
    def from_json(cls, obj: Any) -> "EraParameters":
        d = as_object(obj, "era parameters")
        return cls(
            epoch_length=as_int(d.get("epochLength"), "epochLength"),
            slot_length_ms=as_int(as_object(d.get("slotLength"), "slotLength").get("milliseconds"), "slotLength.milliseconds"),
            safe_zone=as_int(d.get("safeZone"), "safeZone"),
        )


@dataclass
class EraSummary:
    start: EraBound
    end: EraBound
    parameters: EraParameters

    @classmethod
    def from_json(cls, obj: Any) -> "EraSummary":
        d = as_object(obj, "era summary")
        return cls(
            start=EraBound.from_json(d.get("start")),
            end=EraBound.from_json(d.get("end")),
            parameters=EraParameters.from_json(d.get("parameters")),
        )


@dataclass
class EraHistory:
    summaries: List[EraSummary] = field(default_factory=list)


def slot_to_elapsed_milliseconds(history: EraHistory, slot: int) -> int:
    """Milliseconds between the system start and ``slot``, summed era by era."""
    total = 0
    for summary in history.summaries:
        if summary.end.slot < slot:
            interval_end = summary.end.slot
        elif summary.start.slot < slot:
            interval_end = slot
        else:
            continue
        total += (interval_end - summary.start.slot) * summary.parameters.slot_length_ms
    return total


@dataclass
class Delegation:
    pool_id: str = ""
    rewards: int = 0


def reward_address_key_hash(reward_address: str) -> str:
    hrp, data = bech32_decode(reward_address)
    if hrp is None or data is None:
        raise ValueError(f"failed to decode reward address: {reward_address}")
    decoded = convertbits(data, 5, 8, False)
    if not decoded:
        raise ValueError(f"failed to decode reward address: {reward_address}")
    # first byte is the address header
    return bytes(decoded[1:]).hex()


class StateQueryMixin:
    """Ledger-state lookups; mixed into Client, which provides query_result."""

    def query_result(self, payload: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def chain_tip(self) -> Point:
        return Point.from_json(self.query_result(make_payload("queryLedgerState/tip", {})))

    def chain_tip_v5(self) -> PointV5:
        return point_v5_from_json(self.query_result(make_payload_v5("Query", {"query": "ledgerTip"})))

    def current_epoch(self) -> int:
        return as_int(self.query_result(make_payload("queryLedgerState/epoch", {})), "epoch")

    def current_protocol_parameters(self) -> Dict[str, Any]:
        return as_object(self.query_result(make_payload("queryLedgerState/protocolParameters", {})), "protocol parameters")

    def current_protocol_parameters_v5(self) -> Dict[str, Any]:
        payload = make_payload_v5("Query", {"query": "currentProtocolParameters"})
        return as_object(self.query_result(payload), "protocol parameters")

    def genesis_config(self, era: str) -> Dict[str, Any]:
        payload = make_payload("queryNetwork/genesisConfiguration", {"era": era})
        return as_object(self.query_result(payload), "genesis configuration")

    def genesis_config_v5(self, era: str) -> Dict[str, Any]:
        payload = make_payload_v5("Query", {"query": {"genesisConfig": era}})
        return as_object(self.query_result(payload), "genesis configuration")

    def start_time(self) -> str:
        result = self.query_result(make_payload("queryNetwork/startTime"))
        if not isinstance(result, str):
            raise DecodeError(f"startTime: expected string, got {result!r}")
        return result

    def block_height(self) -> int:
        return as_int(self.query_result(make_payload("queryNetwork/blockHeight")), "blockHeight")

    def era_summaries(self) -> EraHistory:
        result = self.query_result(make_payload("queryLedgerState/eraSummaries", {}))
        return EraHistory(summaries=[EraSummary.from_json(s) for s in as_list(result, "eraSummaries")])

    def era_start(self) -> EraStart:
        return EraBound.from_json(self.query_result(make_payload("queryLedgerState/eraStart", {})))

    def era_start_v5(self) -> EraStart:
        return EraBound.from_json(self.query_result(make_payload_v5("Query", {"query": "eraStart"})))

    def utxos_by_address(self, *addresses: str) -> List[Utxo]:
        payload = make_payload("queryLedgerState/utxo", {"addresses": list(addresses)})
        return [Utxo.from_json(u) for u in as_list(self.query_result(payload), "utxos")]

    def utxos_by_address_v5(self, *addresses: str) -> List[Any]:
        payload = make_payload_v5("Query", {"query": {"utxo": list(addresses)}})
        return as_list(self.query_result(payload), "utxos")

    def utxos_by_tx_in(self, *tx_ins: TxIn) -> List[Utxo]:
        payload = make_payload("queryLedgerState/utxo", {"outputReferences": [t.to_json() for t in tx_ins]})
        return [Utxo.from_json(u) for u in as_list(self.query_result(payload), "utxos")]

    def utxos_by_tx_in_v5(self, *tx_ins: TxIn) -> List[Any]:
        refs = [{"txId": t.transaction_id, "index": t.index} for t in tx_ins]
        payload = make_payload_v5("Query", {"query": {"utxo": refs}})
        return as_list(self.query_result(payload), "utxos")

    def get_delegation(self, reward_address: str) -> Delegation:
        key_hash = reward_address_key_hash(reward_address)
        payload = make_payload("queryLedgerState/rewardAccountSummaries", {"keys": [reward_address]})
        summaries = as_object(self.query_result(payload), "rewardAccountSummaries")
        if key_hash not in summaries:
            raise QueryError(f"reward account not found for reward address vfk: {key_hash}")
        summary = summaries[key_hash]
        if summary is None:
            raise QueryError(f"query returned nil reward account for reward address: {reward_address}")
        summary = as_object(summary, "reward account summary")

        delegation = Delegation()
        delegate = as_object(summary.get("delegate"), "delegate")
        if delegate.get("id"):
            delegation.pool_id = str(delegate["id"])
        if summary.get("rewards") is not None:
            delegation.rewards = Value.from_json(summary["rewards"]).ada_lovelace()
        return delegation
