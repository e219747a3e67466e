from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from ..json_helpers import as_int, as_object, as_str, compact
from .value import Value


@dataclass
class Utxo:
    transaction_id: str
    index: int
    address: str = ""
    value: Value = field(default_factory=Value)
    datum_hash: str = ""
    datum: str = ""
    script: Any = None

    @classmethod
    def from_json(cls, obj: Any) -> "Utxo":
        d = as_object(obj, "utxo")
        tx = as_object(d.get("transaction"), "utxo.transaction")
        return cls(
            transaction_id=as_str(tx.get("id"), "utxo.transaction.id"),
            index=as_int(d.get("index"), "utxo.index"),
            address=as_str(d.get("address"), "utxo.address"),
            value=Value.from_json(d.get("value")),
            datum_hash=as_str(d.get("datumHash"), "utxo.datumHash"),
            datum=as_str(d.get("datum"), "utxo.datum"),
            script=d.get("script"),
        )

    def to_json(self) -> Dict[str, Any]:
        out = {
            "transaction": {"id": self.transaction_id},
            "index": self.index,
            "address": self.address,
            "value": self.value.to_json(),
        }
        out.update(compact({"datumHash": self.datum_hash, "datum": self.datum, "script": self.script}))
        return out
