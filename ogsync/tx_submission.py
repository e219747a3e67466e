from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import DecodeError, SubmitTxErrorV5
from .json_helpers import as_int, as_object, as_str
from .state_query import make_payload, make_payload_v5


@dataclass
class SubmitTxError:
    code: int = 0
    message: str = ""
    data: Any = None


@dataclass
class SubmitTxResponse:
    id: str = ""
    error: Optional[SubmitTxError] = None


def read_submit_tx(content: Dict[str, Any]) -> SubmitTxResponse:
    """A rejected transaction is a normal response here, not an exception."""
    if isinstance(content.get("error"), dict):
        e = content["error"]
        return SubmitTxResponse(
            error=SubmitTxError(
                code=as_int(e.get("code"), "error.code"),
                message=as_str(e.get("message"), "error.message"),
                data=e.get("data"),
            )
        )
    if isinstance(content.get("result"), dict):
        tx = as_object(content["result"].get("transaction"), "result.transaction")
        return SubmitTxResponse(id=as_str(tx.get("id"), "result.transaction.id"))
    raise DecodeError(f"could not parse submit tx response: {content!r}")


def read_submit_tx_v5(content: Dict[str, Any]) -> None:
    result = content.get("result")
    if not isinstance(result, dict) or "SubmitFail" not in result:
        return None
    fail = result["SubmitFail"]
    if isinstance(fail, list):
        if fail:
            raise SubmitTxErrorV5(fail)
        return None
    if isinstance(fail, dict):
        raise SubmitTxErrorV5([fail])
    raise DecodeError(f"SubmitTx failed: {fail!r}")


class TxSubmissionMixin:
    def query(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def submit_tx(self, cbor_hex: str) -> SubmitTxResponse:
        payload = make_payload("submitTransaction", {"transaction": {"cbor": cbor_hex}}, {})
        return read_submit_tx(self.query(payload))

    def submit_tx_v5(self, cbor_hex: str) -> None:
        """Raises SubmitTxErrorV5 when the node rejects the transaction."""
        read_submit_tx_v5(self.query(make_payload_v5("SubmitTx", {"submit": cbor_hex})))
