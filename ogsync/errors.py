from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class OgmiosError(RuntimeError):
    """Base class for every error raised by ogsync."""


class DecodeError(OgmiosError, ValueError):
    """A JSON payload does not have the shape the decoder expects."""


class CompatibilityError(DecodeError):
    """Neither the v6 nor the v5 schema matched a payload.

    ``errors`` maps each attempted schema to the failure it produced so the
    caller can see why both were rejected.
    """

    def __init__(self, kind: str, errors: Dict[str, Exception]):
        self.kind = kind
        self.errors = dict(errors)
        detail = "; ".join(f"{schema}: {err}" for schema, err in self.errors.items())
        super().__init__(f"unable to decode {kind}: {detail}")


class MetadataError(DecodeError):
    pass


class UnsupportedEraError(OgmiosError):
    def __init__(self, era: str):
        self.era = era
        super().__init__(f"unsupported era: {era or '<none>'}")


class InsufficientFundsError(OgmiosError):
    def __init__(self, asset_id: str, have: int, want: int):
        self.asset_id = asset_id
        self.have = have
        self.want = want
        super().__init__(f"insufficient funds: {asset_id} has {have}, wants {want}")


class DialError(OgmiosError):
    """Opening the websocket failed. The transport error is chained as __cause__."""


class SessionError(OgmiosError):
    """A chain-sync or mempool duty failed."""


class MempoolProtocolError(SessionError):
    pass


class QueryError(OgmiosError):
    def __init__(self, message: str, code: int = 0, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(f"{message} (code={code})" if code else message)


class SubmitTxErrorV5(OgmiosError):
    """Legacy SubmitFail payload.

    Each entry is either a bare error name or a single-key object keyed by
    the error name.
    """

    def __init__(self, messages: Iterable[Any]):
        self.messages: List[Any] = list(messages)
        super().__init__(f"SubmitTx failed: {', '.join(self.error_codes())}")

    def error_codes(self) -> List[str]:
        codes = set()
        for message in self.messages:
            if isinstance(message, str):
                codes.add(message)
            elif isinstance(message, dict):
                codes.update(str(k) for k in message)
        return sorted(codes)

    def has_error_code(self, code: str) -> bool:
        return code in self.error_codes()


class MisuseError(AssertionError):
    """A must_* accessor was used on a response of a different method."""

    def __init__(self, wanted: str, got: Optional[str]):
        super().__init__(f"expected {wanted} response, got method {got!r}")
