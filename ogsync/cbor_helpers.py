from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import cbor2

from .errors import DecodeError

# Written by stores for "no point"; decodes to nothing.
NIL = b"nil"


def safe_cbor_loads(b: bytes) -> Any:
    try:
        return cbor2.loads(b)
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise DecodeError(f"invalid CBOR: {exc}") from exc


def encode_tagged(tag: int, value: Any) -> bytes:
    """Encode one variant of a two-variant shape as ``{tag: value}``."""
    return cbor2.dumps({int(tag): value})


def decode_tagged(b: Optional[bytes]) -> Optional[Tuple[int, Any]]:
    if not b or b == NIL:
        return None
    obj = safe_cbor_loads(b)
    if not isinstance(obj, dict):
        raise DecodeError("tagged CBOR: expected map")
    fields: Dict[int, Any] = {k: v for k, v in obj.items() if isinstance(k, int) and v is not None}
    if len(fields) != 1:
        raise DecodeError(f"tagged CBOR: expected exactly one variant, got {sorted(fields)}")
    return next(iter(fields.items()))
