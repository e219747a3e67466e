from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Union

from .errors import DecodeError


def safe_json_loads(data: Union[bytes, bytearray, str, Any]) -> Any:
    """Parse raw frame bytes; already-decoded objects are returned as-is."""
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid utf-8: {exc}") from exc
    if isinstance(data, str):
        try:
            return json.loads(data)
        except ValueError as exc:
            raise DecodeError(f"invalid JSON: {exc}") from exc
    return data


def dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def as_object(v: Any, what: str) -> Dict[str, Any]:
    if v is None:
        return {}
    if not isinstance(v, dict):
        raise DecodeError(f"{what}: expected object, got {type(v).__name__}")
    return v


def as_optional_object(v: Any, what: str) -> Optional[Dict[str, Any]]:
    if v is None:
        return None
    return as_object(v, what)


def as_list(v: Any, what: str) -> List[Any]:
    if v is None:
        return []
    if not isinstance(v, list):
        raise DecodeError(f"{what}: expected array, got {type(v).__name__}")
    return v


def as_str(v: Any, what: str) -> str:
    if v is None:
        return ""
    if not isinstance(v, str):
        raise DecodeError(f"{what}: expected string, got {type(v).__name__}")
    return v


def as_int(v: Any, what: str) -> int:
    if v is None:
        return 0
    if isinstance(v, bool):
        raise DecodeError(f"{what}: expected number, got bool")
    if isinstance(v, int):
        return v
    # generic decoders hand integral numbers back as floats
    if isinstance(v, float) and v.is_integer():
        return int(v)
    raise DecodeError(f"{what}: expected integer, got {v!r}")


def as_optional_int(v: Any, what: str) -> Optional[int]:
    if v is None:
        return None
    return as_int(v, what)


def compact(obj: Dict[str, Any], keep: Iterable[str] = ()) -> Dict[str, Any]:
    """Drop empty values, except for the keys listed in ``keep``."""
    kept = set(keep)
    return {k: v for k, v in obj.items() if k in kept or not _empty(v)}


def _empty(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, bool):
        return False
    if isinstance(v, (str, list, dict, int)):
        return not v
    return False
