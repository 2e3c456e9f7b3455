"""
SigilSessions - Payload codec.

Serializes session data into canonical compact JSON:

- keys sorted at every nesting level
- no insignificant whitespace
- UTF-8, non-ASCII characters kept literal

Canonical output makes the signature depend only on the data, never on the
insertion order the application happened to use.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict

from .faults import MalformedPayloadFault, UnsupportedValueKindFault

SessionData = Dict[str, Any]

_SCALARS = (str, bool, int, type(None))


def check_value(value: Any, path: str = "$") -> None:
    """
    Validate that ``value`` is representable in a session payload.

    Args:
        value: Value to check (recursively)
        path: Location used in the fault message

    Raises:
        UnsupportedValueKindFault: On the first unsupported value found
    """
    if isinstance(value, _SCALARS):
        return

    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedValueKindFault(path, "non-finite float")
        return

    # Exact types only: tuples and mapping subclasses would not come back
    # as the same type after a round trip.
    if type(value) is list:
        for index, item in enumerate(value):
            check_value(item, f"{path}[{index}]")
        return

    if type(value) is dict:
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnsupportedValueKindFault(path, f"{type(key).__name__} key")
            check_value(item, f"{path}.{key}")
        return

    raise UnsupportedValueKindFault(path, type(value).__name__)


def encode(data: SessionData) -> bytes:
    """
    Encode session data into a canonical payload.

    Args:
        data: Mapping of string keys to JSON-compatible values

    Returns:
        Payload bytes

    Raises:
        UnsupportedValueKindFault: If ``data`` is not a dict or any key or
            value is unsupported
    """
    if type(data) is not dict:
        raise UnsupportedValueKindFault("$", type(data).__name__)
    check_value(data)
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def _reject_constant(name: str) -> Any:
    raise MalformedPayloadFault(f"non-finite number {name}")


def _unique_pairs(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise MalformedPayloadFault("duplicate key")
        result[key] = value
    return result


def decode(payload: bytes) -> SessionData:
    """
    Decode a payload back into session data.

    Args:
        payload: Bytes produced by :func:`encode`

    Returns:
        Session data mapping

    Raises:
        MalformedPayloadFault: If the bytes are not a serialized mapping
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedPayloadFault("not valid UTF-8") from e

    try:
        data = json.loads(
            text,
            object_pairs_hook=_unique_pairs,
            parse_constant=_reject_constant,
        )
    except (ValueError, RecursionError) as e:
        raise MalformedPayloadFault("not valid JSON") from e

    if not isinstance(data, dict):
        raise MalformedPayloadFault("top level is not a mapping")

    return data


def encoded_size(data: SessionData) -> int:
    """Return the payload size in bytes for ``data``."""
    return len(encode(data))
