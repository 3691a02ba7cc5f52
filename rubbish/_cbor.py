"""CBOR output for CBOR-safe values.

`to_cbor` rewrites the types cbor2 has no fixed encoding for into tagged
items (RFC 8949 and RFC 8746 tags), so `dumps` and `diagnose` agree on
what is written:

    datetime        1(epoch seconds)
    SplitResult     32("uri")
    re.Pattern      35("pattern")
    set/frozenset   258([members])
    array.array     RFC 8746 typed array over the native byte order

`diagnose` prints the same items in CBOR diagnostic notation (the EDN
subset of RFC 8949 §8).
"""

from __future__ import annotations

import array
import json
import math
import re
import sys
from datetime import datetime
from typing import Any
from urllib.parse import SplitResult, urlunsplit

import cbor2

from ._errors import ERR_UNENCODABLE, ContractError

TAG_EPOCH = 1
TAG_URI = 32
TAG_REGEX = 35
TAG_SET = 258

_SIZE_BITS = {1: 0, 2: 1, 4: 2, 8: 3}
_LITTLE = 0x04 if sys.byteorder == "little" else 0


def typed_array_tag(typecode: str) -> int:
    """The RFC 8746 tag for an array of `typecode` in native byte order."""
    size = array.array(typecode).itemsize
    if typecode in "fd":
        return 0x50 | _LITTLE | (1 if size == 4 else 2)
    tag = 0x40 | _SIZE_BITS[size]
    if typecode.islower():
        tag |= 0x08
    if size > 1:
        tag |= _LITTLE
    return tag


def to_cbor(value: Any) -> Any:
    if isinstance(value, SplitResult):
        return cbor2.CBORTag(TAG_URI, urlunsplit(value))
    if isinstance(value, (list, tuple)):
        return [to_cbor(v) for v in value]
    if isinstance(value, dict):
        return {to_cbor(k): to_cbor(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return cbor2.CBORTag(TAG_SET, tuple(to_cbor(v) for v in value))
    if isinstance(value, datetime):
        return cbor2.CBORTag(TAG_EPOCH, value.timestamp())
    if isinstance(value, re.Pattern):
        if value.flags & ~re.UNICODE:
            raise ContractError(ERR_UNENCODABLE, "CBOR regexps carry no flags: {!r}".format(value))
        return cbor2.CBORTag(TAG_REGEX, value.pattern)
    if isinstance(value, array.array):
        return cbor2.CBORTag(typed_array_tag(value.typecode), value.tobytes())
    if isinstance(value, bytearray):
        return bytes(value)
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value
    raise ContractError(
        ERR_UNENCODABLE, "{} has no CBOR form".format(type(value).__name__))


def dumps(value: Any) -> bytes:
    return cbor2.dumps(to_cbor(value))


# ── Diagnostic notation ───────────────────────────────────────

def _diag_float(v: float) -> str:
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "Infinity" if v > 0 else "-Infinity"
    return repr(v)


def _diag_int(v: int) -> str:
    if -(1 << 64) <= v < (1 << 64):
        return str(v)
    tag, n = (2, v) if v > 0 else (3, -1 - v)
    return "{}(h'{}')".format(tag, n.to_bytes((n.bit_length() + 7) // 8, "big").hex())


def _diag(item: Any) -> str:
    if item is None:
        return "null"
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, int):
        return _diag_int(item)
    if isinstance(item, float):
        return _diag_float(item)
    if isinstance(item, str):
        return json.dumps(item, ensure_ascii=False)
    if isinstance(item, bytes):
        return "h'{}'".format(item.hex())
    if isinstance(item, (list, tuple)):
        return "[" + ", ".join(_diag(v) for v in item) + "]"
    if isinstance(item, dict):
        return "{" + ", ".join(
            "{}: {}".format(_diag(k), _diag(v)) for k, v in item.items()) + "}"
    if isinstance(item, cbor2.CBORTag):
        return "{}({})".format(item.tag, _diag(item.value))
    raise ContractError(
        ERR_UNENCODABLE, "{} has no CBOR form".format(type(item).__name__))


def diagnose(value: Any) -> str:
    """Render `value` the way `dumps` encodes it, in diagnostic notation."""
    return _diag(to_cbor(value))
