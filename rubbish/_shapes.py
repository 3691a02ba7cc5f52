"""Built-in shapes: a producer and its inverse for each.

Each pair below must consume draws in exactly the same order with exactly
the same reasons.  Producers take a ValueGenerator, inverses a
ValueUnbuilder; both expose `random`, `options`, `table`, `scripts` and the
recursive entry points.  Composite producers check the depth limit
themselves, since callers may invoke a shape directly without going
through `generate`.
"""

from __future__ import annotations

import array
import inspect
import logging
import math
import re
import struct
import types
import unicodedata
import weakref
from collections import UserString
from concurrent.futures import Future
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import SplitResult

from ._constants import (
    DATE_10YEARS_MS,
    EPOCH,
    FLOAT_BYTES,
    ONEISH,
    PORT_LIMIT,
    REGEX_FLAGS,
    TLDS,
    URL_MAX_PARAMS,
    URL_SCHEMES,
)
from ._errors import ERR_UNENCODABLE, ContractError
from ._registry import Shape

logger = logging.getLogger(__name__)


def _unencodable(msg: str, *args: Any) -> ContractError:
    return ContractError(ERR_UNENCODABLE, msg.format(*args))


def _check_empty(unb, value: Any, depth: int) -> bool:
    """True if too deep (so nothing is recorded); value must then be empty."""
    if not unb.too_deep(depth):
        return False
    if len(value):
        raise _unencodable("non-empty {} below the depth limit", type(value).__name__)
    return True


# ── Scalars ──────────────────────────────────────────────────

def _produce_none(gen, depth):
    return None


def _unbuild_none(unb, value, depth):
    pass


def _produce_bool(gen, depth):
    return gen.random.bool("bool")


def _unbuild_bool(unb, value, depth):
    unb.random.bool(value, "bool")


_INT_BIAS = 0x7FFFFFFF


def _produce_int(gen, depth):
    return gen.random.uint32("int") - _INT_BIAS


def _unbuild_int(unb, value, depth):
    unb.random.uint32(value + _INT_BIAS, "int")


def _is_small_int(value):
    return -_INT_BIAS <= value <= 0xFFFFFFFF - _INT_BIAS


def _produce_bigint(gen, depth):
    size = gen.random.upto(gen.options.string_length - 1, "bigint length") + 1
    magnitude = gen.random.ubigint(size, "bigint")
    if gen.random.bool("bigint sign"):
        return -magnitude
    return magnitude


def _unbuild_bigint(unb, value, depth):
    magnitude = abs(value)
    size = max(1, (magnitude.bit_length() + 7) // 8)
    unb.random.upto(size - 1, unb.options.string_length - 1, "bigint length")
    unb.random.ubigint(magnitude, size, "bigint")
    unb.random.bool(value < 0, "bigint sign")


def _produce_float(gen, depth):
    if gen.edge("float"):
        return gen.random.pick(gen.fun_floats, "fun float")
    while True:
        n = struct.unpack(">d", gen.random.bytes(FLOAT_BYTES, "float"))[0]
        if math.isfinite(n):
            return n
        logger.debug("float retry: drew %r", n)


def _fun_index(value: float, pool) -> Optional[int]:
    for i, fun in enumerate(pool):
        if math.isnan(fun):
            if math.isnan(value):
                return i
        elif value == fun and math.copysign(1, value) == math.copysign(1, fun):
            return i
    return None


def _unbuild_float(unb, value, depth):
    i = _fun_index(value, unb.fun_floats)
    if i is not None and unb.options.edge_freq > 0:
        unb.edge(True, "float")
        unb.random.pick_index(i, unb.fun_floats, "fun float")
        return
    if not math.isfinite(value):
        raise _unencodable("{!r} isn't producible here", value)
    unb.edge(False, "float")
    unb.random.bytes(struct.pack(">d", value), "float")


# ── Strings and buffers ──────────────────────────────────────

def _produce_str(gen, depth):
    return gen.string(depth, "str")


def _unbuild_str(unb, value, depth):
    unb.string(value, depth, "str")


def _produce_userstring(gen, depth):
    return UserString(gen.string(depth, "UserString"))


def _unbuild_userstring(unb, value, depth):
    unb.string(value.data, depth, "UserString")


def _produce_bytes(gen, depth):
    if gen.too_deep(depth):
        return b""
    size = gen.random.upto(gen.options.string_length, "bytes length")
    return gen.random.bytes(size, "bytes")


def _unbuild_bytes(unb, value, depth):
    if _check_empty(unb, value, depth):
        return
    unb.random.upto(len(value), unb.options.string_length, "bytes length")
    unb.random.bytes(value, "bytes")


def _itemsize(typecode: str) -> int:
    if typecode == "bytearray":
        return 1
    return array.array(typecode).itemsize


def _produce_array(gen, depth):
    typecode = gen.random.pick(gen.array_types, "array type")
    length = 0
    if not gen.too_deep(depth):
        length = gen.random.upto(gen.options.array_length, "{} length".format(typecode))
    data = gen.random.bytes(length * _itemsize(typecode), typecode)
    if typecode == "bytearray":
        return bytearray(data)
    arr = array.array(typecode)
    arr.frombytes(data)
    return arr


def _unbuild_array(unb, value, depth):
    typecode = "bytearray" if isinstance(value, bytearray) else value.typecode
    unb.random.pick(typecode, unb.array_types, "array type")
    if not _check_empty(unb, value, depth):
        unb.random.upto(len(value), unb.options.array_length, "{} length".format(typecode))
    data = bytes(value) if isinstance(value, bytearray) else value.tobytes()
    unb.random.bytes(data, typecode)


# ── Collections ──────────────────────────────────────────────

def _produce_list(gen, depth):
    if gen.too_deep(depth):
        return []
    length = gen.random.upto(gen.options.array_length, "list length")
    return [gen.generate(depth + 1) for _ in range(length)]


def _unbuild_list(unb, value, depth):
    if _check_empty(unb, value, depth):
        return
    unb.random.upto(len(value), unb.options.array_length, "list length")
    for item in value:
        unb.unbuild(item, depth + 1)


def _produce_tuple(gen, depth):
    if gen.too_deep(depth):
        return ()
    length = gen.random.upto(gen.options.array_length, "tuple length")
    return tuple(gen.generate(depth + 1) for _ in range(length))


def _unbuild_tuple(unb, value, depth):
    if _check_empty(unb, value, depth):
        return
    unb.random.upto(len(value), unb.options.array_length, "tuple length")
    for item in value:
        unb.unbuild(item, depth + 1)


def _produce_dict(gen, depth):
    if gen.too_deep(depth):
        return {}
    d: Dict[str, Any] = {}
    length = gen.random.upto(gen.options.array_length, "dict length")
    for _ in range(length):
        key = gen.string(depth + 1, "key")
        d[key] = gen.generate(depth + 1)
    return d


def _has_str_keys(value) -> bool:
    return all(type(k) is str for k in value)


def _unbuild_dict(unb, value, depth):
    if not _has_str_keys(value):
        raise _unencodable("dict keys must all be str")
    if _check_empty(unb, value, depth):
        return
    unb.random.upto(len(value), unb.options.array_length, "dict length")
    for key, item in value.items():
        unb.string(key, depth + 1, "key")
        unb.unbuild(item, depth + 1)


def _produce_mapping(gen, depth):
    if gen.too_deep(depth):
        return {}
    d: Dict[Any, Any] = {}
    length = gen.random.upto(gen.options.array_length, "mapping length")
    for _ in range(length):
        key = gen.generate_hashable(depth + 1)
        d[key] = gen.generate(depth + 1)
    return d


def _unbuild_mapping(unb, value, depth):
    if _check_empty(unb, value, depth):
        return
    unb.random.upto(len(value), unb.options.array_length, "mapping length")
    for key, item in value.items():
        unb.unbuild_hashable(key, depth + 1)
        unb.unbuild(item, depth + 1)


def _produce_mappingproxy(gen, depth):
    # Same depth as the wrapped dict: the proxy adds no nesting.
    return types.MappingProxyType(_produce_dict(gen, depth))


def _unbuild_mappingproxy(unb, value, depth):
    _unbuild_dict(unb, dict(value), depth)


def _produce_members(gen, depth, reason):
    if gen.too_deep(depth):
        return []
    length = gen.random.upto(gen.options.array_length, reason)
    return [gen.generate_hashable(depth + 1) for _ in range(length)]


def _unbuild_members(unb, value, depth, reason):
    if _check_empty(unb, value, depth):
        return
    unb.random.upto(len(value), unb.options.array_length, reason)
    for item in value:
        unb.unbuild_hashable(item, depth + 1)


def _produce_set(gen, depth):
    return set(_produce_members(gen, depth, "set length"))


def _unbuild_set(unb, value, depth):
    _unbuild_members(unb, value, depth, "set length")


def _produce_frozenset(gen, depth):
    return frozenset(_produce_members(gen, depth, "frozenset length"))


def _unbuild_frozenset(unb, value, depth):
    _unbuild_members(unb, value, depth, "frozenset length")


# ── Datetimes ────────────────────────────────────────────────
# Normally distributed around the clock with a ten year deviation, at
# millisecond resolution, always in UTC.

_MS = timedelta(milliseconds=1)


def _produce_datetime(gen, depth):
    mean = gen.options.clock() * 1000
    while True:
        ms = round(gen.random.gauss(mean, DATE_10YEARS_MS, "datetime"))
        try:
            return EPOCH + timedelta(milliseconds=ms)
        except OverflowError:
            logger.debug("datetime retry: %d ms is out of range", ms)


def _unbuild_datetime(unb, value, depth):
    if value.tzinfo is not timezone.utc or value.microsecond % 1000:
        raise _unencodable("{!r} isn't a UTC datetime in whole milliseconds", value)
    ms = (value - EPOCH) // _MS
    mean = unb.options.clock() * 1000
    unb.random.gauss(ms, mean, DATE_10YEARS_MS, "datetime", quantum=1)


# ── Exceptions and futures ───────────────────────────────────

EXCEPTION_CLASSES: Tuple[type, ...] = (
    ArithmeticError,
    Exception,
    ExceptionGroup,
    LookupError,
    RuntimeError,
    TypeError,
    ValueError,
)
LEAF_EXCEPTION_CLASSES: Tuple[type, ...] = tuple(
    c for c in EXCEPTION_CLASSES if c is not ExceptionGroup)


def produce_exception(gen, depth):
    too_deep = gen.too_deep(depth)
    pool = LEAF_EXCEPTION_CLASSES if too_deep else EXCEPTION_CLASSES
    cls = gen.random.pick(pool, "exception class")
    msg = gen.string(depth + 1, "exception message")
    if cls is ExceptionGroup:
        size = gen.random.upto(gen.options.array_length, "exception group size") + 1
        return ExceptionGroup(msg, [produce_exception(gen, depth + 1) for _ in range(size)])
    return cls(msg)


def unbuild_exception(unb, value, depth):
    pool = LEAF_EXCEPTION_CLASSES if unb.too_deep(depth) else EXCEPTION_CLASSES
    cls = type(value)
    unb.random.pick(cls, pool, "exception class")
    if cls is ExceptionGroup:
        msg, children = value.message, value.exceptions
    else:
        if len(value.args) != 1 or type(value.args[0]) is not str:
            raise _unencodable("{!r} must have exactly one str argument", value)
        msg, children = value.args[0], ()
    unb.string(msg, depth + 1, "exception message")
    if cls is ExceptionGroup:
        unb.random.upto(len(children) - 1, unb.options.array_length, "exception group size")
        for child in children:
            unbuild_exception(unb, child, depth + 1)


def _produce_future(gen, depth):
    fut: Future = Future()
    if gen.edge("future failed"):
        fut.set_exception(produce_exception(gen, depth + 1))
    else:
        fut.set_result(gen.generate(depth + 1))
    return fut


def _unbuild_future(unb, value, depth):
    if value.cancelled():
        raise _unencodable("cancelled future")
    exc = value.exception()  # waits for a pending future to settle
    unb.edge(exc is not None, "future failed")
    if exc is not None:
        unbuild_exception(unb, exc, depth + 1)
    else:
        unb.unbuild(value.result(), depth + 1)


# ── Functions ────────────────────────────────────────────────
# Zero-argument callables that hand back a generated string: returned,
# awaited, or yielded, depending on the species.

FUNCTION_SPECIES: Tuple[str, ...] = (
    "lambda",
    "function",
    "coroutine function",
    "generator function",
    "async generator function",
)


def _make_function(species: str, val: Optional[str]):
    if species == "lambda":
        return lambda: val
    if species == "function":
        def f1():
            return val
        return f1
    if species == "coroutine function":
        async def f2():
            return val
        return f2
    if species == "generator function":
        def f3():
            yield val
        return f3

    async def f4():
        yield val
    return f4


def species_of(fn) -> str:
    if inspect.isasyncgenfunction(fn):
        return "async generator function"
    if inspect.iscoroutinefunction(fn):
        return "coroutine function"
    if inspect.isgeneratorfunction(fn):
        return "generator function"
    if fn.__name__ == "<lambda>":
        return "lambda"
    return "function"


def call_function(fn) -> Any:
    """Run a generated function to its first result without an event loop."""
    species = species_of(fn)
    try:
        if species == "generator function":
            return next(fn())
        if species == "coroutine function":
            step = fn()
        elif species == "async generator function":
            agen = fn()
            step = agen.__anext__()
        else:
            return fn()
    except (TypeError, StopIteration) as exc:
        raise _unencodable("can't call {!r}: {}", fn, exc) from None

    try:
        step.send(None)
    except StopIteration as stop:
        result = stop.value
    else:
        step.close()
        raise _unencodable("{!r} suspended instead of finishing", fn)
    if species == "async generator function":
        closing = agen.aclose()
        try:
            closing.send(None)
        except StopIteration:
            pass
    return result


def _produce_function(gen, depth):
    if gen.too_deep(depth):
        return _make_function("lambda", None)
    val = gen.string(depth, "function")
    species = gen.random.pick(FUNCTION_SPECIES, "function species")
    return _make_function(species, val)


def _unbuild_function(unb, value, depth):
    val = call_function(value)
    if unb.too_deep(depth):
        if val is not None or species_of(value) != "lambda":
            raise _unencodable("only lambda: None lives below the depth limit")
        return
    if type(val) is not str:
        raise _unencodable("function result must be str, got {!r}", val)
    unb.string(val, depth, "function")
    unb.random.pick(species_of(value), FUNCTION_SPECIES, "function species")


# ── URLs ─────────────────────────────────────────────────────
# IRIs with a host label drawn from IDNA-valid codepoints of the TLD's
# script.  Values are SplitResults, so no percent-encoding happens.

_HOST_FIRST = ("Ll", "Lo", "Lm")
_HOST_REST = ("Ll", "Lm", "Lo", "Nd", "Mn", "Mc")


def _host_points(walker, tld: str):
    cp = walker.table.lookup(ord(tld[0]))
    script = cp.script if cp is not None else "Latin"
    return (walker.table.points_for_script(script, True, _HOST_FIRST),
            walker.table.points_for_script(script, True, _HOST_REST))


def _valid_host(label: str, tld: str) -> bool:
    if unicodedata.normalize("NFC", label) != label:
        return False
    try:
        "{}.{}".format(label, tld).encode("idna")
    except UnicodeError as exc:
        logger.debug("url retry: %s", exc)
        return False
    return True


def _optional(unb, present: bool, reason: str) -> bool:
    # An empty part is also what a taken edge with an empty body gives,
    # which is the only way to get one once edges can't be skipped.
    taken = present or ONEISH < unb.options.edge_freq
    unb.edge(taken, reason)
    return taken


def _produce_url(gen, depth):
    rnd = gen.random
    opts = gen.options
    while True:
        scheme = rnd.pick(URL_SCHEMES, "url scheme")
        tld = rnd.pick(TLDS, "url tld")
        port = ""
        if scheme.startswith("http") and gen.edge("url port?"):
            port = ":{}".format(rnd.upto(PORT_LIMIT, "url port"))
        path = "/"
        if gen.edge("url path?"):
            path += gen.string(depth + 1, "url path")
        query = ""
        if gen.edge("url query?"):
            params = []
            for _ in range(rnd.upto(URL_MAX_PARAMS, "url query size")):
                name = gen.string(depth + 1, "url query name")
                val = gen.string(depth + 1, "url query value")
                params.append("{}={}".format(name, val))
            query = "&".join(params)
        fragment = ""
        if gen.edge("url fragment?"):
            fragment = gen.string(depth + 1, "url fragment")

        first, rest = _host_points(gen, tld)
        label = [rnd.pick(first, "url host first").char]
        for _ in range(rnd.upto(opts.string_length - 1, "url host length")):
            label.append(rnd.pick(rest, "url host").char)
        host = "".join(label)
        if _valid_host(host, tld):
            return SplitResult(scheme, "{}.{}{}".format(host, tld, port), path, query, fragment)


def _unbuild_url(unb, value, depth):
    rnd = unb.random
    scheme, netloc, path, query, fragment = value
    host, port = netloc, None
    if ":" in netloc:
        host, _, port = netloc.rpartition(":")
    label, dot, tld = host.rpartition(".")
    if not dot or not label or not path.startswith("/"):
        raise _unencodable("{!r} isn't shaped like a generated URL", value)
    if not _valid_host(label, tld):
        raise _unencodable("host {!r} fails IDNA", host)

    rnd.pick(scheme, URL_SCHEMES, "url scheme")
    rnd.pick(tld, TLDS, "url tld")
    if scheme.startswith("http"):
        unb.edge(port is not None, "url port?")
        if port is not None:
            if not port.isdigit() or str(int(port)) != port:
                raise _unencodable("bad port {!r}", port)
            rnd.upto(int(port), PORT_LIMIT, "url port")
    elif port is not None:
        raise _unencodable("{} URLs never get a port", scheme)

    if _optional(unb, path != "/", "url path?"):
        unb.string(path[1:], depth + 1, "url path")
    if _optional(unb, query != "", "url query?"):
        params = query.split("&") if query else []
        rnd.upto(len(params), URL_MAX_PARAMS, "url query size")
        for param in params:
            name, eq, val = param.partition("=")
            if not eq:
                raise _unencodable("query parameter {!r} has no value", param)
            unb.string(name, depth + 1, "url query name")
            unb.string(val, depth + 1, "url query value")
    if _optional(unb, fragment != "", "url fragment?"):
        unb.string(fragment, depth + 1, "url fragment")

    first, rest = _host_points(unb, tld)
    codes = [ord(c) for c in label]
    i = first.index_of(codes[0])
    if i is None:
        raise _unencodable("{!r} can't start a host label", label[0])
    rnd.pick_index(i, first, "url host first")
    rnd.upto(len(codes) - 1, unb.options.string_length - 1, "url host length")
    for code in codes[1:]:
        i = rest.index_of(code)
        if i is None:
            raise _unencodable("{!r} can't appear in a host label", chr(code))
        rnd.pick_index(i, rest, "url host")


# ── Regular expressions ──────────────────────────────────────

_FLAG_BITS: Dict[str, int] = {
    "a": re.ASCII,
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


def _flag_value(letters: str) -> int:
    bits = 0
    for c in letters:
        bits |= _FLAG_BITS[c]
    return bits


def _produce_pattern(gen, depth):
    while True:
        source = gen.string(depth, "pattern")
        flags = "" if gen.options.cbor_safe else gen.random.subset(REGEX_FLAGS, "pattern flags")
        try:
            return re.compile(source, _flag_value(flags))
        except re.error as exc:
            logger.debug("pattern retry: %r: %s", source, exc)


def _unbuild_pattern(unb, value, depth):
    if type(value.pattern) is not str:
        raise _unencodable("bytes patterns aren't producible")
    letters = "".join(c for c in REGEX_FLAGS if value.flags & _FLAG_BITS[c])
    if re.compile(value.pattern, _flag_value(letters)).flags != value.flags:
        raise _unencodable("unsupported flags on {!r}", value)
    if unb.options.cbor_safe and letters:
        raise _unencodable("CBOR-safe patterns carry no flags")
    unb.string(value.pattern, depth, "pattern")
    if not unb.options.cbor_safe:
        unb.random.subset(letters, REGEX_FLAGS, "pattern flags")


# ── Weakly-held containers ───────────────────────────────────
# Their contents can't be inspected reliably (or at all), so producers
# record what went in to the generator's WeakMembership table and the
# inverses read it back from there.

def _produce_weakset(gen, depth):
    ws: weakref.WeakSet = weakref.WeakSet()
    members: List[Any] = []
    if not gen.too_deep(depth):
        for _ in range(gen.random.upto(gen.options.array_length, "WeakSet size")):
            member = gen.generate_weak(depth + 1, "WeakSet member")
            members.append(member)
            ws.add(member)
    gen.weak_members.record(ws, members)
    return ws


def _unbuild_weakset(unb, value, depth):
    members = unb.weak_members.members(value)
    if _check_empty(unb, members, depth):
        return
    unb.random.upto(len(members), unb.options.array_length, "WeakSet size")
    for member in members:
        unb.unbuild_weak(member, depth + 1, "WeakSet member")


def _produce_weakkeydict(gen, depth):
    wkd: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()
    entries: List[Tuple[Any, Any]] = []
    if not gen.too_deep(depth):
        for _ in range(gen.random.upto(gen.options.array_length, "WeakKeyDictionary size")):
            key = gen.generate_weak(depth + 1, "WeakKeyDictionary key")
            val = gen.generate(depth + 1)
            entries.append((key, val))
            wkd[key] = val
    gen.weak_members.record(wkd, entries)
    return wkd


def _unbuild_weakkeydict(unb, value, depth):
    entries = unb.weak_members.members(value)
    if _check_empty(unb, entries, depth):
        return
    unb.random.upto(len(entries), unb.options.array_length, "WeakKeyDictionary size")
    for key, val in entries:
        unb.unbuild_weak(key, depth + 1, "WeakKeyDictionary key")
        unb.unbuild(val, depth + 1)


def _produce_weakref(gen, depth):
    member = gen.generate_weak(depth + 1, "weakref")
    ref = weakref.ref(member)
    gen.weak_members.record(ref, [member])
    return ref


def _unbuild_weakref(unb, value, depth):
    (member,) = unb.weak_members.members(value)
    unb.unbuild_weak(member, depth + 1, "weakref")


def _replay_items(items):
    yield from items


def _produce_generator(gen, depth):
    items: List[Any] = []
    if not gen.too_deep(depth):
        length = gen.random.upto(gen.options.array_length, "generator length")
        items = [gen.generate(depth + 1) for _ in range(length)]
    it = _replay_items(items)
    gen.weak_members.record(it, items)
    return it


def _unbuild_generator(unb, value, depth):
    items = unb.weak_members.members(value)
    if _check_empty(unb, items, depth):
        return
    unb.random.upto(len(items), unb.options.array_length, "generator length")
    for item in items:
        unb.unbuild(item, depth + 1)


# ── Catalog ──────────────────────────────────────────────────

_UNSAFE = dict(json_unsafe=True, cbor_unsafe=True)

BUILTIN_SHAPES: Dict[str, Shape] = {s.name: s for s in (
    Shape("None", _produce_none, _unbuild_none, kind=type(None), hashable=True),
    Shape("bool", _produce_bool, _unbuild_bool, kind=bool, hashable=True),
    Shape("int", _produce_int, _unbuild_int, kind=int, accepts=_is_small_int,
          hashable=True),
    Shape("bigint", _produce_bigint, _unbuild_bigint, kind=int, hashable=True,
          json_unsafe=True),
    Shape("float", _produce_float, _unbuild_float, kind=float, hashable=True),
    Shape("str", _produce_str, _unbuild_str, kind=str, hashable=True),
    Shape("UserString", _produce_userstring, _unbuild_userstring, kind=UserString,
          boxed=True, weak=True, hashable=True, **_UNSAFE),
    Shape("bytes", _produce_bytes, _unbuild_bytes, kind=bytes, hashable=True,
          json_unsafe=True),
    Shape("array", _produce_array, _unbuild_array, kind=(array.array, bytearray),
          json_unsafe=True),
    Shape("list", _produce_list, _unbuild_list, kind=list),
    Shape("tuple", _produce_tuple, _unbuild_tuple, kind=tuple, json_unsafe=True),
    Shape("dict", _produce_dict, _unbuild_dict, kind=dict, accepts=_has_str_keys),
    Shape("mapping", _produce_mapping, _unbuild_mapping, kind=dict, json_unsafe=True),
    Shape("mappingproxy", _produce_mappingproxy, _unbuild_mappingproxy,
          kind=types.MappingProxyType, **_UNSAFE),
    Shape("set", _produce_set, _unbuild_set, kind=set, json_unsafe=True),
    Shape("frozenset", _produce_frozenset, _unbuild_frozenset, kind=frozenset,
          weak=True, hashable=True, json_unsafe=True),
    Shape("datetime", _produce_datetime, _unbuild_datetime, kind=datetime,
          hashable=True, json_unsafe=True),
    Shape("exception", produce_exception, unbuild_exception, kind=Exception, **_UNSAFE),
    Shape("future", _produce_future, _unbuild_future, kind=Future, weak=True, **_UNSAFE),
    Shape("function", _produce_function, _unbuild_function, kind=types.FunctionType,
          weak=True, hashable=True, **_UNSAFE),
    Shape("url", _produce_url, _unbuild_url, kind=SplitResult, hashable=True,
          json_unsafe=True),
    Shape("pattern", _produce_pattern, _unbuild_pattern, kind=re.Pattern,
          weak=True, hashable=True, json_unsafe=True),
    Shape("WeakSet", _produce_weakset, _unbuild_weakset, kind=weakref.WeakSet, **_UNSAFE),
    Shape("WeakKeyDictionary", _produce_weakkeydict, _unbuild_weakkeydict,
          kind=weakref.WeakKeyDictionary, **_UNSAFE),
    Shape("weakref", _produce_weakref, _unbuild_weakref, kind=weakref.ref, **_UNSAFE),
    Shape("generator", _produce_generator, _unbuild_generator, kind=types.GeneratorType,
          **_UNSAFE),
)}
