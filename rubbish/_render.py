"""Display generated values as (mostly) Python source.

`render` is what the CLI prints.  Tests also lean on it as a structural
equality check, since several produced types compare by identity
(exceptions, functions, futures, weak containers) or not at all (NaN).
Set-like containers render their members sorted, so two equal sets render
the same regardless of iteration order.
"""

from __future__ import annotations

import array
import math
import re
import types
import weakref
from collections import UserString
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

from ._errors import ContractError
from ._shapes import species_of, call_function


def _float(value: float) -> str:
    if math.isnan(value):
        return "float('nan')"
    if math.isinf(value):
        return "float('inf')" if value > 0 else "-float('inf')"
    return repr(value)


_FUNCTION_TEMPLATES: Dict[str, str] = {
    "lambda": "lambda: {}",
    "function": "def f(): return {}",
    "coroutine function": "async def f(): return {}",
    "generator function": "def f(): yield {}",
    "async generator function": "async def f(): yield {}",
}


class _Renderer:
    def __init__(self, weak_members: Any = None) -> None:
        self._weak = weak_members

    def _recorded(self, container: Any) -> Optional[list]:
        if self._weak is not None and container in self._weak:
            return self._weak.members(container)
        return None

    def _sorted(self, items) -> str:
        return ", ".join(sorted(self(i) for i in items))

    def __call__(self, value: Any) -> str:
        if value is None or isinstance(value, (bool, int, str, bytes, bytearray)):
            return repr(value)
        if isinstance(value, float):
            return _float(value)
        for cls in type(value).__mro__:
            handler = _HANDLERS.get(cls)
            if handler is not None:
                return handler(self, value)
        return repr(value)

    # ── containers ──

    def list_(self, value: list) -> str:
        return "[{}]".format(", ".join(self(v) for v in value))

    def tuple_(self, value: tuple) -> str:
        if type(value) is not tuple:
            return repr(value)  # namedtuples, SplitResult
        if len(value) == 1:
            return "({},)".format(self(value[0]))
        return "({})".format(", ".join(self(v) for v in value))

    def dict_(self, value: dict) -> str:
        return "{{{}}}".format(", ".join(
            "{}: {}".format(self(k), self(v)) for k, v in value.items()))

    def mappingproxy(self, value) -> str:
        return "mappingproxy({})".format(self.dict_(dict(value)))

    def set_(self, value: set) -> str:
        if not value:
            return "set()"
        return "{{{}}}".format(self._sorted(value))

    def frozenset_(self, value: frozenset) -> str:
        if not value:
            return "frozenset()"
        return "frozenset({{{}}})".format(self._sorted(value))

    def array_(self, value) -> str:
        return "array({!r}, {!r})".format(value.typecode, value.tobytes())

    def userstring(self, value: UserString) -> str:
        return "UserString({!r})".format(value.data)

    # ── behaviours ──

    def exception(self, value: BaseException) -> str:
        if isinstance(value, BaseExceptionGroup):
            return "{}({!r}, [{}])".format(
                type(value).__name__, value.message,
                ", ".join(self(e) for e in value.exceptions))
        return "{}({})".format(type(value).__name__, ", ".join(self(a) for a in value.args))

    def future(self, value: Future) -> str:
        if not value.done():
            return "<pending Future>"
        if value.cancelled():
            return "<cancelled Future>"
        exc = value.exception()
        if exc is not None:
            return "failed({})".format(self(exc))
        return "resolved({})".format(self(value.result()))

    def function(self, value: types.FunctionType) -> str:
        try:
            result = call_function(value)
        except ContractError:
            return repr(value)
        template = _FUNCTION_TEMPLATES[species_of(value)]
        return template.format(self(result))

    def pattern(self, value: re.Pattern) -> str:
        return "re.compile({!r}, {})".format(value.pattern, int(value.flags))

    # ── weakly-held ──

    def weakset(self, value: weakref.WeakSet) -> str:
        members = self._recorded(value)
        if members is None:
            members = list(value)
        return "WeakSet([{}])".format(self._sorted(set(members)))

    def weakkeydict(self, value: weakref.WeakKeyDictionary) -> str:
        return "WeakKeyDictionary({{{}}})".format(", ".join(sorted(
            "{}: {}".format(self(k), self(v)) for k, v in value.items())))

    def weakref_(self, value: weakref.ref) -> str:
        target = value()
        if target is None:
            return "<dead weakref>"
        return "weakref.ref({})".format(self(target))

    def generator(self, value: types.GeneratorType) -> str:
        items = self._recorded(value)
        if items is None:
            return repr(value)
        return "iter({})".format(self.list_(items))


_HANDLERS: Dict[type, Callable[[_Renderer, Any], str]] = {
    list: _Renderer.list_,
    array.array: _Renderer.array_,
    tuple: _Renderer.tuple_,
    dict: _Renderer.dict_,
    types.MappingProxyType: _Renderer.mappingproxy,
    set: _Renderer.set_,
    frozenset: _Renderer.frozenset_,
    UserString: _Renderer.userstring,
    BaseException: _Renderer.exception,
    Future: _Renderer.future,
    types.FunctionType: _Renderer.function,
    re.Pattern: _Renderer.pattern,
    weakref.WeakSet: _Renderer.weakset,
    weakref.WeakKeyDictionary: _Renderer.weakkeydict,
    weakref.ref: _Renderer.weakref_,
    types.GeneratorType: _Renderer.generator,
}


def render(value: Any, weak_members: Any = None) -> str:
    """Render `value`; pass the generator's WeakMembership to show generators."""
    return _Renderer(weak_members)(value)
