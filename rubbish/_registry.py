"""Shape descriptors and the registry the generator draws them from.

A Shape pairs a producer (draws a value) with its inverse (records the
draws behind a value) plus the metadata the registry filters and weights
on.  The registry is assembled once per generator from the built-in shapes
and whatever the caller adds or removes, then filtered by the safety modes
in Options.  It never changes after that.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ._errors import ERR_UNKNOWN_SHAPE, ContractError
from ._options import Options
from ._random import WeightedPool

logger = logging.getLogger(__name__)

Producer = Callable[[Any, int], Any]
Unbuilder = Callable[[Any, Any, int], None]
Kind = Union[type, Tuple[type, ...]]


@dataclass(frozen=True)
class Shape:
    """A named, producible kind of value.

    `produce(gen, depth)` builds a value; `unbuild(unb, value, depth)` issues
    the recorder calls that would make `produce` return `value`.  `kind`
    (a type or tuple of types) and the optional `accepts` predicate decide
    which values the unbuilder routes here.
    """

    name: str
    produce: Producer
    unbuild: Optional[Unbuilder] = None
    kind: Optional[Kind] = None
    accepts: Optional[Callable[[Any], bool]] = None
    freq: float = 1
    boxed: bool = False
    weak: bool = False
    hashable: bool = False
    json_unsafe: bool = False
    cbor_unsafe: bool = False

    def inverse(self, fn: Unbuilder) -> "Shape":
        """Attach `fn` as the inverse; usable as a decorator."""
        return replace(self, unbuild=fn)

    @property
    def kinds(self) -> Tuple[type, ...]:
        if self.kind is None:
            return ()
        if isinstance(self.kind, tuple):
            return self.kind
        return (self.kind,)


def shape(kind: Optional[Kind] = None, **flags: Any) -> Callable[[Producer], Shape]:
    """Decorator: turn `generate_<Name>(gen, depth)` into a Shape named <Name>.

        @shape(kind=Point, hashable=True)
        def generate_Point(gen, depth):
            return Point(gen.random.uint32("x"), gen.random.uint32("y"))

        @generate_Point.inverse
        def generate_Point(unb, value, depth):
            unb.random.uint32(value.x, "x")
            unb.random.uint32(value.y, "y")
    """
    def wrap(fn: Producer) -> Shape:
        name = fn.__name__
        if name.startswith("generate_"):
            name = name[len("generate_"):]
        return Shape(name, fn, kind=kind, **flags)
    return wrap


def as_shape_map(shapes: Union[None, Mapping, Iterable[Shape]]) -> Dict[str, Optional[Shape]]:
    """Accept {name: Shape-or-None} or an iterable of Shapes."""
    if shapes is None:
        return {}
    if isinstance(shapes, Mapping):
        return dict(shapes)
    return {s.name: s for s in shapes}


class ShapeRegistry(Mapping):
    """Immutable name -> Shape mapping with the pools the generator picks from."""

    def __init__(self, builtins: Mapping[str, Shape],
                 extra: Union[None, Mapping, Iterable[Shape]] = None,
                 options: Optional[Options] = None) -> None:
        options = options or Options()
        merged: Dict[str, Shape] = dict(builtins)
        for name, sh in as_shape_map(extra).items():
            if sh is None:
                merged.pop(name, None)  # None means "don't generate this"
            else:
                merged[name] = sh if sh.name == name else replace(sh, name=name)

        dropped: List[str] = []
        for name, sh in list(merged.items()):
            if ((options.json_safe and sh.json_unsafe)
                    or (options.cbor_safe and sh.cbor_unsafe)
                    or (options.no_boxed and sh.boxed)):
                del merged[name]
                dropped.append(name)

        self._shapes = MappingProxyType(dict(sorted(merged.items())))
        self.names: Tuple[str, ...] = tuple(self._shapes)
        self.type_names = self._pool(lambda s: True)
        self.hashable_names = self._pool(lambda s: s.hashable)
        self.weak_names = self._pool(lambda s: s.weak)

        # Per class: predicate shapes first, then weak-eligible, then by name.
        by_class: Dict[type, List[Shape]] = {}
        for sh in self._shapes.values():
            for cls in sh.kinds:
                by_class.setdefault(cls, []).append(sh)
        for cands in by_class.values():
            cands.sort(key=lambda s: (s.accepts is None, not s.weak, s.name))
        self._by_class = by_class

        logger.debug("registry: %d shapes, dropped %s", len(self.names), dropped or "none")

    def _pool(self, keep: Callable[[Shape], bool]) -> WeightedPool:
        chosen = [s for s in self._shapes.values() if keep(s)]
        return WeightedPool([s.name for s in chosen], [s.freq for s in chosen])

    def __getitem__(self, name: str) -> Shape:
        try:
            return self._shapes[name]
        except KeyError:
            raise ContractError(ERR_UNKNOWN_SHAPE, "unknown shape: {!r}".format(name)) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._shapes)

    def __len__(self) -> int:
        return len(self._shapes)

    def __contains__(self, name: object) -> bool:
        return name in self._shapes

    def classify(self, value: Any, among: Optional[Iterable[str]] = None) -> Shape:
        """Find the shape `value` belongs to, searching its class's MRO.

        `among` restricts the search to a subset of names (the hashable or
        weak pool).
        """
        allowed = None if among is None else frozenset(among)
        for cls in type(value).__mro__:
            for sh in self._by_class.get(cls, ()):
                if allowed is not None and sh.name not in allowed:
                    continue
                if sh.accepts is None or sh.accepts(value):
                    return sh
        raise ContractError(
            ERR_UNKNOWN_SHAPE,
            "no shape for {} value {!r}".format(type(value).__name__, value))
