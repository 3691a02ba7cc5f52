"""The recursive drivers: ValueGenerator and its inverse, ValueUnbuilder.

The generator picks a shape name from the registry's weighted pool and
hands off to that shape's producer; the unbuilder classifies a finished
value, records the same pick, and hands off to the shape's inverse.  Both
share the depth rule: past `options.depth`, `generate` returns None
without drawing anything.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from ._constants import ARRAY_TYPES, FUN_FLOATS, JSON_FUN_FLOATS, ONEISH
from ._errors import (
    ERR_UNENCODABLE,
    ERR_UNKNOWN_SCRIPT,
    ERR_WEAK_MEMBERS,
    ContractError,
)
from ._options import Options
from ._random import ByteSource, RandomEngine, random_bytes
from ._registry import Shape, ShapeRegistry
from ._replay import Draw, Recorder, ReplaySource
from ._shapes import BUILTIN_SHAPES
from ._unicode import CodepointTable, default_table


class WeakMembership:
    """What went into each weakly-held container, by container identity.

    Containers and members are held strongly, so neither the members nor
    the container ids go away while the table is alive.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, Tuple[Any, List[Any]]] = {}

    def record(self, container: Any, members: List[Any]) -> None:
        self._entries[id(container)] = (container, list(members))

    def members(self, container: Any) -> List[Any]:
        entry = self._entries.get(id(container))
        if entry is None or entry[0] is not container:
            raise ContractError(
                ERR_WEAK_MEMBERS,
                "no recorded members for {} at {:#x}".format(
                    type(container).__name__, id(container)))
        return entry[1]

    def __contains__(self, container: object) -> bool:
        entry = self._entries.get(id(container))
        return entry is not None and entry[0] is container

    def __len__(self) -> int:
        return len(self._entries)


class _Walker:
    """State both directions derive identically from the same options."""

    def __init__(self, options: Optional[Options], shapes: Any,
                 table: Optional[CodepointTable], weak_members: Optional[WeakMembership],
                 overrides: Dict[str, Any]) -> None:
        opts = options or Options()
        if overrides:
            opts = replace(opts, **overrides)
        self.options = opts
        self.table = table or default_table()
        self.registry = ShapeRegistry(BUILTIN_SHAPES, shapes, opts)
        self.scripts: Tuple[str, ...] = opts.scripts or self.table.scripts
        for name in self.scripts:
            if name not in self.table.scripts:
                raise ContractError(ERR_UNKNOWN_SCRIPT, "unknown script: {!r}".format(name))
        self.fun_floats = JSON_FUN_FLOATS if opts.json_safe else FUN_FLOATS
        self.array_types = tuple(
            t for t in ARRAY_TYPES if not (opts.cbor_safe and t == "bytearray"))
        self.weak_members = weak_members if weak_members is not None else WeakMembership()

    def too_deep(self, depth: int) -> bool:
        return depth > self.options.depth


class ValueGenerator(_Walker):
    """Draws random values of registered shapes from a ByteSource.

    Keyword overrides are applied to `options`, so
    `ValueGenerator(depth=2, json_safe=True)` works without building an
    Options first.
    """

    def __init__(self, source: Optional[ByteSource] = None, *,
                 options: Optional[Options] = None,
                 shapes: Any = None,
                 table: Optional[CodepointTable] = None,
                 weak_members: Optional[WeakMembership] = None,
                 **overrides: Any) -> None:
        super().__init__(options, shapes, table, weak_members, overrides)
        self.random = RandomEngine(source or random_bytes)

    def generate(self, depth: int = 0) -> Any:
        if self.too_deep(depth):
            return None
        name = self.random.pick(self.registry.type_names, "type")
        return self.registry[name].produce(self, depth + 1)

    def generate_hashable(self, depth: int = 0) -> Any:
        if self.too_deep(depth):
            return None
        name = self.random.pick(self.registry.hashable_names, "hashable")
        return self.registry[name].produce(self, depth + 1)

    def generate_weak(self, depth: int = 0, reason: str = "weak") -> Any:
        """Something a weak reference can point at.  Never None."""
        name = self.random.pick(self.registry.weak_names, reason)
        return self.registry[name].produce(self, depth + 1)

    def produce(self, name: str, depth: int = 0) -> Any:
        """Produce one specific shape, bypassing the type pick."""
        return self.registry[name].produce(self, depth)

    def edge(self, reason: str) -> bool:
        return self.random.unit_float(reason) < self.options.edge_freq

    def string(self, depth: int = 0, reason: str = "string") -> str:
        """A string from one script.  It never starts with a combining mark."""
        script = self.random.pick(self.scripts, "script,{}".format(reason))
        points = self.table.points_for_script(script)
        length = self.random.upto(self.options.string_length, "length,{}".format(reason))
        chars: List[str] = []
        while len(chars) < length:
            point = self.random.pick(points, "codepoint,{}".format(reason))
            # Skipped draws still count against the queue.
            if chars or point.category != "Mn":
                chars.append(point.char)
        return "".join(chars)


class ValueUnbuilder(_Walker):
    """Records the draws that make a ValueGenerator reproduce given values.

    Pass the generator's `weak_members` when unbuilding values that hold
    weak containers or generators; nothing else can say what's in them.
    """

    def __init__(self, *, options: Optional[Options] = None,
                 shapes: Any = None,
                 table: Optional[CodepointTable] = None,
                 weak_members: Optional[WeakMembership] = None,
                 **overrides: Any) -> None:
        super().__init__(options, shapes, table, weak_members, overrides)
        self.random = Recorder()

    # ── queue access ──

    @property
    def source(self) -> ReplaySource:
        return self.random.source

    @property
    def draws(self) -> List[Draw]:
        return self.random.draws

    @property
    def is_done(self) -> bool:
        return self.random.is_done

    def assert_done(self) -> None:
        self.random.assert_done()

    def drop(self, reason: str) -> None:
        self.random.drop(reason)

    # ── walking ──

    def _run(self, shape: Shape, value: Any, depth: int) -> None:
        if shape.unbuild is None:
            raise ContractError(
                ERR_UNENCODABLE, "shape {!r} has no inverse".format(shape.name))
        shape.unbuild(self, value, depth)

    def _unreachable(self, value: Any, depth: int) -> bool:
        if not self.too_deep(depth):
            return False
        if value is not None:
            raise ContractError(
                ERR_UNENCODABLE,
                "{} below the depth limit (only None lives there)".format(type(value).__name__))
        return True

    def unbuild(self, value: Any, depth: int = 0) -> None:
        if self._unreachable(value, depth):
            return
        shape = self.registry.classify(value)
        self.random.pick(shape.name, self.registry.type_names, "type")
        self._run(shape, value, depth + 1)

    def unbuild_hashable(self, value: Any, depth: int = 0) -> None:
        if self._unreachable(value, depth):
            return
        pool = self.registry.hashable_names
        shape = self.registry.classify(value, among=pool)
        self.random.pick(shape.name, pool, "hashable")
        self._run(shape, value, depth + 1)

    def unbuild_weak(self, value: Any, depth: int = 0, reason: str = "weak") -> None:
        pool = self.registry.weak_names
        shape = self.registry.classify(value, among=pool)
        self.random.pick(shape.name, pool, reason)
        self._run(shape, value, depth + 1)

    def unproduce(self, name: str, value: Any, depth: int = 0) -> None:
        """Inverse of `ValueGenerator.produce`."""
        self._run(self.registry[name], value, depth)

    def edge(self, taken: bool, reason: str) -> None:
        freq = self.options.edge_freq
        flip = 0.0 if taken else ONEISH
        if (flip < freq) != taken:
            raise ContractError(
                ERR_UNENCODABLE,
                "edge case {} {} with edge_freq={!r}".format(
                    reason, "taken" if taken else "skipped", freq))
        self.random.unit_float(flip, reason)

    def string(self, text: str, depth: int = 0, reason: str = "string") -> None:
        if text:
            cp = self.table.lookup(ord(text[0]))
            if cp is None or cp.script not in self.scripts:
                raise ContractError(
                    ERR_UNENCODABLE,
                    "{!r} isn't in any configured script ({})".format(text[0], reason))
            script = cp.script
        else:
            script = self.scripts[0]
        points = self.table.points_for_script(script)

        indexes: List[int] = []
        for ch in text:
            i = points.index_of(ord(ch))
            if i is None:
                raise ContractError(
                    ERR_UNENCODABLE,
                    "{!r} is not in script {} ({})".format(ch, script, reason))
            indexes.append(i)

        # The generator discards leading combining marks.
        if indexes and points[indexes[0]].category == "Mn":
            raise ContractError(
                ERR_UNENCODABLE,
                "{!r} starts with a combining mark ({})".format(text, reason))
        self.random.pick(script, self.scripts, "script,{}".format(reason))
        self.random.upto(len(text), self.options.string_length,
                         "length,{}".format(reason))
        for i in indexes:
            self.random.pick_index(i, points, "codepoint,{}".format(reason))
