"""rubbish: structurally random Python values, and the way back.

A ValueGenerator draws values of many shapes (numbers, script-aware
strings, containers, datetimes, exceptions, futures, functions, URLs,
patterns, weak containers) from a pluggable byte source.  Its inverse, the
ValueUnbuilder, walks an existing value and records the exact draws that
make a generator reproduce it, so any value can become a replayable,
self-checking fixture.

Quick start:
    >>> from rubbish import ValueGenerator, ValueUnbuilder, render, seeded_source
    >>> gen = ValueGenerator(seeded_source(1), depth=2, json_safe=True)
    >>> value = gen.generate()
    >>> unb = ValueUnbuilder(depth=2, json_safe=True)
    >>> unb.unbuild(value)
    >>> again = ValueGenerator(unb.source, depth=2, json_safe=True).generate()
    >>> render(again) == render(value), unb.is_done
    (True, True)
"""

from __future__ import annotations

from ._alias import SPARSE, AliasSampler
from ._errors import (
    ERR_EMPTY_POOL,
    ERR_REPLAY_EXHAUSTED,
    ERR_REPLAY_LEFTOVER,
    ERR_REPLAY_LENGTH,
    ERR_REPLAY_REASON,
    ERR_SOURCE,
    ERR_SPARSE,
    ERR_TOTAL,
    ERR_UNENCODABLE,
    ERR_UNKNOWN_SCRIPT,
    ERR_UNKNOWN_SHAPE,
    ERR_WEAK_MEMBERS,
    ERR_WEIGHT,
    ContractError,
)
from ._generator import ValueGenerator, ValueUnbuilder, WeakMembership
from ._options import Options
from ._random import (
    ByteSource,
    RandomEngine,
    WeightedPool,
    polar_deviates,
    random_bytes,
    seeded_source,
)
from ._registry import Shape, ShapeRegistry, shape
from ._render import render
from ._replay import Draw, Recorder, ReplaySource, dump_draws, load_draws, load_recording
from ._shapes import BUILTIN_SHAPES
from ._unicode import SCRIPTS, CodePoint, CodepointTable, Script, default_table

__version__ = "1.0.0"

__all__ = [
    # Engine
    "ByteSource",
    "RandomEngine",
    "AliasSampler",
    "WeightedPool",
    "SPARSE",
    "polar_deviates",
    "random_bytes",
    "seeded_source",
    # Record/replay
    "Draw",
    "Recorder",
    "ReplaySource",
    "dump_draws",
    "load_draws",
    "load_recording",
    # Values
    "Options",
    "ValueGenerator",
    "ValueUnbuilder",
    "WeakMembership",
    "Shape",
    "ShapeRegistry",
    "shape",
    "BUILTIN_SHAPES",
    "render",
    # Unicode
    "CodePoint",
    "CodepointTable",
    "Script",
    "SCRIPTS",
    "default_table",
    # Exception
    "ContractError",
    # Error codes
    "ERR_SOURCE",
    "ERR_EMPTY_POOL",
    "ERR_WEIGHT",
    "ERR_TOTAL",
    "ERR_SPARSE",
    "ERR_UNKNOWN_SHAPE",
    "ERR_UNKNOWN_SCRIPT",
    "ERR_UNENCODABLE",
    "ERR_WEAK_MEMBERS",
    "ERR_REPLAY_EXHAUSTED",
    "ERR_REPLAY_LENGTH",
    "ERR_REPLAY_REASON",
    "ERR_REPLAY_LEFTOVER",
]
