"""The random-decision engine: structured choices on top of raw bytes.

Every public method reads a fixed number of bytes per decision and tags the
read with a reason, so a recorded queue can be replayed and checked draw by
draw.  The only state an engine keeps is the spare Gaussian deviate and the
sampler cache for weighted pools.
"""

from __future__ import annotations

import math
import os
import random
import struct
import weakref
from collections.abc import Sequence
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple, Union

from ._alias import AliasSampler
from ._constants import UINT32_BYTES, UNIT_FLOAT_BYTES, UNSPECIFIED
from ._errors import ERR_EMPTY_POOL, ERR_SOURCE, ContractError

ByteSource = Callable[[int, str], bytes]


# ── Byte sources ─────────────────────────────────────────────

def random_bytes(size: int, reason: str = UNSPECIFIED) -> bytes:
    """Default source: the OS entropy pool.  `reason` is ignored."""
    return os.urandom(size)


def seeded_source(seed: Any) -> ByteSource:
    """A reproducible source: the same seed gives the same byte stream."""
    rng = random.Random(seed)

    def source(size: int, reason: str = UNSPECIFIED) -> bytes:
        return rng.randbytes(size)

    return source


# ── Weighted pools ───────────────────────────────────────────

class WeightedPool(Sequence):
    """An immutable sequence that carries a relative weight per item.

    Pools hash and compare by identity: the engine keeps one alias sampler
    per pool object, so two pools with equal weights are still preprocessed
    separately.
    """

    __slots__ = ("_items", "weights", "__weakref__")

    def __init__(self, items: Iterable[Any],
                 weights: Optional[Iterable[Any]] = None) -> None:
        self._items = tuple(items)
        if weights is None:
            weights = [1] * len(self._items)
        self.weights = tuple(weights)

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __repr__(self) -> str:
        return "WeightedPool({!r}, {!r})".format(list(self._items), list(self.weights))


class SamplerCache:
    """One AliasSampler per weighted pool, keyed by pool identity."""

    def __init__(self, random: Any = None) -> None:
        self._random = random
        self._samplers: "weakref.WeakKeyDictionary[WeightedPool, AliasSampler]" = (
            weakref.WeakKeyDictionary())

    def get(self, pool: WeightedPool) -> AliasSampler:
        sampler = self._samplers.get(pool)
        if sampler is None:
            sampler = AliasSampler(pool.weights, self._random)
            self._samplers[pool] = sampler
        return sampler


# ── Gaussian transform ───────────────────────────────────────

def polar_deviates(u1: float, u2: float) -> Optional[Tuple[float, Optional[float]]]:
    """Marsaglia's polar method over two unit floats.

    Returns None when the point falls outside the unit circle and has to be
    redrawn.  The centre point (s == 0) gives (0.0, None): the caller
    returns the mean and keeps no spare.
    """
    v1 = (2 * u1) - 1
    v2 = (2 * u2) - 1
    s = (v1 * v1) + (v2 * v2)
    if s >= 1:
        return None
    if s == 0:
        return 0.0, None
    k = math.sqrt(-2.0 * math.log(s) / s)
    return v1 * k, v2 * k


# ── Engine ───────────────────────────────────────────────────

class RandomEngine:
    """Structured random decisions over a pluggable ByteSource."""

    def __init__(self, source: ByteSource = random_bytes) -> None:
        self._source = source
        self._spare: Optional[float] = None
        self._samplers = SamplerCache(self)

    def bytes(self, num: int, reason: str = UNSPECIFIED) -> bytes:
        buf = self._source(num, reason)
        if len(buf) != num:
            raise ContractError(
                ERR_SOURCE,
                "byte source returned {} bytes, wanted {} ({})".format(
                    len(buf), num, reason))
        return bytes(buf)

    def uint32(self, reason: str = UNSPECIFIED) -> int:
        buf = self.bytes(UINT32_BYTES, "uint32,{}".format(reason))
        return int.from_bytes(buf, "big")

    def upto(self, num: int, reason: str = UNSPECIFIED) -> int:
        """Integer in [0, num).  `upto(0)` is 0 and draws nothing."""
        if num == 0:
            return 0
        return self.uint32("upto({}),{}".format(num, reason)) % num

    def ubigint(self, num_bytes: int, reason: str = UNSPECIFIED) -> int:
        buf = self.bytes(num_bytes, "ubigint,{}".format(reason))
        return int.from_bytes(buf, "big")

    def unit_float(self, reason: str = UNSPECIFIED) -> float:
        """Uniform float in [0, 1), always from exactly 8 bytes."""
        buf = bytearray(self.bytes(UNIT_FLOAT_BYTES, "unit_float,{}".format(reason)))
        # Little-endian double: clear the sign, force the exponent to 0x3FF,
        # giving 1.0 + mantissa.
        buf[6] |= 0xF0
        buf[7] = 0x3F
        return struct.unpack("<d", buf)[0] - 1.0

    def gauss(self, mean: float, std_dev: float, reason: str = UNSPECIFIED) -> float:
        if self._spare is not None:
            z, self._spare = self._spare, None
            return mean + (std_dev * z)
        while True:
            u1 = self.unit_float(reason)
            u2 = self.unit_float(reason)
            deviates = polar_deviates(u1, u2)
            if deviates is not None:
                break
        z1, z2 = deviates
        if z2 is None:
            return mean
        self._spare = z2
        return mean + (std_dev * z1)

    def pick(self, pool: Sequence, reason: str = UNSPECIFIED) -> Any:
        n = len(pool)
        if n == 0:
            raise ContractError(ERR_EMPTY_POOL, "pick from empty pool ({})".format(reason))
        if isinstance(pool, WeightedPool):
            return pool[self._samplers.get(pool).pick(reason)]
        return pool[self.upto(n, "pick({}),{}".format(n, reason))]

    def bool(self, reason: str = UNSPECIFIED) -> bool:
        return bool(self.upto(2, "bool,{}".format(reason)))

    def subset(self, pool: Union[str, Sequence], reason: str = UNSPECIFIED) -> Union[str, List[Any]]:
        """Keep each element on an independent coin flip, preserving order."""
        kept = [item for item in pool if self.bool("subset,{}".format(reason))]
        if isinstance(pool, str):
            return "".join(kept)
        return kept
