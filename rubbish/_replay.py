"""Record/replay: running the engine backwards.

A Recorder is driven by an unbuild walk.  Instead of producing decisions it
is told the outcome of each one and appends the bytes that would have
produced it, tagged with the same reason the engine would use, to a FIFO
queue.  A ReplaySource hands those bytes back out to a RandomEngine,
checking length and reason on every draw, so a generation walk that wanders
off the recorded path fails at the first divergent draw instead of quietly
producing something else.
"""

from __future__ import annotations

import base64
import itertools
import json
import logging
import math
import struct
from collections import deque
from collections.abc import Sequence
from typing import Any, Deque, Iterable, List, Optional, Tuple, Union

from ._constants import ONEISH, UNSPECIFIED
from ._errors import (
    ERR_EMPTY_POOL,
    ERR_REPLAY_EXHAUSTED,
    ERR_REPLAY_LEFTOVER,
    ERR_REPLAY_LENGTH,
    ERR_REPLAY_REASON,
    ERR_UNENCODABLE,
    ContractError,
)
from ._random import SamplerCache, WeightedPool, polar_deviates

logger = logging.getLogger(__name__)

_MANTISSA: int = 1 << 52

# Stand-in for a second deviate nobody has asked for yet.  Away from zero,
# so a first deviate near zero still lands well inside the unit circle.
_PROVISIONAL = 1.0

# Ulp offsets tried around a closed-form Gaussian solution, nearest first.
_NUDGE = 16
_NUDGES: List[Tuple[int, int]] = sorted(
    itertools.product(range(-_NUDGE, _NUDGE + 1), repeat=2),
    key=lambda d: (abs(d[0]) + abs(d[1]), d),
)


class Draw:
    """One recorded read: the bytes and the reason they were read for."""

    __slots__ = ("data", "reason")

    def __init__(self, data: bytes, reason: str) -> None:
        self.data = bytes(data)
        self.reason = reason

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Draw):
            return NotImplemented
        return self.data == other.data and self.reason == other.reason

    __hash__ = None  # mutable: gauss pairs are rewritten in place

    def __repr__(self) -> str:
        return "Draw({}, {!r})".format(self.data.hex(), self.reason)


class ReplaySource:
    """A ByteSource that plays back a queue of Draws in order."""

    def __init__(self, queue: Deque[Draw]) -> None:
        self._queue = queue

    def __call__(self, size: int, reason: str = UNSPECIFIED) -> bytes:
        if not self._queue:
            raise ContractError(
                ERR_REPLAY_EXHAUSTED,
                'Out of playback data ({}): "{}"'.format(size, reason))
        draw = self._queue.popleft()
        if len(draw.data) != size:
            where = ('"{}"'.format(reason) if reason == draw.reason
                     else '"{}" != "{}"'.format(reason, draw.reason))
            raise ContractError(
                ERR_REPLAY_LENGTH,
                "Expected {} bytes, got {}.  ({})".format(size, len(draw.data), where))
        if reason != draw.reason:
            raise ContractError(
                ERR_REPLAY_REASON,
                'Invalid reason "{}", expected "{}" ({} bytes).'.format(
                    reason, draw.reason, size))
        return draw.data

    @property
    def is_done(self) -> bool:
        return not self._queue


# ── Gaussian inversion helpers ───────────────────────────────

class _Target:
    """A value one gauss() call must reproduce."""

    __slots__ = ("value", "mean", "std_dev", "quantum")

    def __init__(self, value: float, mean: float, std_dev: float,
                 quantum: Optional[float]) -> None:
        self.value = value
        self.mean = mean
        self.std_dev = std_dev
        self.quantum = quantum

    @property
    def z(self) -> float:
        return (self.value - self.mean) / self.std_dev

    def matches(self, produced: float) -> bool:
        if self.quantum:
            return round(produced / self.quantum) == round(self.value / self.quantum)
        return produced == self.value


class _PendingPair:
    """Two unit-float draws whose second deviate nobody has used yet."""

    __slots__ = ("first", "draws")

    def __init__(self, first: _Target, draws: Tuple[Draw, Draw]) -> None:
        self.first = first
        self.draws = draws


def _to_lattice(u: float) -> int:
    # unit_float() only yields multiples of 2**-52.
    return min(max(int(round(u * _MANTISSA)), 0), _MANTISSA - 1)


def _solve_pair(first: _Target, second: Optional[_Target]) -> Tuple[float, float]:
    """Find (u1, u2) whose polar transform gives first (and second's spare)."""
    z1 = first.z
    z2 = second.z if second is not None else _PROVISIONAL
    r = (z1 * z1) + (z2 * z2)
    s = math.exp(-r / 2) if r > 0 else 0.0
    k = math.sqrt(s / r) if r > 0 else 0.0
    m1 = _to_lattice(((z1 * k) + 1) / 2)
    m2 = _to_lattice(((z2 * k) + 1) / 2)

    for d1, d2 in _NUDGES:
        c1, c2 = m1 + d1, m2 + d2
        if not (0 <= c1 < _MANTISSA and 0 <= c2 < _MANTISSA):
            continue
        u1, u2 = c1 / _MANTISSA, c2 / _MANTISSA
        deviates = polar_deviates(u1, u2)
        if deviates is None or deviates[1] is None:
            continue
        f1, f2 = deviates
        if not first.matches(first.mean + (first.std_dev * f1)):
            continue
        if second is not None and not second.matches(second.mean + (second.std_dev * f2)):
            continue
        if d1 or d2:
            logger.debug("gauss inverse nudged by (%d, %d) ulps", d1, d2)
        return u1, u2

    raise ContractError(
        ERR_UNENCODABLE,
        "gauss cannot reach {!r} from mean {!r}, std_dev {!r}".format(
            first.value if second is None else (first.value, second.value),
            first.mean, first.std_dev))


# ── Recorder ─────────────────────────────────────────────────

class Recorder:
    """The engine's inverse: accepts outcomes, records the draws behind them.

    Method names match RandomEngine; each takes the known outcome first and
    composes the same reason tag the engine would.
    """

    def __init__(self, draws: Iterable[Draw] = ()) -> None:
        self._queue: Deque[Draw] = deque(draws)
        self._samplers = SamplerCache()
        self._pending: Optional[_PendingPair] = None

    # ── queue management ──

    @property
    def source(self) -> ReplaySource:
        """A ByteSource that replays (and consumes) this recorder's queue."""
        return ReplaySource(self._queue)

    @property
    def draws(self) -> List[Draw]:
        return list(self._queue)

    @property
    def is_done(self) -> bool:
        return not self._queue

    def assert_done(self) -> None:
        if self._queue:
            raise ContractError(ERR_REPLAY_LEFTOVER, "Recorder pending {!r}".format(self))

    def drop(self, reason: str) -> None:
        """Discard the oldest draw, which must have been recorded for `reason`."""
        if not self._queue:
            raise ContractError(ERR_REPLAY_EXHAUSTED, "Can't drop from empty")
        draw = self._queue.popleft()
        if draw.reason != reason:
            raise ContractError(
                ERR_REPLAY_REASON,
                'drop expected "{}", found "{}"'.format(reason, draw.reason))

    def __len__(self) -> int:
        return len(self._queue)

    def __repr__(self) -> str:
        return "Recorder({!r})".format(list(self._queue))

    def _push(self, data: bytes, reason: str) -> Draw:
        draw = Draw(data, reason)
        self._queue.append(draw)
        return draw

    # ── primitives ──

    def bytes(self, data: bytes, reason: str = UNSPECIFIED) -> Draw:
        return self._push(data, reason)

    def uint32(self, value: int, reason: str = UNSPECIFIED) -> Draw:
        if not 0 <= value < (1 << 32):
            raise ContractError(ERR_UNENCODABLE, "not a uint32: {!r}".format(value))
        return self._push(value.to_bytes(4, "big"), "uint32,{}".format(reason))

    def upto(self, value: int, bound: int, reason: str = UNSPECIFIED) -> None:
        if bound == 0:
            if value != 0:
                raise ContractError(ERR_UNENCODABLE, "upto(0) is always 0, not {!r}".format(value))
            return
        if not 0 <= value < bound:
            raise ContractError(
                ERR_UNENCODABLE, "{!r} out of range for upto({})".format(value, bound))
        self.uint32(value, "upto({}),{}".format(bound, reason))

    def ubigint(self, value: int, num_bytes: int, reason: str = UNSPECIFIED) -> Draw:
        try:
            data = value.to_bytes(num_bytes, "big")
        except OverflowError:
            raise ContractError(
                ERR_UNENCODABLE,
                "{!r} doesn't fit in {} unsigned bytes".format(value, num_bytes)) from None
        return self._push(data, "ubigint,{}".format(reason))

    def unit_float(self, value: float, reason: str = UNSPECIFIED) -> Draw:
        if not 0 <= value < 1 or 1.0 + value >= 2.0:
            raise ContractError(ERR_UNENCODABLE, "unit float out of range: {!r}".format(value))
        return self._push(struct.pack("<d", 1.0 + value), "unit_float,{}".format(reason))

    def bool(self, flag: bool, reason: str = UNSPECIFIED) -> None:
        self.upto(int(bool(flag)), 2, "bool,{}".format(reason))

    # ── composites ──

    def gauss(self, value: float, mean: float, std_dev: float,
              reason: str = UNSPECIFIED, quantum: Optional[float] = None) -> None:
        """Record the draws for a gauss() call that returned `value`.

        The engine makes deviates in pairs and hands the second one to the
        next call.  The first call of a pair is recorded with a provisional
        second deviate; if another call follows, both draws are solved
        again together and rewritten in place.  `quantum` relaxes the match
        to "rounds to the same multiple of quantum".
        """
        target = _Target(value, mean, std_dev, quantum)
        pending = self._pending
        if pending is not None:
            self._pending = None
            if not all(any(d is q for q in self._queue) for d in pending.draws):
                raise ContractError(
                    ERR_UNENCODABLE, "gauss pair was already replayed ({})".format(reason))
            u1, u2 = _solve_pair(pending.first, target)
            pending.draws[0].data = struct.pack("<d", 1.0 + u1)
            pending.draws[1].data = struct.pack("<d", 1.0 + u2)
            return

        if target.matches(mean):
            # Centre of the circle: the engine returns the mean, keeps no spare.
            self.unit_float(0.5, reason)
            self.unit_float(0.5, reason)
            return

        u1, u2 = _solve_pair(target, None)
        draws = (self.unit_float(u1, reason), self.unit_float(u2, reason))
        self._pending = _PendingPair(target, draws)

    def pick(self, item: Any, pool: Sequence, reason: str = UNSPECIFIED) -> None:
        """Record a pick that returned `item` (located by equality)."""
        try:
            index = list(pool).index(item)
        except ValueError:
            raise ContractError(
                ERR_UNENCODABLE, "{!r} not found in pool ({})".format(item, reason)) from None
        self.pick_index(index, pool, reason)

    def pick_index(self, index: int, pool: Sequence, reason: str = UNSPECIFIED) -> None:
        n = len(pool)
        if n == 0:
            raise ContractError(ERR_EMPTY_POOL, "pick from empty pool ({})".format(reason))
        if not 0 <= index < n:
            raise ContractError(
                ERR_UNENCODABLE, "index {} out of range for pool of {}".format(index, n))
        if not isinstance(pool, WeightedPool):
            self.upto(index, n, "pick({}),{}".format(n, reason))
            return

        sampler = self._samplers.get(pool)
        die, heads = sampler.unpick(index)
        prob, _alias = sampler.tables
        if not heads and prob[die] > ONEISH:
            # Roundoff left the aliased slot with no room for tails.
            die, heads = index, True
        if heads and prob[index] <= 0:
            raise ContractError(
                ERR_UNENCODABLE, "{!r} has zero weight ({})".format(pool[index], reason))
        self.upto(die, n, "alias.die({}),{}".format(n, reason))
        self.unit_float(0.0 if heads else ONEISH, "alias.flip,{}".format(reason))

    def subset(self, found: Union[str, Sequence], pool: Union[str, Sequence],
               reason: str = UNSPECIFIED) -> None:
        """Record the coin flips that keep every element of `pool` that is in `found`.

        Membership decides, not position: `subset([1, 2], [3, 2, 1, 4])`
        replays as `[2, 1]`.
        """
        found = list(found)
        pool = list(pool)
        missing = [item for item in found if item not in pool]
        if missing:
            raise ContractError(
                ERR_UNENCODABLE, "{!r} not in {!r}".format(missing, pool))
        for item in pool:
            self.bool(item in found, "subset,{}".format(reason))


# ── Serialization ────────────────────────────────────────────
# Golden queues live on disk as JSON: [{"reason": ..., "data": base64}, ...],
# or {"clock": seconds, "draws": [...]} when the walk depended on a clock.

def dump_draws(draws: Iterable[Draw], clock: Optional[float] = None) -> str:
    entries = [{"reason": d.reason, "data": base64.b64encode(d.data).decode("ascii")}
               for d in draws]
    doc: Any = entries if clock is None else {"clock": clock, "draws": entries}
    return json.dumps(doc, indent=1, ensure_ascii=False)


def load_recording(text: Union[str, bytes]) -> Tuple[Deque[Draw], Optional[float]]:
    """Read a draw file, returning its queue and the clock it was made with, if any."""
    doc = json.loads(text)
    clock = None
    if isinstance(doc, dict):
        clock = doc.get("clock")
        doc = doc["draws"]
    queue = deque(Draw(base64.b64decode(entry["data"]), entry["reason"]) for entry in doc)
    return queue, clock


def load_draws(text: Union[str, bytes]) -> Deque[Draw]:
    return load_recording(text)[0]
