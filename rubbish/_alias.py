"""Vose's alias method for O(1) weighted sampling.

Preprocessing is O(n) and happens once per weight list.  Every pick then
costs exactly one die roll (`upto(n)`) and one coin flip (`unit_float`), in
that order.  The fixed shape is what lets the recorder run a pick backwards:
it only needs the alias table to know which (die, flip) pair lands on a
given index.
"""

from __future__ import annotations

import numbers
from collections import deque
from typing import Any, Iterable, List, Optional, Tuple

from ._constants import UNSPECIFIED
from ._errors import ERR_SPARSE, ERR_TOTAL, ERR_WEIGHT, ContractError


class Sparse:
    """Marker for a missing slot in a weight list.

    A weight of None means "default to 1"; a Sparse slot means the caller
    forgot one, which is rejected rather than defaulted.
    """

    _instance: Optional["Sparse"] = None

    def __new__(cls) -> "Sparse":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SPARSE"


SPARSE = Sparse()


def _normalize(weights: Iterable[Any]) -> List[float]:
    if isinstance(weights, dict):
        # A dict keyed by position: every index from 0 to max must be there.
        n = max(weights) + 1 if weights else 0
        if len(weights) != n:
            raise ContractError(ERR_SPARSE, "Sparse weights not allowed")
        weights = [weights[i] for i in range(n)]

    out: List[float] = []
    for w in weights:
        if w is SPARSE:
            raise ContractError(ERR_SPARSE, "Sparse weights not allowed")
        if w is None:
            w = 1
        if isinstance(w, bool) or not isinstance(w, numbers.Real) or w != w:
            raise ContractError(
                ERR_WEIGHT,
                "All weights must be non-negative numbers.  Got {!r}.".format(w))
        if w < 0:
            raise ContractError(
                ERR_WEIGHT,
                "All weights must be non-negative.  Got {!r}.".format(w))
        out.append(float(w))
    return out


class AliasSampler:
    """Weighted sampler over indexes 0..n-1.

    `random` is anything with `upto(n, reason)` and `unit_float(reason)`;
    the recorder builds samplers without one, since it only reads `tables`.
    """

    def __init__(self, weights: Iterable[Any], random: Any = None) -> None:
        self._random = random
        scaled = _normalize(weights)
        n = len(scaled)
        total = sum(scaled)
        if total == 0:
            raise ContractError(ERR_TOTAL, "Total weight of 0")
        scaled = [w * n / total for w in scaled]

        self._prob: List[float] = [0.0] * n
        self._alias: List[Optional[int]] = [None] * n

        small: deque = deque()
        large: deque = deque()
        for i, p in enumerate(scaled):
            (small if p < 1 else large).append(i)

        while small and large:
            lo = small.popleft()
            hi = large.popleft()
            self._prob[lo] = scaled[lo]
            self._alias[lo] = hi
            scaled[hi] = (scaled[hi] + scaled[lo]) - 1
            (small if scaled[hi] < 1 else large).append(hi)

        for hi in large:
            self._prob[hi] = 1.0
        # Only reachable through floating-point roundoff.
        for lo in small:
            self._prob[lo] = 1.0

    def __len__(self) -> int:
        return len(self._prob)

    @property
    def tables(self) -> Tuple[List[float], List[Optional[int]]]:
        """The (prob, alias) tables, for running picks backwards."""
        return self._prob, self._alias

    def pick(self, reason: str = UNSPECIFIED) -> int:
        n = len(self._prob)
        i = self._random.upto(n, "alias.die({}),{}".format(n, reason))
        flip = self._random.unit_float("alias.flip,{}".format(reason))
        if flip < self._prob[i]:
            return i  # heads
        return self._alias[i]  # tails

    def unpick(self, index: int) -> Tuple[int, bool]:
        """Return (die, heads) for a pick that came out as `index`.

        If `index` is anyone's alias, the coin came up tails on the first
        die face aliased to it; otherwise it came up heads on `index` itself.
        """
        try:
            return self._alias.index(index), False
        except ValueError:
            return index, True
