"""Generator options.

One frozen dataclass shared by the generator and the unbuilder: both sides
have to agree on every limit, or the unbuilder records draws the generator
won't ask for.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ._constants import ARRAY_LENGTH, DEPTH, EDGE_FREQ, STRING_LENGTH


@dataclass(frozen=True)
class Options:
    array_length: int = ARRAY_LENGTH
    depth: int = DEPTH
    edge_freq: float = EDGE_FREQ
    string_length: int = STRING_LENGTH
    json_safe: bool = False
    cbor_safe: bool = False
    no_boxed: bool = False
    scripts: Optional[Tuple[str, ...]] = None   # None: every script the table knows
    clock: Callable[[], float] = time.time      # seconds; centre of generated datetimes

    def __post_init__(self) -> None:
        if not 0 <= self.edge_freq <= 1:
            raise ValueError("edge_freq must be between 0 and 1, got {!r}".format(self.edge_freq))
        if self.array_length < 0:
            raise ValueError("array_length must be >= 0, got {!r}".format(self.array_length))
        if self.string_length < 1:
            raise ValueError("string_length must be >= 1, got {!r}".format(self.string_length))
        if self.scripts is not None:
            if isinstance(self.scripts, str):
                raise ValueError("scripts must be a sequence of names, not a string")
            object.__setattr__(self, "scripts", tuple(self.scripts))
            if not self.scripts:
                raise ValueError("scripts must not be empty")
