"""rubbish constants: option defaults, draw widths and well-known pools.

Everything here is read by both directions of the protocol, the generator
and the unbuilder, so any change alters the byte stream a recorded queue
replays against.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Tuple

# ── Option defaults ──────────────────────────────────────────
ARRAY_LENGTH: int = 10    # max size of lists, dicts, sets
DEPTH: int = 5            # max nesting depth
EDGE_FREQ: float = 0.1    # probability of an edge case (0..1)
STRING_LENGTH: int = 20   # max codepoints in strings, bytes in bigints

# ── Draw widths ──────────────────────────────────────────────
UINT32_BYTES: int = 4
UNIT_FLOAT_BYTES: int = 8
FLOAT_BYTES: int = 8

# Largest unit float strictly below 1.0.  Used to force "not taken" on an
# edge decision and "tails" on an alias coin flip.
ONEISH: float = 1.0 - 2.0 ** -52

# Default reason when a caller doesn't supply one.
UNSPECIFIED: str = "unspecified"

# ── Gaussian datetimes ───────────────────────────────────────
# Ten years in milliseconds: the standard deviation of generated datetimes
# around the configured clock.
DATE_10YEARS_MS: int = 315_569_520_000
EPOCH: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)

# ── Pools ────────────────────────────────────────────────────
# Order is part of the protocol: an index into these is what gets recorded.
FUN_FLOATS: Tuple[float, ...] = (
    float("nan"),
    0.0,
    -0.0,
    float("inf"),
    float("-inf"),
)
JSON_FUN_FLOATS: Tuple[float, ...] = (0.0,)  # That's not very fun

# "bytearray" stands in for a raw buffer; the rest are array.array typecodes.
ARRAY_TYPES: Tuple[str, ...] = (
    "bytearray",
    "b", "B", "h", "H", "i", "I", "l", "L", "q", "Q", "f", "d",
)

REGEX_FLAGS: str = "aimsx"

URL_SCHEMES: Tuple[str, ...] = ("http", "https", "ftp")
URL_MAX_PARAMS: int = 3
PORT_LIMIT: int = 65536

# A sample of delegated top-level domains, ASCII and IDN, covering the
# scripts the default codepoint table knows about.
TLDS: Tuple[str, ...] = (
    "com", "org", "net", "edu", "gov", "io", "dev", "app", "museum",
    "uk", "de", "fr", "jp", "ru", "br",
    "рф", "бг", "срб",            # Cyrillic
    "ελ",                          # Greek
    "קום",                         # Hebrew
    "موقع", "شبكة",                # Arabic
    "भारत",                        # Devanagari
    "ไทย",                         # Thai
    "გე",                          # Georgian
    "հայ",                         # Armenian
    "한국",                        # Hangul
    "みんな",                      # Hiragana
    "コム",                        # Katakana
    "中国", "公司",                # Han
)
