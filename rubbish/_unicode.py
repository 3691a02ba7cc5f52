"""Codepoint classification for script-aware strings.

Strings are drawn one script at a time, so the generator needs, per script,
the list of codepoints in it along with each one's general category and
whether IDNA allows it in a host label.  This table derives all of that
from `unicodedata` on first use of each script: a codepoint belongs to a
script when it falls in one of the script's blocks and its Unicode name
starts with the script's name prefix.

IDNA status is approximated as in RFC 5892's letter-digit rule: letters,
marks and decimal digits that are stable under NFKC case folding are
PVALID; everything else is DISALLOWED.
"""

from __future__ import annotations

import functools
import logging
import unicodedata
from collections.abc import Sequence
from typing import Dict, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from ._errors import ERR_UNKNOWN_SCRIPT, ContractError

logger = logging.getLogger(__name__)

PVALID: str = "PVALID"
DISALLOWED: str = "DISALLOWED"

_LETTER_DIGIT: FrozenSet[str] = frozenset({"Ll", "Lo", "Lm", "Mn", "Mc", "Nd"})


class CodePoint(NamedTuple):
    code: int
    script: str
    category: str
    property: str

    @property
    def char(self) -> str:
        return chr(self.code)


class Script(NamedTuple):
    prefix: str
    ranges: Tuple[Tuple[int, int], ...]  # inclusive


SCRIPTS: Mapping[str, Script] = {
    "Latin": Script("LATIN", ((0x0041, 0x024F), (0x1E00, 0x1EFF), (0xA720, 0xA7FF))),
    "Greek": Script("GREEK", ((0x0370, 0x03FF), (0x1F00, 0x1FFF))),
    "Cyrillic": Script("CYRILLIC", ((0x0400, 0x052F),)),
    "Armenian": Script("ARMENIAN", ((0x0531, 0x058F),)),
    "Hebrew": Script("HEBREW", ((0x0591, 0x05F4),)),
    "Arabic": Script("ARABIC", ((0x0600, 0x06FF),)),
    "Devanagari": Script("DEVANAGARI", ((0x0900, 0x097F),)),
    "Thai": Script("THAI", ((0x0E01, 0x0E5B),)),
    "Georgian": Script("GEORGIAN", ((0x10A0, 0x10FF),)),
    "Hangul": Script("HANGUL", ((0x1100, 0x11FF), (0xAC00, 0xD7A3))),
    "Hiragana": Script("HIRAGANA", ((0x3041, 0x309F),)),
    "Katakana": Script("KATAKANA", ((0x30A0, 0x30FF),)),
    "Han": Script("CJK UNIFIED IDEOGRAPH", ((0x4E00, 0x9FFF),)),
}


def _idna_property(ch: str, category: str) -> str:
    if category in _LETTER_DIGIT and unicodedata.normalize("NFKC", ch.casefold()) == ch:
        return PVALID
    return DISALLOWED


class PointSet(Sequence):
    """An ordered, indexable set of codepoints: a pick pool for strings."""

    def __init__(self, points: Iterable[CodePoint]) -> None:
        self._points: Tuple[CodePoint, ...] = tuple(points)
        self._index: Dict[int, int] = {p.code: i for i, p in enumerate(self._points)}

    def __getitem__(self, index):
        return self._points[index]

    def __len__(self) -> int:
        return len(self._points)

    def __contains__(self, code: object) -> bool:
        return code in self._index

    def index_of(self, code: int) -> Optional[int]:
        return self._index.get(code)

    def filter(self, categories: Iterable[str]) -> "PointSet":
        keep = frozenset(categories)
        return PointSet(p for p in self._points if p.category in keep)


class CodepointTable:
    """Per-script codepoint lists, built lazily and cached."""

    def __init__(self, scripts: Mapping[str, Script] = SCRIPTS) -> None:
        self._scripts = dict(scripts)
        self._cache: Dict[Tuple[str, bool, Optional[FrozenSet[str]]], PointSet] = {}
        self._lookups: Dict[int, Optional[CodePoint]] = {}

    @property
    def scripts(self) -> Tuple[str, ...]:
        return tuple(self._scripts)

    def _classify(self, code: int, name: str, script: Script) -> Optional[CodePoint]:
        ch = chr(code)
        uname = unicodedata.name(ch, "")
        if not uname or not uname.startswith(script.prefix):
            return None
        category = unicodedata.category(ch)
        return CodePoint(code, name, category, _idna_property(ch, category))

    def lookup(self, code: int) -> Optional[CodePoint]:
        """The CodePoint record for `code`, or None if no script claims it."""
        if code not in self._lookups:
            found = None
            for name, script in self._scripts.items():
                if any(lo <= code <= hi for lo, hi in script.ranges):
                    found = self._classify(code, name, script)
                    if found is not None:
                        break
            self._lookups[code] = found
        return self._lookups[code]

    def points_for_script(self, name: str, pvalid: bool = False,
                          categories: Optional[Iterable[str]] = None) -> PointSet:
        """All codepoints of script `name`.

        `pvalid` keeps only IDNA PVALID points; `categories` keeps only the
        named general categories.
        """
        if name not in self._scripts:
            raise ContractError(ERR_UNKNOWN_SCRIPT, "unknown script: {!r}".format(name))
        cats = frozenset(categories) if categories is not None else None
        key = (name, pvalid, cats)
        points = self._cache.get(key)
        if points is None:
            if cats is not None:
                points = self.points_for_script(name, pvalid).filter(cats)
            elif pvalid:
                points = PointSet(p for p in self.points_for_script(name)
                                  if p.property == PVALID)
            else:
                script = self._scripts[name]
                found: List[CodePoint] = []
                for lo, hi in script.ranges:
                    for code in range(lo, hi + 1):
                        cp = self._classify(code, name, script)
                        if cp is not None:
                            found.append(cp)
                points = PointSet(found)
                logger.debug("script %s: %d codepoints", name, len(points))
            self._cache[key] = points
        return points


@functools.lru_cache(maxsize=None)
def default_table() -> CodepointTable:
    return CodepointTable()
