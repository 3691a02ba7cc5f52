"""Unit tests for the value generator, its registry and its options.

Round trips through the unbuilder live in test_roundtrip.py; these tests
cover what the generator does on its own, plus the unbuilder's refusals.
"""

from __future__ import annotations

import math
import os
import re
import sys
import unittest
import weakref
from collections import UserString, namedtuple
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from urllib.parse import urlsplit

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rubbish import (
    BUILTIN_SHAPES,
    CodepointTable,
    ContractError,
    ERR_UNENCODABLE,
    ERR_UNKNOWN_SCRIPT,
    ERR_UNKNOWN_SHAPE,
    ERR_WEAK_MEMBERS,
    Options,
    Recorder,
    Script,
    ValueGenerator,
    ValueUnbuilder,
    default_table,
    seeded_source,
    shape,
)
from rubbish._constants import FUN_FLOATS, REGEX_FLAGS


def _no_draws(size, reason=""):
    raise AssertionError("unexpected draw: {}".format(reason))


Point = namedtuple("Point", "x y")


@shape(kind=Point, hashable=True)
def generate_Point(gen, depth):
    return Point(gen.random.uint32("x"), gen.random.uint32("y"))


@generate_Point.inverse
def generate_Point(unb, value, depth):
    unb.random.uint32(value.x, "x")
    unb.random.uint32(value.y, "y")


# ── Depth limit ───────────────────────────────────────────────

class TestDepth(unittest.TestCase):
    def setUp(self):
        self.gen = ValueGenerator(_no_draws, depth=3)

    def test_generate_past_limit_is_none(self):
        self.assertIsNone(self.gen.generate(4))
        self.assertIsNone(self.gen.generate_hashable(4))

    def test_composites_come_out_empty(self):
        for name in ("list", "tuple", "dict", "mapping", "mappingproxy", "set",
                     "frozenset", "bytes", "WeakSet", "WeakKeyDictionary"):
            with self.subTest(name=name):
                self.assertEqual(len(self.gen.produce(name, 4)), 0)

    def test_generator_comes_out_empty(self):
        self.assertEqual(list(self.gen.produce("generator", 4)), [])

    def test_function_returns_none(self):
        self.assertIsNone(self.gen.produce("function", 4)())

    def test_saturated_unbuild_records_nothing(self):
        unb = ValueUnbuilder(depth=3)
        unb.unbuild(None, 4)
        unb.unproduce("list", [], 4)
        unb.unproduce("dict", {}, 4)
        self.assertTrue(unb.is_done)

    def test_values_below_limit_are_unencodable(self):
        unb = ValueUnbuilder(depth=3)
        for name, value in (("list", [1]), ("bytes", b"x"), ("set", {1})):
            with self.subTest(name=name):
                with self.assertRaises(ContractError) as ctx:
                    unb.unproduce(name, value, 4)
                self.assertEqual(ctx.exception.code, ERR_UNENCODABLE)
        with self.assertRaises(ContractError) as ctx:
            unb.unbuild(5, 4)
        self.assertEqual(ctx.exception.code, ERR_UNENCODABLE)

    def test_seeded_values_respect_depth(self):
        def nesting(v):
            if isinstance(v, (list, tuple)):
                return 1 + max((nesting(i) for i in v), default=0)
            if isinstance(v, dict):
                return 1 + max((nesting(i) for i in v.values()), default=0)
            return 0

        gen = ValueGenerator(seeded_source(8), depth=4, json_safe=True)
        for _ in range(30):
            self.assertLessEqual(nesting(gen.generate()), 3)


# ── Strings ───────────────────────────────────────────────────

class TestStrings(unittest.TestCase):
    def test_one_script_no_leading_mark(self):
        table = default_table()
        gen = ValueGenerator(seeded_source(2), scripts=("Hebrew", "Thai", "Devanagari"))
        for _ in range(200):
            s = gen.string()
            self.assertLessEqual(len(s), gen.options.string_length)
            if not s:
                continue
            self.assertNotEqual(table.lookup(ord(s[0])).category, "Mn")
            self.assertEqual(len({table.lookup(ord(c)).script for c in s}), 1)

    def test_leading_combining_marks_are_dropped(self):
        points = default_table().points_for_script("Hebrew")
        rec = Recorder()
        rec.pick("Hebrew", ("Hebrew",), "script,str")
        rec.upto(1, 20, "length,str")
        rec.pick_index(points.index_of(0x05BA), points, "codepoint,str")
        rec.pick_index(points.index_of(0x05E1), points, "codepoint,str")
        gen = ValueGenerator(rec.source, scripts=("Hebrew",))
        self.assertEqual(gen.produce("str"), "\u05E1")
        rec.assert_done()

    def test_leading_combining_mark_is_unencodable(self):
        unb = ValueUnbuilder(scripts=("Hebrew",))
        for text in ("\u05B8\u05E9", "\u05BA\u05BA"):
            with self.subTest(text=text):
                with self.assertRaises(ContractError) as ctx:
                    unb.unproduce("str", text)
                self.assertEqual(ctx.exception.code, ERR_UNENCODABLE)
        self.assertTrue(unb.is_done)

    def test_foreign_character(self):
        unb = ValueUnbuilder(scripts=("Latin",))
        with self.assertRaises(ContractError) as ctx:
            unb.unproduce("str", "abc\u05E1")
        self.assertEqual(ctx.exception.code, ERR_UNENCODABLE)

    def test_too_long(self):
        unb = ValueUnbuilder(string_length=3)
        with self.assertRaises(ContractError) as ctx:
            unb.unproduce("str", "abcd")
        self.assertEqual(ctx.exception.code, ERR_UNENCODABLE)

    def test_unknown_script(self):
        with self.assertRaises(ContractError) as ctx:
            ValueGenerator(scripts=("Klingon",))
        self.assertEqual(ctx.exception.code, ERR_UNKNOWN_SCRIPT)


# ── Retry loops ───────────────────────────────────────────────

class TestRetries(unittest.TestCase):
    def test_invalid_pattern_is_redrawn(self):
        table = CodepointTable({"Punct": Script("", ((0x28, 0x2E),))})
        unb = ValueUnbuilder(table=table)
        unb.string("+", 0, "pattern")
        unb.random.subset("", REGEX_FLAGS, "pattern flags")
        unb.unproduce("pattern", re.compile("."))
        gen = ValueGenerator(unb.source, table=table)
        self.assertEqual(gen.produce("pattern").pattern, ".")
        unb.assert_done()

    def test_non_finite_float_is_redrawn(self):
        unb = ValueUnbuilder()
        unb.edge(False, "float")
        unb.random.bytes(b"\x7f\xf0" + bytes(6), "float")
        unb.random.bytes(b"\x3f\xf8" + bytes(6), "float")
        self.assertEqual(ValueGenerator(unb.source).produce("float"), 1.5)
        unb.assert_done()


# ── Edge frequency ────────────────────────────────────────────

class TestEdges(unittest.TestCase):
    def test_always(self):
        gen = ValueGenerator(seeded_source(6), edge_freq=1)
        for _ in range(50):
            v = gen.produce("float")
            self.assertTrue(any(v is f for f in FUN_FLOATS) or v in FUN_FLOATS)

    def test_never(self):
        gen = ValueGenerator(seeded_source(6), edge_freq=0)
        for _ in range(50):
            self.assertTrue(math.isfinite(gen.produce("float")))

    def test_json_safe_floats_are_finite(self):
        gen = ValueGenerator(seeded_source(6), edge_freq=1, json_safe=True)
        self.assertEqual(gen.produce("float"), 0.0)

    def test_forced_edge_is_unencodable_the_other_way(self):
        with self.assertRaises(ContractError) as ctx:
            ValueUnbuilder(edge_freq=0).unproduce("float", float("nan"))
        self.assertEqual(ctx.exception.code, ERR_UNENCODABLE)

    def test_zero_without_edges_uses_raw_bytes(self):
        unb = ValueUnbuilder(edge_freq=0)
        unb.unproduce("float", -0.0)
        v = ValueGenerator(unb.source, edge_freq=0).produce("float")
        self.assertEqual(math.copysign(1, v), -1.0)
        unb.assert_done()


# ── Registry ──────────────────────────────────────────────────

class TestRegistry(unittest.TestCase):
    def test_builtins(self):
        names = ValueGenerator().registry.names
        self.assertEqual(names, tuple(sorted(BUILTIN_SHAPES)))
        self.assertEqual(len(names), 26)

    def test_json_safe(self):
        self.assertEqual(ValueGenerator(json_safe=True).registry.names,
                         ("None", "bool", "dict", "float", "int", "list", "str"))

    def test_cbor_safe(self):
        gen = ValueGenerator(cbor_safe=True)
        self.assertIn("bytes", gen.registry)
        self.assertIn("pattern", gen.registry)
        self.assertNotIn("future", gen.registry)
        self.assertNotIn("WeakSet", gen.registry)
        self.assertNotIn("bytearray", gen.array_types)

    def test_no_boxed(self):
        names = ValueGenerator(no_boxed=True).registry.names
        self.assertNotIn("UserString", names)
        self.assertEqual(len(names), 25)

    def test_remove_with_none(self):
        self.assertNotIn("url", ValueGenerator(shapes={"url": None}).registry)

    def test_unknown_shape(self):
        with self.assertRaises(ContractError) as ctx:
            ValueGenerator().produce("nope")
        self.assertEqual(ctx.exception.code, ERR_UNKNOWN_SHAPE)

    def test_pools(self):
        reg = ValueGenerator().registry
        self.assertIn("frozenset", reg.hashable_names)
        self.assertNotIn("list", reg.hashable_names)
        self.assertEqual(set(reg.weak_names),
                         {"UserString", "frozenset", "future", "function", "pattern"})

    def test_classify(self):
        reg = ValueGenerator().registry
        cases = [
            (None, "None"),
            (True, "bool"),
            (5, "int"),
            (2 ** 40, "bigint"),
            (-(2 ** 40), "bigint"),
            ({"a": 1}, "dict"),
            ({1: 2}, "mapping"),
            (bytearray(b"x"), "array"),
            (UserString("x"), "UserString"),
            (KeyError("k"), "exception"),
            (datetime(2020, 1, 1, tzinfo=timezone.utc), "datetime"),
        ]
        for value, name in cases:
            with self.subTest(value=value):
                self.assertEqual(reg.classify(value).name, name)

    def test_classify_unknown(self):
        with self.assertRaises(ContractError) as ctx:
            ValueGenerator().registry.classify(object())
        self.assertEqual(ctx.exception.code, ERR_UNKNOWN_SHAPE)

    def test_classify_among(self):
        reg = ValueGenerator().registry
        with self.assertRaises(ContractError) as ctx:
            reg.classify([], among=reg.hashable_names)
        self.assertEqual(ctx.exception.code, ERR_UNKNOWN_SHAPE)

    def test_zero_frequency_never_generated(self):
        gen = ValueGenerator(seeded_source(1), json_safe=True,
                             shapes={"list": replace(BUILTIN_SHAPES["list"], freq=0)})
        for _ in range(100):
            self.assertNotIsInstance(gen.generate(), list)


# ── User shapes ───────────────────────────────────────────────

class TestUserShapes(unittest.TestCase):
    def test_decorator_names_the_shape(self):
        self.assertEqual(generate_Point.name, "Point")
        self.assertIsNotNone(generate_Point.unbuild)

    def test_produce_and_round_trip(self):
        gen = ValueGenerator(seeded_source(1), shapes=[generate_Point])
        p = gen.produce("Point")
        self.assertIsInstance(p, Point)

        value = [p, {Point(1, 2): "x"}]
        unb = ValueUnbuilder(shapes=[generate_Point])
        unb.unbuild(value)
        again = ValueGenerator(unb.source, shapes=[generate_Point]).generate()
        self.assertEqual(again, value)
        unb.assert_done()

    def test_shape_without_inverse(self):
        plain = shape(kind=complex)(lambda gen, depth: 1j)
        unb = ValueUnbuilder(shapes={"complex": plain})
        with self.assertRaises(ContractError) as ctx:
            unb.unbuild(2j)
        self.assertEqual(ctx.exception.code, ERR_UNENCODABLE)


# ── Options ───────────────────────────────────────────────────

class TestOptions(unittest.TestCase):
    def test_overrides(self):
        gen = ValueGenerator(options=Options(depth=2), array_length=3)
        self.assertEqual((gen.options.depth, gen.options.array_length), (2, 3))

    def test_validation(self):
        for kwargs in (dict(edge_freq=1.5), dict(array_length=-1),
                       dict(string_length=0), dict(scripts="Latin"), dict(scripts=())):
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    Options(**kwargs)

    def test_scripts_become_a_tuple(self):
        self.assertEqual(Options(scripts=["Greek"]).scripts, ("Greek",))


# ── Refusals ──────────────────────────────────────────────────

class TestUnencodable(unittest.TestCase):
    def setUp(self):
        self.unb = ValueUnbuilder()

    def _code(self, name, value):
        with self.assertRaises(ContractError) as ctx:
            self.unb.unproduce(name, value)
        return ctx.exception.code

    def test_exception_args(self):
        self.assertEqual(self._code("exception", ValueError("a", "b")), ERR_UNENCODABLE)

    def test_exception_class_outside_pool(self):
        self.assertEqual(self._code("exception", KeyError("k")), ERR_UNENCODABLE)

    def test_naive_datetime(self):
        self.assertEqual(self._code("datetime", datetime(2020, 1, 1)), ERR_UNENCODABLE)

    def test_microseconds(self):
        dt = datetime(2020, 1, 1, tzinfo=timezone.utc) + timedelta(microseconds=1)
        self.assertEqual(self._code("datetime", dt), ERR_UNENCODABLE)

    def test_dict_with_non_str_keys(self):
        self.assertEqual(self._code("dict", {1: 2}), ERR_UNENCODABLE)

    def test_function_with_arguments(self):
        self.assertEqual(self._code("function", lambda x: x), ERR_UNENCODABLE)

    def test_function_result_must_be_str(self):
        self.assertEqual(self._code("function", lambda: 5), ERR_UNENCODABLE)

    def test_ftp_with_port(self):
        self.assertEqual(self._code("url", urlsplit("ftp://abc.com:21/")), ERR_UNENCODABLE)

    def test_weak_container_without_record(self):
        with self.assertRaises(ContractError) as ctx:
            self.unb.unbuild(weakref.WeakSet())
        self.assertEqual(ctx.exception.code, ERR_WEAK_MEMBERS)


if __name__ == "__main__":
    unittest.main()
