"""Unit tests for the random-decision engine.

The engine's contract is byte-level: how many bytes each decision reads,
in what order, under what reason tag.  These tests pin that down with
scripted byte sources and with recorded queues.
"""

from __future__ import annotations

import os
import struct
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rubbish import (
    ContractError,
    ERR_EMPTY_POOL,
    ERR_SOURCE,
    RandomEngine,
    Recorder,
    WeightedPool,
    polar_deviates,
    seeded_source,
)
from rubbish._random import SamplerCache


class _Scripted:
    """A byte source that serves fixed chunks and logs what was asked for."""

    def __init__(self, *chunks: bytes) -> None:
        self.chunks = list(chunks)
        self.reasons = []

    def __call__(self, size: int, reason: str = "") -> bytes:
        self.reasons.append(reason)
        return self.chunks.pop(0)


def _replay(rec: Recorder) -> RandomEngine:
    return RandomEngine(rec.source)


# ── Integers ──────────────────────────────────────────────────

class TestIntegers(unittest.TestCase):
    def test_uint32_is_big_endian(self):
        src = _Scripted(b"\x00\x00\x01\x02")
        self.assertEqual(RandomEngine(src).uint32("n"), 258)
        self.assertEqual(src.reasons, ["uint32,n"])

    def test_upto_zero_draws_nothing(self):
        src = _Scripted()
        self.assertEqual(RandomEngine(src).upto(0, "n"), 0)
        self.assertEqual(src.reasons, [])

    def test_upto_reduces_modulo(self):
        src = _Scripted((13).to_bytes(4, "big"))
        self.assertEqual(RandomEngine(src).upto(10, "n"), 3)
        self.assertEqual(src.reasons, ["uint32,upto(10),n"])

    def test_ubigint(self):
        src = _Scripted(b"\x01\x00\x00\x00\x00\x00")
        self.assertEqual(RandomEngine(src).ubigint(6, "big"), 1 << 40)
        self.assertEqual(src.reasons, ["ubigint,big"])

    def test_bool(self):
        src = _Scripted(b"\x00\x00\x00\x07", b"\x00\x00\x00\x08")
        rnd = RandomEngine(src)
        self.assertIs(rnd.bool("b"), True)
        self.assertIs(rnd.bool("b"), False)
        self.assertEqual(src.reasons, ["uint32,upto(2),bool,b"] * 2)

    def test_short_source_rejected(self):
        with self.assertRaises(ContractError) as ctx:
            RandomEngine(_Scripted(b"\x00\x00")).uint32()
        self.assertEqual(ctx.exception.code, ERR_SOURCE)

    def test_long_source_rejected(self):
        with self.assertRaises(ContractError) as ctx:
            RandomEngine(_Scripted(b"\x00" * 5)).uint32()
        self.assertEqual(ctx.exception.code, ERR_SOURCE)


# ── Unit floats ───────────────────────────────────────────────

class TestUnitFloat(unittest.TestCase):
    def test_zero_bytes_give_zero(self):
        self.assertEqual(RandomEngine(_Scripted(b"\x00" * 8)).unit_float(), 0.0)

    def test_all_ones_give_largest_below_one(self):
        v = RandomEngine(_Scripted(b"\xff" * 8)).unit_float()
        self.assertEqual(v, 1.0 - 2.0 ** -52)

    def test_sign_and_exponent_are_overwritten(self):
        """Only the 52 mantissa bits of the draw matter."""
        raw = struct.pack("<d", 1.25)
        tampered = raw[:6] + bytes([raw[6] & 0x0F]) + b"\xc0"
        src = _Scripted(raw, tampered)
        rnd = RandomEngine(src)
        self.assertEqual(rnd.unit_float("u"), 0.25)
        self.assertEqual(rnd.unit_float("u"), 0.25)
        self.assertEqual(src.reasons, ["unit_float,u"] * 2)

    def test_seeded_floats_stay_in_range(self):
        rnd = RandomEngine(seeded_source(11))
        for _ in range(500):
            v = rnd.unit_float()
            self.assertTrue(0.0 <= v < 1.0)


# ── Gaussian ──────────────────────────────────────────────────

class TestGauss(unittest.TestCase):
    def test_centre_returns_mean_without_spare(self):
        rec = Recorder()
        rec.unit_float(0.5, "g")
        rec.unit_float(0.5, "g")
        rnd = _replay(rec)
        self.assertEqual(rnd.gauss(1, 2, "g"), 1)
        self.assertTrue(rec.is_done)
        # No spare was kept, so the next call must draw again.
        with self.assertRaises(ContractError):
            rnd.gauss(1, 2, "g")

    def test_spare_is_used_by_next_call(self):
        rec = Recorder()
        rec.unit_float(0.75, "g")
        rec.unit_float(0.5, "g")
        rnd = _replay(rec)
        z1, z2 = polar_deviates(0.75, 0.5)
        self.assertEqual(rnd.gauss(0, 1, "g"), z1)
        self.assertTrue(rec.is_done)
        self.assertEqual(rnd.gauss(10, 3, "other"), 10 + (3 * z2))

    def test_points_outside_circle_are_redrawn(self):
        rec = Recorder()
        for u in (0.0, 0.0, 0.5, 0.5):
            rec.unit_float(u, "g")
        self.assertEqual(_replay(rec).gauss(7, 2, "g"), 7)
        self.assertTrue(rec.is_done)

    def test_polar_rejects_corner(self):
        self.assertIsNone(polar_deviates(0.0, 0.0))
        self.assertEqual(polar_deviates(0.5, 0.5), (0.0, None))

    def test_seeded_distribution(self):
        rnd = RandomEngine(seeded_source(5))
        xs = [rnd.gauss(100, 10) for _ in range(4000)]
        mean = sum(xs) / len(xs)
        var = sum((x - mean) ** 2 for x in xs) / len(xs)
        self.assertAlmostEqual(mean, 100, delta=1.0)
        self.assertAlmostEqual(var ** 0.5, 10, delta=1.0)


# ── Picks and subsets ─────────────────────────────────────────

class TestPick(unittest.TestCase):
    def test_plain_pick_uses_upto(self):
        src = _Scripted((4).to_bytes(4, "big"))
        self.assertEqual(RandomEngine(src).pick("xyz", "letter"), "y")
        self.assertEqual(src.reasons, ["uint32,upto(3),pick(3),letter"])

    def test_empty_pool(self):
        with self.assertRaises(ContractError) as ctx:
            RandomEngine(_Scripted()).pick([], "nothing")
        self.assertEqual(ctx.exception.code, ERR_EMPTY_POOL)

    def test_samplers_are_cached_per_pool_object(self):
        cache = SamplerCache()
        a = WeightedPool("xy", [1, 3])
        b = WeightedPool("xy", [1, 3])
        self.assertIs(cache.get(a), cache.get(a))
        self.assertIsNot(cache.get(a), cache.get(b))

    def test_subset_of_string_is_string(self):
        rec = Recorder()
        rec.subset("ab", "abc", "s")
        self.assertEqual(_replay(rec).subset("abc", "s"), "ab")
        self.assertTrue(rec.is_done)

    def test_subset_keeps_pool_order(self):
        rec = Recorder()
        rec.subset([1, 2], [3, 2, 1, 4], "s")
        self.assertEqual(_replay(rec).subset([3, 2, 1, 4], "s"), [2, 1])
        self.assertTrue(rec.is_done)

    def test_subset_draws_one_bool_per_item(self):
        src = _Scripted(*[b"\x00\x00\x00\x01"] * 3)
        self.assertEqual(RandomEngine(src).subset("abc", "f"), "abc")
        self.assertEqual(src.reasons, ["uint32,upto(2),bool,subset,f"] * 3)


# ── Seeded sources ────────────────────────────────────────────

class TestSeededSource(unittest.TestCase):
    def test_same_seed_same_stream(self):
        a = RandomEngine(seeded_source("fixture"))
        b = RandomEngine(seeded_source("fixture"))
        self.assertEqual([a.uint32() for _ in range(20)], [b.uint32() for _ in range(20)])

    def test_different_seeds_differ(self):
        a = RandomEngine(seeded_source(1))
        b = RandomEngine(seeded_source(2))
        self.assertNotEqual([a.uint32() for _ in range(4)], [b.uint32() for _ in range(4)])


if __name__ == "__main__":
    unittest.main()
