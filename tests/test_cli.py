"""Tests for the rubbish command-line interface."""

from __future__ import annotations

import contextlib
import io
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest import mock

import cbor2

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from rubbish._cli import main


def _run(*argv):
    """Run the CLI, returning (exit code, stdout, stderr)."""
    out, err = io.StringIO(), io.StringIO()
    code = 0
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        try:
            main(list(argv))
        except SystemExit as e:
            code = e.code
    return code, out.getvalue(), err.getvalue()


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_list_types(self):
        code, out, _ = _run("-T")
        self.assertEqual(code, 0)
        names = out.split()
        self.assertIn("url", names)
        self.assertEqual(names, sorted(names))

    def test_list_types_json_safe(self):
        _, out, _ = _run("-T", "--json-safe")
        self.assertEqual(out.split(), ["None", "bool", "dict", "float", "int", "list", "str"])

    def test_seed_is_reproducible(self):
        a = _run("--seed", "42", "--clock", "1600000000")
        b = _run("--seed", "42", "--clock", "1600000000")
        self.assertEqual(a, b)
        self.assertEqual(a[0], 0)

    def test_specific_type(self):
        _, out, _ = _run("--seed", "1", "-t", "int")
        int(out.strip())

    def test_json_output_parses(self):
        for seed in ("1", "2", "3"):
            code, out, _ = _run("--seed", seed, "-j", "-d", "2")
            self.assertEqual(code, 0)
            json.loads(out)

    def test_record_then_replay(self):
        queue = os.path.join(self.tmp, "q.json")
        _, first, _ = _run("--seed", "9", "--clock", "1600000000", "--record", queue)
        code, again, err = _run("--clock", "1600000000", "--replay", queue)
        self.assertEqual(code, 0, err)
        self.assertEqual(again, first)

    def test_recording_keeps_the_clock(self):
        queue = os.path.join(self.tmp, "q.json")
        with mock.patch("time.time", return_value=1_600_000_000.0):
            _, first, _ = _run("--seed", "3", "-t", "datetime", "--record", queue)
        with mock.patch("time.time", return_value=1_600_000_005.0):
            code, again, err = _run("-t", "datetime", "--replay", queue)
        self.assertEqual(code, 0, err)
        self.assertEqual(again, first)
        with open(queue, encoding="utf-8") as f:
            self.assertEqual(json.load(f)["clock"], 1_600_000_000.0)

    def test_cbor_output(self):
        path = os.path.join(self.tmp, "value.cbor")
        code, out, err = _run("--seed", "4", "-t", "list", "-C", "-o", path)
        self.assertEqual((code, out), (0, ""), err)
        with open(path, "rb") as f:
            self.assertIsInstance(cbor2.loads(f.read()), list)

    def test_edn_output(self):
        code, out, _ = _run("-E", "-t", "url", "--seed", "1", "--clock", "1600000000")
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith('32("'))

    def test_cbor_output_excludes_json(self):
        self.assertEqual(_run("-C", "-j")[0], 2)
        self.assertEqual(_run("-E", "--json-safe")[0], 2)

    def test_replay_leftovers(self):
        queue = os.path.join(self.tmp, "q.json")
        _run("--seed", "9", "-t", "list", "--record", queue)
        code, _, err = _run("--replay", queue, "-t", "int")
        self.assertEqual(code, 2)
        self.assertIn("ERR_REPLAY", err)

    def test_output_file(self):
        path = os.path.join(self.tmp, "value.py")
        code, out, _ = _run("--seed", "5", "-t", "str", "-o", path)
        self.assertEqual((code, out), (0, ""))
        with open(path, encoding="utf-8") as f:
            self.assertTrue(f.read().startswith("value = "))

    def test_unknown_type(self):
        code, _, err = _run("-t", "nope")
        self.assertEqual(code, 2)
        self.assertIn("ERR_UNKNOWN_SHAPE", err)

    def test_bad_edge_freq(self):
        code, _, _ = _run("-e", "2")
        self.assertEqual(code, 2)

    def test_version(self):
        code, out, _ = _run("--version")
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith("rubbish "))


if __name__ == "__main__":
    unittest.main()
