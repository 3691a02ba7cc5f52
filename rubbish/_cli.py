"""rubbish command-line interface.

Usage:
    rubbish                          # one random value, rendered as Python
    rubbish -t url -s 8              # one URL with short strings
    rubbish -j -d 2                  # JSON-safe value, printed as JSON
    rubbish -C -o value.cbor         # CBOR-safe value, written as CBOR
    rubbish -E                       # ...or shown in CBOR diagnostic notation
    rubbish --seed 7 --record q.json # remember the draws behind a value
    rubbish --replay q.json          # ...and get the same value back
    rubbish -T                       # list the shape names
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
import time
from typing import Any, Dict, List, Optional, Union

from . import (
    ContractError,
    Options,
    Shape,
    ValueGenerator,
    ValueUnbuilder,
    __version__,
    dump_draws,
    load_recording,
    render,
    seeded_source,
)
from . import _cbor
from ._errors import ERR_REPLAY_LEFTOVER
from ._registry import as_shape_map
from ._replay import ReplaySource


def _non_negative(text: str) -> int:
    try:
        v = int(text, 10)
    except ValueError:
        raise argparse.ArgumentTypeError("not a number: {!r}".format(text)) from None
    if v < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return v


def _positive(text: str) -> int:
    v = _non_negative(text)
    if v == 0:
        raise argparse.ArgumentTypeError("must be at least 1")
    return v


def _zero_to_one(text: str) -> float:
    try:
        v = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError("not a number: {!r}".format(text)) from None
    if not 0 <= v <= 1:
        raise argparse.ArgumentTypeError("must be between 0 and 1 inclusive")
    return v


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rubbish",
        description="Generate a random Python value",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)

    # ── shape of the output ──
    parser.add_argument("-a", "--array-length", type=_non_negative, default=10,
                        metavar="N", help="Maximum list/dict/set size (default 10)")
    parser.add_argument("-b", "--no-boxed", action="store_true",
                        help="Don't generate boxed types like UserString")
    parser.add_argument("-c", "--cbor-safe", action="store_true",
                        help="Don't generate types that break CBOR")
    parser.add_argument("-d", "--depth", type=_non_negative, default=5,
                        metavar="N", help="Maximum depth (default 5)")
    parser.add_argument("-e", "--edge-freq", type=_zero_to_one, default=0.1,
                        metavar="P", help="Edge case frequency, 0..1 (default 0.1)")
    parser.add_argument("-i", "--import", dest="imports", action="append", default=[],
                        metavar="MODULE[:ATTR]",
                        help="Add the Shapes defined in MODULE (or MODULE.ATTR).  "
                             "Can be given more than once.")
    fmt = parser.add_mutually_exclusive_group()
    fmt.add_argument("-C", "--cbor", action="store_true",
                     help="Output CBOR.  Implies --cbor-safe.")
    fmt.add_argument("-E", "--edn", action="store_true",
                     help="Output CBOR diagnostic notation.  Implies --cbor-safe.")
    fmt.add_argument("-j", "--json", action="store_true",
                     help="Output JSON.  Implies --json-safe.")
    parser.add_argument("--json-safe", action="store_true",
                        help="Don't generate types that break JSON")
    parser.add_argument("-s", "--string-length", type=_positive, default=20,
                        metavar="N", help="Maximum string length (default 20)")
    parser.add_argument("--scripts", action="append", default=[], metavar="NAMES",
                        help="Draw strings only from these scripts (comma-separated).  "
                             "Can be given more than once.")
    parser.add_argument("-t", "--type", metavar="NAME",
                        help="Generate this specific shape")
    parser.add_argument("-T", "--list-types", action="store_true",
                        help="List the available shapes, then exit")

    # ── randomness ──
    parser.add_argument("--seed", metavar="SEED",
                        help="Seed a reproducible byte stream instead of os.urandom")
    parser.add_argument("--clock", type=float, metavar="SECONDS",
                        help="Fix the clock datetimes are centred on")
    rec = parser.add_mutually_exclusive_group()
    rec.add_argument("--record", metavar="FILE",
                     help="Also write the draws behind the value to FILE")
    rec.add_argument("--replay", metavar="FILE",
                     help="Take draws from FILE (written by --record)")

    # ── output ──
    parser.add_argument("-o", "--output", metavar="FILE",
                        help="Write to FILE instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log retries and registry decisions to stderr")
    return parser


def _load_shapes(specs: List[str]) -> Dict[str, Optional[Shape]]:
    """Import user shapes: every Shape in MODULE, or whatever MODULE:ATTR names."""
    shapes: Dict[str, Optional[Shape]] = {}
    for spec in specs:
        for piece in spec.split(","):
            modname, _, attr = piece.strip().partition(":")
            module = importlib.import_module(modname)
            if attr:
                found: Any = getattr(module, attr)
                if isinstance(found, Shape):
                    found = [found]
            else:
                found = [v for v in vars(module).values() if isinstance(v, Shape)]
            shapes.update(as_shape_map(found))
    return shapes
def _options(args: argparse.Namespace, clock: float) -> Options:
    scripts = [s.strip() for group in args.scripts for s in group.split(",") if s.strip()]
    return Options(
        array_length=args.array_length,
        depth=args.depth,
        edge_freq=args.edge_freq,
        string_length=args.string_length,
        json_safe=args.json_safe or args.json,
        cbor_safe=args.cbor_safe or args.cbor or args.edn,
        no_boxed=args.no_boxed,
        scripts=tuple(scripts) or None,
        clock=lambda: clock,
    )


def _generate(args: argparse.Namespace) -> Union[str, bytes]:
    shapes = _load_shapes(args.imports)

    # Datetimes are centred on the clock, so one reading serves the whole
    # run and is kept with any recording.
    clock = args.clock
    queue = None
    if args.replay:
        with open(args.replay, "r", encoding="utf-8") as f:
            queue, recorded = load_recording(f.read())
        if clock is None:
            clock = recorded
        source = ReplaySource(queue)
    elif args.seed is not None:
        source = seeded_source(args.seed)
    else:
        source = None
    if clock is None:
        clock = time.time()
    options = _options(args, clock)

    gen = ValueGenerator(source, options=options, shapes=shapes)
    if args.list_types:
        return "\n".join(gen.registry.names)

    if args.type:
        value = gen.produce(args.type)
    else:
        value = gen.generate()
    if queue:
        raise ContractError(ERR_REPLAY_LEFTOVER,
                            "{} draws left in {}".format(len(queue), args.replay))

    if args.record:
        unb = ValueUnbuilder(options=options, shapes=shapes, weak_members=gen.weak_members)
        if args.type:
            unb.unproduce(args.type, value)
        else:
            unb.unbuild(value)
        with open(args.record, "w", encoding="utf-8") as f:
            f.write(dump_draws(unb.draws, clock))
            f.write("\n")

    if args.json:
        return json.dumps(value, indent=2, ensure_ascii=False)
    if args.cbor:
        return _cbor.dumps(value)
    if args.edn:
        return _cbor.diagnose(value)
    text = render(value, gen.weak_members)
    if args.output:
        return "value = " + text
    return text


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.json_safe and (args.cbor or args.edn):
        parser.error("--json-safe can't be combined with CBOR output")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        out = _generate(args)
    except ContractError as e:
        print("rubbish: error [{}]: {}".format(e.code, e), file=sys.stderr)
        sys.exit(2)

    to_file = args.output and args.output != "-"
    if isinstance(out, bytes):
        if to_file:
            with open(args.output, "wb") as f:
                f.write(out)
        else:
            sys.stdout.buffer.write(out)
            sys.stdout.flush()
    elif to_file:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(out)
            f.write("\n")
    else:
        print(out)


if __name__ == "__main__":
    main()
