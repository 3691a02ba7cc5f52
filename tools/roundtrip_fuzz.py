#!/usr/bin/env python3
# tools/roundtrip_fuzz.py
#
# Record/replay fuzzing for rubbish.
#
# Three categories per round:
#   A) generate a value with random options -> unbuild -> replay -> same value
#   B) the same queue minus its last draw -> replay must run out
#   C) the same queue with one reason altered -> replay must reject it
#
# Any mismatch prints a minimal repro payload and exits non-zero.
# RUBBISH_SEED and RUBBISH_ROUNDS override the defaults.

import os, sys, json, random
from collections import deque
from typing import Any, Dict

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from rubbish import (
    ContractError,
    Draw,
    ERR_REPLAY_EXHAUSTED,
    ERR_REPLAY_REASON,
    ReplaySource,
    ValueGenerator,
    ValueUnbuilder,
    dump_draws,
    render,
    seeded_source,
)

SEED = int(os.environ.get("RUBBISH_SEED", "4242"))
ROUNDS = int(os.environ.get("RUBBISH_ROUNDS", "500"))
CLOCK = 1_600_000_000.0

random.seed(SEED)

def clock() -> float:
    return CLOCK

def rand_options() -> Dict[str, Any]:
    return {
        "depth": random.randint(0, 4),
        "array_length": random.randint(0, 6),
        "string_length": random.randint(1, 16),
        "edge_freq": random.choice([0.0, 0.1, 0.5, 1.0]),
        "json_safe": random.random() < 0.2,
        "cbor_safe": random.random() < 0.2,
        "no_boxed": random.random() < 0.2,
        "clock": clock,
    }

def mismatch(label: str, ctx: Dict[str, Any]) -> None:
    print("MISMATCH:", label)
    print("CTX:", json.dumps(ctx, ensure_ascii=False, default=repr)[:4000])
    raise SystemExit(1)

def replay_error(queue, opts) -> str:
    try:
        ValueGenerator(ReplaySource(queue), **opts).generate()
    except ContractError as e:
        return e.code
    return "no error"

def main() -> int:
    for i in range(ROUNDS):
        seed = random.getrandbits(32)
        opts = rand_options()
        ctx = {"round": i, "seed": seed,
               "options": {k: v for k, v in opts.items() if k != "clock"}}

        # A) round trip
        gen = ValueGenerator(seeded_source(seed), **opts)
        value = gen.generate()
        unb = ValueUnbuilder(weak_members=gen.weak_members, **opts)
        try:
            unb.unbuild(value)
        except ContractError as e:
            mismatch("A unbuild", dict(ctx, error=str(e), value=render(value, gen.weak_members)))
        draws = unb.draws
        again_gen = ValueGenerator(ReplaySource(deque(draws)), **opts)
        try:
            again = again_gen.generate()
        except ContractError as e:
            mismatch("A replay", dict(ctx, error=str(e), draws=json.loads(dump_draws(draws))))
        want = render(value, gen.weak_members)
        got = render(again, again_gen.weak_members)
        if want != got:
            mismatch("A round trip", dict(ctx, want=want, got=got))

        # B) truncated queue
        code = replay_error(deque(draws[:-1]), opts)
        if code != ERR_REPLAY_EXHAUSTED:
            mismatch("B truncated", dict(ctx, code=code))

        # C) corrupted reason
        k = random.randrange(len(draws))
        bad = [Draw(d.data, d.reason + "?" if j == k else d.reason) for j, d in enumerate(draws)]
        code = replay_error(deque(bad), opts)
        if code != ERR_REPLAY_REASON:
            mismatch("C reason", dict(ctx, index=k, code=code))

    print(f"OK: fuzz rounds={ROUNDS} seed={SEED} (no mismatches)")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
