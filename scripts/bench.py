#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import json
import os
import platform
import random
import subprocess
import sys
import time
from typing import Any, Dict, List, Optional

# Ensure repo root (which contains `posindex/`) is importable when running directly
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from posindex.unrank.decoder import Decoder
from posindex.unrank.tables import load_tables
from posindex.unrank.tree import load_tree


def _git_info() -> Dict[str, Optional[str]]:
    def run(cmd: List[str]) -> Optional[str]:
        try:
            out = subprocess.check_output(cmd, cwd=REPO_ROOT, stderr=subprocess.DEVNULL)
            return out.decode().strip()
        except (OSError, subprocess.CalledProcessError):
            return None

    return {
        "commit": run(["git", "rev-parse", "HEAD"]),
        "describe": run(["git", "describe", "--dirty", "--tags", "--always"]),
    }


def bench(decoder: Decoder, count: int, seed: int) -> Dict[str, Any]:
    rng = random.Random(seed)
    indices = [rng.randrange(decoder.total) for _ in range(count)]
    failures = 0
    t0 = time.perf_counter()
    for outcome in decoder.decode_many(indices):
        if not outcome.ok:
            failures += 1
    dt = time.perf_counter() - t0
    return {
        "decodes": count,
        "failures": failures,
        "time_ms": int(dt * 1000),
        "decodes_per_s": int(count / max(dt, 1e-9)),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Time decoding of uniformly sampled indices")
    parser.add_argument("--tree", required=True, help="Decision tree JSON")
    parser.add_argument("--tables", required=True, help="Lookup tables JSON")
    parser.add_argument("--count", type=int, default=1000, help="Number of decodes")
    parser.add_argument("--seed", type=int, default=0, help="Sampling seed")
    parser.add_argument("--out", type=str, default=None, help="Write JSON results to file path")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    args = parser.parse_args()

    decoder = Decoder(load_tree(args.tree), load_tables(args.tables))
    payload = {
        "meta": {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "git": _git_info(),
            "config": {"count": args.count, "seed": args.seed, "total": str(decoder.total)},
        },
        "summary": bench(decoder, max(1, args.count), args.seed),
    }

    if args.out:
        out_dir = os.path.dirname(args.out)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2 if args.pretty else None)
        print(args.out)
    else:
        print(json.dumps(payload, indent=2 if args.pretty else None))


if __name__ == "__main__":
    main()
