#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import os
import random
import sys

# Allow running this script directly via `python scripts/sample.py`
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from posindex.unrank.decoder import Decoder
from posindex.unrank.tables import load_tables
from posindex.unrank.tree import load_tree


def main() -> None:
    parser = argparse.ArgumentParser(description="Print uniformly sampled positions as FEN")
    parser.add_argument("--tree", required=True, help="Decision tree JSON")
    parser.add_argument("--tables", required=True, help="Lookup tables JSON")
    parser.add_argument("-n", type=int, default=10, help="Number of samples (default: 10)")
    parser.add_argument("--seed", type=int, default=None, help="Sampling seed")
    args = parser.parse_args()

    decoder = Decoder(load_tree(args.tree), load_tables(args.tables))
    rng = random.Random(args.seed)
    for outcome in decoder.decode_many(rng.randrange(decoder.total) for _ in range(args.n)):
        if outcome.position is not None:
            print(f"{outcome.index}\t{outcome.position.to_fen()}")
        else:
            print(f"{outcome.index}\terror\t{outcome.error}", file=sys.stderr)


if __name__ == "__main__":
    main()
