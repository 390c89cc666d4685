from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import uvicorn

from ..config import ENV_PREFIX, ServiceConfig, load_config
from ..unrank.decoder import Decoder
from ..unrank.errors import DecodeError
from ..unrank.tables import load_tables
from ..unrank.tree import load_tree


logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="posindex", description="Decode position indices")
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument("--tree", type=str, default=None, help="Decision tree JSON")
    parser.add_argument("--tables", type=str, default=None, help="Lookup tables JSON")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    dec = sub.add_parser("decode", help="Decode one or more indices to FEN")
    dec.add_argument("indices", nargs="+", help="Decimal indices")
    dec.add_argument("--json", action="store_true", help="Emit one JSON object per line")

    sub.add_parser("info", help="Show the size of the enumeration")

    serve = sub.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)
    return parser


def _config_from_args(args: argparse.Namespace) -> ServiceConfig:
    config = load_config(args.config)
    updates = {
        "tree_path": args.tree,
        "tables_path": args.tables,
        "log_level": args.log_level,
        "host": getattr(args, "host", None),
        "port": getattr(args, "port", None),
    }
    return config.model_copy(update={k: v for k, v in updates.items() if v is not None})


def _decoder(config: ServiceConfig) -> Decoder:
    if not config.tree_path or not config.tables_path:
        raise SystemExit("both --tree and --tables are required")
    return Decoder(load_tree(config.tree_path), load_tables(config.tables_path))


def cmd_decode(config: ServiceConfig, raw: List[str], as_json: bool) -> int:
    decoder = _decoder(config)
    status = 0
    for text in raw:
        try:
            index = int(text)
        except ValueError:
            print(f"{text}\terror\tinvalid index", file=sys.stderr)
            status = 1
            continue
        try:
            position = decoder.decode(index)
        except DecodeError as e:
            # Keep going; one bad index must not stop the rest
            print(f"{text}\terror\t{e.code}: {e.message}", file=sys.stderr)
            status = 1
            continue
        if as_json:
            print(json.dumps({"index": text, "fen": position.to_fen()}))
        else:
            print(f"{text}\t{position.to_fen()}")
    return status


def cmd_info(config: ServiceConfig) -> int:
    decoder = _decoder(config)
    print(f"total={decoder.total} nodes={len(decoder.tree.sizes)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = _config_from_args(args)
    logging.basicConfig(level=config.log_level.upper())

    if args.command == "decode":
        return cmd_decode(config, args.indices, args.json)
    if args.command == "info":
        return cmd_info(config)
    # serve: the app factory reads the resolved settings back from the environment
    if args.config:
        os.environ[ENV_PREFIX + "CONFIG"] = args.config
    for name, value in config.model_dump().items():
        if value is not None:
            os.environ[ENV_PREFIX + name.upper()] = str(value)
    uvicorn.run(
        "posindex.protocol.http.app:create_app",
        factory=True,
        host=config.host,
        port=config.port,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
