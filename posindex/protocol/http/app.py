from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    decode_error_envelope,
    decode_exception_handler,
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from ...config import ServiceConfig, load_config
from ...engine.bitboard import popcount
from ...engine.position import Position
from ...unrank.decoder import Decoder
from ...unrank.errors import DecodeError
from ...unrank.tables import load_tables
from ...unrank.tree import load_tree


logger = logging.getLogger(__name__)

IndexValue = Union[int, str]


class DecodeRequest(BaseModel):
    index: IndexValue = Field(..., description="Rank as an integer or decimal string")


class BatchDecodeRequest(BaseModel):
    indices: List[IndexValue] = Field(..., min_length=1)


class SideState(BaseModel):
    pawns: str
    knights: str
    bishops: str
    rooks: str
    queens: str
    king: str
    fixed_rooks: str
    piece_counts: List[int]


class PositionState(BaseModel):
    index: str
    fen: str
    sides: List[SideState]
    en_passant: str
    side0_is_black: bool
    side0_to_move: bool


class InfoResponse(BaseModel):
    total: str
    tree_nodes: int


def _hex(bb: int) -> str:
    return f"0x{bb:016x}"


def position_state(index: int, position: Position) -> PositionState:
    sides = []
    for side in position.sides:
        knights, bishops, rooks, queens, king = side.pieces
        sides.append(
            SideState(
                pawns=_hex(side.pawns),
                knights=_hex(knights),
                bishops=_hex(bishops),
                rooks=_hex(rooks),
                queens=_hex(queens),
                king=_hex(king),
                fixed_rooks=_hex(side.fixed_rooks),
                piece_counts=[popcount(side.pawns)] + side.counts(),
            )
        )
    return PositionState(
        index=str(index),
        fen=position.to_fen(),
        sides=sides,
        en_passant=_hex(position.en_passant),
        side0_is_black=position.side0_is_black,
        side0_to_move=position.side0_to_move,
    )


def parse_index(value: IndexValue) -> int:
    if isinstance(value, bool):
        raise HTTPException(status_code=400, detail="index must be an integer")
    if isinstance(value, int):
        return value
    text = value.strip()
    # isdigit alone also accepts superscripts and other non-ASCII digits
    if not (text.isascii() and text.isdigit()):
        raise HTTPException(status_code=400, detail="index must be a decimal integer")
    return int(text)


def build_decoder(config: ServiceConfig) -> Optional[Decoder]:
    if not config.tree_path or not config.tables_path:
        logger.warning("tree_path or tables_path not configured; decoding disabled")
        return None
    return Decoder(load_tree(config.tree_path), load_tables(config.tables_path))


def create_app(
    decoder: Optional[Decoder] = None, config: Optional[ServiceConfig] = None
) -> FastAPI:
    app = FastAPI(title="Position Index API", version="0.1.0")

    config = config or load_config()
    logging.basicConfig(level=config.log_level.upper())
    if decoder is None:
        decoder = build_decoder(config)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(DecodeError, decode_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    def require_decoder() -> Decoder:
        if decoder is None:
            raise HTTPException(status_code=503, detail="decoder not configured")
        return decoder

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok" if decoder is not None else "degraded"}

    @app.get("/api/info", response_model=InfoResponse)
    async def info() -> InfoResponse:
        dec = require_decoder()
        return InfoResponse(total=str(dec.total), tree_nodes=len(dec.tree.sizes))

    @app.post("/api/decode", response_model=PositionState)
    def decode(req: DecodeRequest) -> PositionState:
        dec = require_decoder()
        index = parse_index(req.index)
        return position_state(index, dec.decode(index))

    @app.post("/api/decode/batch")
    def decode_batch(req: BatchDecodeRequest, request: Request) -> Dict[str, Any]:
        dec = require_decoder()
        if len(req.indices) > config.max_batch:
            raise HTTPException(
                status_code=413, detail=f"at most {config.max_batch} indices per batch"
            )
        request_id = getattr(request.state, "request_id", "")
        indices = [parse_index(v) for v in req.indices]
        results: List[Dict[str, Any]] = []
        for outcome in dec.decode_many(indices):
            if outcome.ok and outcome.position is not None:
                results.append(
                    {"position": position_state(outcome.index, outcome.position).model_dump()}
                )
            elif outcome.error is not None:
                results.append(
                    {
                        "index": str(outcome.index),
                        **decode_error_envelope(outcome.error, request_id),
                    }
                )
        failed = sum(1 for r in results if "error" in r)
        return {"results": results, "failed": failed}

    return app
