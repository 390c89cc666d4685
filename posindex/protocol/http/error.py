from __future__ import annotations

import logging
from typing import Any, Dict, cast

from fastapi import Request
from fastapi import HTTPException as FastAPIHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from ...unrank.errors import CALLER_ERROR, DecodeError


logger = logging.getLogger(__name__)


def error_envelope(
    *,
    code: str,
    message: str,
    err_type: str,
    request_id: str,
    kind: str | None = None,
    field_errors: list[dict[str, str]] | None = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "type": err_type,
            "request_id": request_id,
        }
    }
    if kind:
        payload["error"]["kind"] = kind
    if field_errors:
        payload["error"]["field_errors"] = field_errors
    return payload


def decode_error_envelope(exc: DecodeError, request_id: str) -> Dict[str, Any]:
    return error_envelope(
        code=exc.code,
        message=exc.message,
        err_type="client_error" if exc.kind == CALLER_ERROR else "server_error",
        request_id=request_id,
        kind=exc.kind,
    )


def decode_status(exc: DecodeError) -> int:
    if exc.kind == CALLER_ERROR:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def decode_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "")
    err = cast(DecodeError, exc)
    if err.kind != CALLER_ERROR:
        # Tree, tables or decoder are broken; the caller can't fix this
        logger.error(
            "decode failed",
            extra={"request_id": request_id, "code": err.code, "context": err.context},
        )
    return JSONResponse(
        status_code=decode_status(err), content=decode_error_envelope(err, request_id)
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "")
    if isinstance(exc, FastAPIHTTPException):
        status_code = exc.status_code
        payload = error_envelope(
            code=_status_to_code(status_code),
            message=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            err_type="client_error" if 400 <= status_code < 500 else "server_error",
            request_id=request_id,
        )
        return JSONResponse(status_code=status_code, content=payload)
    return await exception_handler(request, exc)


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "")
    logger.exception("Unhandled exception", extra={"request_id": request_id})
    payload = error_envelope(
        code="internal_error",
        message="Internal Server Error",
        err_type="server_error",
        request_id=request_id,
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


async def request_validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "")
    errors = []
    rve = cast(RequestValidationError, exc)
    for e in rve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []) if p is not None)
        errors.append(
            {
                "field": loc,
                "code": e.get("type", "value_error"),
                "message": e.get("msg", "invalid value"),
            }
        )
    payload = error_envelope(
        code="unprocessable_entity",
        message="Validation error",
        err_type="client_error",
        request_id=request_id,
        field_errors=errors or None,
    )
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=payload)


def _status_to_code(status_code: int) -> str:
    if status_code == status.HTTP_404_NOT_FOUND:
        return "not_found"
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "bad_request"
    if status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE:
        return "too_large"
    if status_code == status.HTTP_422_UNPROCESSABLE_ENTITY:
        return "unprocessable_entity"
    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        return "unavailable"
    if 500 <= status_code < 600:
        return "internal_error"
    return "error"
