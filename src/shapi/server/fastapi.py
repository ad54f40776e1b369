"""FastAPI glue: reply to a request with an ApiResponse produced by server logic."""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse

from shapi.api.response import ApiResponse
from shapi.config import get_settings
from shapi.server.dispatch import dispatch


def reply(
    response: ApiResponse[Any, Any],
    result_type: Any = Any,
    error_type: Any = Any,
    *,
    error_status: int | None = None,
) -> JSONResponse:
    """
    Ok -> 200, RequestErr -> the designated error status.
    Err raises ServerContractViolation; no response is produced for it.
    """
    status = error_status if error_status is not None else get_settings().error_status
    r = dispatch(response, result_type, error_type, error_status=status)
    return JSONResponse(status_code=r.status_code, content=r.body)
