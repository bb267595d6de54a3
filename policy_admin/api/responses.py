from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse


def success(data: dict[str, Any] | None = None, **extra: Any) -> dict[str, Any]:
    """Success envelope: {"status": "success", ...extra, "data": {...}}."""
    body: dict[str, Any] = {"status": "success", **extra}
    if data is not None:
        body["data"] = data
    return body


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    """Error envelope: {"status": "error", "message": "..."}."""
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, **extra},
    )
