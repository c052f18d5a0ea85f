"""JSON envelope shared by the HTTP route and the cache warm-up job."""

from __future__ import annotations

import json
from typing import Any, Sequence

from fastapi.responses import Response

from pipelines.model import ChangeResult

CACHE_MAX_AGE_SECONDS = 6 * 60 * 60
UNAVAILABLE_ERROR = "unavailable"
DEBUG_KEY = "__debug"


def response_headers(max_age: int = CACHE_MAX_AGE_SECONDS) -> dict[str, str]:
    return {
        "content-type": "application/json; charset=utf-8",
        "cache-control": f"public, max-age={max_age}",
        "access-control-allow-origin": "*",
    }


def encode_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def success_payload(result: ChangeResult, logs: Sequence[str] | None = None) -> dict[str, Any]:
    payload = result.to_payload()
    if logs is not None:
        payload[DEBUG_KEY] = {"logs": list(logs)}
    return payload


def error_payload(logs: Sequence[str] | None = None) -> dict[str, Any]:
    """Generic failure body; upstream detail is only attached when ``logs`` is given."""

    payload: dict[str, Any] = {"error": UNAVAILABLE_ERROR}
    if logs is not None:
        payload[DEBUG_KEY] = {"logs": list(logs)}
    return payload


def json_response(body: bytes, *, status_code: int = 200) -> Response:
    return Response(content=body, status_code=status_code, headers=response_headers())


__all__ = [
    "CACHE_MAX_AGE_SECONDS",
    "DEBUG_KEY",
    "UNAVAILABLE_ERROR",
    "encode_json",
    "error_payload",
    "json_response",
    "response_headers",
    "success_payload",
]
