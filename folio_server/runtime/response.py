"""Response shaping shared by MCP tools and HTTP routes."""

from __future__ import annotations

import json
import math
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from folio_server.portfolio.portfolio_service import PortfolioServiceError
from folio_server.portfolio.schemas import WireFormatError
from folio_server.recovery.recovery_code import RecoveryCodeError
from folio_server.services.base import SymbolListError

GENERIC_ERROR_MESSAGE = "Internal server error"


def _convert_data(data: Any) -> Any:
    if is_dataclass(data) and not isinstance(data, type):
        return _convert_data(asdict(data))
    if isinstance(data, list):
        return [_convert_data(item) for item in data]
    if isinstance(data, dict):
        return {key: _convert_data(value) for key, value in data.items()}
    if isinstance(data, float) and not math.isfinite(data):
        # JSON has no Infinity/NaN.
        return None if math.isnan(data) else ("Infinity" if data > 0 else "-Infinity")
    return data


def to_json(data: Any) -> str:
    return json.dumps(_convert_data(data), ensure_ascii=True)


def ok_payload(data: Any) -> str:
    return to_json({"data": data})


def error_body(code: str, message: str, path: str, request_id: str | None = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if request_id:
        error["requestId"] = request_id
    return {
        "error": error,
        "meta": {"path": path, "timestamp": datetime.now(timezone.utc).isoformat()},
    }


def describe_error(error: Exception) -> tuple[int, str, str]:
    """Map an exception to ``(status, code, message)`` without leaking internals."""
    if isinstance(error, ValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}" for item in error.errors()
        )
        return 400, "VALIDATION_ERROR", message
    if isinstance(error, PortfolioServiceError):
        return error.status, error.code, error.message
    if isinstance(error, (RecoveryCodeError, SymbolListError, WireFormatError)):
        return 400, "BAD_REQUEST", str(error)
    return 500, "INTERNAL_ERROR", GENERIC_ERROR_MESSAGE
