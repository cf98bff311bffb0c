"""Logging setup and structured request events."""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)


def new_request_id() -> str:
    return str(uuid.uuid4())


def log_request_event(
    method: str,
    path: str,
    status: int,
    latency_ms: float,
    request_id: str,
    error_code: str | None = None,
) -> None:
    payload: dict[str, object] = {
        "method": method,
        "path": path,
        "status": status,
        "latency_ms": round(latency_ms, 3),
        "request_id": request_id,
        "timestamp": int(time.time()),
    }
    if error_code:
        payload["error_code"] = error_code
    print(json.dumps(payload, ensure_ascii=True))
