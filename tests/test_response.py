import json
import math

from pydantic import BaseModel, ValidationError

from folio_server.portfolio.portfolio_service import InvalidRecoveryCode, NotFound
from folio_server.portfolio.schemas import WireFormatError
from folio_server.providers.models import ProfitData
from folio_server.recovery.recovery_code import RecoveryCodeError
from folio_server.runtime.monitoring import log_request_event
from folio_server.runtime.response import describe_error, error_body, ok_payload, to_json
from folio_server.services.base import SymbolListError


class _Shares(BaseModel):
    shares: int


def _validation_error() -> ValidationError:
    try:
        _Shares.model_validate({"shares": "many"})
    except ValidationError as error:
        return error
    raise AssertionError("expected a validation error")


def test_describe_error_maps_known_failures() -> None:
    assert describe_error(NotFound("Portfolio not found")) == (404, "NOT_FOUND", "Portfolio not found")
    assert describe_error(InvalidRecoveryCode()) == (400, "BAD_REQUEST", "INVALID_RECOVERY_CODE")
    assert describe_error(SymbolListError("Too many symbols. Maximum 50 allowed.")) == (
        400,
        "BAD_REQUEST",
        "Too many symbols. Maximum 50 allowed.",
    )
    assert describe_error(RecoveryCodeError("Recovery code has invalid length")) == (
        400,
        "BAD_REQUEST",
        "Recovery code has invalid length",
    )
    assert describe_error(WireFormatError("Malformed portfolio payload")) == (400, "BAD_REQUEST", "Malformed portfolio payload")
    status, code, message = describe_error(_validation_error())
    assert (status, code) == (400, "VALIDATION_ERROR")
    assert message.startswith("shares:")


def test_unexpected_errors_do_not_leak_details() -> None:
    assert describe_error(RuntimeError("db password is hunter2")) == (500, "INTERNAL_ERROR", "Internal server error")
    assert describe_error(ValueError("Recovery code lookup already exists")) == (
        500,
        "INTERNAL_ERROR",
        "Internal server error",
    )


def test_non_finite_numbers_are_json_safe() -> None:
    payload = json.loads(to_json({"profit": ProfitData(amount=1.0, percentage=math.inf), "ratio": math.nan}))
    assert payload == {"profit": {"amount": 1.0, "percentage": "Infinity"}, "ratio": None}


def test_ok_payload_and_error_body() -> None:
    assert json.loads(ok_payload([1, 2])) == {"data": [1, 2]}
    body = error_body("BAD_REQUEST", "nope", "/portfolios/link", "req-9")
    assert body["error"] == {"code": "BAD_REQUEST", "message": "nope", "requestId": "req-9"}
    assert body["meta"]["path"] == "/portfolios/link"


def test_request_event_is_one_json_line(capsys) -> None:
    log_request_event("GET", "/health", 200, 1.23456, "req-1")
    event = json.loads(capsys.readouterr().out)
    assert event["path"] == "/health"
    assert event["latency_ms"] == 1.235
    assert "error_code" not in event
