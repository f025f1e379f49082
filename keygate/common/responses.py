"""Standard API response formats."""
from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse

from keygate.domain.schemas import RedemptionResult


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to integer milliseconds since the epoch (UTC assumed if naive)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def redemption_payload(result: RedemptionResult) -> dict[str, Any]:
    """Create the body returned by every validate entry point."""
    payload: dict[str, Any] = {"ok": True, "valid": result.valid}
    if result.reason is not None:
        payload["reason"] = result.reason
    if result.consumed_at is not None:
        payload["consumed_at"] = to_epoch_millis(result.consumed_at)
    return payload


def redemption_response(result: RedemptionResult) -> JSONResponse:
    return JSONResponse(content=redemption_payload(result))


def error_response(error: str, message: str | None = None) -> dict[str, Any]:
    """Create an error response."""
    response: dict[str, Any] = {"ok": False, "error": error}
    if message:
        response["message"] = message
    return response
