from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional
from flask import request

from kkbshop.app.common.errors import abort_json


def get_json() -> Dict[str, Any]:
    if not request.is_json:
        abort_json(400, "invalid_json", "Request must be application/json")
    data = request.get_json(silent=True)
    if data is None or not isinstance(data, dict):
        abort_json(400, "invalid_json", "Malformed JSON body")
    return data


def require_fields(data: Dict[str, Any], fields: Iterable[str]) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        abort_json(400, "validation_error", "Missing required fields", {"missing": missing})


def get_int(data: Dict[str, Any], field: str, minimum: Optional[int] = None, default: Any = None) -> Optional[int]:
    value = data.get(field)
    if value is None:
        value = default
    if value is None:
        return None
    if isinstance(value, bool):
        abort_json(400, "validation_error", f"'{field}' must be an integer")
    if isinstance(value, float) and not value.is_integer():
        abort_json(400, "validation_error", f"'{field}' must be an integer")
    try:
        value = int(value)
    except (TypeError, ValueError):
        abort_json(400, "validation_error", f"'{field}' must be an integer")
    if minimum is not None and value < minimum:
        abort_json(400, "validation_error", f"'{field}' must be >= {minimum}")
    return value


def get_decimal(data: Dict[str, Any], field: str, minimum: Optional[Decimal] = None, maximum: Optional[Decimal] = None) -> Optional[Decimal]:
    value = data.get(field)
    if value is None:
        return None
    if isinstance(value, bool):
        abort_json(400, "validation_error", f"'{field}' must be a number")
    try:
        value = Decimal(str(value))
    except InvalidOperation:
        abort_json(400, "validation_error", f"'{field}' must be a number")
    if not value.is_finite():
        abort_json(400, "validation_error", f"'{field}' must be a number")
    if minimum is not None and value < minimum:
        abort_json(400, "validation_error", f"'{field}' must be >= {minimum}")
    if maximum is not None and value > maximum:
        abort_json(400, "validation_error", f"'{field}' must be <= {maximum}")
    return value


def get_bool(data: Dict[str, Any], field: str, default: Optional[bool] = None) -> Optional[bool]:
    value = data.get(field, default)
    if value is None or isinstance(value, bool):
        return value
    abort_json(400, "validation_error", f"'{field}' must be a boolean")


def get_str(data: Dict[str, Any], field: str, max_length: Optional[int] = None) -> Optional[str]:
    """Stripped string or None when missing/blank."""
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        abort_json(400, "validation_error", f"'{field}' must be a string")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        abort_json(400, "validation_error", f"'{field}' must be at most {max_length} characters")
    return value or None


def one_of(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = tuple(choices)
    if value not in choices:
        abort_json(400, "validation_error", f"'{field}' must be one of {', '.join(choices)}")
    return value


def get_datetime(data: Dict[str, Any], field: str, end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date or datetime.

    A bare date (YYYY-MM-DD) means midnight, or 23:59:59 when `end_of_day`
    is set so that an end date includes the whole day.
    """
    value = data.get(field)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        abort_json(400, "validation_error", f"'{field}' must be an ISO date")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        abort_json(400, "validation_error", f"'{field}' must be an ISO date")
    if parsed.tzinfo is not None:
        # Stored naive UTC
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    if len(value) == 10 and end_of_day:
        parsed = datetime.combine(parsed.date(), time(23, 59, 59))
    return parsed


def get_paging(default_limit: int, max_limit: int) -> tuple[int, int]:
    try:
        limit = int(request.args.get("limit", default_limit))
        offset = int(request.args.get("offset", 0))
    except ValueError:
        abort_json(400, "validation_error", "limit/offset must be integers")
    return max(1, min(limit, max_limit)), max(0, offset)
