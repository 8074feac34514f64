"""
Request field checks shared by the write routes.
Every field gets its own presence check and its own type check, each with a distinct message.
"""
import math
from numbers import Number
from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import HTTPException


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=message)


def require_object(body: Any) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise bad_request("Request body is required")
    return body


def _is_missing(value: Any) -> bool:
    # Falsy strings count as missing; 0 and False do not
    return value is None or (isinstance(value, str) and value == "")


def require_string(data: Dict[str, Any], field: str) -> str:
    value = data.get(field)
    if _is_missing(value):
        raise bad_request(f"{field} is required")
    if not isinstance(value, str):
        raise bad_request(f"{field} must be a string")
    return value


def require_number(data: Dict[str, Any], field: str):
    value = data.get(field)
    if value is None:
        raise bad_request(f"{field} is required")
    if isinstance(value, bool) or not isinstance(value, Number):
        raise bad_request(f"{field} must be a number")
    # json reads 1e400 as inf; ints past float range overflow
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise bad_request(f"{field} must be a number")
    return value


def require_choice(data: Dict[str, Any], field: str, choices: Iterable[str], message: Optional[str] = None) -> str:
    value = require_string(data, field)
    choices = tuple(choices)
    if value not in choices:
        if message is None:
            quoted = " or ".join(f'"{c}"' for c in choices)
            message = f"{field} must be either {quoted}"
        raise bad_request(message)
    return value


def parse_timestamp_param(name: str, raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise bad_request(f"Invalid {name} parameter. Must be a valid Unix timestamp.")


def parse_date_range(start_date: Optional[str], end_date: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    start = parse_timestamp_param("start_date", start_date)
    end = parse_timestamp_param("end_date", end_date)
    if start is not None and end is not None and start > end:
        raise bad_request("start_date cannot be greater than end_date.")
    return start, end


def apply_date_range(query, column, start: Optional[int], end: Optional[int]):
    """Inclusive on both ends."""
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query
