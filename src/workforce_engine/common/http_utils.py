from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from flask import request

from ..core.exceptions import ValidationError
from ..core.identity import Actor, actor_for
from .datetime_utils import parse_iso_date, parse_iso_datetime

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def current_actor() -> Actor:
    """Identity is resolved upstream (gateway / auth service) and forwarded as headers."""
    return actor_for(
        request.headers.get(ACTOR_ID_HEADER, ""),
        request.headers.get(ACTOR_ROLE_HEADER, ""),
    )


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_date(value) -> Optional[date]:
    return parse_iso_date(value) if value else None


def optional_datetime(value) -> Optional[datetime]:
    return parse_iso_datetime(value) if value else None


def required(data: dict, key: str):
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{key} is required")
    return value


def as_int(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def optional_int(value, field_name: str) -> Optional[int]:
    return None if value in (None, "") else as_int(value, field_name)
