import re
from datetime import datetime, timezone

from flask import request

from utils.errors import ValidationError

_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def json_body() -> dict:
    """Return the request JSON object; an empty body counts as ``{}``."""
    if not request.get_data(cache=True):
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a valid JSON object")
    return data


def parse_timestamp(value, field: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive UTC datetime."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={field: "Invalid timestamp format"})
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Invalid {field}", details={field: "Invalid timestamp format"})
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_day(value, field: str = "date") -> datetime:
    if not isinstance(value, str) or not _DAY.match(value):
        raise ValidationError("Date must be in YYYY-MM-DD format", details={field: value})
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValidationError("Date must be in YYYY-MM-DD format", details={field: value})


def parse_int_arg(name: str, default: int, minimum: int = None, maximum: int = None) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", details={name: raw})
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}", details={name: value})
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name} cannot exceed {maximum}", details={name: value})
    return value


def optional_str(data: dict, field: str, max_len: int = None):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: value})
    value = value.strip()
    if max_len is not None and len(value) > max_len:
        raise ValidationError(f"{field} must be at most {max_len} characters")
    return value or None
