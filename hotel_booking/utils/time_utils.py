"""
Timestamp normalization

The schema stores naive UTC datetimes; every caller-supplied instant goes
through ``to_naive_utc`` before it is compared or written.
"""

from datetime import date, datetime, time, timezone

from ..exceptions import ValidationError


def to_naive_utc(value) -> datetime:
    """Accept a date or datetime; aware values are converted to UTC, a date means midnight."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise ValidationError("Invalid date value", {"value": str(value)})


def utc_now(value=None) -> datetime:
    """``value`` normalized, or the current naive UTC time when it is None."""
    return to_naive_utc(value) if value is not None else datetime.utcnow()
