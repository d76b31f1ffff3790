"""Temporal decay: exponential half-life weighting of past events.

Every decayed quantity in the engine (criterion weights, outcome scores,
maturity counts) goes through ``calculate_decayed_value``.
"""

from datetime import datetime, timezone

from .errors import LearningValidationError

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_HALF_LIFE_DAYS = 90.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(value: datetime | str, field: str = "timestamp") -> datetime:
    """Coerce an ISO-8601 string or datetime to an aware UTC datetime.

    Naive values are taken to be UTC.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise LearningValidationError(field, f"not ISO-8601: {value!r}") from e
    if not isinstance(value, datetime):
        raise LearningValidationError(field, f"expected datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def age_in_days(timestamp: datetime | str, now: datetime | None = None) -> float:
    """Elapsed days since ``timestamp``, floored at zero."""
    event_time = to_datetime(timestamp)
    current = to_datetime(now, "now") if now is not None else utcnow()
    return max(0.0, (current - event_time).total_seconds() / SECONDS_PER_DAY)


def calculate_decayed_value(
    timestamp: datetime | str,
    now: datetime | None = None,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
) -> float:
    """Decay factor in (0, 1] for an event at ``timestamp``.

    Value halves every ``half_life_days``: ``0.5 ** (age / half_life)``.
    Future timestamps count as age 0 and return 1.0.

    Example:
        An event 90 days old with a 90-day half-life decays to ~0.5.
    """
    if half_life_days <= 0:
        raise LearningValidationError("half_life_days", f"must be positive, got {half_life_days}")
    return 0.5 ** (age_in_days(timestamp, now) / half_life_days)
