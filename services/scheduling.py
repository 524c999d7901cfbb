from datetime import datetime, timedelta, timezone

from platforms.errors import ValidationError

# Epoch values above this are milliseconds (JavaScript Date.getTime())
MILLISECOND_EPOCH_THRESHOLD = 1e11


def as_utc(dt):
    """Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_scheduled_at(value):
    """Accept ISO-8601 strings, Unix seconds or milliseconds, or datetimes.

    Returns an aware datetime or None.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, bool):
        raise ValidationError(f"Invalid scheduledAt: {value}")
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > MILLISECOND_EPOCH_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (ValueError, OverflowError, OSError) as e:
            raise ValidationError(f"Invalid scheduledAt: {value}") from e
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid scheduledAt: {value}") from e
    return as_utc(dt)


def ensure_min_lead(scheduled_at, minutes, label, now=None):
    """Reject schedule times closer than ``minutes`` from now."""
    if scheduled_at is None:
        return
    now = as_utc(now or datetime.now(timezone.utc))
    earliest = now + timedelta(minutes=minutes)
    if as_utc(scheduled_at) < earliest:
        raise ValidationError(
            f"{label} posts must be scheduled at least {minutes} minutes in the future."
        )


def to_unix(dt):
    return int(as_utc(dt).timestamp())
