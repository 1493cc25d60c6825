from datetime import datetime, time, timedelta, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (UTC). Already-aware datetimes pass through.

    MongoDB stores datetimes without tzinfo (naive). Wrap values read from
    documents before comparing them with utcnow().
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def as_utc(value):
    """None-safe UTC conversion for JSON serialization; non-datetimes pass through."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return value


def parse_utc(value: str | datetime) -> datetime:
    """Parse an ISO 8601 string (with or without Z/offset) into a tz-aware UTC datetime."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))


def local_day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return [start of today, start of tomorrow) in the server's local timezone.

    Both midnights are resolved separately so each gets the UTC offset in force
    at that moment (DST change days are 23 or 25 hours long).
    """
    local_date = ensure_utc(now).astimezone().date()
    start = datetime.combine(local_date, time.min)
    return start.astimezone(), (start + timedelta(days=1)).astimezone()


def parse_csv_ints(raw: str | None) -> list[int]:
    """Parse ``"8,82,abc,,0"`` into ``[8, 82]``; junk and zero entries are dropped."""
    values: list[int] = []
    for token in (raw or "").split(","):
        token = token.strip()
        if not token:
            continue
        try:
            value = int(token)
        except ValueError:
            continue
        if value:
            values.append(value)
    return values


def parse_csv_strings(raw: str | None) -> list[str]:
    return [token.strip() for token in (raw or "").split(",") if token.strip()]


def parse_positive_id(raw: str | int, label: str = "ID") -> int:
    """Return a positive integer ID or raise ValueError."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {label} format") from None
    if value <= 0:
        raise ValueError(f"Invalid {label} format")
    return value
