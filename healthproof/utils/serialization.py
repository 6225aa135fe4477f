from datetime import timezone


def iso(dt):
    """ISO-8601 string for a datetime/date, assuming UTC for naive datetimes."""
    if dt is None:
        return None
    if hasattr(dt, 'tzinfo') and dt.tzinfo is None and hasattr(dt, 'hour'):
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def as_utc(dt):
    """SQLite hands back naive datetimes even for timezone-aware columns."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)
