from datetime import datetime, timezone

# All timestamps are stored as naive UTC (SQLite drops tzinfo anyway)
def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
