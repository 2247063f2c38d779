from datetime import datetime, timezone

MAX_CONTENT_LENGTH = 500


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def normalize_content(content) -> str | None:
    """Trimmed content if it is a non-empty string within the length limit, else None."""
    if not isinstance(content, str):
        return None
    content = content.strip()
    if not content or len(content) > MAX_CONTENT_LENGTH:
        return None
    return content
