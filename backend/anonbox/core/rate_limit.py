# anonbox/core/rate_limit.py

"""
Per-recipient sliding-window limit on accepted messages.

The limiter keeps no counters of its own: it counts rows in ``messages``
for one (sender identity, recipient) pair, so it can never drift from the
data it guards. The count and the insert that follows must share one
transaction; ``acquire_window_lock`` serializes that sequence per pair on
PostgreSQL. Other backends get best-effort enforcement.
"""

import hashlib
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from sqlalchemy import text
from sqlalchemy.orm import Session

from anonbox.core.config import get_settings
from anonbox.core.identity import sender_label
from anonbox.core.message import window_count, window_created_at
from anonbox.core.message_logic import as_naive_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int = 0
    retry_after: int | None = None
    reset_at: datetime | None = None


def _lock_key(sender_identity: str, recipient_id: str) -> int:
    digest = hashlib.sha256(f"{sender_identity}:{recipient_id}".encode()).digest()
    # pg_advisory_xact_lock takes a signed bigint
    return int.from_bytes(digest[:8], "big", signed=True)


def acquire_window_lock(db: Session, sender_identity: str, recipient_id: str) -> bool:
    """
    Take a transaction-scoped lock on the (identity, recipient) window.
    Released automatically on commit or rollback. Returns False when the
    backend has no such lock.
    """
    if db.get_bind().dialect.name != "postgresql":
        return False
    db.execute(
        text("SELECT pg_advisory_xact_lock(:key)"),
        {"key": _lock_key(sender_identity, recipient_id)},
    )
    return True


class RateLimiter:
    def __init__(self, max_messages: int | None = None, window_seconds: int | None = None):
        settings = get_settings()
        self.max_messages = settings.RATE_LIMIT_MAX if max_messages is None else max_messages
        self.window = timedelta(
            seconds=settings.RATE_LIMIT_WINDOW_SECONDS if window_seconds is None else window_seconds
        )

    def window_start(self, now: datetime) -> datetime:
        return as_naive_utc(now) - self.window

    def check(self, db: Session, sender_identity: str, recipient_id: str, now: datetime) -> RateDecision:
        """Decide without recording anything; the pipeline's insert is the record."""
        now = as_naive_utc(now)
        since = self.window_start(now)
        count = window_count(db, sender_identity, recipient_id, since)

        if count < self.max_messages:
            return RateDecision(allowed=True, remaining=self.max_messages - count)

        # The window reopens once all but max_messages - 1 rows have aged out
        governing = window_created_at(db, sender_identity, recipient_id, since, count - self.max_messages)
        reset_at = (governing or now) + self.window
        retry_after = max(1, math.ceil((reset_at - now).total_seconds()))
        logger.info(
            "Rate limit hit for %s -> recipient %s (%d in window)",
            sender_label(sender_identity), recipient_id, count,
        )
        return RateDecision(allowed=False, remaining=0, retry_after=retry_after, reset_at=reset_at)
