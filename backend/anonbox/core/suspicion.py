# anonbox/core/suspicion.py

"""
Advisory classification of a sender's recent history.

Runs when the recipient reads their inbox, never on the send path: a
verdict only informs the recipient and may suggest a block.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable
from sqlalchemy.orm import Session

from anonbox.core.config import get_settings
from anonbox.core.identity import sender_label
from anonbox.core.message import sender_history
from anonbox.core.message_logic import as_naive_utc


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


SEVERITY_ORDER = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


@dataclass(frozen=True)
class SuspicionThresholds:
    window: timedelta = timedelta(hours=1)
    hourly_high: int = 5        # more than this in the window -> high
    hourly_medium: int = 3      # at least this in the window -> medium
    burst_window: timedelta = timedelta(minutes=10)
    burst_max: int = 3          # more than this in the burst window -> high

    @classmethod
    def from_settings(cls) -> "SuspicionThresholds":
        s = get_settings()
        return cls(
            window=timedelta(seconds=s.SUSPICION_WINDOW_SECONDS),
            hourly_high=s.SUSPICION_HOURLY_HIGH,
            hourly_medium=s.SUSPICION_HOURLY_MEDIUM,
            burst_window=timedelta(seconds=s.SUSPICION_BURST_WINDOW_SECONDS),
            burst_max=s.SUSPICION_BURST_MAX,
        )


@dataclass(frozen=True)
class SuspiciousActivityVerdict:
    is_suspicious: bool
    severity: Severity
    reason: str | None = None
    suggest_block: bool = False

    def to_dict(self) -> dict:
        return {
            "is_suspicious": self.is_suspicious,
            "severity": self.severity.value,
            "reason": self.reason,
            "suggest_block": self.suggest_block,
        }


NOT_SUSPICIOUS = SuspiciousActivityVerdict(is_suspicious=False, severity=Severity.LOW)


def _created_at(item) -> datetime:
    if isinstance(item, datetime):
        return as_naive_utc(item)
    return as_naive_utc(item.created_at)


def _count_since(timestamps: list[datetime], start: datetime, now: datetime) -> int:
    return sum(1 for ts in timestamps if start < ts <= now)


def classify(
    history: Iterable,
    now: datetime,
    thresholds: SuspicionThresholds | None = None,
) -> SuspiciousActivityVerdict:
    """
    Classify the history of one sender identity against one recipient.

    ``history`` holds messages (anything with ``created_at``) or bare
    datetimes. Rules are checked high to low, first match wins.
    """
    thresholds = thresholds or SuspicionThresholds.from_settings()
    now = as_naive_utc(now)
    timestamps = [_created_at(item) for item in history]

    in_window = _count_since(timestamps, now - thresholds.window, now)
    if in_window > thresholds.hourly_high:
        return SuspiciousActivityVerdict(
            is_suspicious=True,
            severity=Severity.HIGH,
            reason="Multiple messages in short time period",
            suggest_block=True,
        )

    in_burst = _count_since(timestamps, now - thresholds.burst_window, now)
    if in_burst > thresholds.burst_max:
        return SuspiciousActivityVerdict(
            is_suspicious=True,
            severity=Severity.HIGH,
            reason="Rapid message flooding detected",
            suggest_block=True,
        )

    if in_window >= thresholds.hourly_medium:
        return SuspiciousActivityVerdict(
            is_suspicious=True,
            severity=Severity.MEDIUM,
            reason="High message frequency",
            suggest_block=False,
        )

    return NOT_SUSPICIOUS


@dataclass(frozen=True)
class SuspiciousSender:
    sender_identity: str
    severity: Severity
    reason: str
    suggest_block: bool
    message_count: int

    @property
    def sender_label(self) -> str:
        return sender_label(self.sender_identity)

    def to_dict(self) -> dict:
        return {
            "sender_ip_hash": self.sender_identity,
            "sender_label": self.sender_label,
            "severity": self.severity.value,
            "reason": self.reason,
            "suggest_block": self.suggest_block,
            "message_count": self.message_count,
        }


def scan_inbox(messages: Iterable, now: datetime, thresholds: SuspicionThresholds | None = None):
    """Classify every sender in an inbox; suspicious ones first by severity."""
    thresholds = thresholds or SuspicionThresholds.from_settings()
    now = as_naive_utc(now)
    by_sender = defaultdict(list)
    for message in messages:
        by_sender[message.sender_identity].append(message)

    found = []
    for identity, history in by_sender.items():
        verdict = classify(history, now, thresholds)
        if verdict.is_suspicious:
            found.append(SuspiciousSender(
                sender_identity=identity,
                severity=verdict.severity,
                reason=verdict.reason or "Unusual activity detected",
                suggest_block=verdict.suggest_block,
                message_count=_count_since(
                    [_created_at(m) for m in history], now - thresholds.window, now
                ),
            ))

    found.sort(key=lambda s: SEVERITY_ORDER[s.severity], reverse=True)
    return found


def scan_senders(
    db: Session,
    recipient_id: str,
    sender_identities: Iterable[str],
    now: datetime,
    thresholds: SuspicionThresholds | None = None,
):
    """
    Like ``scan_inbox``, but each sender is judged on their full trailing
    history with the recipient, so reading or paging the inbox does not
    change the verdict.
    """
    thresholds = thresholds or SuspicionThresholds.from_settings()
    now = as_naive_utc(now)
    since = now - max(thresholds.window, thresholds.burst_window)
    history = []
    for identity in set(sender_identities):
        history.extend(sender_history(db, identity, recipient_id, since))
    return scan_inbox(history, now, thresholds)
