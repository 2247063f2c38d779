# anonbox/core/pipeline.py

"""
One accept/reject decision per inbound anonymous message.

Steps run strictly in order and stop at the first rejection:

    Received -> (validate) -> IdentityResolved -> BlockChecked -> RateChecked -> Accepted

Validation and recipient lookup come first so malformed requests cost no
identity or store work. Block check, rate check and insert share one
transaction under the per-pair window lock. Nothing is persisted unless
the outcome is Accepted, and any store failure rejects (fail closed).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anonbox.core.blocking import is_blocked
from anonbox.core.identity import identity_for_request, sender_label
from anonbox.core.message import store_message
from anonbox.core.message_logic import as_naive_utc, normalize_content, utcnow, MAX_CONTENT_LENGTH
from anonbox.core.rate_limit import RateLimiter, acquire_window_lock
from anonbox.core.user import get_user_by_username

logger = logging.getLogger(__name__)


class IngestionState(str, Enum):
    RECEIVED = "received"
    IDENTITY_RESOLVED = "identity_resolved"
    BLOCK_CHECKED = "block_checked"
    RATE_CHECKED = "rate_checked"
    ACCEPTED = "accepted"
    REJECTED_VALIDATION = "rejected_validation"
    REJECTED_BLOCKED = "rejected_blocked"
    REJECTED_RATE_LIMITED = "rejected_rate_limited"
    REJECTED_UNAVAILABLE = "rejected_unavailable"


class RejectReason(str, Enum):
    INVALID_CONTENT = "invalid_content"
    UNKNOWN_RECIPIENT = "unknown_recipient"
    BLOCKED = "blocked"
    RATE_LIMITED = "rate_limited"
    STORE_UNAVAILABLE = "store_unavailable"


# Terminal state for each rejection
REJECT_STATES = {
    RejectReason.INVALID_CONTENT: IngestionState.REJECTED_VALIDATION,
    RejectReason.UNKNOWN_RECIPIENT: IngestionState.REJECTED_VALIDATION,
    RejectReason.BLOCKED: IngestionState.REJECTED_BLOCKED,
    RejectReason.RATE_LIMITED: IngestionState.REJECTED_RATE_LIMITED,
    RejectReason.STORE_UNAVAILABLE: IngestionState.REJECTED_UNAVAILABLE,
}


@dataclass(frozen=True)
class StepResult:
    allowed: bool
    reason: RejectReason | None = None
    detail: str | None = None
    retry_after: int | None = None

    @classmethod
    def allow(cls) -> "StepResult":
        return cls(allowed=True)

    @classmethod
    def reject(cls, reason: RejectReason, detail: str | None = None, retry_after: int | None = None) -> "StepResult":
        return cls(allowed=False, reason=reason, detail=detail, retry_after=retry_after)


@dataclass
class IngestionOutcome:
    state: IngestionState
    reason: RejectReason | None = None
    detail: str | None = None
    retry_after: int | None = None
    message_id: str | None = None
    remaining: int | None = None
    trail: list[IngestionState] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.state is IngestionState.ACCEPTED


@dataclass
class _Submission:
    recipient_username: str
    content: str
    sender_raw_address: str
    now: datetime
    recipient_id: str | None = None
    sender_identity: str | None = None
    remaining: int | None = None


class IngestionPipeline:
    def __init__(self, rate_limiter: RateLimiter | None = None):
        self.rate_limiter = rate_limiter or RateLimiter()

    # ---------- STEPS ----------

    def validate(self, db: Session, sub: _Submission) -> StepResult:
        content = normalize_content(sub.content)
        if content is None:
            return StepResult.reject(
                RejectReason.INVALID_CONTENT,
                f"Message must be between 1 and {MAX_CONTENT_LENGTH} characters",
            )
        sub.content = content

        recipient = get_user_by_username(db, sub.recipient_username)
        if recipient is None:
            return StepResult.reject(RejectReason.UNKNOWN_RECIPIENT, "Recipient not found")
        sub.recipient_id = recipient.id
        return StepResult.allow()

    def resolve_identity(self, db: Session, sub: _Submission) -> StepResult:
        sub.sender_identity = identity_for_request(sub.sender_raw_address, sub.now.date())
        return StepResult.allow()

    def check_block(self, db: Session, sub: _Submission) -> StepResult:
        acquire_window_lock(db, sub.sender_identity, sub.recipient_id)
        if is_blocked(db, sub.recipient_id, sub.sender_identity):
            return StepResult.reject(RejectReason.BLOCKED)
        return StepResult.allow()

    def check_rate(self, db: Session, sub: _Submission) -> StepResult:
        decision = self.rate_limiter.check(db, sub.sender_identity, sub.recipient_id, sub.now)
        if not decision.allowed:
            return StepResult.reject(RejectReason.RATE_LIMITED, retry_after=decision.retry_after)
        sub.remaining = decision.remaining - 1
        return StepResult.allow()

    # ---------- RUN ----------

    def run(
        self,
        db: Session,
        recipient_username: str,
        content: str,
        sender_raw_address: str,
        now: datetime | None = None,
    ) -> IngestionOutcome:
        sub = _Submission(
            recipient_username=recipient_username,
            content=content,
            sender_raw_address=sender_raw_address,
            now=as_naive_utc(now) if now else utcnow(),
        )
        trail = [IngestionState.RECEIVED]
        steps = (
            (self.validate, None),
            (self.resolve_identity, IngestionState.IDENTITY_RESOLVED),
            (self.check_block, IngestionState.BLOCK_CHECKED),
            (self.check_rate, IngestionState.RATE_CHECKED),
        )

        try:
            for step, reached in steps:
                result = step(db, sub)
                if not result.allowed:
                    db.rollback()
                    return self._rejected(result, sub, trail)
                if reached is not None:
                    trail.append(reached)

            message = store_message(db, sub.recipient_id, sub.sender_identity, sub.content, created_at=sub.now)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            # Store detail stays server-side; the sender only learns it failed
            logger.error("Ingestion failed at %s: %s", trail[-1].value, e)
            return self._rejected(StepResult.reject(RejectReason.STORE_UNAVAILABLE), sub, trail)

        trail.append(IngestionState.ACCEPTED)
        logger.info("Accepted message %s for recipient %s from %s",
                    message.id, sub.recipient_id, sender_label(sub.sender_identity))
        return IngestionOutcome(
            state=IngestionState.ACCEPTED,
            message_id=message.id,
            remaining=sub.remaining,
            trail=trail,
        )

    def _rejected(self, result: StepResult, sub: _Submission, trail: list) -> IngestionOutcome:
        state = REJECT_STATES[result.reason]
        trail.append(state)
        if sub.sender_identity:
            logger.info("Rejected message from %s: %s", sender_label(sub.sender_identity), result.reason.value)
        else:
            logger.info("Rejected message before identity resolution: %s", result.reason.value)
        return IngestionOutcome(
            state=state,
            reason=result.reason,
            detail=result.detail,
            retry_after=result.retry_after,
            trail=trail,
        )
