from datetime import timedelta

from conftest import NOW
from anonbox.core.identity import hash_sender_address
from anonbox.core.rate_limit import RateLimiter, acquire_window_lock

SENDER = "203.0.113.7"


def test_allows_below_ceiling(db, alice, seed_messages):
    seed_messages(alice, SENDER, [NOW - timedelta(minutes=10), NOW - timedelta(minutes=5)])

    decision = RateLimiter(max_messages=3, window_seconds=3600).check(
        db, hash_sender_address(SENDER), alice.id, NOW
    )
    assert decision.allowed
    assert decision.remaining == 1


def test_rejects_at_ceiling_with_retry_after(db, alice, seed_messages):
    seed_messages(alice, SENDER, [
        NOW - timedelta(minutes=50),
        NOW - timedelta(minutes=20),
        NOW - timedelta(minutes=1),
    ])

    decision = RateLimiter(max_messages=3, window_seconds=3600).check(
        db, hash_sender_address(SENDER), alice.id, NOW
    )
    assert not decision.allowed
    # Oldest message leaves the window in 10 minutes
    assert decision.retry_after == 600
    assert decision.reset_at == NOW + timedelta(minutes=10)


def test_retry_after_over_ceiling_waits_for_enough_rows_to_expire(db, alice, seed_messages):
    # Five rows against a ceiling of three, e.g. after the ceiling was lowered
    seed_messages(alice, SENDER, [
        NOW - timedelta(minutes=50),
        NOW - timedelta(minutes=40),
        NOW - timedelta(minutes=30),
        NOW - timedelta(minutes=20),
        NOW - timedelta(minutes=10),
    ])

    limiter = RateLimiter(max_messages=3, window_seconds=3600)
    decision = limiter.check(db, hash_sender_address(SENDER), alice.id, NOW)
    assert not decision.allowed
    # Two rows must leave before the count drops below three
    assert decision.retry_after == 30 * 60
    assert decision.reset_at == NOW + timedelta(minutes=30)

    # One row aged out is not enough
    assert not limiter.check(db, hash_sender_address(SENDER), alice.id, NOW + timedelta(minutes=15)).allowed
    later = decision.reset_at + timedelta(seconds=1)
    assert limiter.check(db, hash_sender_address(SENDER), alice.id, later).allowed


def test_scoped_per_recipient(db, alice, bob, seed_messages):
    seed_messages(alice, SENDER, [NOW - timedelta(minutes=i) for i in (1, 2, 3)])
    limiter = RateLimiter(max_messages=3, window_seconds=3600)
    identity = hash_sender_address(SENDER)

    assert not limiter.check(db, identity, alice.id, NOW).allowed
    assert limiter.check(db, identity, bob.id, NOW).allowed


def test_scoped_per_identity(db, alice, seed_messages):
    seed_messages(alice, SENDER, [NOW - timedelta(minutes=i) for i in (1, 2, 3)])
    decision = RateLimiter(max_messages=3).check(db, hash_sender_address("198.51.100.1"), alice.id, NOW)
    assert decision.allowed


def test_messages_outside_window_do_not_count(db, alice, seed_messages):
    seed_messages(alice, SENDER, [
        NOW - timedelta(hours=2),
        NOW - timedelta(minutes=61),
        NOW - timedelta(minutes=30),
    ])
    decision = RateLimiter(max_messages=3, window_seconds=3600).check(
        db, hash_sender_address(SENDER), alice.id, NOW
    )
    assert decision.allowed
    assert decision.remaining == 2


def test_window_start_is_inclusive(db, alice, seed_messages):
    seed_messages(alice, SENDER, [
        NOW - timedelta(hours=1),
        NOW - timedelta(minutes=30),
        NOW - timedelta(minutes=10),
    ])
    decision = RateLimiter(max_messages=3, window_seconds=3600).check(
        db, hash_sender_address(SENDER), alice.id, NOW
    )
    assert not decision.allowed
    assert decision.retry_after == 1


def test_defaults_come_from_settings():
    limiter = RateLimiter()
    assert limiter.max_messages == 3
    assert limiter.window == timedelta(hours=1)


def test_window_lock_is_noop_on_sqlite(db, alice):
    assert acquire_window_lock(db, hash_sender_address(SENDER), alice.id) is False
