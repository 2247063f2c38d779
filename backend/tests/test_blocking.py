from datetime import timedelta

import pytest

from conftest import NOW
from anonbox.core.blocking import (
    BlockReason,
    add_block,
    block_reason_text,
    is_blocked,
    list_blocks,
    remove_block,
)
from anonbox.core.errors import ConflictError, ValidationError
from anonbox.core.identity import hash_sender_address
from anonbox.models.block import BlockEntry

H1 = hash_sender_address("203.0.113.7")
H2 = hash_sender_address("198.51.100.1")


def test_add_then_is_blocked(db, alice):
    entry = add_block(db, alice.id, H1, reason="harassment")

    assert entry.reason == "harassment"
    assert entry.blocked_label == f"Sender {H1[:8]}"
    assert is_blocked(db, alice.id, H1)
    assert not is_blocked(db, alice.id, H2)


def test_duplicate_add_conflicts_and_keeps_one_row(db, alice):
    add_block(db, alice.id, H1)
    with pytest.raises(ConflictError):
        add_block(db, alice.id, H1, reason="spam")

    assert db.query(BlockEntry).filter_by(user_id=alice.id, blocked_identity=H1).count() == 1


def test_same_identity_blocked_by_two_recipients(db, alice, bob):
    add_block(db, alice.id, H1)
    add_block(db, bob.id, H1)
    assert is_blocked(db, bob.id, H1)


def test_reason_defaults_to_other(db, alice):
    assert add_block(db, alice.id, H1).reason == BlockReason.OTHER.value


def test_invalid_reason_rejected(db, alice):
    with pytest.raises(ValidationError):
        add_block(db, alice.id, H1, reason="annoying")
    assert not is_blocked(db, alice.id, H1)


def test_raw_address_rejected(db, alice):
    with pytest.raises(ValidationError):
        add_block(db, alice.id, "203.0.113.7")


def test_label_from_message_id(db, alice):
    entry = add_block(db, alice.id, H1, message_id="0f1e2d3c-aaaa-bbbb")
    assert entry.blocked_label == "Message 0f1e2d3c"


def test_remove_unblocks(db, alice):
    entry = add_block(db, alice.id, H1)
    assert remove_block(db, alice.id, entry.id)
    assert not is_blocked(db, alice.id, H1)


def test_remove_is_owner_scoped(db, alice, bob):
    entry = add_block(db, alice.id, H1)
    assert not remove_block(db, bob.id, entry.id)
    assert is_blocked(db, alice.id, H1)


def test_list_most_recent_first(db, alice, bob):
    older = add_block(db, alice.id, H1)
    newer = add_block(db, alice.id, H2)
    add_block(db, bob.id, H1)
    older.created_at = NOW - timedelta(days=1)
    newer.created_at = NOW
    db.commit()

    assert [b.id for b in list_blocks(db, alice.id)] == [newer.id, older.id]


def test_reason_text():
    assert block_reason_text("inappropriate_content") == "Inappropriate Content"
    assert block_reason_text("bogus") == "Unknown"


def test_to_dict_uses_wire_names(db, alice):
    body = add_block(db, alice.id, H1, reason="spam").to_dict()
    assert body["blocked_ip_hash"] == H1
    assert body["reason"] == "spam"
    assert body["blocked_identifier"].startswith("Sender ")
