import pytest

from conftest import NOW
from anonbox.core.errors import AuthorizationError, NotFoundError, ValidationError
from anonbox.core.identity import hash_sender_address
from anonbox.core.reports import ReportReason, report_reason_text, submit_report
from anonbox.models.report import Report


@pytest.fixture
def message(alice, seed_messages):
    return seed_messages(alice, "203.0.113.7", [NOW])[0]


def test_report_resolves_sender_identity(db, alice, message):
    report = submit_report(db, message.id, alice.id, "harassment", "kept messaging me")

    assert report.sender_identity == hash_sender_address("203.0.113.7")
    assert report.reason == ReportReason.HARASSMENT.value
    assert report.details == "kept messaging me"


def test_only_recipient_may_report(db, bob, message):
    with pytest.raises(AuthorizationError):
        submit_report(db, message.id, bob.id, "spam")
    assert db.query(Report).count() == 0


def test_unknown_message(db, alice):
    with pytest.raises(NotFoundError):
        submit_report(db, "does-not-exist", alice.id, "spam")


@pytest.mark.parametrize("reason", ["", None, "rude", "inappropriate"])
def test_invalid_reason(db, alice, message, reason):
    with pytest.raises(ValidationError):
        submit_report(db, message.id, alice.id, reason)


def test_details_length_limit(db, alice, message):
    with pytest.raises(ValidationError):
        submit_report(db, message.id, alice.id, "other", "x" * 501)


def test_blank_details_stored_as_none(db, alice, message):
    assert submit_report(db, message.id, alice.id, "other", "   ").details is None


def test_repeat_reports_are_kept(db, alice, message):
    submit_report(db, message.id, alice.id, "spam")
    submit_report(db, message.id, alice.id, "spam")
    assert db.query(Report).filter_by(message_id=message.id).count() == 2


def test_reason_text():
    assert report_reason_text("threats") == "Threats or Violence"
    assert report_reason_text("hate_speech") == "Hate Speech"
    assert report_reason_text("nope") == "Unknown"
