from sqlalchemy import create_engine

from anonbox.infra.init_db import init_db
from anonbox.infra.postgres import build_engine, check_connection


def test_creates_every_table():
    engine = create_engine("sqlite://")
    tables = init_db(bind=engine)
    assert {"users", "messages", "blocked_senders", "message_reports"} <= set(tables)


def test_drop_and_recreate_is_repeatable():
    engine = create_engine("sqlite://")
    init_db(bind=engine)
    assert "messages" in init_db(bind=engine, drop=True)


def test_check_connection():
    assert check_connection(build_engine("sqlite://"))
