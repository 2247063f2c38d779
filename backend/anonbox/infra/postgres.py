import logging
from contextlib import contextmanager
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from anonbox.core.config import get_settings

logger = logging.getLogger(__name__)

# =========================
# ENGINE CONFIGURATION
# =========================


def _connect_args(url: str, timeout_seconds: float) -> dict:
    """Caller-side timeouts so no store call can hang a request."""
    if url.startswith("sqlite"):
        return {"timeout": timeout_seconds, "check_same_thread": False}
    if url.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }
    return {}


def build_engine(url: str | None = None, **kwargs) -> Engine:
    settings = get_settings()
    url = url or settings.database_url
    options = {
        "pool_pre_ping": True,  # Check connections before using them
        "echo": False,
        "connect_args": _connect_args(url, settings.STORE_TIMEOUT_SECONDS),
    }
    if not url.startswith("sqlite"):
        options.update(pool_size=5, max_overflow=10, pool_recycle=3600)
    options.update(kwargs)
    return create_engine(url, **options)


engine = build_engine()

# =========================
# SESSION CONFIGURATION
# =========================

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# =========================
# DATABASE FUNCTIONS
# =========================

def get_db():
    """
    FastAPI dependency to provide a DB session to routes.
    Usage:
        def my_route(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def db_session():
    """
    Context manager for standalone DB operations.
    Usage:
        with db_session() as db:
            blocks = list_blocks(db, user_id)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_connection(bind: Engine | None = None) -> bool:
    """
    Test DB connection.
    """
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False
