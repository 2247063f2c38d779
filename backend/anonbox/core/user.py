# anonbox/core/user.py

import hashlib
import hmac
import re
import secrets
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from anonbox.core.errors import ConflictError, ValidationError
from anonbox.models.user import User

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")

RESERVED_USERNAMES = frozenset({
    # System routes
    "api", "auth", "login", "signup", "register", "logout", "dashboard",
    "settings", "profile", "onboarding", "admin", "user", "users", "block",
    "messages", "health",
    # Reserved words
    "help", "support", "contact", "about", "terms", "privacy", "faq",
    "blog", "docs", "documentation",
    # Protected
    "root", "system", "administrator", "moderator", "mod", "staff", "team",
    "official", "anonymous", "null", "undefined",
})


def hash_token(token: str) -> str:
    """Hash a bearer token for storage"""
    return hashlib.sha256(token.encode()).hexdigest()


def validate_username(username) -> str:
    if not isinstance(username, str) or not USERNAME_RE.match(username):
        raise ValidationError("Username must be 3-20 characters: letters, numbers and underscores")
    username = username.lower()
    if username in RESERVED_USERNAMES:
        raise ValidationError("This username is reserved")
    return username


def register_user(db: Session, username: str) -> tuple[User, str]:
    """Create a recipient. The plain token is returned once and never stored."""
    username = validate_username(username)
    token = secrets.token_urlsafe(32)

    user = User(username=username, token_hash=hash_token(token))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Username is already taken")

    db.refresh(user)
    return user, token


def get_user_by_username(db: Session, username: str) -> User | None:
    if not isinstance(username, str):
        return None
    return db.query(User).filter(User.username == username.lower()).first()


def authenticate(db: Session, token: str) -> User | None:
    """Resolve a bearer token to its user"""
    if not token:
        return None
    token_hash = hash_token(token)
    user = db.query(User).filter(User.token_hash == token_hash).first()

    if user is None or not hmac.compare_digest(user.token_hash, token_hash):
        return None
    return user


def delete_user(db: Session, user: User) -> None:
    """Account deletion cascades to messages, blocks and reports."""
    db.delete(user)
    db.commit()
