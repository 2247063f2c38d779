# anonbox/core/security.py

import logging
from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anonbox.core.errors import AuthenticationError, StoreUnavailable
from anonbox.core.user import authenticate
from anonbox.infra.postgres import get_db
from anonbox.models.user import User

logger = logging.getLogger(__name__)


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    FastAPI dependency for recipient-only routes.
    Raises AuthenticationError when no valid bearer token is present.
    """
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError()

    try:
        user = authenticate(db, token)
    except SQLAlchemyError as e:
        logger.error("Token lookup failed: %s", e)
        raise StoreUnavailable()

    if user is None:
        raise AuthenticationError()
    return user
