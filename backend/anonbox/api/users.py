# anonbox/api/users.py

import logging
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from anonbox.core.errors import NotFoundError
from anonbox.core.security import get_current_user
from anonbox.core.throttle import REGISTER_LIMIT, limiter
from anonbox.core.user import delete_user, get_user_by_username, register_user
from anonbox.infra.postgres import get_db
from anonbox.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users")


class RegisterUserSchema(BaseModel):
    username: str


@router.post("/register", status_code=201)
@limiter.limit(REGISTER_LIMIT)
def register_user_endpoint(request: Request, payload: RegisterUserSchema, db: Session = Depends(get_db)):
    user, token = register_user(db, payload.username)
    logger.info("Registered user %s (%s)", user.username, user.id)

    # The token is shown once; only its hash is kept
    return {"user_id": user.id, "username": user.username, "token": token}


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return {"user_id": user.id, "username": user.username, "created_at": user.created_at.isoformat()}


@router.delete("/me")
def delete_me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    username = user.username
    delete_user(db, user)
    logger.info("Deleted user %s", username)
    return {"success": True}


@router.get("/{username}")
def get_public_profile(username: str, db: Session = Depends(get_db)):
    user = get_user_by_username(db, username)
    if user is None:
        raise NotFoundError("User not found")
    return {"username": user.username}
