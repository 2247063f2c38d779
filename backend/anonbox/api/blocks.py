# anonbox/api/blocks.py

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from anonbox.core.blocking import add_block, list_blocks, remove_block
from anonbox.core.errors import ValidationError
from anonbox.core.security import get_current_user
from anonbox.infra.postgres import get_db
from anonbox.models.user import User

router = APIRouter(prefix="/block")


class AddBlockSchema(BaseModel):
    ip_hash: str | None = None
    reason: str | None = None
    message_id: str | None = None


class RemoveBlockSchema(BaseModel):
    block_id: str | None = None


@router.post("/add", status_code=201)
def add_block_endpoint(payload: AddBlockSchema, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not payload.ip_hash:
        raise ValidationError("IP hash is required")

    block = add_block(db, user.id, payload.ip_hash, reason=payload.reason, message_id=payload.message_id)
    return {
        "success": True,
        "block": block.to_dict(),
        "message": "Sender blocked successfully",
    }


@router.get("/list")
def list_blocks_endpoint(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    blocks = list_blocks(db, user.id)
    return {
        "blocks": [b.to_dict() for b in blocks],
        "count": len(blocks),
    }


@router.delete("/remove")
def remove_block_endpoint(payload: RemoveBlockSchema, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not payload.block_id:
        raise ValidationError("Block ID is required")

    # Filtered by owner, so a foreign id is a silent no-op
    remove_block(db, user.id, payload.block_id)
    return {
        "success": True,
        "message": "Sender unblocked successfully",
    }
