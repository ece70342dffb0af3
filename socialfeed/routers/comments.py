"""Routes for editing and removing individual comments."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import CommentResponse, CommentUpdate
from ..services import delete_post_comment, get_current_user, update_post_comment

router = APIRouter(prefix="/comments", tags=["comments"])


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment_endpoint(
    comment_id: UUID,
    payload: CommentUpdate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    comment = update_post_comment(db, comment_id=comment_id, requester=current_user, body=payload.body)
    return CommentResponse.model_validate(comment)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> None:
    delete_post_comment(db, comment_id=comment_id, requester=current_user)
