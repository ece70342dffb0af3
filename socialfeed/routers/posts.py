"""Post related API routes: CRUD, like/share toggles and comments."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from ..constants import POST_CONTENT_MAX_LENGTH
from ..database import get_session
from ..models import User
from ..schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    PostEngagementResponse,
    PostResponse,
)
from ..services import (
    create_post_comment,
    create_post_record,
    delete_post_record,
    get_current_user,
    get_optional_user,
    hydrate_post,
    list_post_comments,
    purge_post_record,
    toggle_post_like,
    toggle_post_share,
    update_post_record,
)

router = APIRouter(prefix="/posts", tags=["posts"])

logger = logging.getLogger(__name__)


def _uploaded(image: UploadFile | None) -> UploadFile | None:
    # Browsers submit an empty part when the file input is left blank.
    if image is None or not image.filename:
        return None
    return image


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    content: str = Form(..., min_length=1, max_length=POST_CONTENT_MAX_LENGTH),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    """Create a post. Send ``multipart/form-data`` when attaching an image."""

    post = await create_post_record(db, author=current_user, content=content, image=_uploaded(image))
    return PostResponse(**hydrate_post(db, post_id=post.id, viewer_id=current_user.id))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> PostResponse:
    viewer_id = current_user.id if current_user else None
    return PostResponse(**hydrate_post(db, post_id=post_id, viewer_id=viewer_id))


@router.put("/{post_id}", response_model=PostResponse)
async def update_post_endpoint(
    post_id: UUID,
    content: str | None = Form(None, max_length=POST_CONTENT_MAX_LENGTH),
    remove_image: bool = Form(False),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    post = await update_post_record(
        db,
        post_id=post_id,
        requester=current_user,
        content=content,
        image=_uploaded(image),
        remove_image=remove_image,
    )
    return PostResponse(**hydrate_post(db, post_id=post.id, viewer_id=current_user.id))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> None:
    delete_post_record(db, post_id=post_id, requester=current_user)


@router.delete("/{post_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
async def purge_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> None:
    purge_post_record(db, post_id=post_id, requester=current_user)


@router.post("/{post_id}/like", response_model=PostEngagementResponse)
async def toggle_like_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostEngagementResponse:
    return PostEngagementResponse(**toggle_post_like(db, post_id=post_id, user=current_user))


@router.post("/{post_id}/share", response_model=PostEngagementResponse)
async def toggle_share_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostEngagementResponse:
    return PostEngagementResponse(**toggle_post_share(db, post_id=post_id, user=current_user))


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_comments_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
) -> CommentListResponse:
    comments = list_post_comments(db, post_id=post_id)
    return CommentListResponse(items=[CommentResponse.model_validate(comment) for comment in comments])


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    post_id: UUID,
    payload: CommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    comment = create_post_comment(db, post_id=post_id, author=current_user, body=payload.body)
    logger.info("User %s commented on post %s", current_user.id, post_id)
    return CommentResponse.model_validate(comment)
