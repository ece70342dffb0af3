"""Business logic for posts, likes, shares and comments."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..constants import NOT_PERMITTED_DETAIL, POST_CONTENT_MAX_LENGTH
from ..models import Post, PostComment, PostLike, RelationStatus, Share, User
from ..models.base import utcnow
from .feed_service import hydrate_post
from .storage_service import (
    StorageConfigurationError,
    StorageDeletionError,
    StoredImage,
    StorageUploadError,
    delete_image,
    upload_image,
)
from .toggle_service import toggle_relation

logger = logging.getLogger(__name__)

_PRIVILEGED_ROLES = {"admin"}


def _clean_content(content: str | None) -> str:
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Content cannot be empty")
    if len(text) > POST_CONTENT_MAX_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Content must be at most {POST_CONTENT_MAX_LENGTH} characters",
        )
    return text


async def _store_post_image(image: UploadFile) -> StoredImage:
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
    try:
        return await upload_image(image, folder="posts")
    except StorageConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except StorageUploadError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


def _discard_image(key: str | None) -> None:
    """Best-effort removal of an image that is no longer referenced."""

    if not key:
        return
    try:
        delete_image(key)
    except (StorageConfigurationError, StorageDeletionError):
        logger.exception("Leaving orphaned image %s in storage", key)


def get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.get(Post, post_id)
    if post is None or post.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _require_author(post: Post, requester: User) -> None:
    if post.user_id != requester.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_PERMITTED_DETAIL)


def _commit(db: Session, failure_detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(failure_detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure_detail) from exc


async def create_post_record(
    db: Session,
    *,
    author: User,
    content: str,
    image: UploadFile | None = None,
) -> Post:
    """Create and persist a new post, storing the optional image first."""

    text = _clean_content(content)
    stored = await _store_post_image(image) if image is not None else None

    post = Post(
        user_id=author.id,
        content=text,
        image_key=stored.key if stored else None,
        image_url=stored.url if stored else None,
    )
    db.add(post)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        _discard_image(stored.key if stored else None)
        logger.exception("Failed to create post for user %s", author.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create post") from exc

    db.refresh(post)
    logger.info("User %s created post %s", author.id, post.id)
    return post


async def update_post_record(
    db: Session,
    *,
    post_id: UUID,
    requester: User,
    content: str | None = None,
    image: UploadFile | None = None,
    remove_image: bool = False,
) -> Post:
    post = get_post_or_404(db, post_id)
    _require_author(post, requester)

    if remove_image and image is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Remove the image or supply a new one, not both",
        )

    if content is not None:
        post.content = _clean_content(content)

    previous_key = post.image_key
    if image is not None:
        stored = await _store_post_image(image)
        post.image_key, post.image_url = stored.key, stored.url
    elif remove_image:
        post.image_key, post.image_url = None, None

    _commit(db, "Failed to update post")
    db.refresh(post)

    if previous_key and previous_key != post.image_key:
        _discard_image(previous_key)
    return post


def delete_post_record(db: Session, *, post_id: UUID, requester: User) -> None:
    """Soft delete a post together with its comments and likes.

    Shares keep their rows; they surface as unavailable in feeds.
    """

    post = get_post_or_404(db, post_id)
    _require_author(post, requester)

    now = utcnow()
    post.soft_delete(at=now)
    db.execute(
        update(PostComment)
        .where(PostComment.post_id == post.id, PostComment.deleted_at.is_(None))
        .values(deleted_at=now)
    )
    db.execute(
        update(PostLike)
        .where(PostLike.post_id == post.id, PostLike.status == RelationStatus.ACTIVE.value)
        .values(status=RelationStatus.INACTIVE.value, updated_at=now)
    )
    _commit(db, "Failed to delete post")
    logger.info("User %s deleted post %s", requester.id, post.id)


def purge_post_record(db: Session, *, post_id: UUID, requester: User) -> None:
    """Hard delete a post (live or soft-deleted) and everything attached to it."""

    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    role = (requester.role or "").lower()
    if post.user_id != requester.id and role not in _PRIVILEGED_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_PERMITTED_DETAIL)

    image_key = post.image_key
    db.delete(post)
    _commit(db, "Failed to purge post")
    logger.info("User %s purged post %s", requester.id, post_id)
    _discard_image(image_key)


# ---------------------------------------------------------------------------
# Likes and shares
# ---------------------------------------------------------------------------
def _engagement_snapshot(db: Session, post_id: UUID, viewer_id: UUID) -> dict[str, Any]:
    payload = hydrate_post(db, post_id=post_id, viewer_id=viewer_id)
    return {
        "post_id": post_id,
        "like_count": payload["like_count"],
        "comment_count": payload["comment_count"],
        "share_count": payload["share_count"],
        "viewer_has_liked": payload["viewer_has_liked"],
        "viewer_has_shared": payload["viewer_has_shared"],
    }


def toggle_post_like(db: Session, *, post_id: UUID, user: User) -> dict[str, Any]:
    """Like the post, or unlike it when an active like exists."""

    get_post_or_404(db, post_id)
    result = toggle_relation(db, PostLike, post_id=post_id, user_id=user.id)
    snapshot = _engagement_snapshot(db, post_id, user.id)
    snapshot["status"] = "liked" if result.active else "unliked"
    return snapshot


def toggle_post_share(db: Session, *, post_id: UUID, user: User) -> dict[str, Any]:
    """Share or unshare the post. Resharing moves it back to the top of feeds."""

    get_post_or_404(db, post_id)
    result = toggle_relation(db, Share, post_id=post_id, user_id=user.id)
    snapshot = _engagement_snapshot(db, post_id, user.id)
    snapshot["status"] = "shared" if result.active else "unshared"
    return snapshot


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
def _get_comment_or_404(db: Session, comment_id: UUID) -> PostComment:
    comment = db.get(PostComment, comment_id, options=[joinedload(PostComment.post)])
    if comment is None or comment.is_deleted or comment.post is None or comment.post.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


def _clean_body(body: str | None) -> str:
    text = (body or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment cannot be empty")
    return text


def list_post_comments(db: Session, *, post_id: UUID) -> list[PostComment]:
    get_post_or_404(db, post_id)
    stmt = (
        select(PostComment)
        .where(PostComment.post_id == post_id, PostComment.deleted_at.is_(None))
        .options(joinedload(PostComment.author))
        .order_by(PostComment.created_at.asc())
    )
    return list(db.scalars(stmt))


def create_post_comment(db: Session, *, post_id: UUID, author: User, body: str) -> PostComment:
    post = get_post_or_404(db, post_id)
    comment = PostComment(post_id=post.id, user_id=author.id, body=_clean_body(body))
    db.add(comment)
    _commit(db, "Failed to add comment")
    db.refresh(comment)
    return comment


def update_post_comment(db: Session, *, comment_id: UUID, requester: User, body: str) -> PostComment:
    comment = _get_comment_or_404(db, comment_id)
    if comment.user_id != requester.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_PERMITTED_DETAIL)
    comment.body = _clean_body(body)
    _commit(db, "Failed to update comment")
    db.refresh(comment)
    return comment


def delete_post_comment(db: Session, *, comment_id: UUID, requester: User) -> None:
    """Soft delete a comment. Its author and the post's author may do this."""

    comment = _get_comment_or_404(db, comment_id)
    if requester.id not in {comment.user_id, comment.post.user_id}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=NOT_PERMITTED_DETAIL)
    comment.soft_delete()
    _commit(db, "Failed to delete comment")


__all__ = [
    "create_post_record",
    "update_post_record",
    "delete_post_record",
    "purge_post_record",
    "get_post_or_404",
    "toggle_post_like",
    "toggle_post_share",
    "list_post_comments",
    "create_post_comment",
    "update_post_comment",
    "delete_post_comment",
]
