"""Business logic for follower relationships."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from ..models import Follow, RelationStatus, User
from ..schemas.pagination import get_offset
from .toggle_service import ToggleResult, toggle_relation

logger = logging.getLogger(__name__)

_ACTIVE = RelationStatus.ACTIVE.value


@dataclass(slots=True)
class FollowStats:
    user_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


def get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def toggle_follow(db: Session, *, follower: User, target_id: UUID) -> ToggleResult:
    """Follow ``target_id``, or unfollow when the edge is already active."""

    if follower.id == target_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot follow yourself")

    get_user_or_404(db, target_id)
    result = toggle_relation(db, Follow, follower_id=follower.id, following_id=target_id)
    logger.info(
        "User %s %s user %s",
        follower.id,
        "followed" if result.active else "unfollowed",
        target_id,
    )
    return result


def is_following(db: Session, *, follower_id: UUID | None, following_id: UUID) -> bool:
    if follower_id is None:
        return False
    stmt = select(Follow.id).where(
        Follow.follower_id == follower_id,
        Follow.following_id == following_id,
        Follow.status == _ACTIVE,
    )
    return db.scalar(stmt) is not None


def get_follow_stats(db: Session, *, user_id: UUID, viewer_id: UUID | None = None) -> FollowStats:
    get_user_or_404(db, user_id)

    followers_count = db.scalar(
        select(func.count(Follow.id)).where(Follow.following_id == user_id, Follow.status == _ACTIVE)
    ) or 0
    following_count = db.scalar(
        select(func.count(Follow.id)).where(Follow.follower_id == user_id, Follow.status == _ACTIVE)
    ) or 0

    return FollowStats(
        user_id=user_id,
        followers_count=int(followers_count),
        following_count=int(following_count),
        is_following=is_following(db, follower_id=viewer_id, following_id=user_id),
    )


def _list_edges(
    db: Session,
    *,
    user_id: UUID,
    viewer_id: UUID | None,
    page: int,
    size: int,
    followers: bool,
) -> dict[str, Any]:
    get_user_or_404(db, user_id)

    # followers: edges pointing at user_id, listing their followers.
    # following: edges leaving user_id, listing the followed accounts.
    anchor, listed = (Follow.following_id, Follow.follower_id) if followers else (Follow.follower_id, Follow.following_id)
    edge_filter = (anchor == user_id, Follow.status == _ACTIVE)

    total = db.scalar(select(func.count(Follow.id)).where(*edge_filter)) or 0

    if viewer_id is None:
        viewer_follows = None
    else:
        viewer_edge = aliased(Follow)
        viewer_follows = (
            select(viewer_edge.id)
            .where(
                viewer_edge.follower_id == viewer_id,
                viewer_edge.following_id == User.id,
                viewer_edge.status == _ACTIVE,
            )
            .correlate(User)
            .exists()
            .label("is_following")
        )

    columns: list[Any] = [User]
    if viewer_follows is not None:
        columns.append(viewer_follows)
    stmt = (
        select(*columns)
        .join(Follow, listed == User.id)
        .where(*edge_filter)
        .order_by(Follow.updated_at.desc(), Follow.id.desc())
        .offset(get_offset(page, size))
        .limit(size)
    )

    items = []
    for row in db.execute(stmt):
        user: User = row.User
        items.append(
            {
                "id": user.id,
                "username": user.username,
                "display_name": user.display_name,
                "avatar_url": user.avatar_url,
                "is_following": bool(row.is_following) if viewer_follows is not None else False,
            }
        )
    return {"items": items, "total": int(total), "page": page, "size": size}


def list_followers(db: Session, *, user_id: UUID, viewer_id: UUID | None, page: int, size: int) -> dict[str, Any]:
    return _list_edges(db, user_id=user_id, viewer_id=viewer_id, page=page, size=size, followers=True)


def list_following(db: Session, *, user_id: UUID, viewer_id: UUID | None, page: int, size: int) -> dict[str, Any]:
    return _list_edges(db, user_id=user_id, viewer_id=viewer_id, page=page, size=size, followers=False)


__all__ = [
    "FollowStats",
    "get_user_or_404",
    "toggle_follow",
    "is_following",
    "get_follow_stats",
    "list_followers",
    "list_following",
]
