"""Profile lookups with per-request counts, and user search."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models import Post, RelationStatus, Share, User
from .follow_service import get_follow_stats


def get_user_by_username_or_404(db: Session, username: str) -> User:
    user = db.scalar(select(User).where(User.username == username))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_profile(db: Session, *, username: str, viewer_id: UUID | None) -> dict[str, Any]:
    """Return the user's public fields plus counts computed for this request."""

    user = get_user_by_username_or_404(db, username)

    posts_count = db.scalar(
        select(func.count(Post.id)).where(Post.user_id == user.id, Post.deleted_at.is_(None))
    ) or 0
    shares_count = db.scalar(
        select(func.count(Share.id)).where(Share.user_id == user.id, Share.status == RelationStatus.ACTIVE.value)
    ) or 0
    stats = get_follow_stats(db, user_id=user.id, viewer_id=viewer_id)

    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "avatar_url": user.avatar_url,
        "bio": user.bio,
        "created_at": user.created_at,
        "posts_count": int(posts_count),
        "shares_count": int(shares_count),
        "followers_count": stats.followers_count,
        "following_count": stats.following_count,
        "is_following": stats.is_following,
    }


def search_users(db: Session, *, query: str, limit: int | None = None) -> list[User]:
    """Case-insensitive substring match on username, display name and email."""

    settings = get_settings()
    term = (query or "").strip()
    if len(term) < settings.user_search_min_length:
        return []

    cap = min(limit or settings.user_search_limit, settings.user_search_limit)
    pattern = f"%{term}%"
    stmt = (
        select(User)
        .where(
            or_(
                User.username.ilike(pattern),
                User.display_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )
        .order_by(User.username.asc())
        .limit(cap)
    )
    return list(db.scalars(stmt))


__all__ = ["get_user_by_username_or_404", "get_profile", "search_users"]
