"""Routes for following users and retrieving follow stats."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import FollowActionResponse, FollowStatsResponse
from ..services import get_current_user, get_follow_stats, get_optional_user, toggle_follow

router = APIRouter(prefix="/follows", tags=["follows"])


@router.post("/{user_id}", response_model=FollowActionResponse)
async def toggle_follow_endpoint(
    user_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> FollowActionResponse:
    """Follow the user, or unfollow if already following."""

    result = toggle_follow(db, follower=current_user, target_id=user_id)
    stats = get_follow_stats(db, user_id=user_id, viewer_id=current_user.id)
    return FollowActionResponse(
        user_id=stats.user_id,
        followers_count=stats.followers_count,
        following_count=stats.following_count,
        is_following=stats.is_following,
        follow_id=result.record.id,
        status="followed" if result.active else "unfollowed",
    )


@router.get("/stats/{user_id}", response_model=FollowStatsResponse)
async def follow_stats_endpoint(
    user_id: UUID,
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> FollowStatsResponse:
    viewer_id = current_user.id if current_user else None
    stats = get_follow_stats(db, user_id=user_id, viewer_id=viewer_id)
    return FollowStatsResponse(
        user_id=stats.user_id,
        followers_count=stats.followers_count,
        following_count=stats.following_count,
        is_following=stats.is_following,
    )
