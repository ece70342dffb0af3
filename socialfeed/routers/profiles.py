"""Profile pages, profile feeds, follower lists and user search."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..models import User
from ..schemas import FeedPage, ProfileResponse, UserListPage, UserSearchResult
from ..services import (
    get_optional_user,
    get_profile,
    get_profile_feed,
    get_user_by_username_or_404,
    list_followers,
    list_following,
    search_users,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _viewer_id(user: User | None) -> UUID | None:
    return user.id if user else None


# Declared before "/{username}" so "search" is not treated as a username.
@router.get("/search", response_model=list[UserSearchResult])
async def search_users_endpoint(
    q: str = Query("", max_length=100),
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_session),
) -> list[UserSearchResult]:
    return [UserSearchResult.model_validate(user) for user in search_users(db, query=q, limit=limit)]


@router.get("/{username}", response_model=ProfileResponse)
async def profile_endpoint(
    username: str,
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> ProfileResponse:
    return ProfileResponse(**get_profile(db, username=username, viewer_id=_viewer_id(current_user)))


@router.get("/{username}/feed", response_model=FeedPage)
async def profile_feed_endpoint(
    username: str,
    page: int = Query(1, ge=1),
    size: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> FeedPage:
    """The user's own posts and shares, newest first."""

    user = get_user_by_username_or_404(db, username)
    page_size = size or get_settings().profile_feed_page_size
    payload = get_profile_feed(
        db,
        user_id=user.id,
        viewer_id=_viewer_id(current_user),
        page=page,
        size=page_size,
    )
    return FeedPage.model_validate(payload)


@router.get("/{username}/followers", response_model=UserListPage)
async def followers_endpoint(
    username: str,
    page: int = Query(1, ge=1),
    size: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> UserListPage:
    user = get_user_by_username_or_404(db, username)
    page_size = size or get_settings().user_list_page_size
    return UserListPage.model_validate(
        list_followers(db, user_id=user.id, viewer_id=_viewer_id(current_user), page=page, size=page_size)
    )


@router.get("/{username}/following", response_model=UserListPage)
async def following_endpoint(
    username: str,
    page: int = Query(1, ge=1),
    size: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_session),
    current_user: User | None = Depends(get_optional_user),
) -> UserListPage:
    user = get_user_by_username_or_404(db, username)
    page_size = size or get_settings().user_list_page_size
    return UserListPage.model_validate(
        list_following(db, user_id=user.id, viewer_id=_viewer_id(current_user), page=page, size=page_size)
    )
