"""Schemas describing users as they appear on profiles, lists and search."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserSummary(BaseModel):
    """Author/sharer block embedded in posts, comments and shares."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None


class ProfileResponse(UserSummary):
    bio: str | None = None
    created_at: datetime
    posts_count: int = 0
    shares_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False


class UserListItem(UserSummary):
    is_following: bool = False


class UserSearchResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str | None = None
    email: str | None = None


__all__ = ["UserSummary", "ProfileResponse", "UserListItem", "UserSearchResult"]
