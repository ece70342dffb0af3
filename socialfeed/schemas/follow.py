"""Schemas supporting follower APIs."""
from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from .pagination import Page
from .profiles import UserListItem


class FollowStatsResponse(BaseModel):
    user_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


class FollowActionResponse(FollowStatsResponse):
    follow_id: UUID
    status: Literal["followed", "unfollowed"]


class UserListPage(Page[UserListItem]):
    """Followers/following list envelope."""


__all__ = ["FollowStatsResponse", "FollowActionResponse", "UserListPage"]
