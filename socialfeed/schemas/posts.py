"""Pydantic schemas for posts, shares, comments and feed items."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..constants import COMMENT_BODY_MAX_LENGTH
from .pagination import Page
from .profiles import UserSummary


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID
    body: str
    created_at: datetime
    updated_at: datetime
    author: UserSummary


class PostResponse(BaseModel):
    """Serialized post annotated with counts and viewer-specific flags."""

    id: UUID
    user_id: UUID
    content: str
    image_url: str | None = None
    created_at: datetime
    updated_at: datetime
    author: UserSummary
    comments: list[CommentResponse] = Field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    viewer_has_liked: bool = False
    viewer_has_shared: bool = False


class ShareResponse(BaseModel):
    """A reshare. ``post`` is null when the original is no longer available."""

    id: UUID
    user_id: UUID
    post_id: UUID
    created_at: datetime
    updated_at: datetime
    sharer: UserSummary
    post: PostResponse | None = None
    is_available: bool = True


class FeedItem(BaseModel):
    type: Literal["post", "share"]
    id: UUID
    sort_date: datetime
    data: PostResponse | ShareResponse


class FeedPage(Page[FeedItem]):
    """Envelope returned by the dashboard and profile feeds."""


class PostEngagementResponse(BaseModel):
    """Counters returned after a like or share toggle."""

    post_id: UUID
    like_count: int
    comment_count: int
    share_count: int
    viewer_has_liked: bool
    viewer_has_shared: bool
    status: Literal["liked", "unliked", "shared", "unshared"]


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=COMMENT_BODY_MAX_LENGTH)


class CommentUpdate(BaseModel):
    body: str = Field(..., min_length=1, max_length=COMMENT_BODY_MAX_LENGTH)


class CommentListResponse(BaseModel):
    items: list[CommentResponse]


__all__ = [
    "CommentResponse",
    "PostResponse",
    "ShareResponse",
    "FeedItem",
    "FeedPage",
    "PostEngagementResponse",
    "CommentCreate",
    "CommentUpdate",
    "CommentListResponse",
]
