"""Convenience exports for schema layer."""
from .auth import AuthResponse, LoginRequest, RegisterRequest
from .follow import FollowActionResponse, FollowStatsResponse, UserListPage
from .pagination import Page, get_offset
from .posts import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentUpdate,
    FeedItem,
    FeedPage,
    PostEngagementResponse,
    PostResponse,
    ShareResponse,
)
from .profiles import ProfileResponse, UserListItem, UserSearchResult, UserSummary

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "RegisterRequest",
    "FollowActionResponse",
    "FollowStatsResponse",
    "UserListPage",
    "Page",
    "get_offset",
    "CommentCreate",
    "CommentListResponse",
    "CommentResponse",
    "CommentUpdate",
    "FeedItem",
    "FeedPage",
    "PostEngagementResponse",
    "PostResponse",
    "ShareResponse",
    "ProfileResponse",
    "UserListItem",
    "UserSearchResult",
    "UserSummary",
]
