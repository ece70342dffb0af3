"""Convenience exports for ORM models."""
from .base import RelationStatus
from .follow import Follow
from .post import Post, PostComment, PostLike, Share
from .user import User

__all__ = [
    "RelationStatus",
    "Follow",
    "Post",
    "PostComment",
    "PostLike",
    "Share",
    "User",
]
