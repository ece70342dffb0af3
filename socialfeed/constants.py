"""Project-wide constant values."""
from __future__ import annotations

POST_CONTENT_MAX_LENGTH = 1000
COMMENT_BODY_MAX_LENGTH = 500

NOT_PERMITTED_DETAIL = "Not permitted"

FEED_ITEM_POST = "post"
FEED_ITEM_SHARE = "share"

__all__ = [
    "POST_CONTENT_MAX_LENGTH",
    "COMMENT_BODY_MAX_LENGTH",
    "NOT_PERMITTED_DETAIL",
    "FEED_ITEM_POST",
    "FEED_ITEM_SHARE",
]
