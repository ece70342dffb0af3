"""Convenience exports for service layer."""
from .auth_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_optional_user,
    register_user,
)
from .feed_service import (
    assemble_feed_items,
    build_feed_skeleton,
    get_dashboard_feed,
    get_profile_feed,
    hydrate_feed_page,
    hydrate_post,
)
from .follow_service import (
    FollowStats,
    get_follow_stats,
    get_user_or_404,
    list_followers,
    list_following,
    toggle_follow,
)
from .post_service import (
    create_post_comment,
    create_post_record,
    delete_post_comment,
    delete_post_record,
    get_post_or_404,
    list_post_comments,
    purge_post_record,
    toggle_post_like,
    toggle_post_share,
    update_post_comment,
    update_post_record,
)
from .profile_service import get_profile, get_user_by_username_or_404, search_users
from .toggle_service import ToggleResult, toggle_relation

__all__ = [
    "authenticate_user",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_optional_user",
    "register_user",
    "assemble_feed_items",
    "build_feed_skeleton",
    "get_dashboard_feed",
    "get_profile_feed",
    "hydrate_feed_page",
    "hydrate_post",
    "FollowStats",
    "get_follow_stats",
    "get_user_or_404",
    "list_followers",
    "list_following",
    "toggle_follow",
    "create_post_comment",
    "create_post_record",
    "delete_post_comment",
    "delete_post_record",
    "get_post_or_404",
    "list_post_comments",
    "purge_post_record",
    "toggle_post_like",
    "toggle_post_share",
    "update_post_comment",
    "update_post_record",
    "get_profile",
    "get_user_by_username_or_404",
    "search_users",
    "ToggleResult",
    "toggle_relation",
]
