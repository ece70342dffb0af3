"""Timeline aggregation for the dashboard and profile feeds.

A feed page is produced in three steps:

1. ``build_feed_skeleton`` projects posts and shares of the allowed authors to
   ``(id, type, sort_date)``, unions them in the database and paginates the
   union, so page boundaries are computed over one ordered set.
2. ``hydrate_feed_page`` loads full posts and shares for the ids on that page
   only: one statement per type, with authors, live comments, counts and
   viewer flags attached.
3. ``assemble_feed_items`` walks the skeleton order and emits view-model dicts.

Shares whose original post is gone (hard-deleted, or soft-deleted by its
author) stay in the page as unavailable placeholders instead of vanishing, so
every page except the last one carries exactly ``size`` items.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Collection, Iterable
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import String, and_, false, func, literal_column, select, union_all
from sqlalchemy.orm import Session, aliased, joinedload, selectinload

from ..constants import FEED_ITEM_POST, FEED_ITEM_SHARE
from ..models import Follow, Post, PostComment, PostLike, RelationStatus, Share, User
from ..schemas.pagination import get_offset

logger = logging.getLogger(__name__)

_ACTIVE = RelationStatus.ACTIVE.value


@dataclass(slots=True, frozen=True)
class SkeletonRow:
    id: UUID
    type: str
    sort_date: datetime


@dataclass(slots=True)
class FeedSkeleton:
    rows: list[SkeletonRow]
    total: int
    page: int
    size: int


@dataclass(slots=True)
class HydratedFeed:
    posts: dict[UUID, dict[str, Any]] = field(default_factory=dict)
    shares: dict[UUID, dict[str, Any]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Skeleton
# ---------------------------------------------------------------------------
def build_feed_skeleton(
    db: Session,
    *,
    author_ids: Collection[UUID],
    page: int,
    size: int,
) -> FeedSkeleton:
    """Return one page of ``(id, type, sort_date)`` rows over posts ∪ shares."""

    ids = list(author_ids)
    if not ids:
        return FeedSkeleton(rows=[], total=0, page=page, size=size)

    posts = select(
        Post.id.label("id"),
        literal_column(f"'{FEED_ITEM_POST}'", String).label("type"),
        Post.created_at.label("sort_date"),
    ).where(Post.user_id.in_(ids), Post.deleted_at.is_(None))

    shares = select(
        Share.id.label("id"),
        literal_column(f"'{FEED_ITEM_SHARE}'", String).label("type"),
        Share.updated_at.label("sort_date"),
    ).where(Share.user_id.in_(ids), Share.status == _ACTIVE)

    feed = union_all(posts, shares).subquery("feed")

    total = db.scalar(select(func.count()).select_from(feed)) or 0

    # Ties on sort_date are broken by type then id so OFFSET/LIMIT never
    # repeats or skips a row between adjacent pages.
    stmt = (
        select(feed.c.id, feed.c.type, feed.c.sort_date)
        .order_by(feed.c.sort_date.desc(), feed.c.type.asc(), feed.c.id.desc())
        .offset(get_offset(page, size))
        .limit(size)
    )
    rows = [SkeletonRow(id=row.id, type=row.type, sort_date=row.sort_date) for row in db.execute(stmt)]
    return FeedSkeleton(rows=rows, total=int(total), page=page, size=size)


# ---------------------------------------------------------------------------
# Hydration
# ---------------------------------------------------------------------------
def _engagement_columns(viewer_id: UUID | None) -> list[Any]:
    """Counts and viewer flags correlated to the ``Post`` in the outer query.

    Aliases keep the subqueries from correlating against a ``shares`` table
    that is already part of the enclosing FROM clause.
    """

    like = aliased(PostLike)
    comment = aliased(PostComment)
    share = aliased(Share)

    columns: list[Any] = [
        select(func.count(like.id))
        .where(like.post_id == Post.id, like.status == _ACTIVE)
        .correlate(Post)
        .scalar_subquery()
        .label("like_count"),
        select(func.count(comment.id))
        .where(comment.post_id == Post.id, comment.deleted_at.is_(None))
        .correlate(Post)
        .scalar_subquery()
        .label("comment_count"),
        select(func.count(share.id))
        .where(share.post_id == Post.id, share.status == _ACTIVE)
        .correlate(Post)
        .scalar_subquery()
        .label("share_count"),
    ]

    if viewer_id is None:
        columns.extend([false().label("viewer_has_liked"), false().label("viewer_has_shared")])
        return columns

    viewer_like = aliased(PostLike)
    viewer_share = aliased(Share)
    columns.extend(
        [
            select(viewer_like.id)
            .where(
                viewer_like.post_id == Post.id,
                viewer_like.user_id == viewer_id,
                viewer_like.status == _ACTIVE,
            )
            .correlate(Post)
            .exists()
            .label("viewer_has_liked"),
            select(viewer_share.id)
            .where(
                viewer_share.post_id == Post.id,
                viewer_share.user_id == viewer_id,
                viewer_share.status == _ACTIVE,
            )
            .correlate(Post)
            .exists()
            .label("viewer_has_shared"),
        ]
    )
    return columns


def _post_loader_options() -> list[Any]:
    return [
        joinedload(Post.author),
        selectinload(Post.comments.and_(PostComment.deleted_at.is_(None))).joinedload(PostComment.author),
    ]


def _user_payload(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "avatar_url": user.avatar_url,
    }


def _comment_payload(comment: PostComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "body": comment.body,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
        "author": _user_payload(comment.author),
    }


def _post_payload(post: Post, row: Any) -> dict[str, Any]:
    return {
        "id": post.id,
        "user_id": post.user_id,
        "content": post.content,
        "image_url": post.image_url,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "author": _user_payload(post.author),
        "comments": [_comment_payload(comment) for comment in post.comments],
        "like_count": int(row.like_count or 0),
        "comment_count": int(row.comment_count or 0),
        "share_count": int(row.share_count or 0),
        "viewer_has_liked": bool(row.viewer_has_liked),
        "viewer_has_shared": bool(row.viewer_has_shared),
    }


def _hydrate_posts(db: Session, post_ids: Iterable[UUID], viewer_id: UUID | None) -> dict[UUID, dict[str, Any]]:
    ids = list(post_ids)
    if not ids:
        return {}

    stmt = (
        select(Post, *_engagement_columns(viewer_id))
        .where(Post.id.in_(ids), Post.deleted_at.is_(None))
        .options(*_post_loader_options())
        .execution_options(populate_existing=True)
    )
    return {row.Post.id: _post_payload(row.Post, row) for row in db.execute(stmt)}


def _hydrate_shares(db: Session, share_ids: Iterable[UUID], viewer_id: UUID | None) -> dict[UUID, dict[str, Any]]:
    ids = list(share_ids)
    if not ids:
        return {}

    # Outer join: a share survives hydration even when its post does not.
    stmt = (
        select(Share, Post, *_engagement_columns(viewer_id))
        .outerjoin(Post, and_(Post.id == Share.post_id, Post.deleted_at.is_(None)))
        .where(Share.id.in_(ids), Share.status == _ACTIVE)
        .options(joinedload(Share.user), *_post_loader_options())
        .execution_options(populate_existing=True)
    )

    hydrated: dict[UUID, dict[str, Any]] = {}
    for row in db.execute(stmt):
        share: Share = row.Share
        post: Post | None = row.Post
        hydrated[share.id] = {
            "id": share.id,
            "user_id": share.user_id,
            "post_id": share.post_id,
            "created_at": share.created_at,
            "updated_at": share.updated_at,
            "sharer": _user_payload(share.user),
            "post": _post_payload(post, row) if post is not None else None,
        }
    return hydrated


def hydrate_feed_page(db: Session, rows: Iterable[SkeletonRow], *, viewer_id: UUID | None) -> HydratedFeed:
    """Batch-load the posts and shares referenced by one skeleton page."""

    post_ids: list[UUID] = []
    share_ids: list[UUID] = []
    for row in rows:
        (post_ids if row.type == FEED_ITEM_POST else share_ids).append(row.id)

    return HydratedFeed(
        posts=_hydrate_posts(db, post_ids, viewer_id),
        shares=_hydrate_shares(db, share_ids, viewer_id),
    )


def hydrate_post(db: Session, *, post_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    """Single-post view model with the same shape as a feed post."""

    payload = _hydrate_posts(db, [post_id], viewer_id).get(post_id)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return payload


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------
def assemble_feed_items(rows: Iterable[SkeletonRow], hydrated: HydratedFeed) -> list[dict[str, Any]]:
    """Re-walk the skeleton order and wrap each hydrated entity as a feed item."""

    items: list[dict[str, Any]] = []
    for row in rows:
        source = hydrated.posts if row.type == FEED_ITEM_POST else hydrated.shares
        data = source.get(row.id)
        if data is None:
            # Removed between the skeleton read and hydration.
            logger.debug("Dropping %s %s missing at hydration", row.type, row.id)
            continue
        if row.type == FEED_ITEM_SHARE:
            # A share outlives its post as an unavailable placeholder.
            data = {**data, "is_available": data["post"] is not None}
        items.append({"type": row.type, "id": row.id, "sort_date": row.sort_date, "data": data})
    return items


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------
def allowed_author_ids(db: Session, *, viewer_id: UUID) -> list[UUID]:
    """The viewer plus every user the viewer actively follows."""

    stmt = select(Follow.following_id).where(Follow.follower_id == viewer_id, Follow.status == _ACTIVE)
    return [viewer_id, *db.scalars(stmt)]


def _feed_page(
    db: Session,
    *,
    author_ids: Collection[UUID],
    viewer_id: UUID | None,
    page: int,
    size: int,
) -> dict[str, Any]:
    skeleton = build_feed_skeleton(db, author_ids=author_ids, page=page, size=size)
    hydrated = hydrate_feed_page(db, skeleton.rows, viewer_id=viewer_id)
    items = assemble_feed_items(skeleton.rows, hydrated)
    logger.debug(
        "Feed page %d (size %d) for %d authors: %d/%d items, total %d",
        page,
        size,
        len(author_ids),
        len(items),
        len(skeleton.rows),
        skeleton.total,
    )
    return {"items": items, "total": skeleton.total, "page": page, "size": size}


def get_dashboard_feed(db: Session, *, viewer: User, page: int, size: int) -> dict[str, Any]:
    """Posts and shares by the viewer and the accounts they follow."""

    author_ids = allowed_author_ids(db, viewer_id=viewer.id)
    return _feed_page(db, author_ids=author_ids, viewer_id=viewer.id, page=page, size=size)


def get_profile_feed(
    db: Session,
    *,
    user_id: UUID,
    viewer_id: UUID | None,
    page: int,
    size: int,
) -> dict[str, Any]:
    """Posts and shares authored by a single user."""

    return _feed_page(db, author_ids=[user_id], viewer_id=viewer_id, page=page, size=size)


__all__ = [
    "SkeletonRow",
    "FeedSkeleton",
    "HydratedFeed",
    "build_feed_skeleton",
    "hydrate_feed_page",
    "hydrate_post",
    "assemble_feed_items",
    "allowed_author_ids",
    "get_dashboard_feed",
    "get_profile_feed",
]
