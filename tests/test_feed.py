"""Integration tests for the dashboard and profile timelines."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete, update

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_feed.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from socialfeed.database import Base, SessionLocal, engine  # noqa: E402
from socialfeed.main import app  # noqa: E402
from socialfeed.models import Follow, Post, PostComment, PostLike, RelationStatus, Share, User  # noqa: E402
from socialfeed.services import (  # noqa: E402
    assemble_feed_items,
    build_feed_skeleton,
    get_current_user,
    get_optional_user,
    hydrate_feed_page,
)

BASE_TIME = datetime(2020, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(PostComment))
        session.execute(delete(PostLike))
        session.execute(delete(Share))
        session.execute(delete(Follow))
        session.execute(delete(Post))
        session.execute(delete(User))
        session.commit()
    yield


@pytest.fixture
def user_factory() -> Callable[[str], User]:
    def _factory(username: str) -> User:
        with SessionLocal() as session:
            user = User(username=username, hashed_password="test-hash")
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
    return _factory


@pytest.fixture
def authed_client() -> Iterator[Callable[[User], TestClient]]:
    with TestClient(app) as client:
        def _with_user(user: User) -> TestClient:
            def _override() -> User:
                return user
            app.dependency_overrides[get_current_user] = _override
            app.dependency_overrides[get_optional_user] = _override
            return client
        yield _with_user
    app.dependency_overrides.clear()


def _at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


def _make_post(author: User, content: str, minutes: int) -> Post:
    with SessionLocal() as session:
        post = Post(user_id=author.id, content=content, created_at=_at(minutes), updated_at=_at(minutes))
        session.add(post)
        session.commit()
        session.refresh(post)
        return post


def _make_share(sharer: User, post: Post, minutes: int, *, active: bool = True) -> Share:
    with SessionLocal() as session:
        share = Share(
            user_id=sharer.id,
            post_id=post.id,
            status=RelationStatus.ACTIVE.value if active else RelationStatus.INACTIVE.value,
            created_at=_at(minutes),
            updated_at=_at(minutes),
        )
        session.add(share)
        session.commit()
        session.refresh(share)
        return share


def _follow(follower: User, target: User, *, active: bool = True) -> None:
    with SessionLocal() as session:
        session.add(
            Follow(
                follower_id=follower.id,
                following_id=target.id,
                status=RelationStatus.ACTIVE.value if active else RelationStatus.INACTIVE.value,
            )
        )
        session.commit()


def _labels(items: list[dict]) -> list[str]:
    labels = []
    for item in items:
        if item["type"] == "post":
            labels.append(item["data"]["content"])
        elif item["data"]["post"] is None:
            labels.append("share:unavailable")
        else:
            labels.append("share:" + item["data"]["post"]["content"])
    return labels


def test_dashboard_paginates_newest_first(user_factory, authed_client) -> None:
    viewer = user_factory("viewer")
    for index in range(1, 6):
        _make_post(viewer, f"T{index}", minutes=index)

    client = authed_client(viewer)

    first = client.get("/feed", params={"size": 2}).json()
    assert _labels(first["items"]) == ["T5", "T4"]
    assert first["total"] == 5
    assert first["pages"] == 3
    assert first["has_next"] is True
    assert first["next_page"] == 2

    second = client.get("/feed", params={"page": 2, "size": 2}).json()
    assert _labels(second["items"]) == ["T3", "T2"]

    last = client.get("/feed", params={"page": 3, "size": 2}).json()
    assert _labels(last["items"]) == ["T1"]
    assert last["has_next"] is False
    assert last["next_page"] is None

    beyond = client.get("/feed", params={"page": 4, "size": 2}).json()
    assert beyond["items"] == []
    assert beyond["total"] == 5


def test_dashboard_only_shows_self_and_active_follows(user_factory, authed_client) -> None:
    viewer = user_factory("viewer")
    friend = user_factory("friend")
    former = user_factory("former-friend")
    stranger = user_factory("stranger")
    _follow(viewer, friend)
    _follow(viewer, former, active=False)

    _make_post(viewer, "mine", minutes=1)
    _make_post(friend, "friend post", minutes=2)
    stranger_post = _make_post(stranger, "stranger post", minutes=3)
    _make_share(friend, stranger_post, minutes=4)
    _make_post(former, "former post", minutes=5)
    _make_share(stranger, stranger_post, minutes=6)

    client = authed_client(viewer)
    collected: list[dict] = []
    page = 1
    while True:
        payload = client.get("/feed", params={"page": page, "size": 2}).json()
        collected.extend(payload["items"])
        if not payload["has_next"]:
            break
        page += 1

    assert _labels(collected) == ["share:stranger post", "friend post", "mine"]
    dates = [item["sort_date"] for item in collected]
    assert dates == sorted(dates, reverse=True)
    assert collected[0]["data"]["sharer"]["username"] == "friend"
    assert collected[0]["data"]["is_available"] is True


def test_follow_toggle_changes_dashboard_membership(user_factory, authed_client) -> None:
    viewer = user_factory("viewer")
    author = user_factory("author")
    _make_post(author, "hello", minutes=1)

    client = authed_client(viewer)
    assert client.get("/feed").json()["items"] == []

    assert client.post(f"/follows/{author.id}").json()["status"] == "followed"
    assert _labels(client.get("/feed").json()["items"]) == ["hello"]

    assert client.post(f"/follows/{author.id}").json()["status"] == "unfollowed"
    assert client.get("/feed").json()["items"] == []


def test_reshare_moves_share_back_to_top(user_factory, authed_client) -> None:
    viewer = user_factory("viewer")
    first = _make_post(viewer, "first", minutes=1)
    _make_post(viewer, "second", minutes=2)

    client = authed_client(viewer)
    assert client.post(f"/posts/{first.id}/share").json()["status"] == "shared"

    items = client.get("/feed").json()["items"]
    assert _labels(items) == ["share:first", "second", "first"]
    share_id = items[0]["id"]

    unshared = client.post(f"/posts/{first.id}/share").json()
    assert unshared["status"] == "unshared"
    assert unshared["share_count"] == 0
    assert _labels(client.get("/feed").json()["items"]) == ["second", "first"]

    _make_post(viewer, "third", minutes=3)
    client.post(f"/posts/{first.id}/share")
    items = client.get("/feed").json()["items"]
    assert _labels(items) == ["share:first", "third", "second", "first"]
    assert items[0]["id"] == share_id


def test_hard_deleted_original_leaves_placeholder(user_factory, authed_client) -> None:
    viewer = user_factory("viewer")
    author = user_factory("author")
    _follow(viewer, author)

    original = _make_post(author, "original", minutes=1)
    share = _make_share(viewer, original, minutes=2)
    _make_post(viewer, "newest", minutes=3)

    # Bypass the ORM cascade to leave the share pointing at nothing.
    with SessionLocal() as session:
        session.execute(delete(Post).where(Post.id == original.id))
        session.commit()

    client = authed_client(viewer)
    payload = client.get("/feed", params={"size": 1, "page": 2}).json()
    assert payload["total"] == 2
    assert len(payload["items"]) == 1
    placeholder = payload["items"][0]
    assert placeholder["type"] == "share"
    assert placeholder["id"] == str(share.id)
    assert placeholder["data"]["post"] is None
    assert placeholder["data"]["is_available"] is False
    assert placeholder["data"]["sharer"]["username"] == "viewer"

    profile = client.get("/profiles/viewer/feed").json()
    assert _labels(profile["items"]) == ["newest", "share:unavailable"]


def test_soft_deleted_original_is_unavailable_on_profile(user_factory, authed_client) -> None:
    sharer = user_factory("sharer")
    author = user_factory("author")
    original = _make_post(author, "going away", minutes=1)
    _make_share(sharer, original, minutes=2)

    response = authed_client(author).delete(f"/posts/{original.id}")
    assert response.status_code == 204

    client = authed_client(sharer)
    profile = client.get("/profiles/sharer/feed").json()
    assert profile["total"] == 1
    assert profile["items"][0]["data"]["is_available"] is False
    assert profile["items"][0]["data"]["post"] is None

    assert client.get("/profiles/author/feed").json()["items"] == []


def test_profile_feed_defaults_and_scope(user_factory, authed_client) -> None:
    owner = user_factory("owner")
    other = user_factory("other")
    for index in range(1, 7):
        _make_post(owner, f"P{index}", minutes=index)
    other_post = _make_post(other, "elsewhere", minutes=10)
    _make_share(other, other_post, minutes=11)

    client = authed_client(other)
    payload = client.get("/profiles/owner/feed").json()
    assert payload["size"] == 5
    assert _labels(payload["items"]) == ["P6", "P5", "P4", "P3", "P2"]
    assert payload["has_next"] is True

    assert client.get("/profiles/nobody/feed").status_code == 404


def test_feed_items_carry_counts_flags_and_live_comments(user_factory, authed_client) -> None:
    viewer = user_factory("viewer")
    post = _make_post(viewer, "engaging", minutes=1)

    with SessionLocal() as session:
        session.add(PostLike(post_id=post.id, user_id=viewer.id))
        session.add(PostComment(post_id=post.id, user_id=viewer.id, body="kept", created_at=_at(2)))
        session.add(PostComment(post_id=post.id, user_id=viewer.id, body="gone", deleted_at=_at(3)))
        session.commit()

    data = authed_client(viewer).get("/feed").json()["items"][0]["data"]
    assert data["like_count"] == 1
    assert data["viewer_has_liked"] is True
    assert data["viewer_has_shared"] is False
    assert data["comment_count"] == 1
    assert [comment["body"] for comment in data["comments"]] == ["kept"]
    assert data["comments"][0]["author"]["username"] == "viewer"


def test_skeleton_breaks_timestamp_ties_deterministically(user_factory) -> None:
    author = user_factory("author")
    post = _make_post(author, "same moment", minutes=1)
    share = _make_share(author, post, minutes=1)
    _make_share(author, _make_post(user_factory("other"), "elsewhere", minutes=0), minutes=5, active=False)

    with SessionLocal() as session:
        skeleton = build_feed_skeleton(session, author_ids=[author.id], page=1, size=10)
        assert skeleton.total == 2
        assert [(row.type, row.id) for row in skeleton.rows] == [("post", post.id), ("share", share.id)]

        empty = build_feed_skeleton(session, author_ids=[], page=1, size=10)
        assert empty.rows == []
        assert empty.total == 0


def test_tied_timestamps_page_without_repeats_or_gaps(user_factory) -> None:
    author = user_factory("author")
    posts = [_make_post(author, f"tied {index}", minutes=7) for index in range(4)]
    for post in posts[:3]:
        _make_share(author, post, minutes=7)

    seen = []
    with SessionLocal() as session:
        page = 1
        while True:
            skeleton = build_feed_skeleton(session, author_ids=[author.id], page=page, size=2)
            if not skeleton.rows:
                break
            seen.extend((row.type, row.id) for row in skeleton.rows)
            page += 1

    assert skeleton.total == 7
    assert len(seen) == 7
    assert len(set(seen)) == 7


def test_rows_missing_at_hydration_are_dropped(user_factory) -> None:
    author = user_factory("author")
    one = _make_post(author, "one", minutes=1)
    two = _make_post(author, "two", minutes=2)
    three = _make_post(author, "three", minutes=3)
    removed_share = _make_share(author, one, minutes=4)
    orphaned_share = _make_share(author, three, minutes=5)

    with SessionLocal() as session:
        skeleton = build_feed_skeleton(session, author_ids=[author.id], page=1, size=10)
        assert [row.id for row in skeleton.rows] == [orphaned_share.id, removed_share.id, three.id, two.id, one.id]

        # Concurrent changes land after the skeleton read.
        session.execute(update(Post).where(Post.id == two.id).values(deleted_at=_at(6)))
        session.execute(delete(Share).where(Share.id == removed_share.id))
        session.execute(delete(Post).where(Post.id == three.id))
        session.commit()

        hydrated = hydrate_feed_page(session, skeleton.rows, viewer_id=author.id)
        items = assemble_feed_items(skeleton.rows, hydrated)

    assert [(item["type"], item["id"]) for item in items] == [("share", orphaned_share.id), ("post", one.id)]
    assert items[0]["data"]["post"] is None
    assert items[0]["data"]["is_available"] is False
    assert items[1]["data"]["content"] == "one"
