"""Tests for reusable like, share and follow rows."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete, func, select

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_toggles.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from socialfeed.database import Base, SessionLocal, engine  # noqa: E402
from socialfeed.main import app  # noqa: E402
from socialfeed.models import Follow, Post, PostComment, PostLike, RelationStatus, Share, User  # noqa: E402
from socialfeed.services import get_current_user, get_optional_user, toggle_relation  # noqa: E402
from socialfeed.services import toggle_service  # noqa: E402


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


def _make_post(author: User, content: str = "hello") -> Post:
    with SessionLocal() as session:
        post = Post(user_id=author.id, content=content)
        session.add(post)
        session.commit()
        session.refresh(post)
        return post


def _rows(model, **filters) -> list:
    with SessionLocal() as session:
        return list(session.scalars(select(model).filter_by(**filters)))


def test_like_toggle_reuses_single_row(user_factory, authed_client) -> None:
    author = user_factory("author")
    fan = user_factory("fan")
    post = _make_post(author)
    client = authed_client(fan)

    liked = client.post(f"/posts/{post.id}/like").json()
    assert liked["status"] == "liked"
    assert liked["like_count"] == 1
    assert liked["viewer_has_liked"] is True
    [row] = _rows(PostLike, post_id=post.id)
    like_id = row.id

    unliked = client.post(f"/posts/{post.id}/like").json()
    assert unliked["status"] == "unliked"
    assert unliked["like_count"] == 0
    assert unliked["viewer_has_liked"] is False
    [row] = _rows(PostLike, post_id=post.id)
    assert row.id == like_id
    assert row.status == RelationStatus.INACTIVE

    relinked = client.post(f"/posts/{post.id}/like").json()
    assert relinked["like_count"] == 1
    [row] = _rows(PostLike, post_id=post.id)
    assert row.id == like_id
    assert row.status == RelationStatus.ACTIVE


def test_share_toggle_restores_count(user_factory, authed_client) -> None:
    author = user_factory("author")
    fan = user_factory("fan")
    post = _make_post(author)
    client = authed_client(fan)

    assert client.post(f"/posts/{post.id}/share").json()["share_count"] == 1
    assert client.post(f"/posts/{post.id}/share").json()["share_count"] == 0
    shared_again = client.post(f"/posts/{post.id}/share").json()
    assert shared_again["share_count"] == 1
    assert shared_again["viewer_has_shared"] is True
    assert len(_rows(Share, post_id=post.id)) == 1

    viewed = client.get(f"/posts/{post.id}").json()
    assert viewed["share_count"] == 1
    assert viewed["viewer_has_shared"] is True


def test_like_on_deleted_post_is_not_found(user_factory, authed_client) -> None:
    author = user_factory("author")
    post = _make_post(author)
    client = authed_client(author)

    assert client.delete(f"/posts/{post.id}").status_code == 204
    assert client.post(f"/posts/{post.id}/like").status_code == 404
    assert client.post(f"/posts/{post.id}/share").status_code == 404


def test_follow_unfollow_follow_keeps_row_id(user_factory, authed_client) -> None:
    follower = user_factory("follower")
    target = user_factory("target")
    client = authed_client(follower)

    followed = client.post(f"/follows/{target.id}").json()
    assert followed["status"] == "followed"
    assert followed["followers_count"] == 1
    assert followed["is_following"] is True

    unfollowed = client.post(f"/follows/{target.id}").json()
    assert unfollowed["status"] == "unfollowed"
    assert unfollowed["followers_count"] == 0
    assert unfollowed["follow_id"] == followed["follow_id"]

    refollowed = client.post(f"/follows/{target.id}").json()
    assert refollowed["follow_id"] == followed["follow_id"]
    assert len(_rows(Follow, follower_id=follower.id, following_id=target.id)) == 1

    stats = client.get(f"/follows/stats/{follower.id}").json()
    assert stats["following_count"] == 1
    assert stats["followers_count"] == 0


def test_self_follow_rejected_without_row(user_factory, authed_client) -> None:
    loner = user_factory("loner")
    response = authed_client(loner).post(f"/follows/{loner.id}")

    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot follow yourself"
    assert _rows(Follow) == []


def test_follow_unknown_user_is_not_found(user_factory, authed_client) -> None:
    follower = user_factory("follower")
    response = authed_client(follower).post("/follows/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


def test_toggle_relation_reports_created_only_once(user_factory) -> None:
    author = user_factory("author")
    fan = user_factory("fan")
    post = _make_post(author)

    with SessionLocal() as session:
        first = toggle_relation(session, PostLike, post_id=post.id, user_id=fan.id)
        second = toggle_relation(session, PostLike, post_id=post.id, user_id=fan.id)

    assert (first.created, first.active) == (True, True)
    assert (second.created, second.active) == (False, False)
    assert first.record.id == second.record.id


def test_toggle_relation_recovers_from_duplicate_insert(user_factory, monkeypatch) -> None:
    author = user_factory("author")
    fan = user_factory("fan")
    post = _make_post(author)

    with SessionLocal() as session:
        existing = Share(post_id=post.id, user_id=fan.id)
        session.add(existing)
        session.commit()
        existing_id = existing.id

    original_find = toggle_service._find_existing
    calls = {"count": 0}

    def _stale_find(db, model, keys):
        # First lookup misses the committed row, as a concurrent request would.
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return original_find(db, model, keys)

    monkeypatch.setattr(toggle_service, "_find_existing", _stale_find)

    with SessionLocal() as session:
        result = toggle_relation(session, Share, post_id=post.id, user_id=fan.id)

    assert result.created is False
    assert result.active is False
    assert result.record.id == existing_id
    with SessionLocal() as session:
        assert session.scalar(select(func.count(Share.id))) == 1
