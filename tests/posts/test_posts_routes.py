"""
API tests for the posts service.
"""

import pytest

import api.api_posts.posts as posts_service
from api.api_users.users_functions import DisplayNameResolver


@pytest.fixture
def client(db, memory_cache, monkeypatch):
    monkeypatch.setattr(posts_service, "posts_collection", db.posts)
    monkeypatch.setattr(posts_service, "comments_collection", db.postComments)
    monkeypatch.setattr(posts_service, "likes_collection", db.postLikes)
    monkeypatch.setattr(posts_service, "view_counts_collection", db.postViewCounts)
    monkeypatch.setattr(posts_service, "bookmarks_collection", db.userBookmarks)
    monkeypatch.setattr(posts_service, "users_collection", db.users)
    monkeypatch.setattr(
        posts_service,
        "name_resolver",
        DisplayNameResolver(db.users, db.actors, db.filmmakers, memory_cache),
    )
    posts_service.app.config["TESTING"] = True
    return posts_service.app.test_client()


POST = {"type": "general", "category": "free", "title": "Hello", "content": "First post"}


class TestPostEndpoints:
    """Tests for /posts."""

    def test_create_stores_author_name_and_role(self, client, db, base_time):
        db.users.insert_one({"_id": "u1", "displayName": "Kim", "role": "filmmaker", "createdAt": base_time})
        r = client.post("/posts", json=POST, headers={"X-User-Id": "u1"})
        assert r.status_code == 201
        data = r.get_json()
        assert data["authorName"] == "Kim"
        assert data["authorRole"] == "filmmaker"

    def test_list_and_detail(self, client):
        post_id = client.post("/posts", json=POST, headers={"X-User-Id": "u1"}).get_json()["id"]
        listing = client.get("/posts?type=general&category=free").get_json()
        assert [post["id"] for post in listing["posts"]] == [post_id]
        assert client.get(f"/posts/{post_id}").get_json()["title"] == "Hello"
        assert client.get("/posts/missing").status_code == 404

    def test_delete_by_other_user(self, client):
        post_id = client.post("/posts", json=POST, headers={"X-User-Id": "u1"}).get_json()["id"]
        assert client.delete(f"/posts/{post_id}", headers={"X-User-Id": "u2"}).status_code == 403
        assert client.delete(f"/posts/{post_id}", headers={"X-User-Id": "u1"}).status_code == 200

    def test_my_posts(self, client):
        client.post("/posts", json={**POST, "isPublic": False}, headers={"X-User-Id": "u1"})
        data = client.get("/posts/mine", headers={"X-User-Id": "u1"}).get_json()
        assert len(data["posts"]) == 1
        assert client.get("/posts").get_json()["posts"] == []


class TestInteractionEndpoints:
    """Tests for comments, likes, views and bookmarks over HTTP."""

    def test_comment_flow(self, client):
        post_id = client.post("/posts", json=POST, headers={"X-User-Id": "u1"}).get_json()["id"]
        r = client.post(f"/posts/{post_id}/comments", json={"content": "Nice"}, headers={"X-User-Id": "u2"})
        assert r.status_code == 201
        comment_id = r.get_json()["id"]

        assert client.delete(f"/comments/{comment_id}", headers={"X-User-Id": "u1"}).status_code == 403
        assert client.delete(f"/comments/{comment_id}", headers={"X-User-Id": "u2"}).status_code == 200
        assert client.get(f"/posts/{post_id}/comments").get_json()["comments"] == []

    def test_comment_on_missing_post(self, client):
        r = client.post("/posts/missing/comments", json={"content": "Nice"}, headers={"X-User-Id": "u2"})
        assert r.status_code == 404

    def test_like_view_bookmark(self, client):
        headers = {"X-User-Id": "u1"}
        assert client.post("/posts/p1/like", headers=headers).get_json() == {"liked": True, "likes": 1}
        assert client.post("/posts/p1/views").get_json() == {"views": 1}
        assert client.get("/posts/p1/views").get_json() == {"views": 1}
        assert client.post("/posts/p1/bookmark", headers=headers).get_json() == {"bookmarked": True}
        assert client.get("/posts/p1/bookmark", headers=headers).get_json() == {"bookmarked": True}
