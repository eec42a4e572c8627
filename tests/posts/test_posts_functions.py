"""
Tests for community posts, comments and post interactions.
"""

from datetime import timedelta

import pytest

from api.api_posts.posts_functions import (
    check_bookmarked,
    check_post_liked,
    create_comment,
    create_post,
    delete_comment,
    delete_post,
    get_comments,
    get_my_posts,
    get_post_like_count,
    get_post_view_count,
    get_posts,
    increment_post_views,
    toggle_bookmark,
    toggle_post_like,
    update_post,
)
from api.common.errors import NotFound, PermissionDenied
from api.common.models import CommentInput, PostInput, PostUpdate


def post_payload(**fields):
    return PostInput.model_validate({"type": "casting_call", "title": "Lead wanted", "content": "Short film", **fields})


class TestPosts:
    """Tests for creating, listing and editing posts."""

    def test_create_omits_empty_optionals(self, db):
        post = create_post(db.posts, "u1", "filmmaker", "Kim", post_payload(location="", requirements=[]))
        stored = db.posts.find_one({"_id": post["_id"]})
        assert "location" not in stored
        assert "requirements" not in stored
        assert stored["views"] == 0
        assert stored["isPublic"] is True
        assert stored["authorName"] == "Kim"

    def test_role_defaults_to_viewer(self, db):
        post = create_post(db.posts, "u1", None, "Kim", post_payload(requirements=["20s"]))
        assert post["authorRole"] == "viewer"
        assert post["requirements"] == ["20s"]

    def test_list_filters_type_and_category(self, db, base_time):
        db.posts.insert_many(
            [
                {"_id": "p1", "type": "general", "category": "free", "isPublic": True, "createdAt": base_time},
                {"_id": "p2", "type": "general", "category": "tech", "isPublic": True, "createdAt": base_time + timedelta(seconds=1)},
                {"_id": "p3", "type": "casting_call", "category": "casting", "isPublic": True, "createdAt": base_time},
                {"_id": "p4", "type": "general", "category": "free", "isPublic": False, "createdAt": base_time},
            ]
        )
        assert [post["_id"] for post in get_posts(db.posts, post_type="general").items] == ["p2", "p1"]
        assert [post["_id"] for post in get_posts(db.posts, post_type="general", category="free").items] == ["p1"]
        assert [post["_id"] for post in get_posts(db.posts, category="casting").items] == ["p3"]

    def test_my_posts_include_private(self, db):
        create_post(db.posts, "u1", "actor", "Kim", post_payload(isPublic=False))
        create_post(db.posts, "u2", "actor", "Lee", post_payload())
        assert [post["authorId"] for post in get_my_posts(db.posts, "u1")] == ["u1"]

    def test_only_author_edits_and_deletes(self, db):
        post = create_post(db.posts, "u1", "actor", "Kim", post_payload())
        with pytest.raises(PermissionDenied):
            update_post(db.posts, post["_id"], "u2", PostUpdate(title="Mine now"))
        with pytest.raises(PermissionDenied):
            delete_post(db.posts, post["_id"], "u2")

        assert update_post(db.posts, post["_id"], "u1", PostUpdate(title="Edited"))["title"] == "Edited"
        delete_post(db.posts, post["_id"], "u1")
        assert db.posts.count_documents({}) == 0

    def test_delete_missing_post(self, db):
        with pytest.raises(NotFound):
            delete_post(db.posts, "missing", "u1")


class TestComments:
    """Tests for post comments."""

    def test_oldest_first(self, db, base_time):
        create_comment(db.postComments, "p1", "u1", "Kim", CommentInput(content="Later"))
        db.postComments.insert_one({"_id": "c0", "postId": "p1", "authorId": "u2", "content": "First", "createdAt": base_time})
        assert [comment["content"] for comment in get_comments(db.postComments, "p1")] == ["First", "Later"]

    def test_delete_rules(self, db):
        comment = create_comment(db.postComments, "p1", "u1", "Kim", CommentInput(content="Hello"))
        with pytest.raises(PermissionDenied):
            delete_comment(db.postComments, comment["_id"], "u2")
        with pytest.raises(NotFound):
            delete_comment(db.postComments, "missing", "u1")
        delete_comment(db.postComments, comment["_id"], "u1")
        assert get_comments(db.postComments, "p1") == []


class TestInteractions:
    """Tests for likes, views and bookmarks."""

    def test_like_toggle(self, db):
        assert toggle_post_like(db.postLikes, "p1", "u1") is True
        assert db.postLikes.find_one({"_id": "p1_u1"}) is not None
        assert check_post_liked(db.postLikes, "p1", "u1")
        assert get_post_like_count(db.postLikes, "p1") == 1
        assert toggle_post_like(db.postLikes, "p1", "u1") is False
        assert get_post_like_count(db.postLikes, "p1") == 0

    def test_views(self, db):
        assert get_post_view_count(db.postViewCounts, "p1") == 0
        increment_post_views(db.postViewCounts, "p1")
        assert increment_post_views(db.postViewCounts, "p1") == 2
        assert get_post_view_count(db.postViewCounts, "p1") == 2

    def test_bookmark_toggle(self, db):
        assert toggle_bookmark(db.userBookmarks, "u1", "p1") is True
        assert db.userBookmarks.find_one({"_id": "u1_p1"}) is not None
        assert check_bookmarked(db.userBookmarks, "u1", "p1")
        assert toggle_bookmark(db.userBookmarks, "u1", "p1") is False
        assert not check_bookmarked(db.userBookmarks, "u1", "p1")
