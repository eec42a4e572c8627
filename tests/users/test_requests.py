"""
Tests for follows, casting requests and request chat.
"""

from datetime import timedelta

import pytest

from api.api_users.users_functions import (
    DisplayNameResolver,
    check_following,
    create_request,
    decorate_with_names,
    get_chat_messages,
    get_follower_count,
    get_received_requests,
    get_request_for_participant,
    get_sent_requests,
    get_unread_request_count,
    mark_request_as_read,
    send_chat_message,
    toggle_follow,
    update_request_status,
)
from api.common.errors import InvalidInput, NotFound, PermissionDenied
from api.common.models import ChatMessageInput, RequestInput


def request_payload(to_user_id="actor1", **fields):
    return RequestInput.model_validate({"type": "actor_casting", "toUserId": to_user_id, "message": "Join us", **fields})


class TestFollows:
    """Tests for the follow toggle."""

    def test_toggle_on_and_off(self, db):
        assert toggle_follow(db.follows, "u1", "u2") is True
        assert check_following(db.follows, "u1", "u2")
        assert db.follows.find_one({"_id": "u1_u2"})["followingId"] == "u2"
        assert get_follower_count(db.follows, "u2") == 1

        assert toggle_follow(db.follows, "u1", "u2") is False
        assert not check_following(db.follows, "u1", "u2")
        assert get_follower_count(db.follows, "u2") == 0

    def test_self_follow_is_ignored(self, db):
        assert toggle_follow(db.follows, "u1", "u1") is False
        assert db.follows.count_documents({}) == 0


class TestRequests:
    """Tests for creating and answering requests."""

    def test_create_is_pending_and_unread(self, db):
        request_doc = create_request(db.requests, "director1", request_payload(movieId="m1"))
        stored = db.requests.find_one({"_id": request_doc["_id"]})
        assert stored["status"] == "pending"
        assert stored["read"] is False
        assert stored["fromUserId"] == "director1"
        assert stored["movieId"] == "m1"
        assert "actorId" not in stored

    def test_cannot_request_yourself(self, db):
        with pytest.raises(InvalidInput):
            create_request(db.requests, "actor1", request_payload())

    def test_inbox_and_outbox_newest_first(self, db, base_time):
        db.requests.insert_many(
            [
                {"_id": "r1", "fromUserId": "a", "toUserId": "b", "createdAt": base_time},
                {"_id": "r2", "fromUserId": "c", "toUserId": "b", "createdAt": base_time + timedelta(seconds=5)},
                {"_id": "r3", "fromUserId": "b", "toUserId": "a", "createdAt": base_time},
            ]
        )
        assert [doc["_id"] for doc in get_received_requests(db.requests, "b")] == ["r2", "r1"]
        assert [doc["_id"] for doc in get_sent_requests(db.requests, "b")] == ["r3"]

    def test_only_receiver_answers(self, db):
        request_doc = create_request(db.requests, "director1", request_payload())
        db.requests.update_one({"_id": request_doc["_id"]}, {"$set": {"read": True}})

        with pytest.raises(PermissionDenied):
            update_request_status(db.requests, request_doc["_id"], "accepted", "director1")

        updated = update_request_status(db.requests, request_doc["_id"], "accepted", "actor1")
        assert updated["status"] == "accepted"
        assert updated["read"] is False

    def test_unknown_status_and_missing_request(self, db):
        with pytest.raises(InvalidInput):
            update_request_status(db.requests, "r1", "maybe", "actor1")
        with pytest.raises(NotFound):
            update_request_status(db.requests, "missing", "accepted", "actor1")

    def test_unread_count(self, db):
        request_doc = create_request(db.requests, "director1", request_payload())
        create_request(db.requests, "director2", request_payload())
        assert get_unread_request_count(db.requests, "actor1") == 2

        mark_request_as_read(db.requests, request_doc["_id"], "actor1")
        assert get_unread_request_count(db.requests, "actor1") == 1

    def test_outsiders_cannot_read(self, db):
        request_doc = create_request(db.requests, "director1", request_payload())
        assert get_request_for_participant(db.requests, request_doc["_id"], "director1")["_id"] == request_doc["_id"]
        with pytest.raises(PermissionDenied):
            get_request_for_participant(db.requests, request_doc["_id"], "stranger")

    def test_decorate_with_names(self, db, memory_cache, base_time):
        db.users.insert_one({"_id": "director1", "displayName": "Park", "createdAt": base_time})
        resolver = DisplayNameResolver(db.users, db.actors, db.filmmakers, memory_cache)
        decorated = decorate_with_names([{"_id": "r1", "fromUserId": "director1", "toUserId": "actor1xyz"}], resolver)
        assert decorated[0]["fromUserName"] == "Park"
        assert decorated[0]["toUserName"] == "actor1xy"


class TestChat:
    """Tests for request chat messages."""

    def test_messages_oldest_first(self, db, base_time):
        request_doc = create_request(db.requests, "director1", request_payload())
        send_chat_message(db.requests, db.requestMessages, request_doc["_id"], "director1", ChatMessageInput(message="Hi"))
        db.requestMessages.insert_one(
            {"_id": "early", "requestId": request_doc["_id"], "userId": "actor1", "message": "Old", "createdAt": base_time}
        )

        messages = get_chat_messages(db.requests, db.requestMessages, request_doc["_id"], "actor1")
        assert [message["message"] for message in messages] == ["Old", "Hi"]
        assert messages[1]["toUserId"] == "actor1"

    def test_outsider_cannot_post(self, db):
        request_doc = create_request(db.requests, "director1", request_payload())
        with pytest.raises(PermissionDenied):
            send_chat_message(db.requests, db.requestMessages, request_doc["_id"], "stranger", ChatMessageInput(message="Hi"))
