"""
Tests for the ownership checks guarding every mutation.
"""

import pytest

from api.common.access import can_mutate, ensure_owner, ensure_self
from api.common.errors import NotFound, PermissionDenied


class TestCanMutate:
    """Tests for the boolean ownership check."""

    def test_owner_may_mutate(self):
        assert can_mutate({"authorId": "u1"}, "u1", "authorId")

    def test_other_user_may_not(self):
        assert not can_mutate({"authorId": "u1"}, "u2", "authorId")

    @pytest.mark.parametrize("record,user_id", [(None, "u1"), ({"authorId": "u1"}, None), ({}, "u1")])
    def test_missing_record_user_or_owner(self, record, user_id):
        assert not can_mutate(record, user_id, "authorId")


class TestEnsureOwner:
    """Tests for the raising variant."""

    def test_returns_record_for_owner(self):
        record = {"_id": "p1", "authorId": "u1"}
        assert ensure_owner(record, "u1", "authorId") is record

    def test_missing_record_with_message_is_not_found(self):
        with pytest.raises(NotFound, match="Post not found"):
            ensure_owner(None, "u1", "authorId", missing_message="Post not found")

    def test_missing_record_without_message_is_denied(self):
        with pytest.raises(PermissionDenied):
            ensure_owner(None, "u1", "authorId")

    def test_non_owner_is_denied(self):
        with pytest.raises(PermissionDenied):
            ensure_owner({"authorId": "u1"}, "u2", "authorId", missing_message="Post not found")

    def test_ensure_self(self):
        ensure_self("u1", "u1")
        with pytest.raises(PermissionDenied):
            ensure_self("u1", "u2")
