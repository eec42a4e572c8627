"""
Tests for payload schemas and the document serializer.
"""

import pytest
from pydantic import ValidationError

from api.common.models import ActorProfileInput, MovieRatingInput, MovieUpdate, PostInput, UserProfileInput, to_document


class TestToDocument:
    """Tests for the camelCase serializer that omits absent fields."""

    def test_absent_optionals_are_omitted(self):
        payload = PostInput.model_validate({"type": "general", "title": " Hello ", "content": "Body"})
        document = to_document(payload)
        assert document == {"type": "general", "title": "Hello", "content": "Body", "isPublic": True}

    def test_accepts_camel_case_input(self):
        payload = ActorProfileInput.model_validate({"stageName": "Ann", "ageRange": "20s", "heightCm": 170})
        document = to_document(payload)
        assert document["stageName"] == "Ann"
        assert document["heightCm"] == 170
        assert "bio" not in document

    def test_partial_keeps_only_sent_fields(self):
        payload = MovieUpdate.model_validate({"title": "New"})
        assert to_document(payload, partial=True) == {"title": "New"}

    def test_explicit_alias(self):
        payload = UserProfileInput.model_validate({"photoURL": "http://img"})
        assert to_document(payload, partial=True) == {"photoURL": "http://img"}


class TestValidation:
    """Tests for rejected payloads."""

    def test_rating_bounds(self):
        with pytest.raises(ValidationError):
            MovieRatingInput.model_validate({"movieTitle": "X", "rating": 6})

    def test_rating_needs_a_movie_reference(self):
        with pytest.raises(ValidationError):
            MovieRatingInput.model_validate({"rating": 4})

    def test_unknown_enum_value(self):
        with pytest.raises(ValidationError):
            PostInput.model_validate({"type": "ad", "title": "t", "content": "c"})
