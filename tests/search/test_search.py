"""
Tests for the unified search, as functions and over HTTP.
"""

import pytest
from pymongo.errors import PyMongoError

import api.api_search.search as search_service
from api.api_search.search_functions import SEARCH_TYPES, parse_search_types, search_all


@pytest.fixture
def collections(db, base_time):
    db.movies.insert_many(
        [
            {"_id": "m1", "title": "Harbor Lights", "isPublished": True, "createdAt": base_time, "credits": [{"role": "Director", "name": "Kim"}]},
            {"_id": "m2", "title": "Quiet", "tags": ["harbor"], "isPublished": True, "createdAt": base_time},
            {"_id": "m3", "title": "Harbor Draft", "isPublished": False, "createdAt": base_time},
        ]
    )
    db.actors.insert_one({"_id": "a1", "stageName": "Ann", "skills": ["Harbor diving"], "isPublic": True, "createdAt": base_time})
    db.filmmakers.insert_one({"_id": "f1", "name": "Kim Crew", "bio": "Coastal stories", "isPublic": True, "createdAt": base_time})
    db.posts.insert_one({"_id": "p1", "title": "Casting", "content": "Shooting at the harbor", "isPublic": True, "createdAt": base_time})
    return {"movies": db.movies, "actors": db.actors, "filmmakers": db.filmmakers, "posts": db.posts}


class TestSearchAll:
    """Tests for bucketed free-text search."""

    def test_matches_every_bucket_case_insensitively(self, collections):
        results = search_all(collections, "  HARBOR ")
        assert [movie["id"] for movie in results["movies"]] == ["m1", "m2"]
        assert [actor["id"] for actor in results["actors"]] == ["a1"]
        assert results["filmmakers"] == []
        assert [post["id"] for post in results["posts"]] == ["p1"]

    def test_credit_names_are_searched(self, collections):
        results = search_all(collections, "kim", ("movies", "filmmakers"))
        assert [movie["id"] for movie in results["movies"]] == ["m1"]
        assert [filmmaker["id"] for filmmaker in results["filmmakers"]] == ["f1"]
        assert set(results) == {"movies", "filmmakers"}

    def test_empty_query_returns_empty_buckets(self, collections):
        assert search_all(collections, "   ") == {name: [] for name in SEARCH_TYPES}

    def test_limit_per_bucket(self, collections):
        assert len(search_all(collections, "harbor", limit_count=1)["movies"]) == 1

    def test_failing_bucket_is_isolated(self, collections):
        class BrokenCollection:
            def find(self, query):
                raise PyMongoError("down")

        results = search_all({**collections, "actors": BrokenCollection()}, "harbor")
        assert results["actors"] == []
        assert [post["id"] for post in results["posts"]] == ["p1"]

    def test_parse_search_types(self):
        assert parse_search_types("posts, Movies,unknown") == ("movies", "posts")
        assert parse_search_types("") == SEARCH_TYPES
        assert parse_search_types("nothing") == SEARCH_TYPES


class TestSearchEndpoint:
    """Tests for GET /search."""

    @pytest.fixture
    def client(self, collections, monkeypatch):
        monkeypatch.setattr(search_service, "search_collections", collections)
        search_service.app.config["TESTING"] = True
        return search_service.app.test_client()

    def test_search(self, client):
        data = client.get("/search?q=harbor&types=posts").get_json()
        assert data["query"] == "harbor"
        assert [post["id"] for post in data["posts"]] == ["p1"]
        assert "movies" not in data
