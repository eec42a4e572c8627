from flask import Flask, jsonify, request
from flask_cors import CORS

from api.common.access import get_acting_user_id
from api.common.config import Settings, get_database
from api.common.documents import serialize_document, serialize_documents
from api.common.errors import NotFound, register_error_handlers
from api.common.logging_config import get_logger, setup_logging
from api.common.models import MovieInput, MovieRatingInput, MovieUpdate
from api.common.refine import parse_limit
from api.api_movies.movies_functions import (
    MOVIE_SORT_OPTIONS,
    average_rating,
    create_movie,
    create_or_update_movie_rating,
    delete_movie_rating,
    extract_video_id,
    get_all_credits,
    get_credits_by_name,
    get_credits_by_role,
    get_movie_by_id,
    get_movie_ratings,
    get_movies,
    get_movies_by_actor_id,
    get_movies_with_stats,
    get_user_movie_ratings,
    update_movie,
)

settings = Settings.from_env()
setup_logging(settings.log_level, settings.log_file, settings.log_dir)
logger = get_logger(__name__)

app = Flask(__name__)
app.json.sort_keys = False
CORS(app)
register_error_handlers(app)

db = get_database(settings)
movies_collection = db["movies"]
ratings_collection = db["movieRatings"]


@app.route("/movies", methods=["GET"])
def list_movies():
    """
    Handle GET requests for published movies.

    Returns:
        Response: Page of movies, newest first.
    """
    genre = request.args.get("genre") or None
    limit = parse_limit(request.args.get("limit"), settings.default_page_size, settings.max_page_size)
    cursor = request.args.get("cursor") or None

    page = get_movies(movies_collection, genre=genre, limit_count=limit, cursor=cursor)
    return jsonify(page.to_payload("movies"))


@app.route("/movies/with-stats", methods=["GET"])
def list_movies_with_stats():
    """
    Handle GET requests for movies decorated with rating stats.

    Returns:
        Response: Movies sorted by ``latest``, ``popular`` or ``rating``.
    """
    genre = request.args.get("genre") or None
    sort_option = (request.args.get("sort") or "latest").lower()
    if sort_option not in MOVIE_SORT_OPTIONS:
        sort_option = "latest"
    limit = parse_limit(request.args.get("limit"), settings.max_page_size, settings.max_page_size)

    movies = get_movies_with_stats(movies_collection, ratings_collection, genre=genre, sort_option=sort_option, limit_count=limit)
    return jsonify({"movies": serialize_documents(movies), "sort": sort_option})


@app.route("/movies/<movie_id>", methods=["GET"])
def get_movie_detail(movie_id: str):
    """
    Handle GET requests for one movie with its rating summary.

    Args:
        movie_id (str): Identifier from the path segment.

    Returns:
        Response: Movie document or 404.
    """
    movie = get_movie_by_id(movies_collection, movie_id)
    if not movie:
        raise NotFound("Movie not found")

    ratings = get_movie_ratings(ratings_collection, movie_id)
    payload = serialize_document(movie)
    payload["averageRating"] = average_rating(ratings)
    payload["reviewCount"] = len(ratings)
    payload["videoId"] = extract_video_id(movie.get("videoUrl"), movie.get("videoPlatform"))
    return jsonify(payload)


@app.route("/movies", methods=["POST"])
def post_movie():
    filmmaker_id = get_acting_user_id(request)
    payload = MovieInput.model_validate(request.get_json(silent=True) or {})
    movie = create_movie(movies_collection, filmmaker_id, payload)
    return jsonify(serialize_document(movie)), 201


@app.route("/movies/<movie_id>", methods=["PATCH"])
def patch_movie(movie_id: str):
    acting_user_id = get_acting_user_id(request)
    payload = MovieUpdate.model_validate(request.get_json(silent=True) or {})
    movie = update_movie(movies_collection, movie_id, acting_user_id, payload)
    return jsonify(serialize_document(movie))


@app.route("/movies/<movie_id>/ratings", methods=["GET"])
def list_movie_ratings(movie_id: str):
    ratings = get_movie_ratings(ratings_collection, movie_id)
    return jsonify({"ratings": serialize_documents(ratings), "averageRating": average_rating(ratings)})


@app.route("/movies/<movie_id>/average-rating", methods=["GET"])
def get_average_rating(movie_id: str):
    ratings = get_movie_ratings(ratings_collection, movie_id)
    return jsonify({"movieId": movie_id, "averageRating": average_rating(ratings), "reviewCount": len(ratings)})


@app.route("/actors/<actor_id>/movies", methods=["GET"])
def list_actor_movies(actor_id: str):
    movies = get_movies_by_actor_id(movies_collection, actor_id)
    return jsonify({"movies": serialize_documents(movies)})


@app.route("/credits", methods=["GET"])
def list_credits():
    """
    Handle GET requests for crew credits.

    ``role`` selects one role; ``name`` searches names; neither groups every credit by role.

    Returns:
        Response: Credit entries with the movies they appear in.
    """
    role = (request.args.get("role") or "").strip()
    name = (request.args.get("name") or "").strip()

    if role:
        return jsonify({"credits": [serialize_credit(entry) for entry in get_credits_by_role(movies_collection, role)]})
    if name:
        return jsonify({"credits": [serialize_credit(entry) for entry in get_credits_by_name(movies_collection, name)]})

    grouped = get_all_credits(movies_collection)
    return jsonify({role_name: [serialize_credit(entry) for entry in entries] for role_name, entries in grouped.items()})


def serialize_credit(entry: dict):
    return {**entry, "movies": serialize_documents(entry["movies"])}


@app.route("/users/<user_id>/movie-ratings", methods=["GET"])
def list_user_ratings(user_id: str):
    limit = parse_limit(request.args.get("limit"), None, settings.max_page_size)
    cursor = request.args.get("cursor") or None
    page = get_user_movie_ratings(ratings_collection, user_id, limit_count=limit, cursor=cursor)
    return jsonify(page.to_payload("ratings"))


@app.route("/movie-ratings", methods=["PUT"])
def put_movie_rating():
    """
    Handle PUT requests that create or update the acting user's rating.

    Returns:
        Response: Stored rating document.
    """
    user_id = get_acting_user_id(request)
    payload = MovieRatingInput.model_validate(request.get_json(silent=True) or {})
    rating = create_or_update_movie_rating(ratings_collection, movies_collection, user_id, payload)
    return jsonify(serialize_document(rating))


@app.route("/movie-ratings/<rating_id>", methods=["DELETE"])
def remove_movie_rating(rating_id: str):
    user_id = get_acting_user_id(request)
    delete_movie_rating(ratings_collection, rating_id, user_id)
    return jsonify({"status": "rating deleted"})


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5003, debug=True)
