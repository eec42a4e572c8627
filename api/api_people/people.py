from flask import Flask, jsonify, request
from flask_cors import CORS

from api.common.access import ensure_self, get_acting_user_id
from api.common.cache import RedisCache
from api.common.config import Settings, get_database, get_redis
from api.common.documents import serialize_document, serialize_documents
from api.common.errors import NotFound, register_error_handlers
from api.common.logging_config import get_logger, setup_logging
from api.common.models import ActorProfileInput, FilmmakerProfileInput, VenueInput, VenueUpdate
from api.common.refine import parse_limit
from api.api_movies.movies_functions import extract_video_id, get_filmmaker_movies
from api.api_people.people_functions import (
    create_or_update_actor_profile,
    create_or_update_filmmaker_profile,
    create_venue,
    get_actor_by_id,
    get_actors,
    get_filmmaker_by_id,
    get_filmmakers,
    get_venue_by_user_id,
    get_venues,
    update_venue,
)
from api.api_users.users_functions import NAME_CACHE_PREFIX, NAME_MAP_KEY

settings = Settings.from_env()
setup_logging(settings.log_level, settings.log_file, settings.log_dir)
logger = get_logger(__name__)

app = Flask(__name__)
app.json.sort_keys = False
CORS(app)
register_error_handlers(app)

db = get_database(settings)
actors_collection = db["actors"]
filmmakers_collection = db["filmmakers"]
venues_collection = db["venues"]
movies_collection = db["movies"]

r = get_redis(settings)
name_cache = RedisCache(r, settings.cache_ttl_seconds, prefix=NAME_CACHE_PREFIX)


def profile_written():
    """Drop the shared display-name map when write invalidation is enabled."""
    if settings.name_cache_invalidate_on_write:
        logger.info("Profile written, invalidating the name map")
        name_cache.invalidate(NAME_MAP_KEY)


@app.route("/actors", methods=["GET"])
def list_actors():
    """
    Handle GET requests for public actor profiles.

    Returns:
        Response: Page of actors filtered by ``location`` and ``ageRange``.
    """
    location = request.args.get("location") or None
    age_range = request.args.get("ageRange") or None
    limit = parse_limit(request.args.get("limit"), settings.default_page_size, settings.max_page_size)
    cursor = request.args.get("cursor") or None

    page = get_actors(actors_collection, location=location, age_range=age_range, limit_count=limit, cursor=cursor)
    return jsonify(page.to_payload("actors"))


@app.route("/actors/<actor_id>", methods=["GET"])
def get_actor_detail(actor_id: str):
    """
    Handle GET requests for one actor profile.

    Args:
        actor_id (str): Identifier from the path segment.

    Returns:
        Response: Actor profile with the demo reel video id, or 404.
    """
    actor = get_actor_by_id(actors_collection, actor_id)
    if not actor:
        raise NotFound("Actor not found")

    payload = serialize_document(actor)
    payload["demoVideoId"] = extract_video_id(actor.get("demoUrl"), actor.get("demoPlatform"))
    return jsonify(payload)


@app.route("/actors/<user_id>", methods=["PUT"])
def put_actor_profile(user_id: str):
    ensure_self(user_id, get_acting_user_id(request))
    payload = ActorProfileInput.model_validate(request.get_json(silent=True) or {})
    actor = create_or_update_actor_profile(actors_collection, user_id, payload)
    profile_written()
    return jsonify(serialize_document(actor))


@app.route("/filmmakers", methods=["GET"])
def list_filmmakers():
    filmmaker_type = request.args.get("type") or None
    location = request.args.get("location") or None
    limit = parse_limit(request.args.get("limit"), None, settings.max_page_size)
    cursor = request.args.get("cursor") or None

    page = get_filmmakers(filmmakers_collection, filmmaker_type=filmmaker_type, location=location, limit_count=limit, cursor=cursor)
    return jsonify(page.to_payload("filmmakers"))


@app.route("/filmmakers/<filmmaker_id>", methods=["GET"])
def get_filmmaker_detail(filmmaker_id: str):
    filmmaker = get_filmmaker_by_id(filmmakers_collection, filmmaker_id)
    if not filmmaker:
        raise NotFound("Filmmaker not found")
    return jsonify(serialize_document(filmmaker))


@app.route("/filmmakers/<user_id>", methods=["PUT"])
def put_filmmaker_profile(user_id: str):
    ensure_self(user_id, get_acting_user_id(request))
    payload = FilmmakerProfileInput.model_validate(request.get_json(silent=True) or {})
    filmmaker = create_or_update_filmmaker_profile(filmmakers_collection, user_id, payload)
    profile_written()
    return jsonify(serialize_document(filmmaker))


@app.route("/filmmakers/<filmmaker_id>/movies", methods=["GET"])
def list_filmmaker_movies(filmmaker_id: str):
    movies = get_filmmaker_movies(movies_collection, filmmaker_id)
    return jsonify({"movies": serialize_documents(movies)})


@app.route("/venues", methods=["GET"])
def list_venues():
    location = request.args.get("location") or None
    limit = parse_limit(request.args.get("limit"), None, settings.max_page_size)
    cursor = request.args.get("cursor") or None

    page = get_venues(venues_collection, location=location, limit_count=limit, cursor=cursor)
    return jsonify(page.to_payload("venues"))


@app.route("/venues/<user_id>", methods=["GET"])
def get_venue_detail(user_id: str):
    venue = get_venue_by_user_id(venues_collection, user_id)
    if not venue:
        raise NotFound("Venue not found")
    return jsonify(serialize_document(venue))


@app.route("/venues", methods=["POST"])
def post_venue():
    """
    Handle POST requests that create the acting user's venue profile.

    Returns:
        Response: Stored venue with status 201.
    """
    user_id = get_acting_user_id(request)
    payload = VenueInput.model_validate(request.get_json(silent=True) or {})
    venue = create_venue(venues_collection, user_id, payload)
    return jsonify(serialize_document(venue)), 201


@app.route("/venues/<user_id>", methods=["PATCH"])
def patch_venue(user_id: str):
    acting_user_id = get_acting_user_id(request)
    payload = VenueUpdate.model_validate(request.get_json(silent=True) or {})
    venue = update_venue(venues_collection, user_id, acting_user_id, payload)
    return jsonify(serialize_document(venue))


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5002, debug=True)
