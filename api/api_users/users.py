from flask import Flask, jsonify, request
from flask_cors import CORS

from api.common.access import ensure_self, get_acting_user_id
from api.common.cache import RedisCache
from api.common.config import Settings, get_database, get_redis
from api.common.documents import serialize_document, serialize_documents
from api.common.errors import NotFound, register_error_handlers
from api.common.logging_config import get_logger, setup_logging
from api.common.models import ChatMessageInput, RequestInput, UserProfileInput
from api.api_users.users_functions import (
    NAME_CACHE_PREFIX,
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
    get_user_profile,
    mark_request_as_read,
    send_chat_message,
    toggle_follow,
    update_request_status,
    upsert_user_profile,
)

settings = Settings.from_env()
setup_logging(settings.log_level, settings.log_file, settings.log_dir)
logger = get_logger(__name__)

app = Flask(__name__)
app.json.sort_keys = False
CORS(app)
register_error_handlers(app)

db = get_database(settings)
users_collection = db["users"]
actors_collection = db["actors"]
filmmakers_collection = db["filmmakers"]
follows_collection = db["follows"]
requests_collection = db["requests"]
messages_collection = db["requestMessages"]

r = get_redis(settings)
name_resolver = DisplayNameResolver(
    users_collection,
    actors_collection,
    filmmakers_collection,
    RedisCache(r, settings.cache_ttl_seconds, prefix=NAME_CACHE_PREFIX),
)


@app.route("/users/<user_id>", methods=["GET"])
def get_user_detail(user_id: str):
    """
    Handle GET requests for a user profile.

    Args:
        user_id (str): Identifier taken from the path segment.

    Returns:
        Response: Profile with its rendered display name, or 404.
    """
    user = get_user_profile(users_collection, user_id)
    if not user:
        raise NotFound("User not found")

    payload = serialize_document(user)
    payload["renderedName"] = name_resolver.display_name(user_id)
    return jsonify(payload)


@app.route("/users/<user_id>", methods=["PUT"])
def put_user_profile(user_id: str):
    ensure_self(user_id, get_acting_user_id(request))
    payload = UserProfileInput.model_validate(request.get_json(silent=True) or {})
    user = upsert_user_profile(users_collection, user_id, payload)
    if settings.name_cache_invalidate_on_write:
        name_resolver.invalidate()
    return jsonify(serialize_document(user))


@app.route("/users/<user_id>/display-name", methods=["GET"])
def get_display_name(user_id: str):
    return jsonify({"userId": user_id, "displayName": name_resolver.display_name(user_id)})


@app.route("/users/<user_id>/followers/count", methods=["GET"])
def get_followers_count(user_id: str):
    return jsonify({"userId": user_id, "followers": get_follower_count(follows_collection, user_id)})


@app.route("/users/<user_id>/follow", methods=["GET"])
def get_follow_state(user_id: str):
    follower_id = get_acting_user_id(request)
    return jsonify({"following": check_following(follows_collection, follower_id, user_id)})


@app.route("/users/<user_id>/follow", methods=["POST"])
def post_follow_toggle(user_id: str):
    """
    Handle POST requests that follow or unfollow a user.

    Args:
        user_id (str): User to follow.

    Returns:
        Response: Follow state after the toggle.
    """
    follower_id = get_acting_user_id(request)
    following = toggle_follow(follows_collection, follower_id, user_id)
    return jsonify({"following": following})


@app.route("/requests", methods=["POST"])
def post_request():
    from_user_id = get_acting_user_id(request)
    payload = RequestInput.model_validate(request.get_json(silent=True) or {})
    request_doc = create_request(requests_collection, from_user_id, payload)
    return jsonify(serialize_document(request_doc)), 201


@app.route("/requests/received", methods=["GET"])
def list_received_requests():
    user_id = get_acting_user_id(request)
    requests = decorate_with_names(get_received_requests(requests_collection, user_id), name_resolver)
    return jsonify({"requests": serialize_documents(requests)})


@app.route("/requests/sent", methods=["GET"])
def list_sent_requests():
    user_id = get_acting_user_id(request)
    requests = decorate_with_names(get_sent_requests(requests_collection, user_id), name_resolver)
    return jsonify({"requests": serialize_documents(requests)})


@app.route("/requests/unread-count", methods=["GET"])
def get_unread_count():
    user_id = get_acting_user_id(request)
    return jsonify({"unread": get_unread_request_count(requests_collection, user_id)})


@app.route("/requests/<request_id>", methods=["GET"])
def get_request_detail(request_id: str):
    user_id = get_acting_user_id(request)
    request_doc = get_request_for_participant(requests_collection, request_id, user_id)
    decorated = decorate_with_names([request_doc], name_resolver)[0]
    return jsonify(serialize_document(decorated))


@app.route("/requests/<request_id>/status", methods=["POST"])
def post_request_status(request_id: str):
    """
    Handle POST requests that accept or reject a request.

    Args:
        request_id (str): Identifier from the path.

    Returns:
        Response: Updated request.
    """
    user_id = get_acting_user_id(request)
    payload = request.get_json(silent=True) or {}
    status = (payload.get("status") or "").strip().lower()
    request_doc = update_request_status(requests_collection, request_id, status, user_id)
    return jsonify(serialize_document(request_doc))


@app.route("/requests/<request_id>/read", methods=["POST"])
def post_request_read(request_id: str):
    user_id = get_acting_user_id(request)
    mark_request_as_read(requests_collection, request_id, user_id)
    return jsonify({"status": "read"})


@app.route("/requests/<request_id>/messages", methods=["GET"])
def list_chat_messages(request_id: str):
    user_id = get_acting_user_id(request)
    messages = get_chat_messages(requests_collection, messages_collection, request_id, user_id)
    return jsonify({"messages": serialize_documents(messages)})


@app.route("/requests/<request_id>/messages", methods=["POST"])
def post_chat_message(request_id: str):
    user_id = get_acting_user_id(request)
    payload = ChatMessageInput.model_validate(request.get_json(silent=True) or {})
    message = send_chat_message(requests_collection, messages_collection, request_id, user_id, payload)
    return jsonify(serialize_document(message)), 201


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5001, debug=True)
