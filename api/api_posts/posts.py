from flask import Flask, jsonify, request
from flask_cors import CORS

from api.common.access import get_acting_user_id
from api.common.cache import RedisCache
from api.common.config import Settings, get_database, get_redis
from api.common.documents import serialize_document, serialize_documents
from api.common.errors import NotFound, register_error_handlers
from api.common.logging_config import get_logger, setup_logging
from api.common.models import CommentInput, PostInput, PostUpdate
from api.common.refine import parse_limit
from api.api_posts.posts_functions import (
    check_bookmarked,
    check_post_liked,
    create_comment,
    create_post,
    delete_comment,
    delete_post,
    get_comments,
    get_my_posts,
    get_post_by_id,
    get_post_like_count,
    get_post_view_count,
    get_posts,
    increment_post_views,
    toggle_bookmark,
    toggle_post_like,
    update_post,
)
from api.api_users.users_functions import NAME_CACHE_PREFIX, DisplayNameResolver, get_user_profile

settings = Settings.from_env()
setup_logging(settings.log_level, settings.log_file, settings.log_dir)
logger = get_logger(__name__)

app = Flask(__name__)
app.json.sort_keys = False
CORS(app)
register_error_handlers(app)

db = get_database(settings)
posts_collection = db["posts"]
comments_collection = db["postComments"]
likes_collection = db["postLikes"]
view_counts_collection = db["postViewCounts"]
bookmarks_collection = db["userBookmarks"]
users_collection = db["users"]

r = get_redis(settings)
name_resolver = DisplayNameResolver(
    users_collection,
    db["actors"],
    db["filmmakers"],
    RedisCache(r, settings.cache_ttl_seconds, prefix=NAME_CACHE_PREFIX),
)


@app.route("/posts", methods=["GET"])
def list_posts():
    """
    Handle GET requests for public posts.

    Returns:
        Response: Page of posts filtered by ``type`` and ``category``.
    """
    post_type = request.args.get("type") or None
    category = request.args.get("category") or None
    limit = parse_limit(request.args.get("limit"), None, settings.max_page_size)
    cursor = request.args.get("cursor") or None

    page = get_posts(posts_collection, post_type=post_type, category=category, limit_count=limit, cursor=cursor)
    return jsonify(page.to_payload("posts"))


@app.route("/posts/mine", methods=["GET"])
def list_my_posts():
    user_id = get_acting_user_id(request)
    return jsonify({"posts": serialize_documents(get_my_posts(posts_collection, user_id))})


@app.route("/posts/<post_id>", methods=["GET"])
def get_post_detail(post_id: str):
    post = get_post_by_id(posts_collection, post_id)
    if not post:
        raise NotFound("Post not found")
    return jsonify(serialize_document(post))


@app.route("/posts", methods=["POST"])
def post_post():
    """
    Handle POST requests that publish a post.

    The author's role comes from their user profile and their rendered
    name is stored on the post.

    Returns:
        Response: Stored post with status 201.
    """
    author_id = get_acting_user_id(request)
    payload = PostInput.model_validate(request.get_json(silent=True) or {})
    author = get_user_profile(users_collection, author_id) or {}
    post = create_post(
        posts_collection,
        author_id,
        author.get("role"),
        name_resolver.display_name(author_id),
        payload,
    )
    return jsonify(serialize_document(post)), 201


@app.route("/posts/<post_id>", methods=["PATCH"])
def patch_post(post_id: str):
    acting_user_id = get_acting_user_id(request)
    payload = PostUpdate.model_validate(request.get_json(silent=True) or {})
    post = update_post(posts_collection, post_id, acting_user_id, payload)
    return jsonify(serialize_document(post))


@app.route("/posts/<post_id>", methods=["DELETE"])
def remove_post(post_id: str):
    delete_post(posts_collection, post_id, get_acting_user_id(request))
    return jsonify({"status": "deleted"})


@app.route("/posts/<post_id>/comments", methods=["GET"])
def list_comments(post_id: str):
    return jsonify({"comments": serialize_documents(get_comments(comments_collection, post_id))})


@app.route("/posts/<post_id>/comments", methods=["POST"])
def post_comment(post_id: str):
    author_id = get_acting_user_id(request)
    if not get_post_by_id(posts_collection, post_id):
        raise NotFound("Post not found")
    payload = CommentInput.model_validate(request.get_json(silent=True) or {})
    comment = create_comment(comments_collection, post_id, author_id, name_resolver.display_name(author_id), payload)
    return jsonify(serialize_document(comment)), 201


@app.route("/comments/<comment_id>", methods=["DELETE"])
def remove_comment(comment_id: str):
    delete_comment(comments_collection, comment_id, get_acting_user_id(request))
    return jsonify({"status": "deleted"})


@app.route("/posts/<post_id>/like", methods=["GET"])
def get_like_state(post_id: str):
    user_id = get_acting_user_id(request)
    return jsonify(
        {
            "liked": check_post_liked(likes_collection, post_id, user_id),
            "likes": get_post_like_count(likes_collection, post_id),
        }
    )


@app.route("/posts/<post_id>/like", methods=["POST"])
def post_like_toggle(post_id: str):
    user_id = get_acting_user_id(request)
    liked = toggle_post_like(likes_collection, post_id, user_id)
    return jsonify({"liked": liked, "likes": get_post_like_count(likes_collection, post_id)})


@app.route("/posts/<post_id>/views", methods=["GET"])
def get_views(post_id: str):
    return jsonify({"views": get_post_view_count(view_counts_collection, post_id)})


@app.route("/posts/<post_id>/views", methods=["POST"])
def post_view(post_id: str):
    return jsonify({"views": increment_post_views(view_counts_collection, post_id)})


@app.route("/posts/<post_id>/bookmark", methods=["GET"])
def get_bookmark_state(post_id: str):
    user_id = get_acting_user_id(request)
    return jsonify({"bookmarked": check_bookmarked(bookmarks_collection, user_id, post_id)})


@app.route("/posts/<post_id>/bookmark", methods=["POST"])
def post_bookmark_toggle(post_id: str):
    user_id = get_acting_user_id(request)
    return jsonify({"bookmarked": toggle_bookmark(bookmarks_collection, user_id, post_id)})


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5004, debug=True)
