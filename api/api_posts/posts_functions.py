from pymongo import ReturnDocument
from pymongo.collection import Collection

from api.common.access import ensure_owner
from api.common.documents import composite_id, new_document_id, utc_now
from api.common.logging_config import get_logger
from api.common.models import CommentInput, PostInput, PostUpdate, to_document
from api.common.refine import filter_equals, paginate, read_entities, sort_newest_first, sort_oldest_first

logger = get_logger(__name__)

DEFAULT_AUTHOR_ROLE = "viewer"


# ==================== POSTS ====================

def get_posts(posts_collection: Collection, post_type: str | None = None, category: str | None = None, limit_count: int | None = None, cursor: str | None = None):
    """
    List public posts, newest first.

    Args:
        posts_collection (Collection): ``posts`` handle.
        post_type (str | None): Evaluated by the store.
        category (str | None): Evaluated on the fetched posts.
        limit_count (int | None): Page length, everything when None.
        cursor (str | None): Id of the last post of the previous page.

    Returns:
        Page: Refined page of posts.
    """
    posts = read_entities(posts_collection, "isPublic", {"type": post_type})
    posts = filter_equals(posts, {"category": category})
    return paginate(sort_newest_first(posts), limit_count, cursor)


def get_post_by_id(posts_collection: Collection, post_id: str):
    return posts_collection.find_one({"_id": post_id})


def get_my_posts(posts_collection: Collection, user_id: str):
    """Every post of ``user_id``, private ones included, newest first."""
    return sort_newest_first(read_entities(posts_collection, pushdown={"authorId": user_id}))


def drop_empty_optionals(document: dict):
    """Blank ``location`` and empty ``requirements`` are not stored."""
    if not document.get("location"):
        document.pop("location", None)
    if not document.get("requirements"):
        document.pop("requirements", None)
    return document


def create_post(posts_collection: Collection, author_id: str, author_role: str | None, author_name: str, payload: PostInput):
    """
    Store a new post.

    Args:
        posts_collection (Collection): ``posts`` handle.
        author_id (str): Acting user.
        author_role (str | None): Role shown next to the author.
        author_name (str): Rendered display name, stored on the post.
        payload (PostInput): Validated post fields.

    Returns:
        dict: Stored post.
    """
    now = utc_now()
    document = drop_empty_optionals(to_document(payload))
    document.update(
        {
            "_id": new_document_id(),
            "authorId": author_id,
            "authorName": author_name,
            "authorRole": author_role or DEFAULT_AUTHOR_ROLE,
            "views": 0,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    posts_collection.insert_one(document)
    logger.info("Post %s created by %s", document["_id"], author_id)
    return document


def update_post(posts_collection: Collection, post_id: str, acting_user_id: str, payload: PostUpdate):
    post = get_post_by_id(posts_collection, post_id)
    ensure_owner(post, acting_user_id, "authorId", missing_message="Post not found")

    updates = to_document(payload, partial=True)
    updates["updatedAt"] = utc_now()
    posts_collection.update_one({"_id": post_id}, {"$set": updates})
    return get_post_by_id(posts_collection, post_id)


def delete_post(posts_collection: Collection, post_id: str, acting_user_id: str):
    post = get_post_by_id(posts_collection, post_id)
    ensure_owner(post, acting_user_id, "authorId", missing_message="Post not found")
    posts_collection.delete_one({"_id": post_id})
    logger.info("Post %s deleted by %s", post_id, acting_user_id)


# ==================== COMMENTS ====================

def create_comment(comments_collection: Collection, post_id: str, author_id: str, author_name: str, payload: CommentInput):
    comment = {
        "_id": new_document_id(),
        "postId": post_id,
        "authorId": author_id,
        "authorName": author_name,
        "content": payload.content,
        "createdAt": utc_now(),
    }
    comments_collection.insert_one(comment)
    return comment


def get_comments(comments_collection: Collection, post_id: str):
    """Comments of a post in the order they were written."""
    return sort_oldest_first(read_entities(comments_collection, pushdown={"postId": post_id}))


def delete_comment(comments_collection: Collection, comment_id: str, acting_user_id: str):
    """
    Delete a comment. Only its author may do so.

    Raises:
        NotFound: When the comment does not exist.
        PermissionDenied: When the acting user did not write it.
    """
    comment = comments_collection.find_one({"_id": comment_id})
    ensure_owner(comment, acting_user_id, "authorId", missing_message="Comment not found")
    comments_collection.delete_one({"_id": comment_id})


# ==================== LIKES ====================

def toggle_post_like(likes_collection: Collection, post_id: str, user_id: str):
    """
    Like or unlike a post.

    Returns:
        bool: True when the post is now liked by ``user_id``.
    """
    like_id = composite_id(post_id, user_id)
    if likes_collection.find_one({"_id": like_id}):
        likes_collection.delete_one({"_id": like_id})
        return False

    likes_collection.insert_one({"_id": like_id, "postId": post_id, "userId": user_id, "createdAt": utc_now()})
    return True


def check_post_liked(likes_collection: Collection, post_id: str, user_id: str):
    return likes_collection.find_one({"_id": composite_id(post_id, user_id)}) is not None


def get_post_like_count(likes_collection: Collection, post_id: str):
    return likes_collection.count_documents({"postId": post_id})


# ==================== VIEWS ====================

def increment_post_views(view_counts_collection: Collection, post_id: str):
    counter = view_counts_collection.find_one_and_update(
        {"_id": post_id},
        {"$inc": {"count": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return counter["count"]


def get_post_view_count(view_counts_collection: Collection, post_id: str):
    counter = view_counts_collection.find_one({"_id": post_id})
    return counter.get("count", 0) if counter else 0


# ==================== BOOKMARKS ====================

def toggle_bookmark(bookmarks_collection: Collection, user_id: str, post_id: str):
    """
    Bookmark or un-bookmark a post.

    Returns:
        bool: True when the post is now bookmarked.
    """
    bookmark_id = composite_id(user_id, post_id)
    if bookmarks_collection.find_one({"_id": bookmark_id}):
        bookmarks_collection.delete_one({"_id": bookmark_id})
        return False

    bookmarks_collection.insert_one({"_id": bookmark_id, "userId": user_id, "postId": post_id, "createdAt": utc_now()})
    return True


def check_bookmarked(bookmarks_collection: Collection, user_id: str, post_id: str):
    return bookmarks_collection.find_one({"_id": composite_id(user_id, post_id)}) is not None
