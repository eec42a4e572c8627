from pymongo.collection import Collection
from pymongo.errors import PyMongoError
import redis

from api.common.access import can_mutate, ensure_owner
from api.common.cache import ExpiringCache
from api.common.documents import composite_id, email_local_part, new_document_id, utc_now
from api.common.errors import InvalidInput, NotFound, PermissionDenied
from api.common.logging_config import get_logger
from api.common.models import REQUEST_STATUSES, ChatMessageInput, RequestInput, UserProfileInput, to_document
from api.common.refine import read_entities, sort_newest_first, sort_oldest_first, timestamp_millis

logger = get_logger(__name__)

NAME_CACHE_PREFIX = "names"
NAME_MAP_KEY = "name_map"
SHORT_ID_LENGTH = 8


# ==================== PROFILES ====================

def get_user_profile(users_collection: Collection, user_id: str):
    return users_collection.find_one({"_id": user_id})


def upsert_user_profile(users_collection: Collection, user_id: str, payload: UserProfileInput):
    """
    Create or update the base profile of a user.

    Args:
        users_collection (Collection): MongoDB collection handle.
        user_id (str): Profile owner.
        payload (UserProfileInput): Fields sent by the client.

    Returns:
        dict: Stored profile.
    """
    now = utc_now()
    updates = to_document(payload, partial=True)
    updates["updatedAt"] = now
    users_collection.update_one(
        {"_id": user_id},
        {"$set": updates, "$setOnInsert": {"createdAt": now}},
        upsert=True,
    )
    return users_collection.find_one({"_id": user_id})


def personal_name(user_id: str, user: dict | None):
    """
    Name a user by their own profile: display name, then email local part, then a short id.

    Args:
        user_id (str): User identifier.
        user (dict | None): Profile document.

    Returns:
        tuple[str, bool]: Label and whether it came from the profile rather than the id.
    """
    user = user or {}
    label = user.get("displayName") or email_local_part(user.get("email"))
    if label:
        return label, True
    return user_id[:SHORT_ID_LENGTH], False


def build_base_label(user_id: str, user: dict, actor: dict | None, filmmaker: dict | None):
    """
    Build the label a user is rendered with before disambiguation.

    Actors use their stage name; team filmmakers ``<team> - <personal name>``;
    individual filmmakers their name; everyone else their personal name.

    Returns:
        tuple[str, bool]: Label and whether it may receive a suffix.
    """
    role = user.get("role")
    if role == "actor" and actor and actor.get("stageName"):
        return actor["stageName"], True
    if role == "filmmaker" and filmmaker:
        if filmmaker.get("type") == "team" and filmmaker.get("name"):
            member_name, _ = personal_name(user_id, user)
            return f"{filmmaker['name']} - {member_name}", True
        if filmmaker.get("name"):
            return filmmaker["name"], True
    return personal_name(user_id, user)


def load_role_profiles(user_id: str, user: dict, actors_collection: Collection, filmmakers_collection: Collection):
    """Fetch the actor or filmmaker profile matching the user's role."""
    role = user.get("role")
    actor = actors_collection.find_one({"_id": user_id}) if role == "actor" else None
    filmmaker = filmmakers_collection.find_one({"_id": user_id}) if role == "filmmaker" else None
    return actor, filmmaker


def build_name_map(users_collection: Collection, actors_collection: Collection, filmmakers_collection: Collection):
    """
    Scan every user once and group user ids by rendered label.

    Args:
        users_collection (Collection): ``users`` handle.
        actors_collection (Collection): ``actors`` handle.
        filmmakers_collection (Collection): ``filmmakers`` handle.

    Returns:
        dict[str, list[list]]: Label to ``[user_id, created_at_millis]`` pairs in scan order.
    """
    name_map = {}
    for user in users_collection.find({}):
        user_id = str(user["_id"])
        try:
            actor, filmmaker = load_role_profiles(user_id, user, actors_collection, filmmakers_collection)
            label, _ = build_base_label(user_id, user, actor, filmmaker)
        except PyMongoError as error:
            logger.error("Error loading profile for %s: %s", user_id, error)
            label, _ = personal_name(user_id, user)
        name_map.setdefault(label, []).append([user_id, timestamp_millis(user.get("createdAt"))])
    return name_map


def suffix_for_rank(rank: int):
    return chr(65 + rank)


class DisplayNameResolver:
    """
    Render user labels, appending ``A``, ``B``, ... when several users share one.

    The label map is read through ``cache`` and rebuilt wholesale when it expires.
    """

    def __init__(self, users_collection: Collection, actors_collection: Collection, filmmakers_collection: Collection, cache: ExpiringCache):
        self.users_collection = users_collection
        self.actors_collection = actors_collection
        self.filmmakers_collection = filmmakers_collection
        self.cache = cache

    def name_map(self):
        cached = self.cache.get(NAME_MAP_KEY)
        if cached is not None:
            logger.debug("name map cache hit")
            return cached

        logger.debug("name map cache miss, scanning users")
        name_map = build_name_map(self.users_collection, self.actors_collection, self.filmmakers_collection)
        self.cache.set(NAME_MAP_KEY, name_map)
        return name_map

    def invalidate(self):
        self.cache.invalidate(NAME_MAP_KEY)

    def with_suffix(self, user_id: str, label: str, created_at: int):
        """
        Append the disambiguation suffix when other users share ``label``.

        Args:
            user_id (str): User being rendered.
            label (str): Base label.
            created_at (int): The user's creation time in epoch milliseconds.

        Returns:
            str: ``label`` or ``"<label> <letter>"``; ``label`` when the check fails.
        """
        try:
            others = [entry for entry in self.name_map().get(label, []) if entry[0] != user_id]
        except (PyMongoError, redis.RedisError) as error:
            logger.error("Error checking duplicate names: %s", error)
            return label
        if not others:
            return label

        group = sorted([[user_id, created_at], *others], key=lambda entry: (entry[1], entry[0]))
        rank = next(index for index, entry in enumerate(group) if entry[0] == user_id)
        return f"{label} {suffix_for_rank(rank)}"

    def display_name(self, user_id: str):
        """
        Resolve the rendered name of a user. Never raises.

        Args:
            user_id (str): User identifier.

        Returns:
            str: Display name, possibly suffixed; a short id when no profile exists.
        """
        try:
            user = get_user_profile(self.users_collection, user_id)
        except PyMongoError as error:
            logger.error("Error loading user %s: %s", user_id, error)
            return user_id[:SHORT_ID_LENGTH]
        if not user:
            return user_id[:SHORT_ID_LENGTH]

        try:
            actor, filmmaker = load_role_profiles(user_id, user, self.actors_collection, self.filmmakers_collection)
            label, from_profile = build_base_label(user_id, user, actor, filmmaker)
        except PyMongoError as error:
            logger.error("Error loading role profile for %s: %s", user_id, error)
            label, from_profile = personal_name(user_id, user)

        if not from_profile:
            return label
        return self.with_suffix(user_id, label, timestamp_millis(user.get("createdAt")))


# ==================== FOLLOWS ====================

def check_following(follows_collection: Collection, follower_id: str, following_id: str):
    if follower_id == following_id:
        return False
    return follows_collection.find_one({"_id": composite_id(follower_id, following_id)}) is not None


def toggle_follow(follows_collection: Collection, follower_id: str, following_id: str):
    """
    Follow or unfollow a user.

    Args:
        follows_collection (Collection): ``follows`` handle.
        follower_id (str): Acting user.
        following_id (str): Target user.

    Returns:
        bool: True when the acting user now follows the target.
    """
    if follower_id == following_id:
        return False

    follow_id = composite_id(follower_id, following_id)
    if follows_collection.find_one({"_id": follow_id}):
        follows_collection.delete_one({"_id": follow_id})
        return False

    follows_collection.insert_one(
        {
            "_id": follow_id,
            "followerId": follower_id,
            "followingId": following_id,
            "createdAt": utc_now(),
        }
    )
    return True


def get_follower_count(follows_collection: Collection, user_id: str):
    return follows_collection.count_documents({"followingId": user_id})


# ==================== REQUESTS ====================

def create_request(requests_collection: Collection, from_user_id: str, payload: RequestInput):
    """
    Store a casting offer or a movie application.

    Args:
        requests_collection (Collection): ``requests`` handle.
        from_user_id (str): Sender.
        payload (RequestInput): Validated request fields.

    Returns:
        dict: Stored request, pending and unread.
    """
    if payload.to_user_id == from_user_id:
        raise InvalidInput("cannot send a request to yourself")

    now = utc_now()
    document = to_document(payload)
    document.update(
        {
            "_id": new_document_id(),
            "fromUserId": from_user_id,
            "status": "pending",
            "read": False,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    requests_collection.insert_one(document)
    return document


def get_received_requests(requests_collection: Collection, user_id: str):
    return sort_newest_first(read_entities(requests_collection, pushdown={"toUserId": user_id}))


def get_sent_requests(requests_collection: Collection, user_id: str):
    return sort_newest_first(read_entities(requests_collection, pushdown={"fromUserId": user_id}))


def get_request_by_id(requests_collection: Collection, request_id: str):
    return requests_collection.find_one({"_id": request_id})


def is_participant(request_doc: dict | None, user_id: str):
    return can_mutate(request_doc, user_id, "fromUserId") or can_mutate(request_doc, user_id, "toUserId")


def get_request_for_participant(requests_collection: Collection, request_id: str, user_id: str):
    """
    Load a request the user takes part in.

    Raises:
        NotFound: When the request does not exist.
        PermissionDenied: When the user is neither sender nor receiver.
    """
    request_doc = get_request_by_id(requests_collection, request_id)
    if not request_doc:
        raise NotFound("Request not found")
    if not is_participant(request_doc, user_id):
        raise PermissionDenied("You are not part of this request.")
    return request_doc


def update_request_status(requests_collection: Collection, request_id: str, status: str, acting_user_id: str):
    """
    Accept or reject a request. Only its receiver may do so.

    The request is flagged unread again so the sender notices the answer.

    Returns:
        dict: Updated request.
    """
    if status not in REQUEST_STATUSES:
        raise InvalidInput(f"status must be one of: {', '.join(REQUEST_STATUSES)}")

    request_doc = get_request_by_id(requests_collection, request_id)
    ensure_owner(request_doc, acting_user_id, "toUserId", missing_message="Request not found")
    requests_collection.update_one(
        {"_id": request_id},
        {"$set": {"status": status, "updatedAt": utc_now(), "read": False}},
    )
    return get_request_by_id(requests_collection, request_id)


def mark_request_as_read(requests_collection: Collection, request_id: str, acting_user_id: str):
    request_doc = get_request_by_id(requests_collection, request_id)
    ensure_owner(request_doc, acting_user_id, "toUserId", missing_message="Request not found")
    requests_collection.update_one({"_id": request_id}, {"$set": {"read": True}})


def get_unread_request_count(requests_collection: Collection, user_id: str):
    return requests_collection.count_documents({"toUserId": user_id, "read": False})


def send_chat_message(requests_collection: Collection, messages_collection: Collection, request_id: str, user_id: str, payload: ChatMessageInput):
    """
    Post a chat message on a request.

    The parent request's sender and receiver are copied onto the message so
    permission checks on messages do not need the request.

    Returns:
        dict: Stored message.
    """
    request_doc = get_request_for_participant(requests_collection, request_id, user_id)
    message = {
        "_id": new_document_id(),
        "requestId": request_id,
        "userId": user_id,
        "message": payload.message,
        "fromUserId": request_doc.get("fromUserId"),
        "toUserId": request_doc.get("toUserId"),
        "createdAt": utc_now(),
    }
    messages_collection.insert_one(message)
    return message


def get_chat_messages(requests_collection: Collection, messages_collection: Collection, request_id: str, user_id: str):
    get_request_for_participant(requests_collection, request_id, user_id)
    return sort_oldest_first(list(messages_collection.find({"requestId": request_id})))


def decorate_with_names(request_docs: list[dict], resolver: DisplayNameResolver):
    """Attach ``fromUserName`` and ``toUserName`` to request documents."""
    decorated = []
    for request_doc in request_docs:
        decorated.append(
            {
                **request_doc,
                "fromUserName": resolver.display_name(str(request_doc.get("fromUserId") or "")),
                "toUserName": resolver.display_name(str(request_doc.get("toUserId") or "")),
            }
        )
    return decorated
