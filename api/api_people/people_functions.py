from pymongo.collection import Collection

from api.common.access import ensure_owner
from api.common.documents import utc_now
from api.common.models import ActorProfileInput, FilmmakerProfileInput, VenueInput, VenueUpdate, to_document
from api.common.refine import filter_contains, paginate, read_entities, refine, sort_newest_first

DEFAULT_ACTOR_PAGE_SIZE = 12


def with_user_id(document: dict | None):
    """
    Fill ``userId`` from the document id.

    Profiles are stored under their owner's id; older ones lack ``userId``.
    """
    if document and not document.get("userId"):
        document["userId"] = document["_id"]
    return document


def upsert_profile(collection: Collection, user_id: str, document: dict):
    """
    Write a profile document keyed by its owner's id.

    ``createdAt`` is only set the first time the profile is written.

    Args:
        collection (Collection): Profile collection handle.
        user_id (str): Owner and document id.
        document (dict): Serialized profile fields.

    Returns:
        dict: Stored profile.
    """
    now = utc_now()
    document = {**document, "userId": user_id, "updatedAt": now}
    collection.update_one(
        {"_id": user_id},
        {"$set": document, "$setOnInsert": {"createdAt": now}},
        upsert=True,
    )
    return collection.find_one({"_id": user_id})


# ==================== ACTORS ====================

def get_actors(actors_collection: Collection, location: str | None = None, age_range: str | None = None, limit_count: int | None = None, cursor: str | None = None):
    """
    List public actor profiles, newest first.

    Profiles without a stage name or a creation time are skipped.

    Args:
        actors_collection (Collection): ``actors`` handle.
        location (str | None): Exact location filter.
        age_range (str | None): Exact age range filter.
        limit_count (int | None): Page length, 12 by default.
        cursor (str | None): Id of the last actor of the previous page.

    Returns:
        Page: Refined page of actor profiles.
    """
    actors = read_entities(actors_collection, "isPublic", required_fields=("stageName", "createdAt"))
    actors = [with_user_id(actor) for actor in actors]
    return refine(
        actors,
        {"location": location, "ageRange": age_range},
        limit_count=limit_count or DEFAULT_ACTOR_PAGE_SIZE,
        cursor=cursor,
    )


def get_actor_by_id(actors_collection: Collection, actor_id: str):
    return with_user_id(actors_collection.find_one({"_id": actor_id}))


def get_actor_by_user_id(actors_collection: Collection, user_id: str):
    return get_actor_by_id(actors_collection, user_id)


def create_or_update_actor_profile(actors_collection: Collection, user_id: str, payload: ActorProfileInput):
    return upsert_profile(actors_collection, user_id, to_document(payload))


# ==================== FILMMAKERS ====================

def get_filmmakers(filmmakers_collection: Collection, filmmaker_type: str | None = None, location: str | None = None, limit_count: int | None = None, cursor: str | None = None):
    """
    List public filmmaker profiles, newest first.

    The type filter is evaluated by the store when given, otherwise the location filter is.

    Returns:
        Page: Refined page of filmmaker profiles.
    """
    pushdown = {"type": filmmaker_type} if filmmaker_type else {"location": location}
    filmmakers = read_entities(filmmakers_collection, "isPublic", pushdown)
    filmmakers = [with_user_id(filmmaker) for filmmaker in filmmakers]
    return refine(filmmakers, {"type": filmmaker_type, "location": location}, limit_count=limit_count, cursor=cursor)


def get_filmmaker_by_id(filmmakers_collection: Collection, filmmaker_id: str):
    return with_user_id(filmmakers_collection.find_one({"_id": filmmaker_id}))


def get_filmmaker_by_user_id(filmmakers_collection: Collection, user_id: str):
    return get_filmmaker_by_id(filmmakers_collection, user_id)


def create_or_update_filmmaker_profile(filmmakers_collection: Collection, user_id: str, payload: FilmmakerProfileInput):
    return upsert_profile(filmmakers_collection, user_id, to_document(payload))


# ==================== VENUES ====================

def get_venue_by_user_id(venues_collection: Collection, user_id: str):
    return with_user_id(venues_collection.find_one({"_id": user_id}))


def get_venues(venues_collection: Collection, location: str | None = None, limit_count: int | None = None, cursor: str | None = None):
    """
    List public venues, newest first.

    Args:
        venues_collection (Collection): ``venues`` handle.
        location (str | None): Case-insensitive substring of the venue location.
        limit_count (int | None): Page length, everything when None.
        cursor (str | None): Id of the last venue of the previous page.

    Returns:
        Page: Refined page of venues.
    """
    venues = [with_user_id(venue) for venue in read_entities(venues_collection, "isPublic")]
    venues = filter_contains(venues, location, "location")
    return paginate(sort_newest_first(venues), limit_count, cursor)


def create_venue(venues_collection: Collection, user_id: str, payload: VenueInput):
    """
    Store the venue profile of ``user_id``, replacing any previous one.

    Returns:
        dict: Stored venue.
    """
    existing = venues_collection.find_one({"_id": user_id}, {"createdAt": 1})
    now = utc_now()
    document = {
        **to_document(payload),
        "_id": user_id,
        "userId": user_id,
        "createdAt": existing.get("createdAt", now) if existing else now,
        "updatedAt": now,
    }
    venues_collection.replace_one({"_id": user_id}, document, upsert=True)
    return document


def update_venue(venues_collection: Collection, user_id: str, acting_user_id: str, payload: VenueUpdate):
    venue = with_user_id(venues_collection.find_one({"_id": user_id}))
    ensure_owner(venue, acting_user_id, "userId", missing_message="Venue not found")
    updates = to_document(payload, partial=True)
    updates["updatedAt"] = utc_now()
    venues_collection.update_one({"_id": user_id}, {"$set": updates})
    return get_venue_by_user_id(venues_collection, user_id)
