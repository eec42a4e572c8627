import re

from pymongo.errors import PyMongoError

from api.common.access import ensure_owner
from api.common.documents import new_document_id, utc_now
from api.common.errors import InvalidInput
from api.common.logging_config import get_logger
from api.common.models import MovieInput, MovieRatingInput, MovieUpdate, to_document
from api.common.refine import read_entities, refine, sort_newest_first, timestamp_millis

logger = get_logger(__name__)

DEFAULT_STATUS = "production"
MOVIE_SORT_OPTIONS = ("latest", "popular", "rating")

YOUTUBE_PATTERN = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")
VIMEO_PATTERN = re.compile(r"vimeo\.com.*(?:videos|video|channels|)/(\d+)", re.IGNORECASE)


def extract_video_id(url: str | None, platform: str | None):
    """
    Extract the video identifier from a YouTube or Vimeo URL.

    Args:
        url (str | None): Video page URL.
        platform (str | None): ``youtube`` or ``vimeo``.

    Returns:
        str | None: Identifier, or None when the URL does not match the platform.
    """
    if not url:
        return None
    if platform == "youtube":
        match = YOUTUBE_PATTERN.match(url)
        return match.group(2) if match and len(match.group(2)) == 11 else None
    if platform == "vimeo":
        match = VIMEO_PATTERN.search(url)
        return match.group(1) if match else None
    return None


def with_default_status(movie: dict):
    """Older movie records predate ``status``; they are treated as in production."""
    if not movie.get("status"):
        movie["status"] = DEFAULT_STATUS
    return movie


def collect_tagged_actor_ids(credits: list[dict]):
    """
    Collect the site actor ids referenced by credits, first occurrence first.

    Args:
        credits (list[dict]): Stored credit entries.

    Returns:
        list[str]: Distinct actor ids.
    """
    tagged = []
    for credit in credits or []:
        actor_id = credit.get("actorId")
        if actor_id and actor_id not in tagged:
            tagged.append(actor_id)
    return tagged


# ==================== MOVIES ====================

def get_movies(movies_collection: object, genre: str | None = None, limit_count: int | None = None, cursor: str | None = None):
    """
    List published movies, newest first.

    Args:
        movies_collection (Collection): PyMongo collection handle.
        genre (str | None): Genre evaluated by the store.
        limit_count (int | None): Page length, everything when None.
        cursor (str | None): Id of the last movie of the previous page.

    Returns:
        Page: Refined page of movie documents.
    """
    movies = read_entities(movies_collection, "isPublished", {"genre": genre}, required_fields=("createdAt",))
    movies = [with_default_status(movie) for movie in movies]
    return refine(movies, limit_count=limit_count, cursor=cursor)


def get_movie_by_id(movies_collection: object, movie_id: str):
    movie = movies_collection.find_one({"_id": movie_id})
    return with_default_status(movie) if movie else None


def create_movie(movies_collection: object, filmmaker_id: str, payload: MovieInput):
    """
    Store a new published movie owned by ``filmmaker_id``.

    Args:
        movies_collection (Collection): PyMongo collection handle.
        filmmaker_id (str): Owner; filmmaker profiles share their user's id.
        payload (MovieInput): Validated movie fields.

    Returns:
        dict: Stored document.
    """
    document = to_document(payload)
    now = utc_now()
    document.update(
        {
            "_id": new_document_id(),
            "filmmakerId": filmmaker_id,
            "taggedActorIds": collect_tagged_actor_ids(document.get("credits", [])),
            "isPublished": True,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    movies_collection.insert_one(document)
    logger.info("Movie %s created by %s", document["_id"], filmmaker_id)
    return document


def update_movie(movies_collection: object, movie_id: str, acting_user_id: str, payload: MovieUpdate):
    """
    Apply a partial update to a movie owned by the acting user.

    ``filmmakerId`` and ``createdAt`` cannot be changed.

    Returns:
        dict: Updated document.
    """
    movie = movies_collection.find_one({"_id": movie_id})
    ensure_owner(movie, acting_user_id, "filmmakerId", missing_message="Movie not found")

    updates = to_document(payload, partial=True)
    if "credits" in updates:
        updates["taggedActorIds"] = collect_tagged_actor_ids(updates["credits"])
    updates["updatedAt"] = utc_now()

    movies_collection.update_one({"_id": movie_id}, {"$set": updates})
    return get_movie_by_id(movies_collection, movie_id)


def get_filmmaker_movies(movies_collection: object, filmmaker_id: str):
    movies = get_movies(movies_collection).items
    return [movie for movie in movies if movie.get("filmmakerId") == filmmaker_id]


def get_movies_by_actor_id(movies_collection: object, actor_id: str):
    """
    List published movies an actor is tagged or credited in, newest first.

    Args:
        movies_collection (Collection): PyMongo collection handle.
        actor_id (str): Site actor identifier.

    Returns:
        list[dict]: Matching movies.
    """
    movies = []
    for movie in read_entities(movies_collection, "isPublished"):
        tagged = actor_id in (movie.get("taggedActorIds") or [])
        credited = any(credit.get("actorId") == actor_id for credit in movie.get("credits") or [])
        if tagged or credited:
            movies.append(with_default_status(movie))
    return sort_newest_first(movies)


# ==================== CREDITS ====================

def summarize_movie(movie: dict):
    return {
        "id": movie.get("_id"),
        "title": movie.get("title"),
        "year": movie.get("year"),
        "thumbnailUrl": movie.get("thumbnailUrl"),
        "createdAt": movie.get("createdAt"),
    }


def group_credits(movies: list[dict], predicate, key_builder):
    """
    Group credit entries across movies.

    Args:
        movies (list[dict]): Published movies.
        predicate (Callable[[dict], bool]): Selects the credits to keep.
        key_builder (Callable[[dict], str]): Grouping key for a credit.

    Returns:
        list[dict]: Credit entries with ``movies`` and ``movieCount``, most credited first.
    """
    grouped = {}
    for movie in movies:
        for credit in movie.get("credits") or []:
            if not credit.get("role") or not credit.get("name") or not predicate(credit):
                continue
            key = key_builder(credit)
            if key not in grouped:
                grouped[key] = {**credit, "movies": [], "movieCount": 0}
            grouped[key]["movies"].append(summarize_movie(movie))
            grouped[key]["movieCount"] += 1
    return sorted(grouped.values(), key=lambda entry: entry["movieCount"], reverse=True)


def get_credits_by_role(movies_collection: object, role: str):
    target = (role or "").strip().lower()
    movies = read_entities(movies_collection, "isPublished")
    return group_credits(
        movies,
        lambda credit: credit["role"].lower() == target,
        lambda credit: f"{credit['name']}_{credit['role']}",
    )


def get_credits_by_name(movies_collection: object, name: str):
    needle = (name or "").strip().lower()
    movies = read_entities(movies_collection, "isPublished")
    return group_credits(
        movies,
        lambda credit: needle in credit["name"].lower(),
        lambda credit: f"{credit['name']}_{credit['role']}",
    )


def get_all_credits(movies_collection: object):
    """
    Group every credit by role, then by person.

    Returns:
        dict[str, list[dict]]: Role to credit entries, most credited first.
    """
    movies = read_entities(movies_collection, "isPublished")
    roles = []
    for movie in movies:
        for credit in movie.get("credits") or []:
            role = credit.get("role")
            if role and role not in roles:
                roles.append(role)
    return {
        role: group_credits(movies, lambda credit, role=role: credit["role"] == role, lambda credit: credit["name"])
        for role in roles
    }


# ==================== RATINGS ====================

def is_deleted(rating: dict):
    return bool(rating.get("deleted"))


def get_user_movie_ratings(ratings_collection: object, user_id: str, limit_count: int | None = None, cursor: str | None = None):
    """
    List a user's ratings, newest first, skipping soft-deleted ones.

    Returns:
        Page: Refined page of rating documents.
    """
    ratings = [rating for rating in ratings_collection.find({"userId": user_id}) if not is_deleted(rating)]
    return refine(ratings, limit_count=limit_count, cursor=cursor)


def get_movie_ratings(ratings_collection: object, movie_id: str):
    ratings = [rating for rating in ratings_collection.find({"movieId": movie_id}) if not is_deleted(rating)]
    return sort_newest_first(ratings)


def get_user_movie_rating(ratings_collection: object, user_id: str, movie_id: str):
    rating = ratings_collection.find_one({"userId": user_id, "movieId": movie_id})
    if not rating or is_deleted(rating):
        return None
    return rating


def get_user_movie_rating_by_title(ratings_collection: object, user_id: str, movie_title: str):
    rating = ratings_collection.find_one({"userId": user_id, "movieTitle": movie_title})
    if not rating or is_deleted(rating):
        return None
    return rating


def denormalize_movie_fields(document: dict, movie: dict | None):
    """
    Copy display fields of the rated movie onto the rating document.

    Values sent by the client win; missing ones are filled from the movie.
    """
    if not movie:
        return document
    document.setdefault("movieTitle", movie.get("title"))
    if movie.get("year") is not None:
        document.setdefault("movieYear", movie.get("year"))
    if movie.get("thumbnailUrl"):
        document.setdefault("movieThumbnail", movie.get("thumbnailUrl"))
    return document


def create_or_update_movie_rating(ratings_collection: object, movies_collection: object, user_id: str, payload: MovieRatingInput):
    """
    Create the user's rating for a movie or update the existing one.

    An existing rating is looked up by movie id first, then by title.

    Args:
        ratings_collection (Collection): ``movieRatings`` handle.
        movies_collection (Collection): ``movies`` handle, for denormalized fields.
        user_id (str): Rating author.
        payload (MovieRatingInput): Validated rating fields.

    Returns:
        dict: Stored rating document.

    Raises:
        InvalidInput: When no title is given and the movie cannot be found.
    """
    document = to_document(payload)
    movie = get_movie_by_id(movies_collection, payload.movie_id) if payload.movie_id else None
    if payload.movie_id and movie is None:
        logger.info("Rated movie %s not found; keeping the submitted fields", payload.movie_id)
    denormalize_movie_fields(document, movie)
    if not document.get("movieTitle"):
        raise InvalidInput("movieTitle is required when the movie cannot be found")

    existing = None
    if payload.movie_id:
        existing = get_user_movie_rating(ratings_collection, user_id, payload.movie_id)
    if existing is None:
        existing = get_user_movie_rating_by_title(ratings_collection, user_id, document["movieTitle"])

    now = utc_now()
    if existing:
        document["updatedAt"] = now
        ratings_collection.update_one({"_id": existing["_id"]}, {"$set": document})
        return ratings_collection.find_one({"_id": existing["_id"]})

    document.update({"_id": new_document_id(), "userId": user_id, "createdAt": now, "updatedAt": now})
    ratings_collection.insert_one(document)
    return document


def delete_movie_rating(ratings_collection: object, rating_id: str, acting_user_id: str):
    rating = ratings_collection.find_one({"_id": rating_id})
    ensure_owner(rating, acting_user_id, "userId", missing_message="Rating not found")
    ratings_collection.update_one({"_id": rating_id}, {"$set": {"deleted": True, "updatedAt": utc_now()}})


def average_rating(ratings: list[dict]):
    """
    Arithmetic mean of the ``rating`` field of non-deleted ratings.

    Args:
        ratings (list[dict]): Rating documents.

    Returns:
        float: Mean rating, ``0`` when there is nothing to average.
    """
    values = [rating.get("rating") or 0 for rating in ratings if not is_deleted(rating)]
    if not values:
        return 0
    return sum(values) / len(values)


def get_movie_average_rating(ratings_collection: object, movie_id: str):
    return average_rating(get_movie_ratings(ratings_collection, movie_id))


def get_movies_with_stats(movies_collection: object, ratings_collection: object, genre: str | None = None, sort_option: str = "latest", limit_count: int = 100):
    """
    List published movies decorated with ``averageRating`` and ``reviewCount``.

    A movie whose ratings cannot be read is shown with empty stats.

    Args:
        movies_collection (Collection): ``movies`` handle.
        ratings_collection (Collection): ``movieRatings`` handle.
        genre (str | None): Genre filter.
        sort_option (str): ``latest``, ``popular`` or ``rating``.
        limit_count (int): Number of movies read before sorting.

    Returns:
        list[dict]: Decorated movies.
    """
    movies = get_movies(movies_collection, genre=genre, limit_count=limit_count).items
    decorated = []
    for movie in movies:
        try:
            ratings = get_movie_ratings(ratings_collection, movie["_id"])
            stats = {"averageRating": average_rating(ratings), "reviewCount": len(ratings)}
        except PyMongoError as error:
            logger.error("Error loading ratings for movie %s: %s", movie["_id"], error)
            stats = {"averageRating": 0, "reviewCount": 0}
        decorated.append({**movie, **stats})

    if sort_option == "popular":
        return sorted(decorated, key=lambda movie: movie["reviewCount"], reverse=True)
    if sort_option == "rating":
        return sorted(decorated, key=lambda movie: (movie["averageRating"], movie["reviewCount"]), reverse=True)
    return sorted(decorated, key=lambda movie: timestamp_millis(movie.get("createdAt")), reverse=True)
