from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from api.common.documents import serialize_documents
from api.common.logging_config import get_logger
from api.common.refine import search_records
from api.api_movies.movies_functions import get_movies
from api.api_people.people_functions import get_actors, get_filmmakers
from api.api_posts.posts_functions import get_posts

logger = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 20
SEARCH_READ_LIMIT = 100

SEARCH_FIELDS = {
    "movies": ("title", "logline", "description", "tags", "credits.name"),
    "actors": ("stageName", "bio", "skills", "experience"),
    "filmmakers": ("name", "bio", "specialties"),
    "posts": ("title", "content"),
}
SEARCH_TYPES = tuple(SEARCH_FIELDS)


def normalize_query(query: str | None):
    return (query or "").strip().lower()


def parse_search_types(raw_types: str | None):
    """
    Parse a comma-separated ``types`` parameter.

    Unknown names are ignored; an empty or fully unknown list means every type.
    """
    requested = [name.strip().lower() for name in (raw_types or "").split(",") if name.strip()]
    selected = [name for name in SEARCH_TYPES if name in requested]
    return tuple(selected) or SEARCH_TYPES


def load_candidates(collections: dict[str, Collection], search_type: str):
    """
    Read the refined working set one bucket is searched in.

    Args:
        collections (dict[str, Collection]): Handles keyed by search type.
        search_type (str): ``movies``, ``actors``, ``filmmakers`` or ``posts``.

    Returns:
        list[dict]: Up to ``SEARCH_READ_LIMIT`` visible records, newest first.
    """
    collection = collections[search_type]
    if search_type == "movies":
        return get_movies(collection, limit_count=SEARCH_READ_LIMIT).items
    if search_type == "actors":
        return get_actors(collection, limit_count=SEARCH_READ_LIMIT).items
    if search_type == "filmmakers":
        return get_filmmakers(collection, limit_count=SEARCH_READ_LIMIT).items
    return get_posts(collection, limit_count=SEARCH_READ_LIMIT).items


def search_all(collections: dict[str, Collection], query: str | None, search_types=SEARCH_TYPES, limit_count: int = DEFAULT_SEARCH_LIMIT):
    """
    Search movies, actors, filmmakers and posts for free text.

    Every bucket is computed on its own. A store failure in one bucket is
    logged and leaves that bucket empty while the others are still returned.

    Args:
        collections (dict[str, Collection]): Handles keyed by search type.
        query (str | None): Free text, matched case-insensitively.
        search_types (Iterable[str]): Buckets to compute.
        limit_count (int): Maximum results per bucket.

    Returns:
        dict[str, list[dict]]: Serialized matches per requested bucket.
    """
    needle = normalize_query(query)
    results = {search_type: [] for search_type in search_types}
    if not needle:
        return results

    for search_type in search_types:
        try:
            candidates = load_candidates(collections, search_type)
        except PyMongoError as error:
            logger.error("Search over %s failed: %s", search_type, error)
            continue
        matches = search_records(candidates, needle, SEARCH_FIELDS[search_type])
        results[search_type] = serialize_documents(matches[:limit_count])

    logger.debug("Search %r: %s", needle, {name: len(items) for name, items in results.items()})
    return results
