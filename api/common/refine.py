"""
Coarse document reads followed by in-memory refinement.

Every list endpoint follows the same pipeline: one ``find`` on the
collection filtered by the visibility flag (plus at most one extra
equality), then equality/substring filters, a newest-first sort on the
creation timestamp and a cursor-based slice, all applied to the fetched
working set.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from api.common.documents import clamp, serialize_documents
from api.common.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Page:
    items: list
    next_cursor: str | None = None
    total: int = 0

    def to_payload(self, key: str = "results"):
        return {
            key: serialize_documents(self.items),
            "nextCursor": self.next_cursor,
            "total": self.total,
        }


def timestamp_millis(value: Any):
    """
    Resolve a stored timestamp into epoch milliseconds.

    Args:
        value (Any): ``datetime``, number, ISO-8601 string or a
            ``{"seconds": n}`` / ``{"_seconds": n}`` mapping.

    Returns:
        int: Milliseconds since the epoch, ``0`` when the value cannot be resolved.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        return finite_millis(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return timestamp_millis(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        try:
            return finite_millis(float(text))
        except ValueError:
            return 0
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            return finite_millis(seconds * 1000)
    return 0


def finite_millis(value: int | float):
    """NaN and infinities are stored as valid doubles but carry no instant."""
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


def read_entities(
    collection: object,
    visibility_field: str | None = None,
    pushdown: Mapping | None = None,
    required_fields: Iterable[str] = (),
):
    """
    Fetch the working set of an entity with one coarse query.

    Args:
        collection (Collection): PyMongo collection handle.
        visibility_field (str | None): Flag that must be strictly ``True``.
        pushdown (Mapping | None): At most one equality predicate evaluated by the store.
        required_fields (Iterable[str]): Fields that must be present and non-empty.

    Returns:
        list[dict]: Matching documents in retrieval order.

    Raises:
        ValueError: When more than one pushdown predicate is supplied.
    """
    conditions = {key: value for key, value in (pushdown or {}).items() if value not in (None, "")}
    if len(conditions) > 1:
        raise ValueError("Only one equality predicate can be pushed to the store")

    query = dict(conditions)
    if visibility_field:
        query[visibility_field] = True

    required = tuple(required_fields)
    documents = []
    for document in collection.find(query):
        if visibility_field and document.get(visibility_field) is not True:
            logger.debug("Dropping %s: %s is not true", document.get("_id"), visibility_field)
            continue
        missing = [name for name in required if not document.get(name)]
        if missing:
            logger.debug("Dropping %s: missing %s", document.get("_id"), ", ".join(missing))
            continue
        documents.append(document)
    return documents


def filter_equals(records: list[dict], conditions: Mapping):
    """
    Keep records equal to every non-empty condition.

    Args:
        records (list[dict]): Working set.
        conditions (Mapping): Field name to expected value; empty values are ignored.

    Returns:
        list[dict]: Filtered records, order preserved.
    """
    active = {key: value for key, value in conditions.items() if value not in (None, "")}
    if not active:
        return list(records)
    return [record for record in records if all(record.get(key) == value for key, value in active.items())]


def filter_contains(records: list[dict], text: str | None, field_name: str):
    """Keep records whose ``field_name`` contains ``text``, ignoring case."""
    needle = (text or "").strip().lower()
    if not needle:
        return list(records)
    return [record for record in records if needle in str(record.get(field_name) or "").lower()]


def field_values(record: dict, field_name: str):
    """
    Collect the string values stored under a field path.

    ``credits.name`` reads ``name`` from every entry of the ``credits`` list.
    """
    head, _, tail = field_name.partition(".")
    value = record.get(head)
    if tail:
        if isinstance(value, Mapping):
            value = [value]
        if not isinstance(value, list):
            return []
        return [str(entry.get(tail)) for entry in value if isinstance(entry, Mapping) and entry.get(tail)]
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [entry for entry in value if isinstance(entry, str)]
    return []


def matches_text(record: dict, query: str, fields: Iterable[str]):
    """
    Case-insensitive containment of ``query`` in any of ``fields``.

    Args:
        record (dict): Document to test.
        query (str): Text to look for.
        fields (Iterable[str]): Field names or ``list.key`` paths.

    Returns:
        bool: True when at least one field value contains the query.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return False
    for field_name in fields:
        for value in field_values(record, field_name):
            if needle in value.lower():
                return True
    return False


def search_records(records: list[dict], query: str | None, fields: Iterable[str]):
    """Filter records by free text, keeping input order. Empty queries match nothing."""
    fields = tuple(fields)
    if not (query or "").strip():
        return []
    return [record for record in records if matches_text(record, query, fields)]


def sort_newest_first(records: list[dict], field_name: str = "createdAt"):
    """
    Sort by timestamp, newest first.

    Equal or unresolvable timestamps keep their retrieval order.
    """
    return sorted(records, key=lambda record: timestamp_millis(record.get(field_name)), reverse=True)


def sort_oldest_first(records: list[dict], field_name: str = "createdAt"):
    return sorted(records, key=lambda record: timestamp_millis(record.get(field_name)))


def paginate(records: list[dict], limit_count: int | None = None, cursor: str | None = None):
    """
    Slice a refined working set.

    Args:
        records (list[dict]): Sorted records.
        limit_count (int | None): Page length, ``None`` for everything.
        cursor (str | None): Id of the last record of the previous page.

    Returns:
        Page: Page with the cursor of its last record when more remain.
    """
    start = 0
    if cursor:
        index = next((position for position, record in enumerate(records) if str(record.get("_id")) == cursor), None)
        if index is None:
            logger.warning("Cursor %s no longer in the working set, restarting from the first page", cursor)
        else:
            start = index + 1

    end = len(records) if not limit_count else start + limit_count
    items = records[start:end]
    next_cursor = str(items[-1].get("_id")) if items and end < len(records) else None
    return Page(items=items, next_cursor=next_cursor, total=len(records))


def refine(
    records: list[dict],
    equals: Mapping | None = None,
    limit_count: int | None = None,
    cursor: str | None = None,
    sort_field: str = "createdAt",
):
    """Apply equality filters, the newest-first sort and pagination in one call."""
    filtered = filter_equals(records, equals or {})
    return paginate(sort_newest_first(filtered, sort_field), limit_count, cursor)


def parse_limit(raw_value: Any, default_limit: int | None, max_limit: int):
    """
    Parse a ``limit`` request parameter.

    Args:
        raw_value (Any): Raw query-string value.
        default_limit (int | None): Value used when parsing fails or the value is missing.
        max_limit (int): Upper bound.

    Returns:
        int | None: Bounded limit.
    """
    if raw_value in (None, ""):
        return default_limit
    try:
        parsed = int(raw_value)
    except (TypeError, ValueError):
        return default_limit
    return clamp(parsed, 1, max_limit)
