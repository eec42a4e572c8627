from datetime import datetime, timezone
from typing import Any
from uuid import uuid4


def new_document_id():
    """
    Generate an opaque document identifier.

    Returns:
        str: 20 hexadecimal characters.
    """
    return uuid4().hex[:20]


def composite_id(*parts: str):
    """Join identifiers into the id of a toggle document (like, follow, bookmark)."""
    return "_".join(str(part) for part in parts)


def utc_now():
    """
    Return the current UTC time truncated to milliseconds.

    MongoDB stores dates with millisecond precision, so truncating here keeps
    the value written equal to the value read back.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def serialize_value(value: Any):
    """
    Convert a stored value into something ``jsonify`` can emit.

    Args:
        value (Any): Raw value from a document.

    Returns:
        Any: JSON-friendly value.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat(timespec="milliseconds") + "Z"
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value


def serialize_document(document: dict | None):
    """
    Serialize a MongoDB document to a JSON-friendly dictionary.

    Args:
        document (dict | None): MongoDB document.

    Returns:
        dict: Copy with ``_id`` exposed as ``id`` and dates as ISO strings.
    """
    if not document:
        return {}
    payload = {}
    for key, value in document.items():
        if key == "_id":
            payload["id"] = str(value)
        else:
            payload[key] = serialize_value(value)
    return payload


def serialize_documents(documents):
    return [serialize_document(document) for document in documents]


def build_cache_key(prefix: str, *parts: Any):
    """
    Build a Redis cache key with a prefix and optional segments.

    Args:
        prefix (str): Root part of the key.
        *parts: Additional segments.

    Returns:
        str: Colon-separated cache key.
    """
    normalized = [prefix]
    for part in parts:
        normalized.append(str(part) if part is not None else "")
    return ":".join(normalized)


def clamp(value: int | float, minimum: int | float, maximum: int | float):
    """
    Return minimum when value is below minimum. Return maximum when value is above maximum. Otherwise return value.
    """
    return max(minimum, min(maximum, value))


def email_local_part(email: str | None):
    """Return the part of an address before ``@``, or an empty string."""
    if not email:
        return ""
    return email.split("@")[0]
