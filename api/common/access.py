from api.common.errors import NotFound, PermissionDenied, Unauthenticated

NO_PERMISSION = "You do not have permission to modify this record."
ACTING_USER_HEADER = "X-User-Id"


def get_acting_user_id(request):
    """
    Read the acting user from the request headers.

    Args:
        request (Request): Flask request.

    Returns:
        str: Identifier of the user performing the call.

    Raises:
        Unauthenticated: When the header is missing or blank.
    """
    user_id = (request.headers.get(ACTING_USER_HEADER) or "").strip()
    if not user_id:
        raise Unauthenticated("Sign-in required")
    return user_id


def can_mutate(record: dict | None, user_id: str | None, owner_field: str):
    """
    Check whether a user owns a record.

    Args:
        record (dict | None): Stored document, None when it does not exist.
        user_id (str | None): Acting user.
        owner_field (str): Field holding the owner's identifier (``_id`` for profiles).

    Returns:
        bool: True when the record exists and its owner is ``user_id``.
    """
    if not record or not user_id:
        return False
    owner = record.get(owner_field)
    return owner is not None and str(owner) == str(user_id)


def ensure_owner(record: dict | None, user_id: str | None, owner_field: str, missing_message: str | None = None):
    """
    Raise unless ``user_id`` may mutate ``record``.

    Args:
        record (dict | None): Stored document.
        user_id (str | None): Acting user.
        owner_field (str): Field holding the owner's identifier.
        missing_message (str | None): When given, a missing record raises
            ``NotFound`` with this message instead of ``PermissionDenied``.

    Returns:
        dict: The record, for chaining.
    """
    if record is None and missing_message:
        raise NotFound(missing_message)
    if not can_mutate(record, user_id, owner_field):
        raise PermissionDenied(NO_PERMISSION)
    return record


def ensure_self(user_id: str, acting_user_id: str):
    """Profiles are keyed by their owner's id; only that user may write them."""
    if str(user_id) != str(acting_user_id):
        raise PermissionDenied(NO_PERMISSION)
