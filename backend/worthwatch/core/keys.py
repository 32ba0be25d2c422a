"""Composite key codec for the single-table layout.

Partition keys are ``{KIND}#{id}``. Child rows and likes embed further
fragments joined by the same separator, so ids themselves may never
contain it.
"""
import re
from typing import Tuple

from .enums import ContentType, EntityKind
from .exceptions import InvalidIdException, MalformedKeyException

SEPARATOR = "#"

PROFILE_SK = "PROFILE"
METADATA_SK = "METADATA"
ITEM_SK_PREFIX = f"ITEM{SEPARATOR}"

_LIKE_MARKER = f"{SEPARATOR}LIKE{SEPARATOR}{EntityKind.WATCHLIST.value}{SEPARATOR}"
_ITEM_SK_PATTERN = re.compile(r"^ITEM#(MOVIE|SHOW)#([^#]+)$")
_LIKE_KEY_PATTERN = re.compile(r"^USER#([^#]+)#LIKE#WATCHLIST#([^#]+)$")


def validate_id(entity_id: str) -> str:
    """Return ``entity_id`` unchanged or raise InvalidIdException"""
    if not isinstance(entity_id, str) or not entity_id:
        raise InvalidIdException("Identifier must be a non-empty string")
    if SEPARATOR in entity_id:
        raise InvalidIdException(f"Identifier must not contain '{SEPARATOR}'")
    return entity_id


def encode(kind: EntityKind, entity_id: str) -> str:
    """Build the partition key for an entity id"""
    return f"{EntityKind(kind).value}{SEPARATOR}{validate_id(entity_id)}"


def decode(pk: str) -> Tuple[EntityKind, str]:
    """Split a partition key back into its kind and id"""
    parts = pk.split(SEPARATOR) if isinstance(pk, str) else []
    if len(parts) != 2 or not parts[1]:
        raise MalformedKeyException(f"Unrecognized key layout: {pk!r}")
    try:
        kind = EntityKind(parts[0])
    except ValueError:
        raise MalformedKeyException(f"Unrecognized key prefix: {parts[0]!r}")
    return kind, parts[1]


def encode_item_sk(content_type: ContentType, content_id: str) -> str:
    """Sort key of a watchlist item row"""
    return f"{ITEM_SK_PREFIX}{ContentType(content_type).value}{SEPARATOR}{validate_id(content_id)}"


def decode_item_sk(sk: str) -> Tuple[ContentType, str]:
    match = _ITEM_SK_PATTERN.match(sk or "")
    if not match:
        raise MalformedKeyException(f"Not a watchlist item key: {sk!r}")
    return ContentType(match.group(1)), match.group(2)


def encode_like_key(user_id: str, watchlist_id: str) -> str:
    """Like rows use the same composite value for PK and SK"""
    return f"{encode(EntityKind.USER, user_id)}{_LIKE_MARKER}{validate_id(watchlist_id)}"


def decode_like_key(key: str) -> Tuple[str, str]:
    """Return ``(user_id, watchlist_id)`` from a like key"""
    match = _LIKE_KEY_PATTERN.match(key or "")
    if not match:
        raise MalformedKeyException(f"Not a like key: {key!r}")
    return match.group(1), match.group(2)


def like_key_prefix(user_id: str) -> str:
    """Prefix shared by every like a user has made"""
    return f"{encode(EntityKind.USER, user_id)}{SEPARATOR}LIKE{SEPARATOR}"


def like_key_suffix(watchlist_id: str) -> str:
    """Suffix shared by every like on one watchlist"""
    return f"{_LIKE_MARKER}{validate_id(watchlist_id)}"
