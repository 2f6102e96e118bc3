"""
Enum definitions for the Visitlog API.
"""
from enum import Enum


class RelationshipState(str, Enum):
    """State of an ordered pair (me, other) as seen from ``me``."""
    NONE = "none"
    PENDING_OUTGOING = "pending_outgoing"
    PENDING_INCOMING = "pending_incoming"
    FRIENDS = "friends"


class ImageKeyShape(str, Enum):
    """Shapes the stored ``imageKeys`` attribute has been seen in."""
    LIST = "list"
    SET_WRAPPER = "set_wrapper"
    JSON_STRING = "json_string"
    COMMA_STRING = "comma_string"
    ABSENT = "absent"


class GrantMethod(str, Enum):
    """Operation an object-store grant permits."""
    GET = "GET"
    PUT = "PUT"
