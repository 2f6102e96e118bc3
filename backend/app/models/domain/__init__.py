"""Domain models: visits, friendships, friend requests and profiles."""

from app.models.domain.visit import (
    Visit,
    VisitUpsert,
    FriendVisit,
    FriendSummary,
    LastVisit,
    is_visited,
    parse_instant,
    visit_instant,
)
from app.models.domain.friendship import (
    FriendshipEdge,
    FriendRequest,
    IncomingRequest,
    OutgoingRequest,
    Relationship,
)
from app.models.domain.profile import Profile, ProfileUpdate, Me, DISPLAY_NAME_MAX_CHARS

__all__ = [
    "Visit", "VisitUpsert", "FriendVisit", "FriendSummary", "LastVisit",
    "is_visited", "parse_instant", "visit_instant",
    "FriendshipEdge", "FriendRequest", "IncomingRequest", "OutgoingRequest", "Relationship",
    "Profile", "ProfileUpdate", "Me", "DISPLAY_NAME_MAX_CHARS",
]
