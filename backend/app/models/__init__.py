"""
Visitlog models.

Usage:
    from app.models import Visit, VisitUpsert, FriendSummary, FriendRequest
    from app.models import RelationshipState, ImageKeyShape
    from app.models import UploadGrant, ImageReferences, Ack
"""

# --- Enums ---
from app.models.enums import (
    RelationshipState,
    ImageKeyShape,
    GrantMethod,
)

# --- Domain models ---
from app.models.domain import (
    Visit, VisitUpsert, FriendVisit, FriendSummary, LastVisit,
    is_visited, parse_instant, visit_instant,
    FriendshipEdge, FriendRequest, IncomingRequest, OutgoingRequest, Relationship,
    Profile, ProfileUpdate, Me, DISPLAY_NAME_MAX_CHARS,
)

# --- Result models ---
from app.models.results import (
    UploadGrant, ImageReference, ImageReferences, Ack, UpsertAck,
)

__all__ = [
    # Enums
    "RelationshipState", "ImageKeyShape", "GrantMethod",
    # Domain
    "Visit", "VisitUpsert", "FriendVisit", "FriendSummary", "LastVisit",
    "is_visited", "parse_instant", "visit_instant",
    "FriendshipEdge", "FriendRequest", "IncomingRequest", "OutgoingRequest", "Relationship",
    "Profile", "ProfileUpdate", "Me", "DISPLAY_NAME_MAX_CHARS",
    # Results
    "UploadGrant", "ImageReference", "ImageReferences", "Ack", "UpsertAck",
]
