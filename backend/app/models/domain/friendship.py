"""Friendship and friend-request domain models."""

from typing import Optional

from app.models.base import CamelModel
from app.models.enums import RelationshipState


class FriendshipEdge(CamelModel):
    """One directed, confirmed friendship. A friendship is the pair (A, B) + (B, A)."""
    owner_id: str
    friend_id: str
    created_at: str


class FriendRequest(CamelModel):
    """One directed, pending invitation from ``requester_user_id`` to ``target_user_id``."""
    target_user_id: str
    requester_user_id: str
    created_at: str


class IncomingRequest(CamelModel):
    requester_user_id: str
    created_at: str


class OutgoingRequest(CamelModel):
    target_user_id: str
    created_at: str


class Relationship(CamelModel):
    """How ``me`` stands with ``other``."""
    user_id: str
    other_user_id: str
    state: RelationshipState
    since: Optional[str] = None
