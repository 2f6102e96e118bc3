"""Friend and friend-request routes."""

from fastapi import APIRouter

from app.dependencies import AggregatorDep, CoordinatorDep, IdentityDep, SettingsDep
from app.errors import NotFound
from app.models import (
    Ack,
    FriendSummary,
    FriendVisit,
    IncomingRequest,
    OutgoingRequest,
    Relationship,
)

router = APIRouter()


@router.get("", response_model=list[str])
async def list_friends(identity: IdentityDep, coordinator: CoordinatorDep):
    return await coordinator.friendships.list_by_owner(identity.subject)


@router.get("/summary", response_model=list[FriendSummary])
async def friends_summary(identity: IdentityDep, aggregator: AggregatorDep):
    return await aggregator.summarize_friends(identity.subject)


# Request routes are declared before /{friend_id} so "requests" is never taken as an id.

@router.get("/requests/incoming", response_model=list[IncomingRequest])
async def list_incoming_requests(identity: IdentityDep, coordinator: CoordinatorDep):
    return await coordinator.requests.list_incoming(identity.subject)


@router.get("/requests/outgoing", response_model=list[OutgoingRequest])
async def list_outgoing_requests(identity: IdentityDep, coordinator: CoordinatorDep):
    return await coordinator.requests.list_outgoing(identity.subject)


@router.post("/requests/{target_user_id}", response_model=Ack)
async def request_friend(target_user_id: str, identity: IdentityDep, coordinator: CoordinatorDep):
    await coordinator.request_friend(identity.subject, target_user_id)
    return Ack()


@router.post("/requests/{requester_user_id}/accept", response_model=Ack)
async def accept_friend_request(requester_user_id: str, identity: IdentityDep, coordinator: CoordinatorDep):
    await coordinator.accept_friend_request(identity.subject, requester_user_id)
    return Ack()


@router.post("/requests/{requester_user_id}/decline", response_model=Ack)
async def decline_friend_request(requester_user_id: str, identity: IdentityDep, coordinator: CoordinatorDep):
    await coordinator.decline_friend_request(identity.subject, requester_user_id)
    return Ack()


@router.get("/{friend_id}/visits", response_model=list[FriendVisit])
async def get_friend_visits(friend_id: str, identity: IdentityDep, aggregator: AggregatorDep):
    return await aggregator.get_friend_visits(identity.subject, friend_id)


@router.get("/{friend_id}/status", response_model=Relationship)
async def get_relationship(friend_id: str, identity: IdentityDep, coordinator: CoordinatorDep):
    return await coordinator.relationship(identity.subject, friend_id)


@router.post("/{friend_id}", response_model=Ack)
async def add_friend(
    friend_id: str,
    identity: IdentityDep,
    coordinator: CoordinatorDep,
    settings: SettingsDep,
):
    if not settings.LEGACY_DIRECT_ADD_ENABLED:
        raise NotFound("Direct add is disabled; send a friend request instead")
    await coordinator.add_friend_direct(identity.subject, friend_id)
    return Ack()


@router.delete("/{friend_id}", response_model=Ack)
async def remove_friend(friend_id: str, identity: IdentityDep, coordinator: CoordinatorDep):
    await coordinator.remove_friend(identity.subject, friend_id)
    return Ack()
