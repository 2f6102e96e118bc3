"""Friend-request lifecycle and the friendship pair invariant."""

import asyncio

import pytest

from app.database.db import Put, transact_write
from app.errors import (
    AlreadyFriends,
    InvalidInput,
    TransactionCanceled,
    NoPendingRequest,
    ReciprocalRequestExists,
    TooManyRequests,
    TransactionConflict,
    UnknownUser,
    UpstreamUnavailable,
)
from app.models import RelationshipState
from app.services.identity import LookupRateLimiter
from app.services.relationships import RelationshipCoordinator


class TestRequestFriend:

    async def test_creates_pending_request(self, coordinator, requests_store):
        await coordinator.request_friend("alice", "bob")

        request = await requests_store.get("bob", "alice")
        assert request is not None
        assert request.target_user_id == "bob"
        assert request.requester_user_id == "alice"

    async def test_repeat_is_idempotent(self, coordinator, requests_store):
        await coordinator.request_friend("alice", "bob")
        await coordinator.request_friend("alice", "bob")

        outgoing = await requests_store.list_outgoing("alice")
        assert [r.target_user_id for r in outgoing] == ["bob"]

    async def test_concurrent_requests_collapse(self, coordinator, requests_store):
        await asyncio.gather(*(coordinator.request_friend("alice", "bob") for _ in range(5)))

        incoming = await requests_store.list_incoming("bob")
        assert len(incoming) == 1

    async def test_self_request_rejected(self, coordinator):
        with pytest.raises(InvalidInput):
            await coordinator.request_friend("alice", "alice")

    async def test_empty_target_rejected(self, coordinator):
        with pytest.raises(InvalidInput):
            await coordinator.request_friend("alice", "  ")

    async def test_unknown_target_rejected(self, coordinator, requests_store):
        with pytest.raises(UnknownUser):
            await coordinator.request_friend("alice", "ghost")
        assert await requests_store.get("ghost", "alice") is None

    async def test_directory_failure_surfaces(self, coordinator, directory, requests_store):
        directory.error = UpstreamUnavailable()
        with pytest.raises(UpstreamUnavailable):
            await coordinator.request_friend("alice", "bob")
        assert await requests_store.get("bob", "alice") is None

    async def test_already_friends(self, coordinator):
        await coordinator.request_friend("alice", "bob")
        await coordinator.accept_friend_request("bob", "alice")

        with pytest.raises(AlreadyFriends):
            await coordinator.request_friend("alice", "bob")

    async def test_reciprocal_request_conflicts(self, coordinator, requests_store):
        await coordinator.request_friend("bob", "alice")

        with pytest.raises(ReciprocalRequestExists):
            await coordinator.request_friend("alice", "bob")

        assert await requests_store.get("bob", "alice") is None
        assert len(await requests_store.list_incoming("alice")) == 1

    async def test_crossing_requests_leave_one_pending(self, coordinator, requests_store):
        results = await asyncio.gather(
            coordinator.request_friend("alice", "bob"),
            coordinator.request_friend("bob", "alice"),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], ReciprocalRequestExists)
        pending = [
            await requests_store.get("bob", "alice"),
            await requests_store.get("alice", "bob"),
        ]
        assert sum(r is not None for r in pending) == 1

    async def test_one_sided_edge_blocks_request(self, coordinator, friendships, requests_store):
        await friendships.insert_if_absent("bob", "alice")

        with pytest.raises(AlreadyFriends):
            await coordinator.request_friend("alice", "bob")
        assert await requests_store.get("bob", "alice") is None

    async def test_store_insert_if_absent(self, requests_store):
        assert await requests_store.insert_if_absent("bob", "alice") is True
        assert await requests_store.insert_if_absent("bob", "alice") is False

    async def test_lookup_limit(self, store_config, friendships, requests_store, directory):
        limited = RelationshipCoordinator(
            store_config,
            friendships=friendships,
            requests=requests_store,
            directory=directory,
            lookup_limiter=LookupRateLimiter(1, clock=lambda: 100.0),
        )
        await limited.request_friend("alice", "bob")
        with pytest.raises(TooManyRequests):
            await limited.request_friend("alice", "carol")


class TestAccept:

    async def test_accept_creates_both_edges_and_consumes_request(self, coordinator, friendships, requests_store):
        await coordinator.request_friend("alice", "bob")
        await coordinator.accept_friend_request("bob", "alice")

        assert await friendships.get("alice", "bob") is not None
        assert await friendships.get("bob", "alice") is not None
        assert await requests_store.get("bob", "alice") is None

    async def test_accept_clears_requests_in_both_directions(self, coordinator, friendships, requests_store):
        await requests_store.insert_if_absent("bob", "alice")
        await requests_store.insert_if_absent("alice", "bob")

        await coordinator.accept_friend_request("bob", "alice")

        assert await friendships.get("alice", "bob") is not None
        assert await friendships.get("bob", "alice") is not None
        assert await requests_store.get("bob", "alice") is None
        assert await requests_store.get("alice", "bob") is None

    async def test_crossing_requests_then_accept_leaves_nothing_pending(self, coordinator, requests_store):
        await asyncio.gather(
            coordinator.request_friend("alice", "bob"),
            coordinator.request_friend("bob", "alice"),
            return_exceptions=True,
        )
        if await requests_store.get("bob", "alice"):
            await coordinator.accept_friend_request("bob", "alice")
        else:
            await coordinator.accept_friend_request("alice", "bob")

        assert await requests_store.list_incoming("alice") == []
        assert await requests_store.list_incoming("bob") == []
        assert (await coordinator.relationship("alice", "bob")).state is RelationshipState.FRIENDS

    async def test_accept_without_request(self, coordinator, friendships):
        with pytest.raises(NoPendingRequest):
            await coordinator.accept_friend_request("bob", "alice")
        assert await friendships.get("bob", "alice") is None

    async def test_accept_twice_reports_no_pending(self, coordinator):
        await coordinator.request_friend("alice", "bob")
        await coordinator.accept_friend_request("bob", "alice")

        with pytest.raises(NoPendingRequest):
            await coordinator.accept_friend_request("bob", "alice")

    async def test_partial_prior_state_writes_nothing(self, coordinator, friendships, requests_store, store_config):
        await coordinator.request_friend("alice", "bob")
        # a stray one-sided edge left by an earlier partial write
        await transact_write(store_config, [friendships.edge_put("alice", "bob")])

        with pytest.raises(TransactionConflict):
            await coordinator.accept_friend_request("bob", "alice")

        assert await friendships.get("bob", "alice") is None
        assert await requests_store.get("bob", "alice") is not None

    async def test_concurrent_accepts_apply_once(self, coordinator, friendships):
        await coordinator.request_friend("alice", "bob")

        results = await asyncio.gather(
            coordinator.accept_friend_request("bob", "alice"),
            coordinator.accept_friend_request("bob", "alice"),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) <= 1
        assert all(isinstance(f, (TransactionConflict, NoPendingRequest)) for f in failures)
        assert await friendships.list_by_owner("alice") == ["bob"]
        assert await friendships.list_by_owner("bob") == ["alice"]


class TestDeclineAndRemove:

    async def test_decline_deletes_request(self, coordinator, requests_store):
        await coordinator.request_friend("alice", "bob")
        await coordinator.decline_friend_request("bob", "alice")
        assert await requests_store.get("bob", "alice") is None

    async def test_decline_absent_is_noop(self, coordinator):
        await coordinator.decline_friend_request("bob", "alice")

    async def test_remove_deletes_both_edges(self, coordinator, friendships):
        await coordinator.request_friend("alice", "bob")
        await coordinator.accept_friend_request("bob", "alice")

        await coordinator.remove_friend("alice", "bob")

        assert await friendships.get("alice", "bob") is None
        assert await friendships.get("bob", "alice") is None

    async def test_remove_non_friend_is_noop(self, coordinator):
        await coordinator.remove_friend("alice", "carol")

    async def test_direct_add_is_one_sided_and_idempotent(self, coordinator, friendships):
        await coordinator.add_friend_direct("alice", "dave")
        await coordinator.add_friend_direct("alice", "dave")

        assert await friendships.list_by_owner("alice") == ["dave"]
        assert await friendships.get("dave", "alice") is None

    async def test_direct_add_rejects_self(self, coordinator):
        with pytest.raises(InvalidInput):
            await coordinator.add_friend_direct("alice", "alice")


class TestRelationshipState:

    @pytest.mark.parametrize("actions, expected", [
        ([], RelationshipState.NONE),
        ([("request", "alice", "bob")], RelationshipState.PENDING_OUTGOING),
        ([("request", "bob", "alice")], RelationshipState.PENDING_INCOMING),
        ([("request", "alice", "bob"), ("accept", "bob", "alice")], RelationshipState.FRIENDS),
        ([("request", "alice", "bob"), ("decline", "bob", "alice")], RelationshipState.NONE),
        ([("request", "alice", "bob"), ("accept", "bob", "alice"), ("remove", "alice", "bob")],
         RelationshipState.NONE),
    ])
    async def test_transitions(self, coordinator, actions, expected):
        for action, me, other in actions:
            if action == "request":
                await coordinator.request_friend(me, other)
            elif action == "accept":
                await coordinator.accept_friend_request(me, other)
            elif action == "decline":
                await coordinator.decline_friend_request(me, other)
            else:
                await coordinator.remove_friend(me, other)

        relationship = await coordinator.relationship("alice", "bob")
        assert relationship.state is expected


async def test_write_unit_rolls_back_every_item(store_config, friendships):
    await transact_write(store_config, [friendships.edge_put("carol", "dave")])

    with pytest.raises(TransactionCanceled):
        await transact_write(store_config, [
            Put(store_config.friends_table, {"owner_id": "x", "friend_id": "y", "created_at": "t"}),
            friendships.edge_put("carol", "dave"),
        ])

    assert await friendships.get("x", "y") is None


async def test_failed_check_cancels_unit_with_positional_reasons(store_config, friendships):
    await transact_write(store_config, [friendships.edge_put("carol", "dave")])

    with pytest.raises(TransactionCanceled) as excinfo:
        await transact_write(store_config, [
            friendships.edge_put("x", "y"),
            friendships.edge_absent("carol", "dave"),
            friendships.edge_absent("dave", "carol"),
        ])

    assert not excinfo.value.failed(0)
    assert excinfo.value.failed(1)
    assert not excinfo.value.failed(2)
    assert await friendships.get("x", "y") is None
