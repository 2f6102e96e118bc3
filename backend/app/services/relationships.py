"""
Relationship coordinator: the friend-request lifecycle.

For an ordered pair (me, other) the states are NONE, PENDING_OUTGOING,
PENDING_INCOMING and FRIENDS. The coordinator keeps no state of its own; every
transition is expressed against the friendship and friend-request stores, and
it is the only component that writes more than one record at a time. Those
writes always go through ``transact_write`` so they commit together or not at
all.
"""

from app.config import StoreConfig
from app.database.db import transact_write
from app.errors import (
    AlreadyFriends,
    InvalidInput,
    NoPendingRequest,
    ReciprocalRequestExists,
    TransactionCanceled,
    TransactionConflict,
    UnknownUser,
)
from app.logging import get_logger, short_id
from app.models import Relationship, RelationshipState
from app.services.friend_request_store import FriendRequestStore
from app.services.friendship_store import FriendshipStore
from app.services.identity import LookupRateLimiter, UserDirectory, check_subject

logger = get_logger('services.relationships')


class RelationshipCoordinator:
    def __init__(
        self,
        config: StoreConfig,
        friendships: FriendshipStore,
        requests: FriendRequestStore,
        directory: UserDirectory,
        lookup_limiter: LookupRateLimiter | None = None,
    ):
        self.config = config
        self.friendships = friendships
        self.requests = requests
        self.directory = directory
        self.lookup_limiter = lookup_limiter or LookupRateLimiter(0)

    async def relationship(self, me: str, other: str) -> Relationship:
        """Current state of (me, other) from ``me``'s side."""
        check_subject(other)
        edge = await self.friendships.get(me, other)
        if edge:
            return Relationship(user_id=me, other_user_id=other, state=RelationshipState.FRIENDS, since=edge.created_at)
        outgoing = await self.requests.get(other, me)
        if outgoing:
            return Relationship(
                user_id=me, other_user_id=other,
                state=RelationshipState.PENDING_OUTGOING, since=outgoing.created_at,
            )
        incoming = await self.requests.get(me, other)
        if incoming:
            return Relationship(
                user_id=me, other_user_id=other,
                state=RelationshipState.PENDING_INCOMING, since=incoming.created_at,
            )
        return Relationship(user_id=me, other_user_id=other, state=RelationshipState.NONE)

    async def request_friend(self, me: str, target: str) -> None:
        """
        Create a pending request me -> target.

        Repeating the call, or racing an identical call, succeeds without
        creating a second record.

        :raises InvalidInput: target is empty or is ``me``
        :raises UnknownUser: the directory does not know ``target``
        :raises AlreadyFriends: an edge between me and target exists, in either direction
        :raises ReciprocalRequestExists: target already requested me
        """
        check_subject(target)
        if target == me:
            raise InvalidInput("Cannot send a friend request to yourself")

        self.lookup_limiter.check(me)
        if not await self.directory.user_exists(target):
            raise UnknownUser()

        # the checks and the insert share one unit, so crossing requests serialize
        try:
            await transact_write(self.config, [
                self.friendships.edge_absent(me, target),
                self.friendships.edge_absent(target, me),
                self.requests.request_absent(me, target),
                self.requests.request_put(target, me),
            ])
        except TransactionCanceled as e:
            if e.failed(0) or e.failed(1):
                raise AlreadyFriends() from e
            if e.failed(2):
                raise ReciprocalRequestExists() from e
            logger.debug(f"Request {short_id(me)}->{short_id(target)} already pending")
            return

        logger.info(f"Friend request {short_id(me)}->{short_id(target)} created")

    async def accept_friend_request(self, me: str, requester: str) -> None:
        """
        Turn the pending request requester -> me into a friendship.

        Both edges are inserted and the request deleted in one unit, together
        with any request in the opposite direction. If an edge already exists
        or the request vanished since it was read, nothing is written and the
        caller gets ``TransactionConflict``.
        """
        check_subject(requester)
        if not await self.requests.get(me, requester):
            raise NoPendingRequest()

        try:
            await transact_write(self.config, [
                self.friendships.edge_put(me, requester),
                self.friendships.edge_put(requester, me),
                self.requests.request_delete(me, requester, if_exists=True),
                self.requests.request_delete(requester, me),
            ])
        except TransactionCanceled as e:
            logger.warning(f"Accept {short_id(requester)}->{short_id(me)} canceled: {e}")
            raise TransactionConflict() from e

        logger.info(f"Friendship {short_id(me)}<->{short_id(requester)} created")

    async def decline_friend_request(self, me: str, requester: str) -> None:
        check_subject(requester)
        if await self.requests.delete(me, requester):
            logger.info(f"Friend request {short_id(requester)}->{short_id(me)} declined")

    async def remove_friend(self, me: str, friend_id: str) -> None:
        """Delete both edges in one unit. Removing a non-friend is a no-op."""
        check_subject(friend_id)
        await self.friendships.delete_pair(me, friend_id)
        logger.info(f"Friendship {short_id(me)}<->{short_id(friend_id)} removed")

    async def add_friend_direct(self, me: str, friend_id: str) -> None:
        """Legacy one-sided add; only edge (me, friend_id) is written."""
        check_subject(friend_id)
        if friend_id == me:
            raise InvalidInput("Invalid friendId")
        await self.friendships.insert_if_absent(me, friend_id)
