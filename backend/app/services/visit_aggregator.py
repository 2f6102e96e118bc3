"""
Friend visit summaries.

Per-friend scans are independent reads, so they run concurrently under a
semaphore; results keep the order of the friend list.
"""

import asyncio

from app.errors import NotFriends
from app.logging import get_logger, short_id
from app.models import FriendSummary, FriendVisit, LastVisit, Visit
from app.services.friendship_store import FriendshipStore
from app.services.identity import check_subject
from app.services.profile_store import ProfileStore
from app.services.visit_store import VisitStore

logger = get_logger('services.visit_aggregator')


def pick_last_visit(visits: list[Visit]) -> Visit | None:
    """
    The most recent visit by timestamp, falling back to visit date.

    Comparison is strict, so on ties the first visit in list order wins.
    """
    last: Visit | None = None
    last_instant = 0.0
    for visit in visits:
        instant = visit.instant
        if last is None or instant > last_instant:
            last = visit
            last_instant = instant
    return last


def summarize_visits(friend_id: str, display_name: str | None, visits: list[Visit]) -> FriendSummary:
    last = pick_last_visit(visits)
    return FriendSummary(
        friend_id=friend_id,
        display_name=display_name,
        visited_count=sum(1 for v in visits if v.is_visited),
        last_visit=LastVisit(
            place_id=last.place_id,
            place_name=last.place_name,
            visit_date=last.visit_date,
        ) if last else None,
    )


class VisitAggregator:
    def __init__(
        self,
        visits: VisitStore,
        friendships: FriendshipStore,
        profiles: ProfileStore,
        concurrency: int = 8,
    ):
        self.visits = visits
        self.friendships = friendships
        self.profiles = profiles
        self.concurrency = max(int(concurrency), 1)

    async def _display_names(self, friend_ids: list[str]) -> dict[str, str | None]:
        try:
            return await self.profiles.batch_get_display_names(friend_ids)
        except Exception as e:
            logger.warning(f"Display name lookup failed, continuing without names: {e}")
            return {}

    async def summarize_friends(self, me: str) -> list[FriendSummary]:
        friend_ids = await self.friendships.list_by_owner(me)
        if not friend_ids:
            return []

        names = await self._display_names(friend_ids)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def summarize(friend_id: str) -> FriendSummary:
            async with semaphore:
                visits = await self.visits.list_by_user(friend_id)
            return summarize_visits(friend_id, names.get(friend_id), visits)

        summaries = await asyncio.gather(*(summarize(fid) for fid in friend_ids))
        logger.debug(f"Summarized {len(summaries)} friends for {short_id(me)}")
        return list(summaries)

    async def get_friend_visits(self, me: str, friend_id: str) -> list[FriendVisit]:
        """A friend's visits without notes or images. Requires edge (me, friend_id)."""
        check_subject(friend_id)
        if not await self.friendships.get(me, friend_id):
            raise NotFriends()
        visits = await self.visits.list_by_user(friend_id)
        return [FriendVisit.from_visit(v) for v in visits]
