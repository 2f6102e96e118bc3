"""Pending, directed friend requests keyed by (target, requester)."""

from datetime import datetime, timezone

from app.config import StoreConfig
from app.database.db import Check, Delete, Put, insert_if_absent, open_db
from app.models import FriendRequest, IncomingRequest, OutgoingRequest


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FriendRequestStore:
    def __init__(self, config: StoreConfig):
        self.config = config
        self.table = config.friend_requests_table

    def _key(self, target_user_id: str, requester_user_id: str) -> dict:
        return {"target_user_id": target_user_id, "requester_user_id": requester_user_id}

    def request_put(self, target_user_id: str, requester_user_id: str) -> Put:
        """A conditional insert of a pending request, for use inside a write unit."""
        return Put(
            self.table,
            {**self._key(target_user_id, requester_user_id), "created_at": _now()},
            if_absent=True,
        )

    def request_absent(self, target_user_id: str, requester_user_id: str) -> Check:
        return Check(self.table, self._key(target_user_id, requester_user_id))

    def request_delete(self, target_user_id: str, requester_user_id: str, if_exists: bool = False) -> Delete:
        return Delete(self.table, self._key(target_user_id, requester_user_id), if_exists=if_exists)

    async def insert_if_absent(self, target_user_id: str, requester_user_id: str) -> bool:
        """
        Conditional insert of a pending request.

        :return: True if this call created the record
        :rtype: bool
        """
        return await insert_if_absent(self.config, self.table, self.request_put(target_user_id, requester_user_id).item)

    async def get(self, target_user_id: str, requester_user_id: str) -> FriendRequest | None:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"SELECT * FROM {self.table} WHERE target_user_id = ? AND requester_user_id = ?",
                (target_user_id, requester_user_id),
            )
            row = await cursor.fetchone()
        return FriendRequest(**dict(row)) if row else None

    async def list_incoming(self, target_user_id: str) -> list[IncomingRequest]:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"""SELECT requester_user_id, created_at FROM {self.table}
                   WHERE target_user_id = ? ORDER BY created_at""",
                (target_user_id,),
            )
            rows = await cursor.fetchall()
        return [IncomingRequest(**dict(r)) for r in rows]

    async def list_outgoing(self, requester_user_id: str) -> list[OutgoingRequest]:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"""SELECT target_user_id, created_at FROM {self.table}
                   WHERE requester_user_id = ? ORDER BY created_at""",
                (requester_user_id,),
            )
            rows = await cursor.fetchall()
        return [OutgoingRequest(**dict(r)) for r in rows]

    async def delete(self, target_user_id: str, requester_user_id: str) -> bool:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"DELETE FROM {self.table} WHERE target_user_id = ? AND requester_user_id = ?",
                (target_user_id, requester_user_id),
            )
            await db.commit()
            return cursor.rowcount > 0
