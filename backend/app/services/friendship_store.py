"""Confirmed, directed friendship edges keyed by (owner, friend)."""

from datetime import datetime, timezone

from app.config import StoreConfig
from app.database.db import Check, Delete, Put, insert_if_absent, open_db, transact_write
from app.logging import get_logger, short_id
from app.models import FriendshipEdge

logger = get_logger('services.friendship_store')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FriendshipStore:
    def __init__(self, config: StoreConfig):
        self.config = config
        self.table = config.friends_table

    def edge_put(self, owner_id: str, friend_id: str, created_at: str | None = None) -> Put:
        """A conditional put of one edge, for use inside a write unit."""
        return Put(
            self.table,
            {"owner_id": owner_id, "friend_id": friend_id, "created_at": created_at or _now()},
            if_absent=True,
        )

    def edge_delete(self, owner_id: str, friend_id: str) -> Delete:
        return Delete(self.table, {"owner_id": owner_id, "friend_id": friend_id})

    def edge_absent(self, owner_id: str, friend_id: str) -> Check:
        return Check(self.table, {"owner_id": owner_id, "friend_id": friend_id})

    async def get(self, owner_id: str, friend_id: str) -> FriendshipEdge | None:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"SELECT * FROM {self.table} WHERE owner_id = ? AND friend_id = ?",
                (owner_id, friend_id),
            )
            row = await cursor.fetchone()
        return FriendshipEdge(**dict(row)) if row else None

    async def list_by_owner(self, owner_id: str) -> list[str]:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"SELECT friend_id FROM {self.table} WHERE owner_id = ? ORDER BY created_at, friend_id",
                (owner_id,),
            )
            rows = await cursor.fetchall()
        return [r["friend_id"] for r in rows]

    async def insert_if_absent(self, owner_id: str, friend_id: str) -> None:
        """Idempotent single-edge add: an existing edge counts as success."""
        created = await insert_if_absent(
            self.config,
            self.table,
            {"owner_id": owner_id, "friend_id": friend_id, "created_at": _now()},
        )
        if not created:
            logger.debug(f"Edge {short_id(owner_id)}->{short_id(friend_id)} already present")

    async def delete_pair(self, a: str, b: str) -> None:
        """Remove (a, b) and (b, a) together."""
        await transact_write(self.config, [self.edge_delete(a, b), self.edge_delete(b, a)])
