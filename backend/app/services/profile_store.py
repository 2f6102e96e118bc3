"""User profiles (display names)."""

from datetime import datetime, timezone

from app.config import StoreConfig
from app.database.db import open_db
from app.models import Profile, DISPLAY_NAME_MAX_CHARS


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProfileStore:
    def __init__(self, config: StoreConfig):
        self.config = config
        self.table = config.profiles_table

    async def get(self, user_id: str) -> Profile | None:
        async with open_db(self.config) as db:
            cursor = await db.execute(f"SELECT * FROM {self.table} WHERE user_id = ?", (user_id,))
            row = await cursor.fetchone()
        return Profile(**dict(row)) if row else None

    async def put(self, user_id: str, display_name: str) -> Profile:
        profile = Profile(
            user_id=user_id,
            display_name=display_name.strip()[:DISPLAY_NAME_MAX_CHARS],
            updated_at=_now(),
        )
        async with open_db(self.config) as db:
            await db.execute(
                f"INSERT OR REPLACE INTO {self.table} (user_id, display_name, updated_at) VALUES (?, ?, ?)",
                (profile.user_id, profile.display_name, profile.updated_at),
            )
            await db.commit()
        return profile

    async def batch_get_display_names(self, user_ids: list[str]) -> dict[str, str | None]:
        """Display names for ``user_ids``; ids without a profile are simply absent."""
        if not user_ids:
            return {}
        placeholders = ", ".join("?" for _ in user_ids)
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"SELECT user_id, display_name FROM {self.table} WHERE user_id IN ({placeholders})",
                tuple(user_ids),
            )
            rows = await cursor.fetchall()
        return {r["user_id"]: r["display_name"] for r in rows}
