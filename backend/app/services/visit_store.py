"""Visit records keyed by (user, place)."""

import json
from datetime import datetime, timezone

from app.config import StoreConfig
from app.database.db import open_db
from app.logging import get_logger, short_id
from app.models import Visit, VisitUpsert, ImageReference, GrantMethod, UploadGrant
from app.services.image_keys import normalize_image_keys
from app.services.object_store import ObjectStoreSigner, upload_object_key

logger = get_logger('services.visit_store')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_visit(row: dict) -> Visit:
    return Visit(
        user_id=row["user_id"],
        place_id=row["place_id"],
        rating=row.get("rating"),
        notes=row.get("notes"),
        visit_date=row.get("visit_date"),
        image_keys=normalize_image_keys(row.get("image_keys")),
        place_name=row.get("place_name"),
        timestamp=row["timestamp"],
    )


class VisitStore:
    """Point lookup, per-user scan, last-writer-wins upsert and delete for visits."""

    def __init__(self, config: StoreConfig, signer: ObjectStoreSigner, read_grant_seconds: int = 600):
        self.config = config
        self.table = config.visits_table
        self.signer = signer
        self.read_grant_seconds = read_grant_seconds

    async def get(self, user_id: str, place_id: str) -> Visit | None:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"SELECT * FROM {self.table} WHERE user_id = ? AND place_id = ?",
                (user_id, place_id),
            )
            row = await cursor.fetchone()
        return _row_to_visit(dict(row)) if row else None

    async def list_by_user(self, user_id: str) -> list[Visit]:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"SELECT * FROM {self.table} WHERE user_id = ?",
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_visit(dict(r)) for r in rows]

    async def upsert(self, user_id: str, place_id: str, data: VisitUpsert) -> Visit:
        """
        Fully replace the visit for (user, place) and stamp it with the call time.

        Safe to retry: the retry's data wins, which is the caller's intended state.
        """
        visit = Visit(
            user_id=user_id,
            place_id=place_id,
            rating=data.rating,
            notes=data.notes,
            visit_date=data.visit_date,
            image_keys=data.image_keys,
            place_name=data.place_name,
            timestamp=_now(),
        )
        async with open_db(self.config) as db:
            await db.execute(
                f"""INSERT OR REPLACE INTO {self.table}
                   (user_id, place_id, rating, notes, visit_date, image_keys, place_name, timestamp)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    visit.user_id,
                    visit.place_id,
                    visit.rating,
                    visit.notes,
                    visit.visit_date,
                    json.dumps(visit.image_keys),
                    visit.place_name,
                    visit.timestamp,
                ),
            )
            await db.commit()
        logger.info(f"Upserted visit {short_id(user_id)}/{place_id}")
        return visit

    async def delete(self, user_id: str, place_id: str) -> None:
        async with open_db(self.config) as db:
            cursor = await db.execute(
                f"DELETE FROM {self.table} WHERE user_id = ? AND place_id = ?",
                (user_id, place_id),
            )
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted visit {short_id(user_id)}/{place_id}")

    async def get_image_references(self, user_id: str, place_id: str) -> list[ImageReference]:
        visit = await self.get(user_id, place_id)
        if not visit or not visit.image_keys:
            return []
        return [
            ImageReference(
                key=key,
                url=self.signer.presign(GrantMethod.GET, key, self.read_grant_seconds),
            )
            for key in visit.image_keys
        ]

    def create_upload_grant(self, user_id: str, place_id: str, expires_in: int = 300) -> UploadGrant:
        """PUT grant for a new image under ``{user}/{place}/{millis}.jpg``."""
        key = upload_object_key(user_id, place_id)
        url = self.signer.presign(GrantMethod.PUT, key, expires_in, content_type="image/jpeg")
        return UploadGrant(upload_url=url, key=key)
