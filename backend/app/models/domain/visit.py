"""Visit domain model."""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import Field, field_validator

from app.models.base import CamelModel


def is_visited(rating: Any, visit_date: Any) -> bool:
    """
    Whether a visit record counts as "visited".

    True when a visit date is present or the rating is a real number.
    A rating of 0 counts; NaN and booleans do not.
    """
    if visit_date:
        return True
    if isinstance(rating, bool) or not isinstance(rating, (int, float)):
        return False
    return not math.isnan(rating)


def parse_instant(value: Any) -> float | None:
    """Parse an ISO timestamp or calendar date into epoch seconds (naive = UTC)."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def visit_instant(timestamp: Any, visit_date: Any) -> float:
    """Ordering key for "most recent visit": timestamp, else visit date, else 0."""
    instant = parse_instant(timestamp)
    if instant is None:
        instant = parse_instant(visit_date)
    return instant or 0.0


class VisitUpsert(CamelModel):
    """Payload for creating or fully replacing a visit."""
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    notes: Optional[str] = None
    visit_date: Optional[str] = None
    image_keys: list[str] = Field(default_factory=list)
    place_name: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def reject_blank_rating(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, bool):
            raise ValueError("rating must be a number")
        return value

    @field_validator("visit_date")
    @classmethod
    def check_visit_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if parse_instant(value) is None:
            raise ValueError("visitDate must be an ISO date")
        return value

    @field_validator("image_keys", mode="before")
    @classmethod
    def coerce_image_keys(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [k for k in value if isinstance(k, str) and k]


class Visit(CamelModel):
    """One user's relationship to one place."""
    user_id: str
    place_id: str
    rating: Optional[float] = None
    notes: Optional[str] = None
    visit_date: Optional[str] = None
    image_keys: list[str] = Field(default_factory=list)
    place_name: Optional[str] = None
    timestamp: str

    @property
    def is_visited(self) -> bool:
        return is_visited(self.rating, self.visit_date)

    @property
    def instant(self) -> float:
        return visit_instant(self.timestamp, self.visit_date)


class FriendVisit(CamelModel):
    """The part of a visit that friends are allowed to see."""
    place_id: str
    place_name: Optional[str] = None
    visit_date: Optional[str] = None
    rating: Optional[float] = None
    timestamp: Optional[str] = None

    @classmethod
    def from_visit(cls, visit: Visit) -> "FriendVisit":
        return cls(
            place_id=visit.place_id,
            place_name=visit.place_name,
            visit_date=visit.visit_date,
            rating=visit.rating,
            timestamp=visit.timestamp,
        )


class LastVisit(CamelModel):
    place_id: str
    place_name: Optional[str] = None
    visit_date: Optional[str] = None


class FriendSummary(CamelModel):
    """Per-friend visit summary."""
    friend_id: str
    display_name: Optional[str] = None
    visited_count: int = 0
    last_visit: Optional[LastVisit] = None
