"""Profile domain model."""

from typing import Optional

from pydantic import Field

from app.models.base import CamelModel

DISPLAY_NAME_MAX_CHARS = 60


class ProfileUpdate(CamelModel):
    """Payload for updating the caller's profile."""
    display_name: str = Field(default="")


class Profile(CamelModel):
    user_id: str
    display_name: Optional[str] = None
    updated_at: str


class Me(CamelModel):
    """The caller as seen by the app. ``friend_code`` is the identity subject."""
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    friend_code: str
