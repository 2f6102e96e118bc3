"""
Result models for object-store grants and acknowledgements.
"""

from pydantic import BaseModel

from app.models.base import CamelModel


class UploadGrant(CamelModel):
    """Time-limited PUT grant for a new image object."""
    upload_url: str
    key: str


class ImageReference(BaseModel):
    """A stored image key and a time-limited GET grant for it."""
    key: str
    url: str


class ImageReferences(BaseModel):
    images: list[ImageReference]


class Ack(BaseModel):
    ok: bool = True


class UpsertAck(BaseModel):
    success: bool = True
