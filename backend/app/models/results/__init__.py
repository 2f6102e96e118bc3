"""Result models returned by services and routes."""

from app.models.results.grants import (
    UploadGrant,
    ImageReference,
    ImageReferences,
    Ack,
    UpsertAck,
)

__all__ = [
    "UploadGrant", "ImageReference", "ImageReferences", "Ack", "UpsertAck",
]
