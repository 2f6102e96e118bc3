"""Visit routes."""

from fastapi import APIRouter

from app.dependencies import IdentityDep, SettingsDep, VisitStoreDep
from app.models import (
    Visit,
    VisitUpsert,
    UploadGrant,
    ImageReferences,
    Ack,
    UpsertAck,
)

router = APIRouter()


@router.get("", response_model=list[Visit])
async def list_visits(identity: IdentityDep, store: VisitStoreDep):
    return await store.list_by_user(identity.subject)


@router.get("/{place_id}/upload-url", response_model=UploadGrant)
async def get_upload_url(
    place_id: str,
    identity: IdentityDep,
    store: VisitStoreDep,
    settings: SettingsDep,
):
    return store.create_upload_grant(identity.subject, place_id, settings.UPLOAD_GRANT_SECONDS)


@router.get("/{place_id}/images", response_model=ImageReferences)
async def get_image_urls(place_id: str, identity: IdentityDep, store: VisitStoreDep):
    images = await store.get_image_references(identity.subject, place_id)
    return ImageReferences(images=images)


@router.get("/{place_id}")
async def get_visit(place_id: str, identity: IdentityDep, store: VisitStoreDep):
    visit = await store.get(identity.subject, place_id)
    if not visit:
        return {}
    return visit.model_dump(by_alias=True)


@router.post("/{place_id}", response_model=UpsertAck)
async def upsert_visit(
    place_id: str,
    body: VisitUpsert,
    identity: IdentityDep,
    store: VisitStoreDep,
):
    await store.upsert(identity.subject, place_id, body)
    return UpsertAck()


@router.delete("/{place_id}", response_model=Ack)
async def delete_visit(place_id: str, identity: IdentityDep, store: VisitStoreDep):
    await store.delete(identity.subject, place_id)
    return Ack()
