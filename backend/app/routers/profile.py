"""Profile routes."""

from fastapi import APIRouter

from app.dependencies import IdentityDep, ProfileStoreDep
from app.models import Ack, Me, ProfileUpdate

router = APIRouter()


@router.get("/me", response_model=Me)
async def get_me(identity: IdentityDep, store: ProfileStoreDep):
    profile = await store.get(identity.subject)
    return Me(
        user_id=identity.subject,
        email=identity.email,
        display_name=profile.display_name if profile else None,
        friend_code=identity.subject,
    )


@router.post("/profile", response_model=Ack)
async def update_profile(body: ProfileUpdate, identity: IdentityDep, store: ProfileStoreDep):
    await store.put(identity.subject, body.display_name)
    return Ack()
