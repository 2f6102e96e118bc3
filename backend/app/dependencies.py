"""
Dependency injection for FastAPI routes.

Provides typed service dependencies and the verified caller identity.
"""

from typing import Annotated
from fastapi import Request, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings
from app.errors import Unauthorized
from app.services.identity import Identity, TokenVerifier
from app.services.profile_store import ProfileStore
from app.services.relationships import RelationshipCoordinator
from app.services.visit_aggregator import VisitAggregator
from app.services.visit_store import VisitStore

_bearer = HTTPBearer(auto_error=False)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_visit_store(request: Request) -> VisitStore:
    return request.app.state.visit_store


def get_profile_store(request: Request) -> ProfileStore:
    return request.app.state.profile_store


def get_coordinator(request: Request) -> RelationshipCoordinator:
    return request.app.state.coordinator


def get_aggregator(request: Request) -> VisitAggregator:
    return request.app.state.aggregator


def get_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Identity:
    if credentials is None:
        raise Unauthorized()
    verifier: TokenVerifier = request.app.state.token_verifier
    return verifier.verify(credentials.credentials)


SettingsDep = Annotated[Settings, Depends(get_settings_dep)]
VisitStoreDep = Annotated[VisitStore, Depends(get_visit_store)]
ProfileStoreDep = Annotated[ProfileStore, Depends(get_profile_store)]
CoordinatorDep = Annotated[RelationshipCoordinator, Depends(get_coordinator)]
AggregatorDep = Annotated[VisitAggregator, Depends(get_aggregator)]
IdentityDep = Annotated[Identity, Depends(get_identity)]
