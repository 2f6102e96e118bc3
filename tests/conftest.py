"""
Pytest configuration and fixtures for the Visitlog backend.

Every test gets its own SQLite file, a fake identity directory and a
deterministic object-store signer.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from jose import jwt

from app.app import create_app
from app.config import Settings, StoreConfig
from app.database.db import init_db
from app.services.friend_request_store import FriendRequestStore
from app.services.friendship_store import FriendshipStore
from app.services.identity import LookupRateLimiter
from app.services.object_store import ObjectStoreSigner
from app.services.profile_store import ProfileStore
from app.services.relationships import RelationshipCoordinator
from app.services.visit_aggregator import VisitAggregator
from app.services.visit_store import VisitStore

JWT_SECRET = "test-secret"


class FakeDirectory:
    """In-memory stand-in for the identity provider's user directory."""

    def __init__(self, users=()):
        self.users = set(users)
        self.lookups: list[str] = []
        self.error: Exception | None = None

    async def user_exists(self, subject: str) -> bool:
        self.lookups.append(subject)
        if self.error:
            raise self.error
        return subject in self.users


def make_token(subject: str, email: str | None = None, secret: str = JWT_SECRET) -> str:
    claims = {"sub": subject}
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def auth(subject: str, email: str | None = None) -> dict:
    return {"Authorization": f"Bearer {make_token(subject, email)}"}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_PATH=str(tmp_path / "visitlog.db"),
        AUTH_JWT_SECRET=JWT_SECRET,
        OBJECT_STORE_BASE_URL="https://objects.test",
        OBJECT_STORE_BUCKET="visit-images",
        OBJECT_STORE_SIGNING_KEY="signing-key",
        IDP_LOOKUPS_PER_MINUTE=0,
    )


@pytest.fixture
def directory():
    return FakeDirectory(users={"alice", "bob", "carol", "dave"})


@pytest_asyncio.fixture
async def store_config(tmp_path):
    config = StoreConfig(db_path=str(tmp_path / "stores.db"))
    await init_db(config)
    return config


@pytest.fixture
def signer():
    return ObjectStoreSigner("https://objects.test", "visit-images", "signing-key")


@pytest.fixture
def visit_store(store_config, signer):
    return VisitStore(store_config, signer=signer, read_grant_seconds=600)


@pytest.fixture
def friendships(store_config):
    return FriendshipStore(store_config)


@pytest.fixture
def requests_store(store_config):
    return FriendRequestStore(store_config)


@pytest.fixture
def profiles(store_config):
    return ProfileStore(store_config)


@pytest.fixture
def coordinator(store_config, friendships, requests_store, directory):
    return RelationshipCoordinator(
        store_config,
        friendships=friendships,
        requests=requests_store,
        directory=directory,
        lookup_limiter=LookupRateLimiter(0),
    )


@pytest.fixture
def aggregator(visit_store, friendships, profiles):
    return VisitAggregator(visit_store, friendships, profiles, concurrency=3)


@pytest.fixture
def client(settings, directory):
    app = create_app(settings=settings, user_directory=directory)
    with TestClient(app) as test_client:
        yield test_client
