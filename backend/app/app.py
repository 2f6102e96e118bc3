"""
Visitlog - FastAPI Backend
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Settings, StoreConfig, get_settings
from app.database.db import init_db
from app.errors import VisitlogError
from app.logging import setup_logging, get_logger
from app.routers import friends, profile, visits
from app.services.friend_request_store import FriendRequestStore
from app.services.friendship_store import FriendshipStore
from app.services.identity import HttpUserDirectory, LookupRateLimiter, TokenVerifier, UserDirectory
from app.services.object_store import ObjectStoreSigner
from app.services.profile_store import ProfileStore
from app.services.relationships import RelationshipCoordinator
from app.services.visit_aggregator import VisitAggregator
from app.services.visit_store import VisitStore

logger = get_logger('main')


def _build_services(app: FastAPI, settings: Settings, directory: UserDirectory) -> None:
    store_config = StoreConfig.from_settings(settings)
    app.state.store_config = store_config

    app.state.token_verifier = TokenVerifier(
        secret=settings.AUTH_JWT_SECRET,
        algorithm=settings.AUTH_JWT_ALGORITHM,
        audience=settings.AUTH_JWT_AUDIENCE,
        issuer=settings.AUTH_JWT_ISSUER,
    )
    signer = ObjectStoreSigner(
        base_url=settings.OBJECT_STORE_BASE_URL,
        bucket=settings.OBJECT_STORE_BUCKET,
        signing_key=settings.OBJECT_STORE_SIGNING_KEY,
    )

    app.state.visit_store = VisitStore(
        store_config,
        signer=signer,
        read_grant_seconds=settings.READ_GRANT_SECONDS,
    )
    app.state.profile_store = ProfileStore(store_config)
    friendships = FriendshipStore(store_config)
    requests = FriendRequestStore(store_config)

    app.state.coordinator = RelationshipCoordinator(
        store_config,
        friendships=friendships,
        requests=requests,
        directory=directory,
        lookup_limiter=LookupRateLimiter(settings.IDP_LOOKUPS_PER_MINUTE),
    )
    app.state.aggregator = VisitAggregator(
        visits=app.state.visit_store,
        friendships=friendships,
        profiles=app.state.profile_store,
        concurrency=settings.FRIEND_SUMMARY_CONCURRENCY,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.DEBUG)
    logger.info("Starting Visitlog API")

    await init_db(StoreConfig.from_settings(settings))
    logger.info("Database initialized")

    owned_directory = None
    directory = app.state.user_directory
    if directory is None:
        owned_directory = HttpUserDirectory(
            base_url=settings.IDP_DIRECTORY_URL,
            api_key=settings.IDP_API_KEY,
            timeout_seconds=settings.IDP_TIMEOUT_SECONDS,
            max_retries=settings.IDP_MAX_RETRIES,
            retry_base_seconds=settings.IDP_RETRY_BASE_SECONDS,
            retry_max_seconds=settings.IDP_RETRY_MAX_SECONDS,
        )
        directory = owned_directory

    _build_services(app, settings, directory)
    logger.info("Services initialized")

    yield

    logger.info("Shutting down application")
    if owned_directory is not None:
        await owned_directory.close()


async def _visitlog_error_handler(request: Request, exc: VisitlogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    message = "Malformed request" + (f": {', '.join(f for f in fields if f)}" if any(fields) else "")
    return JSONResponse(status_code=400, content={"error": "invalid_input", "message": message})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed")
    return JSONResponse(status_code=500, content={"error": "internal", "message": "Server error"})


def create_app(
    settings: Settings | None = None,
    user_directory: UserDirectory | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="Visitlog API",
        description="Place visits and friend sharing",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.user_directory = user_directory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VisitlogError, _visitlog_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(visits.router, prefix="/api/visits", tags=["Visits"])
    app.include_router(friends.router, prefix="/api/friends", tags=["Friends"])
    app.include_router(profile.router, prefix="/api", tags=["Profile"])

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "visitlog",
        }

    @app.get("/")
    async def root():
        return {
            "name": "Visitlog API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health"
        }

    return app
