"""
Identity Provider integration.

Two concerns live here: verifying the bearer token on every call, and asking
the provider's user directory whether a subject exists. A subject is treated
as existing only when the directory positively returns it.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

import httpx
from jose import JWTError, jwt

from app.errors import InvalidInput, TooManyRequests, Unauthorized, UpstreamUnavailable
from app.logging import get_logger, short_id

logger = get_logger('services.identity')
_T = TypeVar("_T")

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


@dataclass(frozen=True)
class Identity:
    """A verified caller."""
    subject: str
    email: str | None = None


class TokenVerifier:
    """Verifies identity tokens and extracts the subject."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: str | None = None,
        issuer: str | None = None,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer
        if not secret:
            logger.warning("AUTH_JWT_SECRET not set - every request will be rejected")

    def verify(self, token: str | None) -> Identity:
        if not token or not self.secret:
            raise Unauthorized()
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            logger.debug(f"Rejected token: {e}")
            raise Unauthorized() from e

        subject = claims.get("sub")
        if not subject or not isinstance(subject, str):
            raise Unauthorized()
        return Identity(subject=subject, email=claims.get("email"))


class UserDirectory(Protocol):
    async def user_exists(self, subject: str) -> bool: ...


def check_subject(subject: str | None) -> str:
    """Reject identifiers that cannot be a provider subject before any lookup."""
    if not subject or not subject.strip():
        raise InvalidInput("Invalid user id")
    if len(subject) > 128 or '"' in subject or any(ord(c) < 32 for c in subject):
        raise InvalidInput("Invalid user id")
    return subject


class HttpUserDirectory:
    """
    Client for the provider's user directory.

    Lookups filter by the ``sub`` attribute and ask for at most one user.
    Transient failures are retried with capped exponential backoff; when the
    retries run out the call fails with ``UpstreamUnavailable``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 5.0,
        max_retries: int = 2,
        retry_base_seconds: float = 0.25,
        retry_max_seconds: float = 2.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max(int(max_retries), 0)
        self.retry_base_seconds = max(float(retry_base_seconds), 0.0)
        self.retry_max_seconds = max(float(retry_max_seconds), self.retry_base_seconds)
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, headers=headers)

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def close(self) -> None:
        await self._client.aclose()

    def _is_transient_error(self, error: Exception) -> bool:
        if isinstance(error, (httpx.TimeoutException, httpx.TransportError, asyncio.TimeoutError)):
            return True
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in _RETRYABLE_STATUS
        return False

    async def _run_with_retry(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[_T]],
    ) -> _T:
        total_attempts = self.max_retries + 1
        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as error:
                should_retry = attempt < total_attempts and self._is_transient_error(error)
                if not should_retry:
                    raise

                delay = min(self.retry_base_seconds * (2 ** (attempt - 1)), self.retry_max_seconds)
                logger.warning(
                    "Directory %s failed (attempt %d/%d): %s. Retrying in %.2fs",
                    operation_name,
                    attempt,
                    total_attempts,
                    error,
                    delay,
                )
                if delay > 0:
                    await asyncio.sleep(delay)
                attempt += 1

    async def _list_users(self, subject: str) -> list:
        response = await self._client.get(
            f"{self.base_url}/users",
            params={"filter": f'sub = "{subject}"', "limit": 1},
        )
        response.raise_for_status()
        payload = response.json()
        users = payload.get("users") if isinstance(payload, dict) else None
        return users if isinstance(users, list) else []

    async def user_exists(self, subject: str) -> bool:
        if not self.is_configured:
            logger.error("IDP_DIRECTORY_URL not set - cannot verify users")
            raise UpstreamUnavailable("Identity directory unavailable")
        try:
            users = await self._run_with_retry("list_users", lambda: self._list_users(subject))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Directory lookup for {short_id(subject)} failed: {e}")
            raise UpstreamUnavailable("Identity directory unavailable") from e
        return len(users) > 0


class LookupRateLimiter:
    """
    Per-caller token bucket for directory lookups.

    Local to one process; it bounds lookup cost, it does not coordinate workers.
    A bucket that has refilled to capacity is the same as no bucket, so once
    more than ``prune_threshold`` callers are tracked the full ones are dropped.
    """

    def __init__(
        self,
        per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        prune_threshold: int = 1024,
    ):
        self.capacity = max(int(per_minute), 0)
        self.rate_per_sec = self.capacity / 60.0
        self.prune_threshold = max(int(prune_threshold), 1)
        self._clock = clock
        self._buckets: dict[str, tuple[float, float]] = {}

    @property
    def enabled(self) -> bool:
        return self.capacity > 0

    @property
    def tracked(self) -> int:
        return len(self._buckets)

    def _refilled(self, tokens: float, updated_at: float, now: float) -> float:
        return min(self.capacity, tokens + max(now - updated_at, 0.0) * self.rate_per_sec)

    def _prune(self, now: float) -> None:
        self._buckets = {
            caller: bucket
            for caller, bucket in self._buckets.items()
            if self._refilled(*bucket, now) < self.capacity
        }

    def allow(self, caller: str) -> bool:
        if not self.enabled:
            return True
        now = self._clock()
        if len(self._buckets) >= self.prune_threshold:
            self._prune(now)
        tokens, updated_at = self._buckets.get(caller, (float(self.capacity), now))
        tokens = self._refilled(tokens, updated_at, now)
        if tokens < 1.0:
            self._buckets[caller] = (tokens, now)
            return False
        self._buckets[caller] = (tokens - 1.0, now)
        return True

    def check(self, caller: str) -> None:
        if not self.allow(caller):
            logger.warning(f"Directory lookup limit hit by {short_id(caller)}")
            raise TooManyRequests()
