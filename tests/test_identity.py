"""Token verification, directory client and lookup limiter."""

import httpx
import pytest
from jose import jwt

from app.errors import InvalidInput, TooManyRequests, Unauthorized, UpstreamUnavailable
from app.services.identity import HttpUserDirectory, LookupRateLimiter, TokenVerifier, check_subject

from conftest import JWT_SECRET, make_token


class TestTokenVerifier:

    def test_valid_token(self):
        identity = TokenVerifier(JWT_SECRET).verify(make_token("alice", "a@example.com"))
        assert identity.subject == "alice"
        assert identity.email == "a@example.com"

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    def test_garbage_rejected(self, token):
        with pytest.raises(Unauthorized):
            TokenVerifier(JWT_SECRET).verify(token)

    def test_wrong_secret_rejected(self):
        with pytest.raises(Unauthorized):
            TokenVerifier(JWT_SECRET).verify(make_token("alice", secret="other"))

    def test_missing_subject_rejected(self):
        token = jwt.encode({"email": "a@example.com"}, JWT_SECRET, algorithm="HS256")
        with pytest.raises(Unauthorized):
            TokenVerifier(JWT_SECRET).verify(token)

    def test_unconfigured_rejects_everything(self):
        with pytest.raises(Unauthorized):
            TokenVerifier("").verify(make_token("alice"))

    def test_audience_checked_when_configured(self):
        token = jwt.encode({"sub": "alice", "aud": "other-app"}, JWT_SECRET, algorithm="HS256")
        with pytest.raises(Unauthorized):
            TokenVerifier(JWT_SECRET, audience="visitlog").verify(token)


@pytest.mark.parametrize("subject", ["", "   ", 'a"b', "x\n", "y" * 200])
def test_check_subject_rejects(subject):
    with pytest.raises(InvalidInput):
        check_subject(subject)


def _directory(handler) -> HttpUserDirectory:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpUserDirectory(
        "https://idp.test",
        max_retries=2,
        retry_base_seconds=0,
        client=client,
    )


class TestHttpUserDirectory:

    async def test_user_found(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"users": [{"sub": "bob"}]})

        directory = _directory(handler)
        assert await directory.user_exists("bob") is True
        assert seen[0].url.params["filter"] == 'sub = "bob"'
        assert seen[0].url.params["limit"] == "1"
        await directory.close()

    async def test_user_missing(self):
        directory = _directory(lambda request: httpx.Response(200, json={"users": []}))
        assert await directory.user_exists("ghost") is False
        await directory.close()

    async def test_transient_failure_is_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"users": [{"sub": "bob"}]})

        directory = _directory(handler)
        assert await directory.user_exists("bob") is True
        assert len(calls) == 3
        await directory.close()

    async def test_exhausted_retries_surface_as_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        directory = _directory(handler)
        with pytest.raises(UpstreamUnavailable):
            await directory.user_exists("bob")
        await directory.close()

    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(403)

        directory = _directory(handler)
        with pytest.raises(UpstreamUnavailable):
            await directory.user_exists("bob")
        assert len(calls) == 1
        await directory.close()

    async def test_unconfigured(self):
        directory = HttpUserDirectory("")
        with pytest.raises(UpstreamUnavailable):
            await directory.user_exists("bob")
        await directory.close()


class TestLookupRateLimiter:

    def test_disabled(self):
        limiter = LookupRateLimiter(0)
        assert all(limiter.allow("alice") for _ in range(100))

    def test_refills_over_time(self):
        now = [0.0]
        limiter = LookupRateLimiter(2, clock=lambda: now[0])

        assert limiter.allow("alice")
        assert limiter.allow("alice")
        assert not limiter.allow("alice")
        assert limiter.allow("bob")

        now[0] += 30.0
        assert limiter.allow("alice")

    def test_check_raises(self):
        limiter = LookupRateLimiter(1, clock=lambda: 0.0)
        limiter.check("alice")
        with pytest.raises(TooManyRequests):
            limiter.check("alice")

    def test_refilled_buckets_are_dropped(self):
        now = [0.0]
        limiter = LookupRateLimiter(60, clock=lambda: now[0], prune_threshold=4)

        for caller in ("a", "b", "c", "d"):
            limiter.allow(caller)
        assert limiter.tracked == 4

        now[0] += 2.0
        limiter.allow("e")
        assert limiter.tracked == 1

    def test_draining_buckets_survive_pruning(self):
        now = [0.0]
        limiter = LookupRateLimiter(2, clock=lambda: now[0], prune_threshold=2)

        limiter.allow("alice")
        limiter.allow("alice")
        limiter.allow("bob")
        assert limiter.tracked == 2
        assert not limiter.allow("alice")
