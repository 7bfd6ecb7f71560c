"""Unit tests for the Redis sliding-window rate limiter."""
import pytest
import redis
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from hostpanel.middleware.rate_limit import RATE_LIMIT_MESSAGE, RateLimiter, RateLimitMiddleware


class _FakePipeline:
    def __init__(self, store):
        self._store = store
        self._ops = []

    def __getattr__(self, name):
        def _queue(*args, **kwargs):
            self._ops.append((name, args, kwargs))
            return self
        return _queue

    def execute(self):
        return [getattr(self._store, name)(*args, **kwargs) for name, args, kwargs in self._ops]


class _FakeRedis:
    """Just enough of the sorted-set API for the limiter."""

    def __init__(self):
        self.sets = {}

    def pipeline(self, transaction=True):
        return _FakePipeline(self)

    def zremrangebyscore(self, key, lo, hi):
        members = self.sets.setdefault(key, {})
        for m in [m for m, s in members.items() if lo <= s <= hi]:
            del members[m]

    def zcard(self, key):
        return len(self.sets.get(key, {}))

    def zadd(self, key, mapping):
        self.sets.setdefault(key, {}).update(mapping)

    def expire(self, key, seconds):
        return True

    def zrem(self, key, member):
        self.sets.get(key, {}).pop(member, None)

    def zrange(self, key, start, end, withscores=False):
        ranked = sorted(self.sets.get(key, {}).items(), key=lambda kv: kv[1])
        return ranked[start:end + 1]


class _BrokenRedis:
    def pipeline(self, transaction=True):
        raise redis.ConnectionError("redis down")


def test_limiter_blocks_after_max():
    limiter = RateLimiter(client=_FakeRedis())
    results = [limiter.is_allowed("k", 3, 60) for _ in range(4)]
    assert [r[0] for r in results] == [True, True, True, False]
    assert results[0][1] == 2
    assert results[3][2] >= 1


def test_limiter_fails_open():
    limiter = RateLimiter(client=_BrokenRedis())
    assert limiter.is_allowed("k", 1, 60) == (True, 1, 0)


def _app(limiter):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter, max_requests=2, window_seconds=60)

    @app.get("/api/ping")
    def ping():
        return {"ok": True}

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


@pytest.mark.asyncio
async def test_middleware_returns_429_on_api_paths():
    transport = ASGITransport(app=_app(RateLimiter(client=_FakeRedis())))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        assert (await ac.get("/api/ping")).status_code == 200
        second = await ac.get("/api/ping")
        assert second.headers["X-RateLimit-Remaining"] == "0"
        blocked = await ac.get("/api/ping")
        assert blocked.status_code == 429
        assert blocked.json() == {"error": RATE_LIMIT_MESSAGE}
        assert "Retry-After" in blocked.headers

        # Non-API paths are not counted
        for _ in range(3):
            assert (await ac.get("/health")).status_code == 200
